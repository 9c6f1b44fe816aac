"""
Services Package

Business logic kept separate from HTTP handling:
- images.py: Cover normalization (Pillow) and reclamation of orphaned files
- rate_limiter.py: Rate limiting with slowapi
- ratings.py: Rating submission, average computation, best-rated query
- security.py: Password hashing and JWT utilities
- uploads.py: Validation and staging of uploaded cover files
"""
