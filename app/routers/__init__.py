"""
API Routers Package

Router Structure:
- auth.py: /api/v1/auth/* endpoints (signup, login)
- books.py: /api/v1/books/* endpoints (CRUD, covers, ratings)

Each router is imported and registered in main.py.
"""

from app.routers.auth import router as auth_router
from app.routers.books import router as books_router

__all__ = [
    "auth_router",
    "books_router",
]
