"""
Test Suite for Book Catalogue API

This package contains all tests for the Book Catalogue API.

Test Organization:
- conftest.py: Shared fixtures (test database, client, users, sample book)
- test_auth.py: Tests for /api/v1/auth endpoints and bearer tokens
- test_books.py: Tests for /api/v1/books endpoints and cover handling
- test_ratings.py: Tests for ratings and /api/v1/books/bestrating
- test_images.py: Tests for upload staging and image normalization
- test_health.py: Tests for /health, / and the image mount

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_books.py

    # Run specific test class
    pytest tests/test_ratings.py::TestBestRated

    # Run with verbose output
    pytest -v
"""
