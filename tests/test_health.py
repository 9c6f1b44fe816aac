"""
Tests for Health and Root Endpoints
"""

from fastapi import status


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["authentication"]["configured"] is True
        assert data["images"]["directory_exists"] is True
        assert data["rate_limiting"]["enabled"] is False

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["docs"] == "/docs"

    def test_unknown_image_is_404(self, client):
        response = client.get("/images/missing.webp")

        assert response.status_code == status.HTTP_404_NOT_FOUND
