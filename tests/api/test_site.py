"""Tests for the public site settings endpoint."""
from httpx import AsyncClient

from models.user import User
from tests.conftest import auth_headers


async def test_public_site_settings(client: AsyncClient) -> None:
    response = await client.get("/api/site-settings")

    assert response.status_code == 200
    assert response.json() == {
        "title": "Linkshelf",
        "description": "Save, tag and share your bookmarks",
        "keywords": "bookmarks, bookmark manager, links",
        "analyticsMeasurementId": None,
        "searchConsoleVerification": None,
    }


async def test_public_site_settings_reflect_admin_edits(
    client: AsyncClient, admin: User,
) -> None:
    """Admin edits show up publicly; the robots.txt override stays admin-only."""
    await client.put(
        "/api/admin/settings",
        json={"description": "Links worth keeping", "robotsTxt": "User-agent: *\n"},
        headers=auth_headers(admin),
    )

    data = (await client.get("/api/site-settings")).json()

    assert data["description"] == "Links worth keeping"
    assert "robotsTxt" not in data
