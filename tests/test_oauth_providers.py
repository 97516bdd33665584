"""
OAuth Provider Tests
====================
"""

import pytest

from conftest import login_as
from ytp_portal.models import OAuthProvider


@pytest.fixture
def providers(db_session):
    rows = [
        OAuthProvider(provider_id="google.com", name="Google", is_enabled=True, display_order=1),
        OAuthProvider(provider_id="facebook.com", name="Facebook", is_enabled=False, display_order=2),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


class TestPublicProviders:

    def test_only_enabled_without_session(self, client, providers):
        response = client.get("/api/public/oauth-providers")

        assert response.status_code == 200
        assert response.json() == {
            "providers": [
                {"provider_id": "google.com", "name": "Google", "logo_url": None, "button_color": "#4285F4"}
            ]
        }


class TestManageProviders:

    def test_admin_lists_all(self, client, admin, providers):
        login_as(client, admin)
        assert len(client.get("/api/oauth-providers").json()["providers"]) == 2

    def test_create(self, client, admin, db_session):
        login_as(client, admin)

        response = client.post(
            "/api/oauth-providers",
            json={"providerId": "apple.com", "name": "Apple", "buttonColor": "#000000", "isEnabled": True},
        )

        assert response.status_code == 200
        provider = db_session.get(OAuthProvider, response.json()["provider_id"])
        assert provider.provider_id == "apple.com"

    def test_duplicate_provider_id(self, client, admin, providers):
        login_as(client, admin)
        response = client.post("/api/oauth-providers", json={"providerId": "google.com", "name": "Google 2"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Provider ID already exists"

    def test_bad_color(self, client, admin):
        login_as(client, admin)
        response = client.post("/api/oauth-providers", json={"providerId": "x", "name": "X", "buttonColor": "red"})
        assert response.status_code == 400

    def test_update_and_delete(self, client, admin, providers, db_session):
        login_as(client, admin)
        provider = providers[1]

        assert client.put(f"/api/oauth-providers/{provider.id}", json={"isEnabled": True}).status_code == 200
        db_session.expire_all()
        assert provider.is_enabled is True

        assert client.delete(f"/api/oauth-providers/{provider.id}").status_code == 200
        assert client.delete(f"/api/oauth-providers/{provider.id}").status_code == 404

    def test_lawyer_is_forbidden(self, client, lawyer):
        login_as(client, lawyer)
        assert client.get("/api/oauth-providers").status_code == 403
