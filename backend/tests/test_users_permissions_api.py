"""
User administration and permission assignment tests.

Verifies:
- User CRUD requires admin or "manage users"
- Only admins touch is_admin or assign permissions
- Deactivation revokes sessions
- Permission assign/sync/remove semantics and validation
"""

from crowdfund.models import User
from crowdfund.permissions import MANAGE_CAMPAIGNS, MANAGE_DONATIONS, VIEW_DONATIONS
from crowdfund.services import permission_service


NEW_USER = {"name": "New Donor", "email": "New.Donor@Example.com", "password": "Str0ng!Pass"}


class TestUserCrud:

    def test_support_creates_user(self, client, support, headers_for):
        resp = client.post("/api/users", json=NEW_USER, headers=headers_for(support))

        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["email"] == "new.donor@example.com"
        assert data["is_admin"] is False
        assert "password_hash" not in data

    def test_regular_user_denied(self, client, donor, headers_for):
        assert client.get("/api/users", headers=headers_for(donor)).status_code == 403
        assert client.post("/api/users", json=NEW_USER, headers=headers_for(donor)).status_code == 403

    def test_support_cannot_grant_admin(self, client, support, headers_for):
        resp = client.post("/api/users", json={**NEW_USER, "is_admin": True}, headers=headers_for(support))
        assert resp.status_code == 403

    def test_admin_grants_admin(self, client, admin, headers_for):
        resp = client.post("/api/users", json={**NEW_USER, "is_admin": True}, headers=headers_for(admin))
        assert resp.status_code == 201
        assert resp.json["data"]["is_admin"] is True

    def test_duplicate_email(self, client, admin, donor, headers_for):
        resp = client.post("/api/users", json={**NEW_USER, "email": donor.email.upper()}, headers=headers_for(admin))
        assert resp.status_code == 422
        assert resp.json["errors"]["email"] == ["The email has already been taken."]

    def test_weak_password(self, client, admin, headers_for):
        resp = client.post("/api/users", json={**NEW_USER, "password": "short"}, headers=headers_for(admin))
        assert resp.status_code == 422
        assert "password" in resp.json["errors"]

    def test_search(self, client, admin, donor, stranger, headers_for):
        resp = client.get("/api/users/search?search=stranger", headers=headers_for(admin))

        assert resp.status_code == 200
        assert [u["id"] for u in resp.json["data"]] == [stranger.id]

    def test_filter_admins(self, client, admin, donor, headers_for):
        resp = client.get("/api/users?is_admin=true", headers=headers_for(admin))
        assert [u["id"] for u in resp.json["data"]] == [admin.id]

    def test_update_user(self, client, support, donor, headers_for):
        resp = client.put(f"/api/users/{donor.id}", json={"name": "Renamed"}, headers=headers_for(support))
        assert resp.status_code == 200
        assert resp.json["data"]["name"] == "Renamed"

    def test_deactivation_revokes_sessions(self, client, admin, donor, headers_for):
        donor_headers = headers_for(donor)
        assert client.get("/api/user", headers=donor_headers).status_code == 200

        resp = client.put(f"/api/users/{donor.id}", json={"is_active": False}, headers=headers_for(admin))
        assert resp.status_code == 200

        assert client.get("/api/user", headers=donor_headers).status_code == 401

    def test_delete_deactivates(self, client, db_session, admin, donor, headers_for):
        resp = client.delete(f"/api/users/{donor.id}", headers=headers_for(admin))

        assert resp.status_code == 204
        db_session.expire_all()
        assert db_session.get(User, donor.id).is_active is False

    def test_cannot_delete_self(self, client, admin, headers_for):
        resp = client.delete(f"/api/users/{admin.id}", headers=headers_for(admin))
        assert resp.status_code == 403
        assert resp.json["message"] == "You cannot delete your own account."

    def test_missing_user(self, client, admin, headers_for):
        assert client.get("/api/users/9999", headers=headers_for(admin)).status_code == 404


class TestPermissionAssignment:

    def test_non_admin_denied(self, client, support, donor, headers_for):
        resp = client.post(
            f"/api/users/{donor.id}/permissions",
            json={"permissions": [MANAGE_CAMPAIGNS]},
            headers=headers_for(support),
        )
        assert resp.status_code == 403
        assert resp.json == {"message": "Unauthorized. Admin access required."}

    def test_assign(self, client, admin, donor, headers_for):
        resp = client.post(
            f"/api/users/{donor.id}/permissions",
            json={"permissions": [MANAGE_CAMPAIGNS, VIEW_DONATIONS]},
            headers=headers_for(admin),
        )

        assert resp.status_code == 200
        assert resp.json["message"] == "Permissions assigned successfully."
        assert resp.json["data"]["assigned_permissions"] == [MANAGE_CAMPAIGNS, VIEW_DONATIONS]
        assert permission_service.get_direct_permissions(donor.id) == {MANAGE_CAMPAIGNS, VIEW_DONATIONS}

    def test_assigned_permission_takes_effect(self, client, admin, donor, owner, make_campaign, headers_for):
        from crowdfund.models import Campaign

        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)
        donor_headers = headers_for(donor)
        assert client.put(f"/api/campaigns/{campaign.id}/approve", headers=donor_headers).status_code == 403

        client.post(
            f"/api/users/{donor.id}/permissions",
            json={"permissions": [MANAGE_CAMPAIGNS]},
            headers=headers_for(admin),
        )

        assert client.put(f"/api/campaigns/{campaign.id}/approve", headers=donor_headers).status_code == 200

    def test_sync_replaces(self, client, admin, finance, headers_for):
        resp = client.put(
            f"/api/users/{finance.id}/permissions",
            json={"permissions": [VIEW_DONATIONS]},
            headers=headers_for(admin),
        )

        assert resp.status_code == 200
        assert resp.json["data"]["current_permissions"] == [VIEW_DONATIONS]
        assert permission_service.get_direct_permissions(finance.id) == {VIEW_DONATIONS}

    def test_sync_empty_clears(self, client, admin, finance, headers_for):
        resp = client.put(f"/api/users/{finance.id}/permissions", json={"permissions": []}, headers=headers_for(admin))

        assert resp.status_code == 200
        assert permission_service.get_direct_permissions(finance.id) == set()

    def test_remove(self, client, admin, finance, headers_for):
        resp = client.delete(
            f"/api/users/{finance.id}/permissions",
            json={"permissions": [MANAGE_DONATIONS]},
            headers=headers_for(admin),
        )

        assert resp.status_code == 200
        assert resp.json["data"]["removed_permissions"] == [MANAGE_DONATIONS]
        assert permission_service.get_direct_permissions(finance.id) == set()

    def test_unknown_permission(self, client, admin, donor, headers_for):
        resp = client.post(
            f"/api/users/{donor.id}/permissions",
            json={"permissions": [MANAGE_CAMPAIGNS, "launch rockets"]},
            headers=headers_for(admin),
        )

        assert resp.status_code == 422
        assert resp.json["errors"] == {"permissions.1": ["The selected permissions.1 is invalid."]}
        assert permission_service.get_direct_permissions(donor.id) == set()

    def test_empty_assign_rejected(self, client, admin, donor, headers_for):
        resp = client.post(f"/api/users/{donor.id}/permissions", json={"permissions": []}, headers=headers_for(admin))
        assert resp.status_code == 422

    def test_describe(self, client, admin, finance, headers_for):
        from crowdfund.services.auth_service import assign_role

        assign_role(finance.id, "moderator")

        resp = client.get(f"/api/users/{finance.id}/permissions", headers=headers_for(admin))

        data = resp.json["data"]
        assert data["direct_permissions"] == [MANAGE_DONATIONS]
        assert MANAGE_CAMPAIGNS in data["role_permissions"]
        assert set(data["all_permissions"]) >= {MANAGE_DONATIONS, MANAGE_CAMPAIGNS, VIEW_DONATIONS}
        assert data["roles"] == ["moderator"]

    def test_catalogue(self, client, admin, donor, headers_for):
        resp = client.get("/api/permissions", headers=headers_for(admin))
        assert resp.status_code == 200
        assert {p["name"] for p in resp.json["data"]} == {
            "manage campaigns", "manage donations", "view donations", "manage users",
        }
        assert client.get("/api/permissions", headers=headers_for(donor)).status_code == 403
