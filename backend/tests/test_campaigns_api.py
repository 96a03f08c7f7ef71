"""
Campaign API tests.

Verifies:
- Unauthenticated requests return 401
- Visibility of listings and single campaigns
- Owner edit restrictions (privileged fields, status, post-approval)
- Moderation endpoints, soft delete, statistics and media
"""

import pytest

from crowdfund.models import Campaign, CampaignMedia


def _payload(**overrides):
    body = {
        "title": "School Library",
        "description": "Books for the village school",
        "goal_amount": 50000,
        "start_date": "2026-05-01",
        "end_date": "2026-06-30",
    }
    body.update(overrides)
    return body


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticated:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/campaigns"),
        ("POST", "/api/campaigns"),
        ("GET", "/api/campaigns/1"),
        ("PUT", "/api/campaigns/1/approve"),
        ("GET", "/api/campaigns/1/statistics"),
        ("GET", "/api/donations"),
        ("GET", "/api/transactions"),
        ("GET", "/api/users"),
        ("GET", "/api/permissions"),
    ])
    def test_requires_auth(self, client, db_session, method, path):
        resp = client.open(path, method=method)
        assert resp.status_code == 401
        assert resp.json == {"message": "Unauthenticated."}

    def test_invalid_token(self, client, db_session):
        resp = client.get("/api/campaigns", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# LISTING / VIEWING
# =============================================================================


class TestListing:

    def test_non_privileged_sees_approved_and_own(self, client, owner, stranger, make_campaign, headers_for):
        make_campaign(stranger, status=Campaign.STATUS_APPROVED, title="Public")
        make_campaign(stranger, status=Campaign.STATUS_DRAFT, title="Hidden")
        make_campaign(owner, status=Campaign.STATUS_DRAFT, title="Mine")

        resp = client.get("/api/campaigns", headers=headers_for(owner))

        assert resp.status_code == 200
        titles = {c["title"] for c in resp.json["data"]}
        assert titles == {"Public", "Mine"}
        assert resp.json["meta"]["total"] == 2

    def test_privileged_sees_everything(self, client, moderator, owner, make_campaign, headers_for):
        make_campaign(owner, status=Campaign.STATUS_DRAFT)
        make_campaign(owner, status=Campaign.STATUS_REJECTED)

        resp = client.get("/api/campaigns", headers=headers_for(moderator))

        assert resp.json["meta"]["total"] == 2

    def test_status_and_search_filters(self, client, admin, owner, make_campaign, headers_for):
        make_campaign(owner, status=Campaign.STATUS_APPROVED, title="Clean Water")
        make_campaign(owner, status=Campaign.STATUS_APPROVED, title="Solar Panels")
        make_campaign(owner, status=Campaign.STATUS_PENDING, title="Water Tower")

        resp = client.get("/api/campaigns?status=2&search=water", headers=headers_for(admin))

        assert [c["title"] for c in resp.json["data"]] == ["Clean Water"]

    def test_status_filter_accepts_label(self, client, admin, owner, make_campaign, headers_for):
        make_campaign(owner, status=Campaign.STATUS_APPROVED, title="Clean Water")
        make_campaign(owner, status=Campaign.STATUS_PENDING, title="Water Tower")

        resp = client.get("/api/campaigns?status=pending", headers=headers_for(admin))

        assert resp.status_code == 200
        assert [c["title"] for c in resp.json["data"]] == ["Water Tower"]

    @pytest.mark.parametrize("value", ["live", "9", "-1"])
    def test_unknown_status_filter(self, client, admin, owner, make_campaign, headers_for, value):
        make_campaign(owner)

        resp = client.get(f"/api/campaigns?status={value}", headers=headers_for(admin))

        assert resp.status_code == 422
        assert "status" in resp.json["errors"]

    def test_pagination_meta(self, client, admin, owner, make_campaign, headers_for):
        for i in range(5):
            make_campaign(owner, title=f"Campaign {i}")

        resp = client.get("/api/campaigns?per_page=2&page=3", headers=headers_for(admin))

        assert resp.json["meta"] == {"current_page": 3, "last_page": 3, "per_page": 2, "total": 5}
        assert len(resp.json["data"]) == 1

    def test_newest_first(self, client, admin, owner, make_campaign, headers_for):
        first = make_campaign(owner, title="First")
        second = make_campaign(owner, title="Second")

        resp = client.get("/api/campaigns", headers=headers_for(admin))

        assert [c["id"] for c in resp.json["data"]] == [second.id, first.id]

    def test_stranger_cannot_view_draft(self, client, owner, stranger, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_DRAFT)

        resp = client.get(f"/api/campaigns/{campaign.id}", headers=headers_for(stranger))

        assert resp.status_code == 403

    def test_view_includes_creator_summary(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner)

        resp = client.get(f"/api/campaigns/{campaign.id}", headers=headers_for(owner))

        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["creator"] == {"id": owner.id, "name": owner.name, "email": owner.email}
        assert data["status_label"] == "approved"

    def test_missing_campaign(self, client, admin, headers_for):
        resp = client.get("/api/campaigns/9999", headers=headers_for(admin))
        assert resp.status_code == 404


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================


class TestCreate:

    def test_create_defaults(self, client, owner, headers_for):
        resp = client.post("/api/campaigns", json=_payload(), headers=headers_for(owner))

        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["creator_id"] == owner.id
        assert data["status"] == Campaign.STATUS_DRAFT
        assert data["current_amount"] == 0
        assert data["start_date"] == "2026-05-01"

    def test_owner_may_submit_as_pending(self, client, owner, headers_for):
        resp = client.post("/api/campaigns", json=_payload(status=1), headers=headers_for(owner))
        assert resp.status_code == 201
        assert resp.json["data"]["status"] == Campaign.STATUS_PENDING

    def test_owner_cannot_self_approve(self, client, owner, headers_for):
        resp = client.post("/api/campaigns", json=_payload(status=2), headers=headers_for(owner))
        assert resp.status_code == 403

    def test_owner_cannot_seed_total(self, client, owner, headers_for):
        resp = client.post("/api/campaigns", json=_payload(current_amount=5000), headers=headers_for(owner))
        assert resp.status_code == 403

    def test_privileged_may_assign_creator(self, client, moderator, owner, headers_for):
        resp = client.post(
            "/api/campaigns",
            json=_payload(creator_id=owner.id, status=2),
            headers=headers_for(moderator),
        )
        assert resp.status_code == 201
        assert resp.json["data"]["creator_id"] == owner.id

    def test_unknown_creator_is_invalid(self, client, admin, headers_for):
        resp = client.post("/api/campaigns", json=_payload(creator_id=9999), headers=headers_for(admin))
        assert resp.status_code == 422
        assert "creator_id" in resp.json["errors"]

    @pytest.mark.parametrize("field,value", [
        ("goal_amount", 0),
        ("goal_amount", "abc"),
        ("title", ""),
        ("title", "x" * 256),
        ("start_date", "not-a-date"),
    ])
    def test_invalid_fields(self, client, owner, headers_for, field, value):
        resp = client.post("/api/campaigns", json=_payload(**{field: value}), headers=headers_for(owner))
        assert resp.status_code == 422
        assert field in resp.json["errors"]

    def test_missing_fields(self, client, owner, headers_for):
        resp = client.post("/api/campaigns", json={}, headers=headers_for(owner))
        assert resp.status_code == 422
        assert set(resp.json["errors"]) >= {"title", "description", "goal_amount", "start_date", "end_date"}

    def test_end_before_start(self, client, owner, headers_for):
        resp = client.post(
            "/api/campaigns",
            json=_payload(start_date="2026-06-01", end_date="2026-05-01"),
            headers=headers_for(owner),
        )
        assert resp.status_code == 422
        assert "end_date" in resp.json["errors"]


class TestUpdate:

    def test_owner_updates_draft(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_DRAFT)

        resp = client.put(f"/api/campaigns/{campaign.id}", json={"title": "Renamed"}, headers=headers_for(owner))

        assert resp.status_code == 200
        assert resp.json["data"]["title"] == "Renamed"

    def test_owner_cannot_update_approved(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_APPROVED)

        resp = client.put(f"/api/campaigns/{campaign.id}", json={"title": "Renamed"}, headers=headers_for(owner))

        assert resp.status_code == 403

    def test_merged_date_order_checked(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_DRAFT)

        resp = client.put(
            f"/api/campaigns/{campaign.id}",
            json={"end_date": "2000-01-01"},
            headers=headers_for(owner),
        )

        assert resp.status_code == 422

    def test_stranger_cannot_update(self, client, owner, stranger, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_DRAFT)

        resp = client.put(f"/api/campaigns/{campaign.id}", json={"title": "x"}, headers=headers_for(stranger))

        assert resp.status_code == 403


class TestDelete:

    def test_soft_delete(self, client, db_session, owner, admin, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_DRAFT)

        resp = client.delete(f"/api/campaigns/{campaign.id}", headers=headers_for(owner))
        assert resp.status_code == 204

        assert client.get(f"/api/campaigns/{campaign.id}", headers=headers_for(admin)).status_code == 404

        db_session.expire_all()
        assert db_session.get(Campaign, campaign.id).deleted_at is not None

        listed = client.get("/api/campaigns?include_deleted=1", headers=headers_for(admin))
        assert [c["id"] for c in listed.json["data"]] == [campaign.id]

    def test_owner_cannot_delete_approved(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_APPROVED)
        assert client.delete(f"/api/campaigns/{campaign.id}", headers=headers_for(owner)).status_code == 403


# =============================================================================
# MODERATION / STATISTICS
# =============================================================================


class TestModerationApi:

    def test_approve(self, client, moderator, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        resp = client.put(f"/api/campaigns/{campaign.id}/approve", headers=headers_for(moderator))

        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["status"] == Campaign.STATUS_APPROVED
        assert data["approver"]["id"] == moderator.id

    def test_owner_cannot_approve(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)
        resp = client.put(f"/api/campaigns/{campaign.id}/approve", headers=headers_for(owner))
        assert resp.status_code == 403

    def test_reject_without_reason(self, client, admin, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        resp = client.put(f"/api/campaigns/{campaign.id}/reject", json={}, headers=headers_for(admin))

        assert resp.status_code == 422
        assert "reason" in resp.json["errors"]

    def test_reject(self, client, admin, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        resp = client.put(
            f"/api/campaigns/{campaign.id}/reject",
            json={"reason": "Incomplete description"},
            headers=headers_for(admin),
        )

        assert resp.status_code == 200
        assert resp.json["data"]["rejected_reason"] == "Incomplete description"
        assert resp.json["data"]["rejector"]["id"] == admin.id

    def test_statistics_endpoint(self, client, admin, owner, make_campaign, headers_for):
        campaign = make_campaign(owner, goal_amount=200, current_amount=50)

        resp = client.get(f"/api/campaigns/{campaign.id}/statistics", headers=headers_for(admin))

        assert resp.status_code == 200
        assert resp.json["completion_percentage"] == 25
        assert resp.json["statistics"]["labels"] == []


# =============================================================================
# MEDIA
# =============================================================================


def _logo(**overrides):
    body = {"file_name": "logo.png", "mime_type": "image/png", "size": 2048, "url": "https://cdn.test/logo.png"}
    body.update(overrides)
    return body


class TestMedia:

    def test_logo_lifecycle(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner)
        headers = headers_for(owner)
        base = f"/api/campaigns/{campaign.id}/logo"

        missing = client.get(base, headers=headers)
        assert missing.status_code == 404
        assert missing.json == {"message": "No logo found", "media": None}

        created = client.post(base, json=_logo(), headers=headers)
        assert created.status_code == 200
        assert created.json["media"]["collection_name"] == CampaignMedia.COLLECTION_LOGO

        replaced = client.put(base, json=_logo(file_name="new.jpg", mime_type="image/jpeg"), headers=headers)
        assert replaced.status_code == 200
        assert client.get(base, headers=headers).json["media"]["file_name"] == "new.jpg"

        assert client.delete(base, headers=headers).status_code == 200
        assert client.delete(base, headers=headers).status_code == 404

    def test_logo_rejects_video_and_oversize(self, client, owner, make_campaign, headers_for):
        campaign = make_campaign(owner)
        base = f"/api/campaigns/{campaign.id}/logo"

        video = client.post(base, json=_logo(file_name="clip.mp4", mime_type="video/mp4"), headers=headers_for(owner))
        assert video.status_code == 422

        big = client.post(base, json=_logo(size=6 * 1024 * 1024), headers=headers_for(owner))
        assert big.status_code == 422
        assert "size" in big.json["errors"]

    def test_media_collection(self, client, owner, stranger, make_campaign, headers_for):
        campaign = make_campaign(owner)
        base = f"/api/campaigns/{campaign.id}/media"

        video = _logo(file_name="clip.mp4", mime_type="video/mp4", size=20 * 1024 * 1024)
        created = client.post(base, json=video, headers=headers_for(owner))
        assert created.status_code == 200
        media_id = created.json["media"]["id"]

        listed = client.get(base, headers=headers_for(stranger))
        assert [m["id"] for m in listed.json["media"]] == [media_id]

        assert client.post(base, json=video, headers=headers_for(stranger)).status_code == 403

        replaced = client.put(f"{base}/{media_id}", json=_logo(), headers=headers_for(owner))
        new_id = replaced.json["media"]["id"]
        assert client.get(f"{base}/{media_id}", headers=headers_for(owner)).status_code == 404

        assert client.delete(f"{base}/{new_id}", headers=headers_for(owner)).status_code == 200
        assert client.get(base, headers=headers_for(owner)).json["media"] == []
