"""
Policy table tests.

Verifies:
- Admins are privileged for every action except donating to unapproved campaigns
- Named permissions grant exactly the actions mapped to them
- Owner rules depend on resource state (unapproved campaigns, pending donations)
- Denials are logged as PERMISSION_DENIED security events
"""

import pytest

from crowdfund.errors import ForbiddenError
from crowdfund.models import Campaign, Donation, SecurityEvent
from crowdfund.permissions import MANAGE_CAMPAIGNS, MANAGE_DONATIONS, MANAGE_USERS, VIEW_DONATIONS
from crowdfund.services import policy_service
from crowdfund.services.policy_service import Actor


ADMIN = Actor(id=1, is_admin=True, permissions=frozenset())
MODERATOR = Actor(id=2, is_admin=False, permissions=frozenset({MANAGE_CAMPAIGNS}))
FINANCE = Actor(id=3, is_admin=False, permissions=frozenset({MANAGE_DONATIONS}))
AUDITOR = Actor(id=4, is_admin=False, permissions=frozenset({VIEW_DONATIONS}))
OWNER = Actor(id=5, is_admin=False, permissions=frozenset())
STRANGER = Actor(id=6, is_admin=False, permissions=frozenset())
SUPPORT = Actor(id=7, is_admin=False, permissions=frozenset({MANAGE_USERS}))


def _campaign(status, creator_id=OWNER.id):
    return Campaign(id=10, status=status, creator_id=creator_id)


def _donation(status=Donation.STATUS_PENDING, visibility=Donation.VISIBILITY_PUBLIC, donor_id=OWNER.id):
    return Donation(id=20, status=status, visibility=visibility, donor_id=donor_id)


# =============================================================================
# CAMPAIGNS
# =============================================================================


class TestCampaignRules:

    @pytest.mark.parametrize("status", [
        Campaign.STATUS_DRAFT,
        Campaign.STATUS_PENDING,
        Campaign.STATUS_REJECTED,
        Campaign.STATUS_CANCELLED,
    ])
    def test_unapproved_campaign_hidden_from_strangers(self, status):
        campaign = _campaign(status)
        assert not policy_service.can_view_campaign(STRANGER, campaign)
        assert policy_service.can_view_campaign(OWNER, campaign)
        assert policy_service.can_view_campaign(MODERATOR, campaign)
        assert policy_service.can_view_campaign(ADMIN, campaign)

    def test_approved_campaign_visible_to_everyone(self):
        assert policy_service.can_view_campaign(STRANGER, _campaign(Campaign.STATUS_APPROVED))

    def test_owner_edits_until_approval(self):
        assert policy_service.can_modify_campaign(OWNER, _campaign(Campaign.STATUS_DRAFT))
        assert policy_service.can_modify_campaign(OWNER, _campaign(Campaign.STATUS_PENDING))
        assert not policy_service.can_modify_campaign(OWNER, _campaign(Campaign.STATUS_APPROVED))
        assert not policy_service.can_delete_campaign(OWNER, _campaign(Campaign.STATUS_APPROVED))

    def test_moderator_edits_any_campaign(self):
        approved = _campaign(Campaign.STATUS_APPROVED)
        assert policy_service.can_modify_campaign(MODERATOR, approved)
        assert policy_service.can_delete_campaign(MODERATOR, approved)

    def test_stranger_cannot_edit(self):
        assert not policy_service.can_modify_campaign(STRANGER, _campaign(Campaign.STATUS_DRAFT))

    def test_moderation_requires_manage_campaigns(self):
        assert policy_service.can_moderate(ADMIN)
        assert policy_service.can_moderate(MODERATOR)
        assert not policy_service.can_moderate(FINANCE)
        assert not policy_service.can_moderate(OWNER)

    def test_statistics_are_privileged(self):
        campaign = _campaign(Campaign.STATUS_APPROVED)
        assert policy_service.is_allowed(MODERATOR, policy_service.CAMPAIGN_STATISTICS, campaign)
        assert not policy_service.is_allowed(OWNER, policy_service.CAMPAIGN_STATISTICS, campaign)

    def test_owner_manages_media_in_any_status(self):
        campaign = _campaign(Campaign.STATUS_APPROVED)
        assert policy_service.is_allowed(OWNER, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)
        assert not policy_service.is_allowed(STRANGER, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)


# =============================================================================
# DONATIONS
# =============================================================================


class TestDonationRules:

    def test_only_approved_campaigns_accept_donations(self):
        assert policy_service.can_donate_to(STRANGER, _campaign(Campaign.STATUS_APPROVED))
        for status in (Campaign.STATUS_DRAFT, Campaign.STATUS_PENDING, Campaign.STATUS_COMPLETED):
            assert not policy_service.can_donate_to(STRANGER, _campaign(status))

    def test_admin_cannot_donate_to_unapproved_campaign(self):
        assert not policy_service.can_donate_to(ADMIN, _campaign(Campaign.STATUS_PENDING))

    def test_anonymous_visibility_hides_donation(self):
        donation = _donation(visibility=Donation.VISIBILITY_ANONYMOUS)
        assert not policy_service.can_view_donation(STRANGER, donation)
        assert policy_service.can_view_donation(OWNER, donation)
        assert policy_service.can_view_donation(AUDITOR, donation)
        assert policy_service.can_view_donation(FINANCE, donation)

    def test_public_donation_visible_to_everyone(self):
        assert policy_service.can_view_donation(STRANGER, _donation())

    def test_donor_edits_only_pending_donation(self):
        assert policy_service.can_modify_donation(OWNER, _donation())
        assert not policy_service.can_modify_donation(OWNER, _donation(status=Donation.STATUS_COMPLETED))

    def test_view_donations_is_read_only(self):
        donation = _donation()
        assert not policy_service.can_modify_donation(AUDITOR, donation)
        assert not policy_service.can_delete_donation(AUDITOR, donation)
        assert policy_service.is_allowed(AUDITOR, policy_service.DONATION_LIST_ALL)
        assert not policy_service.is_allowed(AUDITOR, policy_service.TRANSACTION_LIST_ALL)

    def test_donor_cannot_delete(self):
        assert not policy_service.can_delete_donation(OWNER, _donation())
        assert policy_service.can_delete_donation(FINANCE, _donation())


# =============================================================================
# ADMINISTRATION
# =============================================================================


class TestAdministrationRules:

    def test_manage_users(self):
        assert policy_service.is_allowed(SUPPORT, policy_service.USER_MANAGE)
        assert policy_service.is_allowed(ADMIN, policy_service.USER_MANAGE)
        assert not policy_service.is_allowed(MODERATOR, policy_service.USER_MANAGE)

    def test_permission_management_is_admin_only(self):
        assert policy_service.is_allowed(ADMIN, policy_service.PERMISSION_MANAGE)
        assert not policy_service.is_allowed(SUPPORT, policy_service.PERMISSION_MANAGE)

    def test_unknown_action_denied(self):
        assert not policy_service.is_allowed(ADMIN, "campaign.launch_rocket")


class TestAuthorize:

    def test_denial_raises_and_logs(self, db_session, stranger):
        actor = Actor.for_user(stranger)
        campaign = _campaign(Campaign.STATUS_PENDING, creator_id=stranger.id + 100)

        with pytest.raises(ForbiddenError) as exc:
            policy_service.authorize(actor, policy_service.CAMPAIGN_MODERATE, campaign)

        assert exc.value.message == "You do not have permission to moderate campaigns."
        event = db_session.query(SecurityEvent).filter_by(user_id=stranger.id).one()
        assert event.event_type == "PERMISSION_DENIED"
        assert event.action == policy_service.CAMPAIGN_MODERATE
        assert event.success is False

    def test_allowed_action_logs_nothing(self, db_session, admin):
        policy_service.authorize(Actor.for_user(admin), policy_service.CAMPAIGN_MODERATE)
        assert db_session.query(SecurityEvent).count() == 0

    def test_actor_uses_role_permissions(self, db_session, stranger):
        from crowdfund.services.auth_service import assign_role

        assign_role(stranger.id, "finance")
        actor = Actor.for_user(stranger)

        assert MANAGE_DONATIONS in actor.permissions
        assert actor.is_privileged_for(policy_service.DONATION_MANAGE)
