"""
Lifecycle tests: campaign moderation and the donation state machine.

Verifies:
- approve/reject stamp moderation fields; reject requires a reason
- completing a donation adds to the campaign total and issues one receipt
- refunds and deletions subtract, never below zero
- invalid transitions raise ConflictError without side effects
- document numbers are sequential per type
"""

import re

import pytest

from crowdfund.errors import ConflictError, ForbiddenError
from crowdfund.models import Campaign, Donation, DonationReceipt
from crowdfund.services import document_service, lifecycle_service
from crowdfund.services.policy_service import Actor
from crowdfund.validation import ValidationError


# =============================================================================
# CAMPAIGN MODERATION
# =============================================================================


class TestModeration:

    def test_approve_stamps_approver(self, db_session, moderator, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        lifecycle_service.approve_campaign(campaign, Actor.for_user(moderator))

        db_session.refresh(campaign)
        assert campaign.status == Campaign.STATUS_APPROVED
        assert campaign.approved_by == moderator.id
        assert campaign.approved_at is not None

    def test_reject_records_reason(self, db_session, admin, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        lifecycle_service.reject_campaign(campaign, Actor.for_user(admin), {"reason": "Missing documents"})

        db_session.refresh(campaign)
        assert campaign.status == Campaign.STATUS_REJECTED
        assert campaign.rejected_by == admin.id
        assert campaign.rejected_reason == "Missing documents"
        assert campaign.rejected_at is not None

    def test_reject_after_approval_keeps_approval_fields(self, db_session, admin, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)
        actor = Actor.for_user(admin)
        lifecycle_service.approve_campaign(campaign, actor)

        lifecycle_service.reject_campaign(campaign, actor, {"reason": "Fraud report"})

        db_session.refresh(campaign)
        assert campaign.status == Campaign.STATUS_REJECTED
        assert campaign.approved_by == admin.id

    def test_reject_requires_reason(self, db_session, admin, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        with pytest.raises(ValidationError) as exc:
            lifecycle_service.reject_campaign(campaign, Actor.for_user(admin), {})

        assert "reason" in exc.value.errors

    def test_reject_reason_max_length(self, db_session, admin, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        with pytest.raises(ValidationError):
            lifecycle_service.reject_campaign(campaign, Actor.for_user(admin), {"reason": "x" * 1001})

    def test_authorization_checked_before_validation(self, db_session, owner, make_campaign):
        campaign = make_campaign(owner, status=Campaign.STATUS_PENDING)

        with pytest.raises(ForbiddenError):
            lifecycle_service.reject_campaign(campaign, Actor.for_user(owner), {})

        db_session.refresh(campaign)
        assert campaign.status == Campaign.STATUS_PENDING


# =============================================================================
# DONATION STATE MACHINE
# =============================================================================


class TestDonationTransitions:

    @pytest.mark.parametrize("from_status,to_status,allowed", [
        (Donation.STATUS_PENDING, Donation.STATUS_COMPLETED, True),
        (Donation.STATUS_PENDING, Donation.STATUS_FAILED, True),
        (Donation.STATUS_COMPLETED, Donation.STATUS_REFUNDED, True),
        (Donation.STATUS_PENDING, Donation.STATUS_REFUNDED, False),
        (Donation.STATUS_COMPLETED, Donation.STATUS_PENDING, False),
        (Donation.STATUS_FAILED, Donation.STATUS_COMPLETED, False),
        (Donation.STATUS_REFUNDED, Donation.STATUS_COMPLETED, False),
    ])
    def test_transition_table(self, from_status, to_status, allowed):
        assert lifecycle_service.can_transition_donation(from_status, to_status) is allowed

    def test_complete_adds_to_total_and_issues_receipt(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner, current_amount=1000)
        donation = make_donation(campaign, donor, amount=2500)

        lifecycle_service.complete_donation(donation)
        db_session.commit()

        db_session.refresh(campaign)
        assert campaign.current_amount == 3500
        assert donation.status == Donation.STATUS_COMPLETED
        assert donation.completed_at is not None

        receipt = db_session.query(DonationReceipt).filter_by(donation_id=donation.id).one()
        assert re.fullmatch(r"RCP-\d{4}-000001", receipt.receipt_number)

    def test_refund_subtracts_from_total(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner)
        donation = make_donation(campaign, donor, amount=700)
        lifecycle_service.complete_donation(donation)
        db_session.commit()

        lifecycle_service.refund_donation(donation)
        db_session.commit()

        db_session.refresh(campaign)
        assert campaign.current_amount == 0
        assert donation.status == Donation.STATUS_REFUNDED
        assert donation.refunded_at is not None

    def test_subtraction_floors_at_zero(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner, current_amount=100)
        donation = make_donation(campaign, donor, amount=500, status=Donation.STATUS_COMPLETED)

        lifecycle_service.refund_donation(donation)
        db_session.commit()

        db_session.refresh(campaign)
        assert campaign.current_amount == 0

    def test_release_only_affects_completed(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner, current_amount=900)
        pending = make_donation(campaign, donor, amount=400)
        completed = make_donation(campaign, donor, amount=300, status=Donation.STATUS_COMPLETED)

        lifecycle_service.release_donation(pending)
        lifecycle_service.release_donation(completed)
        db_session.commit()

        db_session.refresh(campaign)
        assert campaign.current_amount == 600

    def test_invalid_transition_raises_conflict(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner)
        donation = make_donation(campaign, donor, amount=500)

        with pytest.raises(ConflictError):
            lifecycle_service.refund_donation(donation)

        db_session.refresh(campaign)
        assert campaign.current_amount == 0

    def test_same_status_is_noop(self, db_session, owner, donor, make_campaign, make_donation):
        campaign = make_campaign(owner)
        donation = make_donation(campaign, donor, status=Donation.STATUS_COMPLETED)

        lifecycle_service.transition_donation(donation, Donation.STATUS_COMPLETED)
        db_session.commit()

        db_session.refresh(campaign)
        assert campaign.current_amount == 0
        assert db_session.query(DonationReceipt).count() == 0


# =============================================================================
# DOCUMENT NUMBERS
# =============================================================================


class TestDocumentNumbers:

    def test_sequences_are_independent_and_sequential(self, db_session):
        first = document_service.next_document_number(document_service.RECEIPT)
        second = document_service.next_document_number(document_service.RECEIPT)
        txn = document_service.next_document_number(document_service.TRANSACTION)
        db_session.commit()

        assert first.startswith("RCP-") and first.endswith("-000001")
        assert second.endswith("-000002")
        assert txn.startswith("TXN-") and txn.endswith("-000001")

    def test_unknown_type_rejected(self, db_session):
        with pytest.raises(document_service.DocumentSequenceError):
            document_service.next_document_number("INVOICE")
