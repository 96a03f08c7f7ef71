# Overview: Campaign moderation and donation state machine; keeps campaign totals in step with completed donations.

"""
Campaign and Donation Lifecycle Service

================================================================================
CAMPAIGN STATE MACHINE
================================================================================

    DRAFT -> PENDING -> {APPROVED, REJECTED}
    APPROVED -> {COMPLETED, CANCELLED}

Only approve and reject are dedicated operations. Both require a moderator
(admin or "manage campaigns"). Re-approving an approved campaign and
rejecting an approved one are permitted; approval fields are never cleared
by a rejection.

================================================================================
DONATION STATE MACHINE
================================================================================

    PENDING -> {COMPLETED, FAILED}
    COMPLETED -> REFUNDED

RULES:
1. Donations are created PENDING, whatever the client sends.
2. Entering COMPLETED adds the amount to campaign.current_amount and issues
   a receipt, in the same database transaction.
3. Leaving COMPLETED (refund) or deleting a completed donation subtracts
   the amount; current_amount never drops below 0.
4. Any other transition raises ConflictError.

Functions in the donation section flush but never commit; the calling
service owns the transaction so a failure leaves no partial state.
================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError
from ..extensions import db
from ..models import Campaign, Donation
from ..time_utils import utcnow
from ..validation import CAMPAIGN_REJECT_SCHEMA
from . import policy_service, receipt_service
from .concurrency import lock_for_update
from .policy_service import Actor


# =============================================================================
# Campaign moderation
# =============================================================================

def approve_campaign(campaign: Campaign, actor: Actor) -> Campaign:
    """
    Approve a campaign.

    Sets status=approved, approved_at=now, approved_by=actor in one commit.
    """
    policy_service.authorize(actor, policy_service.CAMPAIGN_MODERATE, campaign)

    campaign.status = Campaign.STATUS_APPROVED
    campaign.approved_at = utcnow()
    campaign.approved_by = actor.id

    db.session.commit()
    current_app.logger.info("Campaign %s approved by user %s", campaign.id, actor.id)
    return campaign


def reject_campaign(campaign: Campaign, actor: Actor, payload: dict | None) -> Campaign:
    """
    Reject a campaign with a reason (required, at most 1000 characters).

    Authorization runs before validation, validation before any write.
    """
    policy_service.authorize(actor, policy_service.CAMPAIGN_MODERATE, campaign)
    data = CAMPAIGN_REJECT_SCHEMA.validate(payload)

    campaign.status = Campaign.STATUS_REJECTED
    campaign.rejected_by = actor.id
    campaign.rejected_reason = data["reason"]
    campaign.rejected_at = utcnow()

    db.session.commit()
    current_app.logger.info("Campaign %s rejected by user %s", campaign.id, actor.id)
    return campaign


# =============================================================================
# Donation state machine
# =============================================================================

DONATION_TRANSITIONS = {
    Donation.STATUS_PENDING: {Donation.STATUS_COMPLETED, Donation.STATUS_FAILED},
    Donation.STATUS_COMPLETED: {Donation.STATUS_REFUNDED},
    Donation.STATUS_FAILED: set(),
    Donation.STATUS_REFUNDED: set(),
}


def can_transition_donation(from_status: int, to_status: int) -> bool:
    return to_status in DONATION_TRANSITIONS.get(from_status, set())


def _locked_campaign(campaign_id: int) -> Campaign:
    return lock_for_update(
        db.session.query(Campaign).filter(Campaign.id == campaign_id)
    ).one()


def add_to_campaign_total(donation: Donation) -> None:
    campaign = _locked_campaign(donation.campaign_id)
    campaign.current_amount = (campaign.current_amount or 0) + donation.amount


def subtract_from_campaign_total(donation: Donation) -> None:
    campaign = _locked_campaign(donation.campaign_id)
    campaign.current_amount = max(0, (campaign.current_amount or 0) - donation.amount)


def check_donation_transition(donation: Donation, to_status: int) -> None:
    """Raise ConflictError unless donation may move to to_status (same status is fine)."""
    if donation.status == to_status:
        return
    if not can_transition_donation(donation.status, to_status):
        raise ConflictError(
            f"Cannot change donation status from "
            f"{Donation.STATUS_LABELS.get(donation.status)} to {Donation.STATUS_LABELS.get(to_status)}."
        )


def transition_donation(donation: Donation, to_status: int) -> Donation:
    """
    Move a donation to to_status, applying aggregate and receipt effects.

    Raises ConflictError for transitions outside DONATION_TRANSITIONS.
    A same-status request is a no-op.
    """
    check_donation_transition(donation, to_status)
    from_status = donation.status
    if from_status == to_status:
        return donation

    donation.status = to_status
    now = utcnow()

    if to_status == Donation.STATUS_COMPLETED:
        donation.completed_at = now
        add_to_campaign_total(donation)
        receipt_service.issue_receipt(donation)
    elif to_status == Donation.STATUS_REFUNDED:
        donation.refunded_at = now
        subtract_from_campaign_total(donation)

    db.session.flush()
    current_app.logger.info(
        "Donation %s: %s -> %s",
        donation.id,
        Donation.STATUS_LABELS.get(from_status),
        Donation.STATUS_LABELS.get(to_status),
    )
    return donation


def complete_donation(donation: Donation) -> Donation:
    return transition_donation(donation, Donation.STATUS_COMPLETED)


def fail_donation(donation: Donation) -> Donation:
    return transition_donation(donation, Donation.STATUS_FAILED)


def refund_donation(donation: Donation) -> Donation:
    return transition_donation(donation, Donation.STATUS_REFUNDED)


def release_donation(donation: Donation) -> None:
    """Undo a completed donation's contribution before it is deleted."""
    if donation.status == Donation.STATUS_COMPLETED:
        subtract_from_campaign_total(donation)
