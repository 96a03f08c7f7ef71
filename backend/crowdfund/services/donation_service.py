# Overview: Service-layer operations for donations; creation against approved campaigns, edits, refunds and deletion.

"""
Donation Service

CREATION: any authenticated user may donate, but only to an approved
campaign. status is always pending on creation whatever the payload says.

EDITS:
- Donors edit message/visibility/anonymous on their own pending donations.
- Status only moves through the donation state machine and only for
  privileged actors ("manage donations" or admin).

LISTING: privileged actors ("manage donations"/"view donations") see every
donation; others see their own plus public ones.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Campaign, Donation, User
from ..validation import (
    DONATION_ADMIN_CREATE_SCHEMA,
    DONATION_CREATE_SCHEMA,
    DONATION_UPDATE_SCHEMA,
    ValidationError,
)
from . import campaign_service, lifecycle_service, policy_service
from .concurrency import run_with_retry
from .pagination import paginate
from .policy_service import Actor


def get_donation(donation_id: int) -> Donation:
    donation = db.session.query(Donation).filter(Donation.id == donation_id).first()
    if not donation:
        raise NotFoundError("Donation not found.")
    return donation


def _visible_to(query, actor: Actor):
    """Restrict a donation query to what a non-privileged actor may see."""
    if policy_service.is_allowed(actor, policy_service.DONATION_LIST_ALL):
        return query
    return query.filter(db.or_(
        Donation.donor_id == actor.id,
        Donation.visibility == Donation.VISIBILITY_PUBLIC,
    ))


def list_donations(
    actor: Actor,
    *,
    campaign_id: int | None = None,
    status: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Every donation, for privileged actors only."""
    policy_service.authorize(actor, policy_service.DONATION_LIST_ALL)

    query = db.session.query(Donation)
    if campaign_id is not None:
        query = query.filter(Donation.campaign_id == campaign_id)
    if status is not None:
        query = query.filter(Donation.status == status)

    query = query.order_by(Donation.created_at.desc(), Donation.id.desc())
    return paginate(query, page=page, per_page=per_page)


def list_campaign_donations(
    campaign: Campaign,
    actor: Actor,
    *,
    status: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    policy_service.authorize(actor, policy_service.CAMPAIGN_VIEW, campaign)

    query = _visible_to(
        db.session.query(Donation).filter(Donation.campaign_id == campaign.id),
        actor,
    )
    if status is not None:
        query = query.filter(Donation.status == status)

    query = query.order_by(Donation.created_at.desc(), Donation.id.desc())
    return paginate(query, page=page, per_page=per_page)


def get_campaign_donation(campaign: Campaign, donation_id: int, actor: Actor) -> Donation:
    policy_service.authorize(actor, policy_service.CAMPAIGN_VIEW, campaign)

    donation = get_donation(donation_id)
    if donation.campaign_id != campaign.id:
        raise NotFoundError("Donation not found for this campaign.")

    policy_service.authorize(actor, policy_service.DONATION_VIEW, donation)
    return donation


def view_donation(donation: Donation, actor: Actor) -> Donation:
    policy_service.authorize(actor, policy_service.DONATION_VIEW, donation)
    return donation


def donate(campaign: Campaign, actor: Actor, payload) -> Donation:
    """
    Donate to a campaign as the acting user.

    Any client-supplied status or donor is ignored.
    """
    policy_service.authorize(actor, policy_service.DONATION_CREATE, campaign)
    data = DONATION_CREATE_SCHEMA.validate(payload)
    data["currency"] = data["currency"].upper()

    donation = Donation(
        campaign_id=campaign.id,
        donor_id=actor.id,
        status=Donation.STATUS_PENDING,
        **data,
    )
    db.session.add(donation)
    db.session.commit()

    current_app.logger.info(
        "Donation %s of %s %s pledged to campaign %s by user %s",
        donation.id, donation.amount, donation.currency, campaign.id, actor.id,
    )
    return donation


def create_donation(actor: Actor, payload) -> Donation:
    """
    Administrative creation on behalf of any donor.

    The campaign still has to be approved; donor_id defaults to the actor.
    """
    policy_service.authorize(actor, policy_service.DONATION_MANAGE)
    data = DONATION_ADMIN_CREATE_SCHEMA.validate(payload)
    data["currency"] = data["currency"].upper()

    campaign = campaign_service.campaign_query().filter(Campaign.id == data.pop("campaign_id")).first()
    if not campaign:
        raise ValidationError.for_field("campaign_id", "The selected campaign_id is invalid.")
    policy_service.authorize(actor, policy_service.DONATION_CREATE, campaign)

    donor_id = data.pop("donor_id", None) or actor.id
    if not db.session.query(User.id).filter(User.id == donor_id).first():
        raise ValidationError.for_field("donor_id", "The selected donor_id is invalid.")

    donation = Donation(
        campaign_id=campaign.id,
        donor_id=donor_id,
        status=Donation.STATUS_PENDING,
        **data,
    )
    db.session.add(donation)
    db.session.commit()

    current_app.logger.info("Donation %s created for user %s by user %s", donation.id, donor_id, actor.id)
    return donation


def update_donation(donation: Donation, actor: Actor, payload) -> Donation:
    """
    Edit a donation.

    Donors may not touch status at all; privileged status changes are
    applied through the donation state machine (409 on invalid moves).
    """
    policy_service.authorize(actor, policy_service.DONATION_UPDATE, donation)
    if isinstance(payload, dict) and "status" in payload:
        if not policy_service.is_allowed(actor, policy_service.DONATION_MANAGE, donation):
            raise ForbiddenError("You cannot change the status of a donation.")

    data = DONATION_UPDATE_SCHEMA.validate(payload, partial=True)
    new_status = data.pop("status", None)
    if new_status is not None:
        lifecycle_service.check_donation_transition(donation, new_status)

    def _op():
        for key, value in data.items():
            setattr(donation, key, value)
        if new_status is not None:
            lifecycle_service.transition_donation(donation, new_status)
        db.session.commit()
        return donation

    run_with_retry(_op)
    current_app.logger.info("Donation %s updated by user %s", donation.id, actor.id)
    return donation


def refund_donation(donation: Donation, actor: Actor) -> Donation:
    """completed -> refunded; the campaign total is reduced accordingly."""
    policy_service.authorize(actor, policy_service.DONATION_MANAGE, donation)

    def _op():
        lifecycle_service.refund_donation(donation)
        db.session.commit()
        return donation

    return run_with_retry(_op)


def delete_donation(donation: Donation, actor: Actor) -> None:
    """Hard delete; a completed donation is first removed from the campaign total."""
    policy_service.authorize(actor, policy_service.DONATION_DELETE, donation)

    def _op():
        lifecycle_service.release_donation(donation)
        db.session.delete(donation)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Donation %s deleted by user %s", donation.id, actor.id)
