# Overview: Service-layer operations for campaigns; listing, creation, edits and soft deletion.

"""
Campaign Service

VISIBILITY:
- Privileged actors (admin or "manage campaigns") list every campaign and
  may opt into soft-deleted rows with include_deleted.
- Everyone else lists approved campaigns plus their own, in any status.

OWNER EDITS:
- Creators edit and delete their campaigns until approval.
- Creators may only move status between draft and pending and may not
  write totals, ownership or moderation fields.

SOFT DELETE: delete stamps deleted_at; lookups treat the row as missing.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Campaign, User
from ..time_utils import utcnow
from ..validation import (
    CAMPAIGN_PRIVILEGED_FIELDS,
    CAMPAIGN_SCHEMA,
    ValidationError,
    check_date_order,
)
from . import policy_service
from .pagination import paginate
from .policy_service import Actor


OWNER_SETTABLE_STATUSES = frozenset({Campaign.STATUS_DRAFT, Campaign.STATUS_PENDING})


def campaign_query(*, include_deleted: bool = False):
    query = db.session.query(Campaign)
    if not include_deleted:
        query = query.filter(Campaign.deleted_at.is_(None))
    return query


def get_campaign(campaign_id: int, *, include_deleted: bool = False) -> Campaign:
    campaign = campaign_query(include_deleted=include_deleted).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFoundError("Campaign not found.")
    return campaign


def list_campaigns(
    actor: Actor,
    *,
    status: int | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    include_deleted: bool = False,
) -> dict:
    """
    Paginated campaign listing filtered by the actor's visibility.

    include_deleted is ignored for non-privileged actors.
    """
    privileged = policy_service.is_allowed(actor, policy_service.CAMPAIGN_LIST_ALL)
    query = campaign_query(include_deleted=include_deleted and privileged)

    if not privileged:
        query = query.filter(db.or_(
            Campaign.status == Campaign.STATUS_APPROVED,
            Campaign.creator_id == actor.id,
        ))

    if status is not None:
        query = query.filter(Campaign.status == status)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Campaign.title.ilike(pattern),
            Campaign.description.ilike(pattern),
        ))

    query = query.order_by(Campaign.created_at.desc(), Campaign.id.desc())
    return paginate(query, page=page, per_page=per_page)


def view_campaign(campaign: Campaign, actor: Actor) -> Campaign:
    policy_service.authorize(actor, policy_service.CAMPAIGN_VIEW, campaign)
    return campaign


def _reject_privileged_fields(actor: Actor, payload) -> None:
    """Owners cannot write totals, ownership or moderation fields."""
    if actor.is_privileged_for(policy_service.CAMPAIGN_UPDATE):
        return
    if not isinstance(payload, dict):
        return
    blocked = sorted(CAMPAIGN_PRIVILEGED_FIELDS.intersection(payload))
    if blocked:
        raise ForbiddenError(f"You cannot set {', '.join(blocked)} on a campaign.")


def _check_owner_status(actor: Actor, data: dict) -> None:
    if actor.is_privileged_for(policy_service.CAMPAIGN_UPDATE):
        return
    if "status" in data and data["status"] not in OWNER_SETTABLE_STATUSES:
        raise ForbiddenError("You can only set a campaign to draft or pending.")


def _check_user_references(data: dict) -> None:
    errors: dict[str, list[str]] = {}
    for field in ("creator_id", "approved_by", "rejected_by"):
        user_id = data.get(field)
        if user_id is None:
            continue
        if not db.session.query(User.id).filter(User.id == user_id).first():
            errors[field] = [f"The selected {field} is invalid."]
    if errors:
        raise ValidationError(errors)


def create_campaign(actor: Actor, payload) -> Campaign:
    """
    Create a campaign owned by the actor.

    Privileged actors may assign another creator_id and seed moderation
    fields. Status defaults to draft.
    """
    policy_service.authorize(actor, policy_service.CAMPAIGN_CREATE)
    _reject_privileged_fields(actor, payload)

    data = CAMPAIGN_SCHEMA.validate(payload)
    check_date_order(data.get("start_date"), data.get("end_date"))
    _check_owner_status(actor, data)
    _check_user_references(data)

    data.setdefault("creator_id", actor.id)
    data.setdefault("status", Campaign.STATUS_DRAFT)
    data.setdefault("current_amount", 0)

    campaign = Campaign(**data)
    db.session.add(campaign)
    db.session.commit()

    current_app.logger.info("Campaign %s created by user %s", campaign.id, actor.id)
    return campaign


def update_campaign(campaign: Campaign, actor: Actor, payload) -> Campaign:
    """Partial update; date order is checked against the merged result."""
    policy_service.authorize(actor, policy_service.CAMPAIGN_UPDATE, campaign)
    _reject_privileged_fields(actor, payload)

    data = CAMPAIGN_SCHEMA.validate(payload, partial=True)
    check_date_order(
        data.get("start_date", campaign.start_date),
        data.get("end_date", campaign.end_date),
    )
    _check_owner_status(actor, data)
    _check_user_references(data)

    for key, value in data.items():
        setattr(campaign, key, value)

    db.session.commit()
    current_app.logger.info("Campaign %s updated by user %s", campaign.id, actor.id)
    return campaign


def delete_campaign(campaign: Campaign, actor: Actor) -> None:
    """Soft delete: the row stays for audit, lookups stop returning it."""
    policy_service.authorize(actor, policy_service.CAMPAIGN_DELETE, campaign)

    campaign.deleted_at = utcnow()
    db.session.commit()
    current_app.logger.info("Campaign %s deleted by user %s", campaign.id, actor.id)
