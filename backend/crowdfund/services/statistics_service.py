# Overview: Campaign donation statistics; daily completed-donation series plus summary metrics.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Campaign, Donation
from ..time_utils import to_date_string
from . import policy_service
from .policy_service import Actor


def compute_daily_statistics(campaign: Campaign) -> dict:
    """
    Daily count and amount of completed donations, oldest day first.

    Days are the calendar date of created_at as stored (UTC). Only days with
    at least one completed donation appear; an empty campaign yields empty
    labels and empty data arrays.
    """
    period_expr = func.date(Donation.created_at)

    rows = (
        db.session.query(
            period_expr.label("period"),
            func.count(Donation.id).label("quantity"),
            func.coalesce(func.sum(Donation.amount), 0).label("amount"),
        )
        .filter(
            Donation.campaign_id == campaign.id,
            Donation.status == Donation.STATUS_COMPLETED,
        )
        .group_by("period")
        .order_by("period")
        .all()
    )

    return {
        "labels": [to_date_string(row.period) for row in rows],
        "datasets": [
            {"label": "Daily Quantity", "data": [int(row.quantity or 0) for row in rows]},
            {"label": "Daily Amount", "data": [int(row.amount or 0) for row in rows]},
        ],
    }


def completion_percentage(campaign: Campaign) -> float:
    if not campaign.goal_amount or campaign.goal_amount <= 0:
        return 0
    return (campaign.current_amount or 0) / campaign.goal_amount * 100


def campaign_statistics(campaign: Campaign, actor: Actor) -> dict:
    """
    Statistics payload for a campaign (privileged actors only).

    total_donations and unique_donors count every status; total_amount and
    average_donation only count completed donations.
    """
    policy_service.authorize(actor, policy_service.CAMPAIGN_STATISTICS, campaign)

    base = db.session.query(Donation).filter(Donation.campaign_id == campaign.id)
    completed = base.filter(Donation.status == Donation.STATUS_COMPLETED)

    total_donations = base.count()
    unique_donors = (
        db.session.query(func.count(func.distinct(Donation.donor_id)))
        .filter(Donation.campaign_id == campaign.id)
        .scalar()
    )
    total_amount = completed.with_entities(func.coalesce(func.sum(Donation.amount), 0)).scalar()
    average_donation = completed.with_entities(func.avg(Donation.amount)).scalar()

    return {
        "total_donations": int(total_donations or 0),
        "total_amount": int(total_amount or 0),
        "unique_donors": int(unique_donors or 0),
        "average_donation": float(average_donation) if average_donation is not None else 0,
        "completion_percentage": completion_percentage(campaign),
        "statistics": compute_daily_statistics(campaign),
    }
