# Overview: Flask API routes for campaigns, moderation, statistics, media and campaign donations.

"""
Campaign API routes.

All endpoints require authentication. Authorization, validation and state
rules live in the services; these handlers only parse input and shape
output. Domain errors propagate to the app-level error handlers.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..models import Campaign, Donation
from ..services import (
    campaign_service,
    donation_service,
    lifecycle_service,
    media_service,
    statistics_service,
)
from ..validation import parse_status_filter

campaigns_bp = Blueprint("campaigns", __name__, url_prefix="/api/campaigns")


def _page_args() -> dict:
    return {
        "page": request.args.get("page", type=int),
        "per_page": request.args.get("per_page", type=int),
    }


# =============================================================================
# CAMPAIGNS
# =============================================================================

@campaigns_bp.get("")
@require_auth
def list_campaigns():
    """
    List campaigns visible to the caller.

    Query params:
    - status: int or label (optional) - campaign status filter
    - search: str (optional) - matches title or description
    - include_deleted: bool (optional, privileged only)
    - page, per_page: pagination (default 15 per page)
    """
    result = campaign_service.list_campaigns(
        g.actor,
        status=parse_status_filter(request.args.get("status"), Campaign.STATUS_LABELS),
        search=request.args.get("search"),
        include_deleted=request.args.get("include_deleted", "false").lower() in ("1", "true"),
        **_page_args(),
    )
    return jsonify(result)


@campaigns_bp.post("")
@require_auth
def create_campaign():
    campaign = campaign_service.create_campaign(g.actor, request.get_json(silent=True))
    return jsonify({"data": campaign.to_dict()}), 201


@campaigns_bp.get("/<int:campaign_id>")
@require_auth
def get_campaign(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    campaign_service.view_campaign(campaign, g.actor)
    return jsonify({"data": campaign.to_dict()})


@campaigns_bp.put("/<int:campaign_id>")
@require_auth
def update_campaign(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    campaign = campaign_service.update_campaign(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"data": campaign.to_dict()})


@campaigns_bp.delete("/<int:campaign_id>")
@require_auth
def delete_campaign(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    campaign_service.delete_campaign(campaign, g.actor)
    return "", 204


# =============================================================================
# MODERATION
# =============================================================================

@campaigns_bp.put("/<int:campaign_id>/approve")
@require_auth
def approve_campaign(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    campaign = lifecycle_service.approve_campaign(campaign, g.actor)
    return jsonify({"data": campaign.to_dict()})


@campaigns_bp.put("/<int:campaign_id>/reject")
@require_auth
def reject_campaign(campaign_id: int):
    """Request body: {"reason": "..."} (required, max 1000 chars)."""
    campaign = campaign_service.get_campaign(campaign_id)
    campaign = lifecycle_service.reject_campaign(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"data": campaign.to_dict()})


@campaigns_bp.get("/<int:campaign_id>/statistics")
@require_auth
def campaign_statistics(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    return jsonify(statistics_service.campaign_statistics(campaign, g.actor))


# =============================================================================
# MEDIA
# =============================================================================

@campaigns_bp.get("/<int:campaign_id>/logo")
@require_auth
def get_logo(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    logo = media_service.get_logo(campaign, g.actor)
    if not logo:
        return jsonify({"message": "No logo found", "media": None}), 404
    return jsonify({"media": logo.to_dict()})


@campaigns_bp.post("/<int:campaign_id>/logo")
@require_auth
def upload_logo(campaign_id: int):
    """
    Store logo metadata. Binary upload happens against external storage;
    the body carries file_name, mime_type, size and url.
    """
    campaign = campaign_service.get_campaign(campaign_id)
    logo = media_service.set_logo(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"message": "Logo uploaded successfully", "media": logo.to_dict()})


@campaigns_bp.put("/<int:campaign_id>/logo")
@require_auth
def update_logo(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    logo = media_service.set_logo(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"message": "Logo updated successfully", "media": logo.to_dict()})


@campaigns_bp.delete("/<int:campaign_id>/logo")
@require_auth
def delete_logo(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    media_service.delete_logo(campaign, g.actor)
    return jsonify({"message": "Logo deleted successfully"})


@campaigns_bp.get("/<int:campaign_id>/media")
@require_auth
def list_media(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    items = media_service.list_media(campaign, g.actor)
    return jsonify({"media": [m.to_dict() for m in items]})


@campaigns_bp.post("/<int:campaign_id>/media")
@require_auth
def upload_media(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    media = media_service.add_media(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"message": "Media uploaded successfully", "media": media.to_dict()})


@campaigns_bp.get("/<int:campaign_id>/media/<int:media_id>")
@require_auth
def get_media(campaign_id: int, media_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    media = media_service.get_media(campaign, media_id, g.actor)
    return jsonify({"media": media.to_dict()})


@campaigns_bp.put("/<int:campaign_id>/media/<int:media_id>")
@require_auth
def update_media(campaign_id: int, media_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    media = media_service.replace_media(campaign, media_id, g.actor, request.get_json(silent=True))
    return jsonify({"message": "Media updated successfully", "media": media.to_dict()})


@campaigns_bp.delete("/<int:campaign_id>/media/<int:media_id>")
@require_auth
def delete_media(campaign_id: int, media_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    media_service.delete_media(campaign, media_id, g.actor)
    return jsonify({"message": "Media deleted successfully"})


# =============================================================================
# CAMPAIGN DONATIONS
# =============================================================================

@campaigns_bp.post("/<int:campaign_id>/donations")
@require_auth
def donate(campaign_id: int):
    """Donate to an approved campaign. The donation always starts pending."""
    campaign = campaign_service.get_campaign(campaign_id)
    donation = donation_service.donate(campaign, g.actor, request.get_json(silent=True))
    return jsonify({"data": donation.to_dict()}), 201


@campaigns_bp.get("/<int:campaign_id>/donations")
@require_auth
def list_campaign_donations(campaign_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    result = donation_service.list_campaign_donations(
        campaign,
        g.actor,
        status=parse_status_filter(request.args.get("status"), Donation.STATUS_LABELS),
        **_page_args(),
    )
    return jsonify(result)


@campaigns_bp.get("/<int:campaign_id>/donations/<int:donation_id>")
@require_auth
def get_campaign_donation(campaign_id: int, donation_id: int):
    campaign = campaign_service.get_campaign(campaign_id)
    donation = donation_service.get_campaign_donation(campaign, donation_id, g.actor)
    return jsonify({"data": donation.to_dict()})
