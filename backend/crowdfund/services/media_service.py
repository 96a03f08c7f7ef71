# Overview: Campaign logo and media attachment records (metadata only; binaries live in external storage).

from __future__ import annotations

import os

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Campaign, CampaignMedia
from ..validation import MEDIA_SCHEMA, ValidationError
from . import policy_service
from .policy_service import Actor


IMAGE_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}

VIDEO_TYPES = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "webm": "video/webm",
}

# collection -> (allowed extension -> mime type, max size in kilobytes)
COLLECTION_RULES = {
    CampaignMedia.COLLECTION_LOGO: (IMAGE_TYPES, 5 * 1024),
    CampaignMedia.COLLECTION_MEDIAS: ({**IMAGE_TYPES, **VIDEO_TYPES}, 50 * 1024),
}


def _validate_upload(collection: str, payload) -> dict:
    data = MEDIA_SCHEMA.validate(payload)
    allowed, max_kb = COLLECTION_RULES[collection]

    errors: dict[str, list[str]] = {}

    extension = os.path.splitext(data["file_name"])[1].lstrip(".").lower()
    mime_type = data["mime_type"].lower()
    if extension not in allowed or mime_type not in set(allowed.values()):
        errors["mime_type"] = [
            f"The {collection} must be a file of type: {', '.join(allowed)}."
        ]

    if data["size"] > max_kb * 1024:
        errors["size"] = [f"The {collection} must not be greater than {max_kb} kilobytes."]

    if errors:
        raise ValidationError(errors)

    data["mime_type"] = mime_type
    data.setdefault("name", os.path.splitext(data["file_name"])[0])
    return data


def _collection_query(campaign: Campaign, collection: str):
    return db.session.query(CampaignMedia).filter(
        CampaignMedia.campaign_id == campaign.id,
        CampaignMedia.collection == collection,
    )


# -- Logo --

def get_logo(campaign: Campaign, actor: Actor) -> CampaignMedia | None:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_VIEW, campaign)
    return _collection_query(campaign, CampaignMedia.COLLECTION_LOGO).order_by(CampaignMedia.id.desc()).first()


def set_logo(campaign: Campaign, actor: Actor, payload) -> CampaignMedia:
    """Store a new logo, replacing any existing one."""
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)
    data = _validate_upload(CampaignMedia.COLLECTION_LOGO, payload)

    _collection_query(campaign, CampaignMedia.COLLECTION_LOGO).delete(synchronize_session=False)

    logo = CampaignMedia(
        campaign_id=campaign.id,
        collection=CampaignMedia.COLLECTION_LOGO,
        uploaded_by=actor.id,
        **data,
    )
    db.session.add(logo)
    db.session.commit()
    current_app.logger.info("Logo set for campaign %s by user %s", campaign.id, actor.id)
    return logo


def delete_logo(campaign: Campaign, actor: Actor) -> None:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)

    deleted = _collection_query(campaign, CampaignMedia.COLLECTION_LOGO).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError("No logo found to delete")
    db.session.commit()


# -- Other media --

def list_media(campaign: Campaign, actor: Actor) -> list[CampaignMedia]:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_VIEW, campaign)
    return _collection_query(campaign, CampaignMedia.COLLECTION_MEDIAS).order_by(CampaignMedia.id).all()


def _campaign_media(campaign: Campaign, media_id: int) -> CampaignMedia:
    media = _collection_query(campaign, CampaignMedia.COLLECTION_MEDIAS).filter(CampaignMedia.id == media_id).first()
    if not media:
        raise NotFoundError("Media not found")
    return media


def get_media(campaign: Campaign, media_id: int, actor: Actor) -> CampaignMedia:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_VIEW, campaign)
    return _campaign_media(campaign, media_id)


def add_media(campaign: Campaign, actor: Actor, payload) -> CampaignMedia:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)
    data = _validate_upload(CampaignMedia.COLLECTION_MEDIAS, payload)

    media = CampaignMedia(
        campaign_id=campaign.id,
        collection=CampaignMedia.COLLECTION_MEDIAS,
        uploaded_by=actor.id,
        **data,
    )
    db.session.add(media)
    db.session.commit()
    current_app.logger.info("Media %s added to campaign %s", media.id, campaign.id)
    return media


def replace_media(campaign: Campaign, media_id: int, actor: Actor, payload) -> CampaignMedia:
    """Replace an attachment: the old record is removed, a new one is created."""
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)
    old = _campaign_media(campaign, media_id)
    data = _validate_upload(CampaignMedia.COLLECTION_MEDIAS, payload)

    db.session.delete(old)
    media = CampaignMedia(
        campaign_id=campaign.id,
        collection=CampaignMedia.COLLECTION_MEDIAS,
        uploaded_by=actor.id,
        **data,
    )
    db.session.add(media)
    db.session.commit()
    return media


def delete_media(campaign: Campaign, media_id: int, actor: Actor) -> None:
    policy_service.authorize(actor, policy_service.CAMPAIGN_MEDIA_MANAGE, campaign)
    media = _campaign_media(campaign, media_id)
    db.session.delete(media)
    db.session.commit()
