# Overview: Donation receipt issuance and email bookkeeping.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Donation, DonationReceipt
from ..time_utils import utcnow
from . import document_service, policy_service
from .policy_service import Actor


def issue_receipt(donation: Donation) -> DonationReceipt:
    """
    Issue the receipt for a donation entering COMPLETED.

    At most one receipt per donation: an existing receipt is returned as-is.
    Flushes only; the caller commits.
    """
    existing = db.session.query(DonationReceipt).filter_by(donation_id=donation.id).first()
    if existing:
        return existing

    receipt = DonationReceipt(
        donation_id=donation.id,
        receipt_number=document_service.next_document_number(document_service.RECEIPT),
        issued_date=utcnow().date(),
    )
    db.session.add(receipt)
    db.session.flush()
    current_app.logger.info("Receipt %s issued for donation %s", receipt.receipt_number, donation.id)
    return receipt


def get_receipt(donation: Donation, actor: Actor) -> DonationReceipt:
    policy_service.authorize(actor, policy_service.DONATION_VIEW, donation)

    receipt = db.session.query(DonationReceipt).filter_by(donation_id=donation.id).first()
    if not receipt:
        raise NotFoundError("No receipt has been issued for this donation.")
    return receipt


def mark_email_sent(donation: Donation, actor: Actor) -> DonationReceipt:
    """Record that the receipt email went out (delivery itself is external)."""
    policy_service.authorize(actor, policy_service.DONATION_MANAGE, donation)

    receipt = db.session.query(DonationReceipt).filter_by(donation_id=donation.id).first()
    if not receipt:
        raise NotFoundError("No receipt has been issued for this donation.")

    receipt.email_sent_at = utcnow()
    db.session.commit()
    return receipt
