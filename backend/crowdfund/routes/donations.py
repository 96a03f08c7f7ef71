# Overview: Flask API routes for donations, refunds, donation transactions and receipts.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..models import Donation
from ..services import donation_service, receipt_service, transaction_service
from ..validation import parse_status_filter

donations_bp = Blueprint("donations", __name__, url_prefix="/api/donations")


@donations_bp.get("")
@require_auth
def list_donations():
    """
    List every donation ("manage donations"/"view donations" or admin).

    Query params: campaign_id, status, page, per_page
    """
    result = donation_service.list_donations(
        g.actor,
        campaign_id=request.args.get("campaign_id", type=int),
        status=parse_status_filter(request.args.get("status"), Donation.STATUS_LABELS),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@donations_bp.post("")
@require_auth
def create_donation():
    donation = donation_service.create_donation(g.actor, request.get_json(silent=True))
    return jsonify({"data": donation.to_dict()}), 201


@donations_bp.get("/<int:donation_id>")
@require_auth
def get_donation(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    donation_service.view_donation(donation, g.actor)
    return jsonify({"data": donation.to_dict()})


@donations_bp.put("/<int:donation_id>")
@require_auth
def update_donation(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    donation = donation_service.update_donation(donation, g.actor, request.get_json(silent=True))
    return jsonify({"data": donation.to_dict()})


@donations_bp.delete("/<int:donation_id>")
@require_auth
def delete_donation(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    donation_service.delete_donation(donation, g.actor)
    return "", 204


@donations_bp.post("/<int:donation_id>/refund")
@require_auth
def refund_donation(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    donation = donation_service.refund_donation(donation, g.actor)
    return jsonify({"data": donation.to_dict()})


# -- Transactions --

@donations_bp.get("/<int:donation_id>/transactions")
@require_auth
def list_donation_transactions(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    transactions = transaction_service.list_donation_transactions(donation, g.actor)
    return jsonify({"data": [t.to_dict() for t in transactions]})


@donations_bp.post("/<int:donation_id>/transactions")
@require_auth
def record_transaction(donation_id: int):
    """
    Record a payment-gateway attempt.

    A completed transaction completes the donation: the campaign total is
    increased and a receipt is issued.
    """
    donation = donation_service.get_donation(donation_id)
    transaction = transaction_service.record_transaction(donation, g.actor, request.get_json(silent=True))
    return jsonify({"data": transaction.to_dict()}), 201


# -- Receipts --

@donations_bp.get("/<int:donation_id>/receipt")
@require_auth
def get_receipt(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    receipt = receipt_service.get_receipt(donation, g.actor)
    return jsonify({"data": receipt.to_dict()})


@donations_bp.post("/<int:donation_id>/receipt/email-sent")
@require_auth
def mark_receipt_email_sent(donation_id: int):
    donation = donation_service.get_donation(donation_id)
    receipt = receipt_service.mark_email_sent(donation, g.actor)
    return jsonify({"data": receipt.to_dict()})
