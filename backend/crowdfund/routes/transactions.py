# Overview: Flask API routes for payment transactions.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..models import Transaction
from ..services import donation_service, transaction_service
from ..validation import parse_status_filter

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions():
    """
    List transactions, newest first ("manage donations" or admin).

    Query params: status, payment_gateway, page, per_page
    """
    result = transaction_service.list_transactions(
        g.actor,
        status=parse_status_filter(request.args.get("status"), Transaction.STATUS_LABELS),
        payment_gateway=request.args.get("payment_gateway"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction(transaction_id: int):
    transaction = transaction_service.get_transaction(transaction_id)
    donation_service.view_donation(transaction.donation, g.actor)
    return jsonify({"data": transaction.to_dict()})


@transactions_bp.put("/<int:transaction_id>")
@require_auth
def update_transaction(transaction_id: int):
    """Gateway status update. Body: {"status": int, ...}."""
    transaction = transaction_service.get_transaction(transaction_id)
    transaction = transaction_service.update_transaction(transaction, g.actor, request.get_json(silent=True))
    return jsonify({"data": transaction.to_dict()})
