# Overview: Service-layer operations for payment transactions; recording gateway attempts and driving donation completion.

"""
Transaction Service

A Transaction records one payment-gateway attempt for a donation. Gateway
interaction itself is external; this service stores what the gateway
reported and applies its consequences.

STATE MACHINE:
    PENDING -> {PROCESSING, COMPLETED, FAILED, CANCELLED}
    PROCESSING -> {COMPLETED, FAILED, CANCELLED}
    COMPLETED, FAILED, CANCELLED are terminal.

CONSISTENCY:
- A completed transaction must carry exactly the donation's amount and
  currency (422 otherwise).
- A transaction reaching COMPLETED completes its donation, which must still
  be pending (409 otherwise). Completion updates the campaign total and
  issues the receipt in the same commit.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Donation, Transaction
from ..time_utils import utcnow
from ..validation import TRANSACTION_CREATE_SCHEMA, TRANSACTION_UPDATE_SCHEMA, ValidationError
from . import document_service, lifecycle_service, policy_service
from .concurrency import run_with_retry
from .pagination import paginate
from .policy_service import Actor


TRANSACTION_TRANSITIONS = {
    Transaction.STATUS_PENDING: {
        Transaction.STATUS_PROCESSING,
        Transaction.STATUS_COMPLETED,
        Transaction.STATUS_FAILED,
        Transaction.STATUS_CANCELLED,
    },
    Transaction.STATUS_PROCESSING: {
        Transaction.STATUS_COMPLETED,
        Transaction.STATUS_FAILED,
        Transaction.STATUS_CANCELLED,
    },
    Transaction.STATUS_COMPLETED: set(),
    Transaction.STATUS_FAILED: set(),
    Transaction.STATUS_CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({
    Transaction.STATUS_COMPLETED,
    Transaction.STATUS_FAILED,
    Transaction.STATUS_CANCELLED,
})


def can_transition_transaction(from_status: int, to_status: int) -> bool:
    return to_status in TRANSACTION_TRANSITIONS.get(from_status, set())


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found.")
    return transaction


def list_transactions(
    actor: Actor,
    *,
    status: int | None = None,
    payment_gateway: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    policy_service.authorize(actor, policy_service.TRANSACTION_LIST_ALL)

    query = db.session.query(Transaction)
    if status is not None:
        query = query.filter(Transaction.status == status)
    if payment_gateway:
        query = query.filter(Transaction.payment_gateway == payment_gateway)

    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
    return paginate(query, page=page, per_page=per_page)


def list_donation_transactions(donation: Donation, actor: Actor) -> list[Transaction]:
    policy_service.authorize(actor, policy_service.DONATION_VIEW, donation)
    return (
        db.session.query(Transaction)
        .filter(Transaction.donation_id == donation.id)
        .order_by(Transaction.id)
        .all()
    )


def _check_matches_donation(donation: Donation, amount: int, currency: str) -> None:
    errors: dict[str, list[str]] = {}
    if amount != donation.amount:
        errors["amount"] = ["The amount of a completed transaction must equal the donation amount."]
    if currency.upper() != donation.currency.upper():
        errors["currency"] = ["The currency of a completed transaction must equal the donation currency."]
    if errors:
        raise ValidationError(errors)


def _check_reference_free(reference: str) -> None:
    taken = db.session.query(Transaction.id).filter(Transaction.transaction_reference == reference).first()
    if taken:
        raise ValidationError.for_field(
            "transaction_reference", "The transaction_reference has already been taken."
        )


def _allocate_reference() -> str:
    """Next TRANSACTION number not already taken by a client-supplied reference."""
    while True:
        reference = document_service.next_document_number(document_service.TRANSACTION)
        taken = db.session.query(Transaction.id).filter(Transaction.transaction_reference == reference).first()
        if not taken:
            return reference


def record_transaction(donation: Donation, actor: Actor, payload) -> Transaction:
    """
    Record a gateway attempt for a donation.

    amount/currency default to the donation's; transaction_reference is
    allocated from the TRANSACTION sequence when not supplied.
    """
    policy_service.authorize(actor, policy_service.DONATION_MANAGE, donation)
    data = TRANSACTION_CREATE_SCHEMA.validate(payload)

    data.setdefault("amount", donation.amount)
    data["currency"] = data.get("currency", donation.currency).upper()
    status = data["status"]

    if data.get("transaction_reference"):
        _check_reference_free(data["transaction_reference"])
    if status == Transaction.STATUS_COMPLETED:
        _check_matches_donation(donation, data["amount"], data["currency"])
        if donation.status != Donation.STATUS_PENDING:
            raise ConflictError("Only a pending donation can be completed.")

    def _op() -> Transaction:
        fields = dict(data)
        if not fields.get("transaction_reference"):
            fields["transaction_reference"] = _allocate_reference()
        if status in TERMINAL_STATUSES and fields.get("processed_at") is None:
            fields["processed_at"] = utcnow()

        transaction = Transaction(donation_id=donation.id, **fields)
        db.session.add(transaction)
        db.session.flush()

        if status == Transaction.STATUS_COMPLETED:
            lifecycle_service.complete_donation(donation)

        db.session.commit()
        return transaction

    transaction = run_with_retry(_op)
    current_app.logger.info(
        "Transaction %s (%s) recorded for donation %s: %s",
        transaction.transaction_reference,
        transaction.payment_gateway,
        donation.id,
        transaction.status_label,
    )
    return transaction


def update_transaction(transaction: Transaction, actor: Actor, payload) -> Transaction:
    """
    Apply a gateway status update.

    Re-sending the current status only updates the auxiliary fields.
    """
    donation = transaction.donation
    policy_service.authorize(actor, policy_service.DONATION_MANAGE, donation)
    data = TRANSACTION_UPDATE_SCHEMA.validate(payload, partial=True)
    if "status" not in data:
        raise ValidationError.for_field("status", "The status field is required.")

    new_status = data.pop("status")
    changed = new_status != transaction.status

    if changed and not can_transition_transaction(transaction.status, new_status):
        raise ConflictError(
            f"Cannot change transaction status from {transaction.status_label} "
            f"to {Transaction.STATUS_LABELS.get(new_status)}."
        )
    if changed and new_status == Transaction.STATUS_COMPLETED:
        _check_matches_donation(donation, transaction.amount, transaction.currency)
        if donation.status != Donation.STATUS_PENDING:
            raise ConflictError("Only a pending donation can be completed.")

    def _op() -> Transaction:
        for key, value in data.items():
            setattr(transaction, key, value)
        if changed:
            transaction.status = new_status
            if new_status in TERMINAL_STATUSES and transaction.processed_at is None:
                transaction.processed_at = utcnow()
            if new_status == Transaction.STATUS_COMPLETED:
                lifecycle_service.complete_donation(donation)
        db.session.commit()
        return transaction

    run_with_retry(_op)
    current_app.logger.info(
        "Transaction %s updated by user %s: %s", transaction.id, actor.id, transaction.status_label
    )
    return transaction
