from __future__ import annotations

from ..extensions import db
from ..time_utils import to_date_string, to_utc_z, utcnow


class Donation(db.Model):
    """
    Monetary pledge by a donor against a campaign.

    LIFECYCLE: pending -> {completed, failed}; completed -> refunded.
    Creation always starts at pending.

    PRIVACY: the donor is only exposed when visibility is public AND the
    anonymous flag is off.
    """
    __tablename__ = "donations"
    __table_args__ = (
        db.CheckConstraint("amount >= 1", name="ck_donations_amount_positive"),
        db.Index("ix_donations_campaign_status", "campaign_id", "status"),
        {"sqlite_autoincrement": True},
    )

    VISIBILITY_PUBLIC = 0
    VISIBILITY_ANONYMOUS = 1

    VISIBILITY_LABELS = {
        VISIBILITY_PUBLIC: "public",
        VISIBILITY_ANONYMOUS: "anonymous",
    }

    STATUS_PENDING = 0
    STATUS_COMPLETED = 1
    STATUS_FAILED = 2
    STATUS_REFUNDED = 3

    STATUS_LABELS = {
        STATUS_PENDING: "pending",
        STATUS_COMPLETED: "completed",
        STATUS_FAILED: "failed",
        STATUS_REFUNDED: "refunded",
    }

    id = db.Column(db.Integer, primary_key=True)

    campaign_id = db.Column(db.Integer, db.ForeignKey("campaigns.id"), nullable=False, index=True)
    donor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    anonymous = db.Column(db.Boolean, nullable=False, default=False)
    message = db.Column(db.Text, nullable=True)
    visibility = db.Column(db.Integer, nullable=False, default=VISIBILITY_PUBLIC)
    status = db.Column(db.Integer, nullable=False, default=STATUS_PENDING, index=True)

    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    campaign = db.relationship("Campaign", backref=db.backref("donations", lazy=True))
    donor = db.relationship("User")

    @property
    def status_label(self) -> str | None:
        return self.STATUS_LABELS.get(self.status)

    @property
    def visibility_label(self) -> str | None:
        return self.VISIBILITY_LABELS.get(self.visibility)

    @property
    def discloses_donor(self) -> bool:
        return self.visibility == self.VISIBILITY_PUBLIC and not self.anonymous

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "amount": self.amount,
            "currency": self.currency,
            "anonymous": self.anonymous,
            "message": self.message,
            "visibility": self.visibility,
            "visibility_label": self.visibility_label,
            "status": self.status,
            "status_label": self.status_label,
            "campaign": self.campaign.to_summary() if self.campaign else None,
            "completed_at": to_utc_z(self.completed_at),
            "refunded_at": to_utc_z(self.refunded_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        # Donor identity fields are omitted, not nulled, when hidden
        if self.discloses_donor:
            data["donor_id"] = self.donor_id
            data["donor"] = self.donor.to_summary() if self.donor else None
        return data


class Transaction(db.Model):
    """
    One payment-gateway attempt backing a donation.

    request_payload/response_payload are opaque gateway structures kept
    for audit.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_reference", name="uq_transactions_reference"),
        db.CheckConstraint("fee_amount >= 0", name="ck_transactions_fee_non_negative"),
        {"sqlite_autoincrement": True},
    )

    STATUS_PENDING = 0
    STATUS_PROCESSING = 1
    STATUS_COMPLETED = 2
    STATUS_FAILED = 3
    STATUS_CANCELLED = 4

    STATUS_LABELS = {
        STATUS_PENDING: "pending",
        STATUS_PROCESSING: "processing",
        STATUS_COMPLETED: "completed",
        STATUS_FAILED: "failed",
        STATUS_CANCELLED: "cancelled",
    }

    id = db.Column(db.Integer, primary_key=True)
    donation_id = db.Column(db.Integer, db.ForeignKey("donations.id", ondelete="CASCADE"), nullable=False, index=True)

    transaction_reference = db.Column(db.String(64), nullable=False, index=True)
    payment_gateway = db.Column(db.String(64), nullable=False)
    gateway_transaction_id = db.Column(db.String(255), nullable=True)

    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    fee_amount = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.Integer, nullable=False, default=STATUS_PENDING, index=True)
    status_message = db.Column(db.Text, nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    request_payload = db.Column(db.JSON, nullable=True)
    response_payload = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    donation = db.relationship(
        "Donation",
        backref=db.backref("transactions", lazy=True, cascade="all, delete-orphan", order_by="Transaction.id"),
    )

    @property
    def status_label(self) -> str | None:
        return self.STATUS_LABELS.get(self.status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donation_id": self.donation_id,
            "transaction_reference": self.transaction_reference,
            "payment_gateway": self.payment_gateway,
            "gateway_transaction_id": self.gateway_transaction_id,
            "amount": self.amount,
            "currency": self.currency,
            "fee_amount": self.fee_amount,
            "status": self.status,
            "status_label": self.status_label,
            "status_message": self.status_message,
            "processed_at": to_utc_z(self.processed_at),
            "request_payload": self.request_payload,
            "response_payload": self.response_payload,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DonationReceipt(db.Model):
    """Proof-of-donation issued once per completed donation."""
    __tablename__ = "donation_receipts"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_donation_receipts_number"),
        db.UniqueConstraint("donation_id", name="uq_donation_receipts_donation"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    donation_id = db.Column(db.Integer, db.ForeignKey("donations.id", ondelete="CASCADE"), nullable=False, index=True)

    receipt_number = db.Column(db.String(64), nullable=False)
    issued_date = db.Column(db.Date, nullable=False)
    email_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    donation = db.relationship(
        "Donation",
        backref=db.backref("receipt", uselist=False, lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donation_id": self.donation_id,
            "receipt_number": self.receipt_number,
            "issued_date": to_date_string(self.issued_date),
            "email_sent_at": to_utc_z(self.email_sent_at),
            "created_at": to_utc_z(self.created_at),
        }
