from __future__ import annotations

from ..extensions import db
from ..time_utils import to_date_string, to_utc_z, utcnow


class Campaign(db.Model):
    """
    Fundraising campaign with a goal and a review lifecycle.

    LIFECYCLE: draft -> pending -> {approved, rejected}; approved ->
    {completed, cancelled}. Only approve/reject are driven by dedicated
    operations (see services.lifecycle_service).

    SOFT DELETE: deleted_at marks a logically removed row. Every query path
    filters it unless include_deleted is requested explicitly.

    Amounts are integers in the minor currency unit.
    """
    __tablename__ = "campaigns"
    __table_args__ = (
        db.CheckConstraint("goal_amount >= 1", name="ck_campaigns_goal_positive"),
        db.CheckConstraint("current_amount >= 0", name="ck_campaigns_current_non_negative"),
        db.CheckConstraint("end_date >= start_date", name="ck_campaigns_date_order"),
        db.Index("ix_campaigns_status_deleted", "status", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    STATUS_DRAFT = 0
    STATUS_PENDING = 1
    STATUS_APPROVED = 2
    STATUS_REJECTED = 3
    STATUS_COMPLETED = 4
    STATUS_CANCELLED = 5

    STATUS_LABELS = {
        STATUS_DRAFT: "draft",
        STATUS_PENDING: "pending",
        STATUS_APPROVED: "approved",
        STATUS_REJECTED: "rejected",
        STATUS_COMPLETED: "completed",
        STATUS_CANCELLED: "cancelled",
    }

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)

    goal_amount = db.Column(db.Integer, nullable=False)
    current_amount = db.Column(db.Integer, nullable=False, default=0)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.Integer, nullable=False, default=STATUS_DRAFT, index=True)

    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Moderation
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejected_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    creator = db.relationship("User", foreign_keys=[creator_id])
    approver = db.relationship("User", foreign_keys=[approved_by])
    rejector = db.relationship("User", foreign_keys=[rejected_by])

    @property
    def status_label(self) -> str | None:
        return self.STATUS_LABELS.get(self.status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_summary(self) -> dict:
        """Nested campaign shape used inside donation responses."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "status_label": self.status_label,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "goal_amount": self.goal_amount,
            "current_amount": self.current_amount,
            "start_date": to_date_string(self.start_date),
            "end_date": to_date_string(self.end_date),
            "status": self.status,
            "status_label": self.status_label,
            "creator_id": self.creator_id,
            "creator": self.creator.to_summary() if self.creator else None,
            "approved_at": to_utc_z(self.approved_at),
            "approved_by": self.approved_by,
            "approver": self.approver.to_summary() if self.approver else None,
            "rejected_by": self.rejected_by,
            "rejector": self.rejector.to_summary() if self.rejector else None,
            "rejected_at": to_utc_z(self.rejected_at),
            "rejected_reason": self.rejected_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "deleted_at": to_utc_z(self.deleted_at),
        }


class CampaignMedia(db.Model):
    """
    Metadata for a file attached to a campaign.

    The binary lives in external storage; this row keeps what the API
    needs to list and link it. collection is "logo" (at most one live row
    per campaign) or "medias".
    """
    __tablename__ = "campaign_media"
    __table_args__ = (
        db.Index("ix_campaign_media_campaign_collection", "campaign_id", "collection"),
        {"sqlite_autoincrement": True},
    )

    COLLECTION_LOGO = "logo"
    COLLECTION_MEDIAS = "medias"

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)

    collection = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(127), nullable=False)
    size = db.Column(db.Integer, nullable=False)
    url = db.Column(db.String(2048), nullable=False)

    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    campaign = db.relationship("Campaign", backref=db.backref("media", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "collection_name": self.collection,
            "name": self.name,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "url": self.url,
            "created_at": to_utc_z(self.created_at),
        }
