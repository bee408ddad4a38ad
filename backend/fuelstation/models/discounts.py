from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class DiscountRecord(db.Model):
    """
    Discount applicable to one licence plate.

    INVARIANT: one record per normalized plate, active or not. The unique
    constraint is the authoritative guard; services pre-check only to give
    a friendlier error.

    LIFECYCLE: created by an admin or by approving a PlateRequest, edited
    freely afterwards. Never deleted; `active=False` is the soft delete.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.UniqueConstraint("plate", name="uq_discounts_plate"),
        db.CheckConstraint("cash_rate >= 0 AND cash_rate <= 100", name="ck_discounts_cash_rate"),
        db.CheckConstraint("card_rate >= 0 AND card_rate <= 100", name="ck_discounts_card_rate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    plate = db.Column(db.String(16), nullable=False)

    # Percentages, one decimal place
    cash_rate = db.Column(db.Numeric(4, 1, asdecimal=False), nullable=False, default=0)
    card_rate = db.Column(db.Numeric(4, 1, asdecimal=False), nullable=False, default=0)

    note = db.Column(db.Text, nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def rate_for(self, payment_method: str) -> float:
        return self.cash_rate if payment_method == "cash" else self.card_rate

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plate": self.plate,
            "cash_rate": self.cash_rate,
            "card_rate": self.card_rate,
            "note": self.note,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PlateRequest(db.Model):
    """
    Staff request to put a plate on the discount list.

    LIFECYCLE:
    - pending: submitted by staff
    - approved: admin set rates; a DiscountRecord was created
    - rejected: admin declined with a reason

    Transitions happen exactly once and the row is never deleted.
    At most one pending request per plate (partial unique index).
    """
    __tablename__ = "plate_requests"
    __table_args__ = (
        db.Index("ix_plate_requests_status_created", "status", "created_at"),
        db.Index(
            "uq_plate_requests_pending_plate",
            "plate",
            unique=True,
            sqlite_where=db.text("status = 'pending'"),
            postgresql_where=db.text("status = 'pending'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    plate = db.Column(db.String(16), nullable=False, index=True)
    note = db.Column(db.Text, nullable=True)

    # pending | approved | rejected
    status = db.Column(db.String(16), nullable=False, default="pending")

    # Requester snapshot (name/email kept even if the account changes later)
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    requested_by_name = db.Column(db.String(120), nullable=True)
    requested_by_email = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Decision audit fields
    processed_at = db.Column(db.DateTime, nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_by_name = db.Column(db.String(120), nullable=True)

    # Filled on approval
    cash_rate = db.Column(db.Numeric(4, 1, asdecimal=False), nullable=True)
    card_rate = db.Column(db.Numeric(4, 1, asdecimal=False), nullable=True)
    approved_discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)

    # Filled on rejection
    rejection_note = db.Column(db.Text, nullable=True)

    approved_discount = db.relationship("DiscountRecord", foreign_keys=[approved_discount_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plate": self.plate,
            "note": self.note,
            "status": self.status,
            "requested_by": self.requested_by,
            "requested_by_name": self.requested_by_name,
            "requested_by_email": self.requested_by_email,
            "created_at": to_utc_z(self.created_at),
            "processed_at": to_utc_z(self.processed_at),
            "processed_by": self.processed_by,
            "processed_by_name": self.processed_by_name,
            "cash_rate": self.cash_rate,
            "card_rate": self.card_rate,
            "rejection_note": self.rejection_note,
            "approved_discount_id": self.approved_discount_id,
        }
