from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class DiscountSale(db.Model):
    """
    A fuel sale made at a discounted price.

    Amounts are integer cents. The plate and applied rate are snapshots so
    later edits to the DiscountRecord do not rewrite history.
    """
    __tablename__ = "discount_sales"
    __table_args__ = (
        db.Index("ix_discount_sales_created", "created_at"),
        db.CheckConstraint("payment_method IN ('cash', 'card')", name="ck_discount_sales_payment_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=False, index=True)
    plate = db.Column(db.String(16), nullable=False, index=True)

    fuel_type = db.Column(db.String(64), nullable=False)
    liters = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    price_per_liter_cents = db.Column(db.Integer, nullable=False)

    # cash | card
    payment_method = db.Column(db.String(8), nullable=False)
    rate_applied = db.Column(db.Numeric(4, 1, asdecimal=False), nullable=False)

    gross_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False)
    net_cents = db.Column(db.Integer, nullable=False)

    note = db.Column(db.Text, nullable=True)

    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    discount = db.relationship("DiscountRecord", backref=db.backref("sales", lazy=True))
    recorder = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "discount_id": self.discount_id,
            "plate": self.plate,
            "fuel_type": self.fuel_type,
            "liters": self.liters,
            "price_per_liter_cents": self.price_per_liter_cents,
            "payment_method": self.payment_method,
            "rate_applied": self.rate_applied,
            "gross_cents": self.gross_cents,
            "discount_cents": self.discount_cents,
            "net_cents": self.net_cents,
            "note": self.note,
            "recorded_by": self.recorded_by,
            "recorded_by_name": self.recorder.name if self.recorder else None,
            "created_at": to_utc_z(self.created_at),
        }
