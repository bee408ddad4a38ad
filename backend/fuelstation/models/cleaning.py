from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


cleaning_log_operations = db.Table(
    "cleaning_log_operations",
    db.Column("log_id", db.Integer, db.ForeignKey("cleaning_logs.id"), primary_key=True),
    db.Column("operation_id", db.Integer, db.ForeignKey("cleaning_operations.id"), primary_key=True),
)


class CleaningOperation(db.Model):
    """A cleaning task staff can tick off (restrooms, forecourt, shop floor...)."""
    __tablename__ = "cleaning_operations"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_cleaning_operations_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sort_order": self.sort_order,
            "active": self.active,
        }


class CleaningLog(db.Model):
    """One cleaning visit with the operations performed."""
    __tablename__ = "cleaning_logs"
    __table_args__ = (
        db.Index("ix_cleaning_logs_performed_at", "performed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    performed_at = db.Column(db.DateTime, nullable=False)
    note = db.Column(db.Text, nullable=True)
    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    operations = db.relationship(
        "CleaningOperation",
        secondary=cleaning_log_operations,
        lazy="selectin",
        order_by="CleaningOperation.sort_order",
    )
    recorder = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "performed_at": to_utc_z(self.performed_at),
            "note": self.note,
            "recorded_by": self.recorded_by,
            "recorded_by_name": self.recorder.name if self.recorder else None,
            "operations": [op.to_dict() for op in self.operations],
            "created_at": to_utc_z(self.created_at),
        }
