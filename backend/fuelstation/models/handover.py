from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ChecklistItem(db.Model):
    """Exit-check question shown to staff when they take over a shift."""
    __tablename__ = "checklist_items"
    __table_args__ = (
        db.Index("ix_checklist_items_active_order", "active", "sort_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "sort_order": self.sort_order,
            "active": self.active,
        }


class ShiftHandover(db.Model):
    """
    Request by the incoming staff member to take over a shift.

    LIFECYCLE:
    - pending: created by the incoming user with the checklist answers
    - approved / rejected: decided once by the outgoing user

    The decision is a conditional update on (status = pending AND
    outgoing_user = actor); a second decision affects zero rows.
    """
    __tablename__ = "shift_handovers"
    __table_args__ = (
        db.Index("ix_shift_handovers_outgoing_status", "outgoing_user", "status"),
        db.CheckConstraint("incoming_user <> outgoing_user", name="ck_shift_handovers_participants"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    incoming_user = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    outgoing_user = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # pending | approved | rejected
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    approver_note = db.Column(db.Text, nullable=True)
    # Stamped for both approvals and rejections
    approved_at = db.Column(db.DateTime, nullable=True)

    incoming = db.relationship("User", foreign_keys=[incoming_user])
    outgoing = db.relationship("User", foreign_keys=[outgoing_user])
    answers = db.relationship(
        "ChecklistAnswer",
        backref="handover",
        lazy=True,
        order_by="ChecklistAnswer.item_id",
    )

    def to_dict(self, include_answers: bool = False) -> dict:
        data = {
            "id": self.id,
            "incoming_user": self.incoming_user,
            "incoming_user_name": self.incoming.name if self.incoming else None,
            "outgoing_user": self.outgoing_user,
            "outgoing_user_name": self.outgoing.name if self.outgoing else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "approver_note": self.approver_note,
            "approved_at": to_utc_z(self.approved_at),
        }
        if include_answers:
            data["answers"] = [a.to_dict() for a in self.answers]
        return data


class ChecklistAnswer(db.Model):
    """One checklist line of a handover. Written with the handover, never edited."""
    __tablename__ = "checklist_answers"
    __table_args__ = (
        db.UniqueConstraint("handover_id", "item_id", name="uq_checklist_answers_handover_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    handover_id = db.Column(db.Integer, db.ForeignKey("shift_handovers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("checklist_items.id"), nullable=False)
    passed = db.Column(db.Boolean, nullable=False)
    note = db.Column(db.Text, nullable=True)

    item = db.relationship("ChecklistItem")

    def to_dict(self) -> dict:
        return {
            "handover_id": self.handover_id,
            "item_id": self.item_id,
            "item_title": self.item.title if self.item else None,
            "passed": self.passed,
            "note": self.note,
        }
