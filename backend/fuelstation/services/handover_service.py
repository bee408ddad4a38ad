# Overview: Service-layer operations for shift handovers and their checklist templates.

"""
Shift Handover Workflow

WHY: A shift only changes hands when the person leaving agrees that the
station is in the state the incoming person says it is.

LIFECYCLE:
1. start_handover  (incoming user, with checklist answers) -> pending
2. decide_handover (outgoing user only)                    -> approved | rejected

DESIGN PRINCIPLES:
- The handover row and its answers are written in one transaction
- Decide is a conditional UPDATE on (status = pending AND outgoing_user = actor);
  zero affected rows means someone already decided and raises AlreadyDecided
- Admins can read every handover but cannot decide on someone else's behalf
"""

import logging

from flask import current_app

from ..errors import (
    AlreadyDecided,
    InvalidParticipants,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from ..extensions import db
from ..models import ChecklistAnswer, ChecklistItem, ShiftHandover, User
from ..permissions import Actor, require_capability
from ..time_utils import utcnow
from ..validation import clean_text, parse_bool, require_text
from .concurrency import commit_or_raise, compare_and_set, flush_or_raise, is_unique_violation

logger = logging.getLogger(__name__)


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


# =============================================================================
# CHECKLIST TEMPLATES
# =============================================================================

def list_checklist_items(*, actor: Actor, include_inactive: bool = False) -> list[ChecklistItem]:
    require_capability(actor, "HANDOVER")
    query = db.session.query(ChecklistItem)
    if not include_inactive:
        query = query.filter(ChecklistItem.active.is_(True))
    return query.order_by(ChecklistItem.sort_order, ChecklistItem.id).all()


def _create_checklist_item(*, title, description=None, sort_order=None) -> ChecklistItem:
    title = require_text(title, "title")
    if sort_order is None:
        current_max = db.session.query(db.func.max(ChecklistItem.sort_order)).scalar()
        sort_order = (current_max or 0) + 1
    elif isinstance(sort_order, bool) or not isinstance(sort_order, int):
        raise ValidationError("sort_order must be an integer")

    item = ChecklistItem(
        title=title,
        description=clean_text(description),
        sort_order=sort_order,
        active=True,
    )
    db.session.add(item)
    commit_or_raise()
    return item


def create_checklist_item(*, title, description=None, sort_order=None, actor: Actor) -> ChecklistItem:
    """Append a question to the handover checklist (admin)."""
    require_capability(actor, "MANAGE_CHECKLIST")
    item = _create_checklist_item(title=title, description=description, sort_order=sort_order)
    logger.info("Checklist item id=%s created by user id=%s", item.id, actor.user_id)
    return item


def bootstrap_checklist_item(*, title, description=None, sort_order=None) -> ChecklistItem:
    """Create a checklist item without an acting admin. CLI use only."""
    return _create_checklist_item(title=title, description=description, sort_order=sort_order)


def set_checklist_item_active(*, item_id: int, active, actor: Actor) -> ChecklistItem:
    require_capability(actor, "MANAGE_CHECKLIST")
    item = db.session.get(ChecklistItem, item_id)
    if not item:
        raise NotFoundError("Checklist item not found")
    item.active = parse_bool(active, "active")
    commit_or_raise()
    return item


# =============================================================================
# START
# =============================================================================

def _parse_answers(answers) -> list[dict]:
    """
    Validate (item_id, passed, note?) entries.

    Every item must exist and be active, and appear at most once.
    """
    if answers is None:
        return []
    if not isinstance(answers, list):
        raise ValidationError("answers must be a list")

    parsed = []
    seen = set()
    for index, raw in enumerate(answers):
        if not isinstance(raw, dict):
            raise ValidationError(f"answers[{index}] must be an object")
        item_id = raw.get("item_id")
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationError(f"answers[{index}].item_id must be an integer")
        if item_id in seen:
            raise ValidationError(f"Checklist item {item_id} answered more than once")
        seen.add(item_id)
        parsed.append({
            "item_id": item_id,
            "passed": parse_bool(raw.get("passed"), f"answers[{index}].passed"),
            "note": clean_text(raw.get("note")),
        })

    if seen:
        active_ids = {
            row.id
            for row in db.session.query(ChecklistItem.id).filter(
                ChecklistItem.id.in_(seen),
                ChecklistItem.active.is_(True),
            )
        }
        missing = sorted(seen - active_ids)
        if missing:
            raise ValidationError(
                f"Unknown or inactive checklist items: {', '.join(str(i) for i in missing)}"
            )
    return parsed


def _answer_rejected_from(exc):
    if is_unique_violation(exc, "uq_checklist_answers_handover_item", "checklist_answers.item_id"):
        return ValidationError("Each checklist item may be answered only once")
    return ValidationError("Checklist answers could not be saved; reload the checklist and try again")


def start_handover(*, outgoing_user_id, answers=None, actor: Actor) -> ShiftHandover:
    """
    Incoming staff member asks `outgoing_user_id` to hand over the shift.

    Raises:
        InvalidParticipants: outgoing user missing, equal to the caller,
                             unknown or deactivated
        ValidationError: malformed answers, unknown/inactive/duplicate items
    """
    require_capability(actor, "HANDOVER")
    if outgoing_user_id is None:
        raise InvalidParticipants("outgoing_user is required")
    if isinstance(outgoing_user_id, bool) or not isinstance(outgoing_user_id, int):
        raise InvalidParticipants("outgoing_user must be a user id")
    if outgoing_user_id == actor.user_id:
        raise InvalidParticipants("You cannot hand over a shift to yourself")

    outgoing = db.session.get(User, outgoing_user_id)
    if outgoing is None or not outgoing.is_active:
        raise InvalidParticipants("Outgoing user not found or inactive")

    parsed = _parse_answers(answers)

    handover = ShiftHandover(
        incoming_user=actor.user_id,
        outgoing_user=outgoing.id,
        status=STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(handover)
    flush_or_raise()

    for answer in parsed:
        db.session.add(ChecklistAnswer(handover_id=handover.id, **answer))

    # Handover and answers land together or not at all
    flush_or_raise(on_unique=_answer_rejected_from)
    commit_or_raise()

    logger.info(
        "Handover id=%s started incoming=%s outgoing=%s answers=%s",
        handover.id, actor.user_id, outgoing.id, len(parsed),
    )
    return handover


# =============================================================================
# DECIDE
# =============================================================================

def get_handover_for_update(handover_id: int) -> ShiftHandover:
    handover = db.session.get(ShiftHandover, handover_id)
    if not handover:
        raise NotFoundError(f"Handover {handover_id} not found")
    return handover


def decide_handover(*, handover_id: int, approve, note=None, actor: Actor) -> ShiftHandover:
    """
    Approve or reject a pending handover. Only its outgoing user may decide.

    Raises:
        NotFoundError: unknown handover
        PermissionDenied: caller is not the outgoing user
        AlreadyDecided: handover is no longer pending (including a lost race)
    """
    require_capability(actor, "HANDOVER")
    approve = parse_bool(approve, "approve")
    handover = get_handover_for_update(handover_id)

    if handover.outgoing_user != actor.user_id:
        raise PermissionDenied("Only the outgoing staff member can decide this handover")
    if handover.status != STATUS_PENDING:
        raise AlreadyDecided()

    affected = compare_and_set(
        ShiftHandover,
        handover.id,
        expected={"status": STATUS_PENDING, "outgoing_user": actor.user_id},
        patch={
            "status": STATUS_APPROVED if approve else STATUS_REJECTED,
            "approver_note": clean_text(note),
            "approved_at": utcnow(),
        },
    )
    if affected == 0:
        db.session.rollback()
        raise AlreadyDecided()

    commit_or_raise()
    db.session.refresh(handover)

    logger.info("Handover id=%s %s by user id=%s", handover.id, handover.status, actor.user_id)
    return handover


# =============================================================================
# READ MODELS
# =============================================================================

def pending_queue(*, actor: Actor) -> list[ShiftHandover]:
    """Pending handovers waiting on the caller as outgoing user, newest first."""
    require_capability(actor, "HANDOVER")
    return (
        db.session.query(ShiftHandover)
        .filter_by(outgoing_user=actor.user_id, status=STATUS_PENDING)
        .order_by(ShiftHandover.created_at.desc(), ShiftHandover.id.desc())
        .all()
    )


def get_handover(*, handover_id: int, actor: Actor) -> ShiftHandover:
    require_capability(actor, "HANDOVER")
    handover = get_handover_for_update(handover_id)
    if actor.user_id not in (handover.incoming_user, handover.outgoing_user) and not actor.is_admin:
        raise PermissionDenied("You are not a participant in this handover")
    return handover


def list_my_handovers(*, actor: Actor) -> list[ShiftHandover]:
    require_capability(actor, "HANDOVER")
    return (
        db.session.query(ShiftHandover)
        .filter(
            db.or_(
                ShiftHandover.incoming_user == actor.user_id,
                ShiftHandover.outgoing_user == actor.user_id,
            )
        )
        .order_by(ShiftHandover.created_at.desc(), ShiftHandover.id.desc())
        .limit(current_app.config["LIST_LIMIT"])
        .all()
    )
