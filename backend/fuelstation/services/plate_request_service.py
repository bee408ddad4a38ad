# Overview: Service-layer operations for plate discount requests; submit, approve, reject, queues.

"""
Plate Discount Request Workflow

WHY: Staff meet new fleet customers at the pump but may not set discount
rates. They file a request; an admin decides the rates.

LIFECYCLE:
1. submit_request   -> pending
2. approve_request  -> approved (creates the DiscountRecord)
   reject_request   -> rejected (reason required)

Both decisions are terminal. Calling either on a processed request raises
AlreadyProcessed.

CONSISTENCY:
- One pending request per plate: pre-check plus partial unique index
  `uq_plate_requests_pending_plate`, whose violation is authoritative.
- Approve flips the request and inserts the discount in ONE transaction.
  The status flip runs first and is conditional on status = pending, so
  two admins racing produce one approval and one AlreadyProcessed before
  either touches the discount table.
"""

import logging

from flask import current_app
from sqlalchemy import func

from ..errors import (
    AlreadyProcessed,
    AuthenticationRequired,
    DuplicateActiveDiscount,
    DuplicatePendingRequest,
    MissingReason,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import DiscountRecord, PlateRequest
from ..permissions import Actor, require_capability
from ..time_utils import utcnow
from ..validation import clean_text, parse_rate, require_plate
from . import discount_service
from .concurrency import commit_or_raise, compare_and_set, flush_or_raise, is_unique_violation

logger = logging.getLogger(__name__)


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


def _duplicate_pending_from(exc):
    if is_unique_violation(exc, "uq_plate_requests_pending_plate", "plate_requests.plate"):
        return DuplicatePendingRequest()
    return None


def _pending_request_for(plate: str) -> PlateRequest | None:
    return db.session.query(PlateRequest).filter_by(plate=plate, status=STATUS_PENDING).first()


def get_request(request_id: int) -> PlateRequest:
    request = db.session.get(PlateRequest, request_id)
    if not request:
        raise NotFoundError(f"Plate request {request_id} not found")
    return request


# =============================================================================
# SUBMIT
# =============================================================================

def submit_request(*, plate, note=None, actor: Actor | None) -> PlateRequest:
    """
    File a new pending request for a plate.

    Checks, in order:
    1. caller identity resolved (AuthenticationRequired)
    2. plate non-empty after normalization (ValidationError)
    3. no DiscountRecord for the plate (DuplicateActiveDiscount)
    4. no pending request for the plate (DuplicatePendingRequest)
    """
    if actor is None:
        raise AuthenticationRequired("A signed-in user is required to submit a request")
    require_capability(actor, "REQUEST_PLATE")
    plate = require_plate(plate)

    if discount_service.find_by_plate(plate):
        raise DuplicateActiveDiscount()
    if _pending_request_for(plate):
        raise DuplicatePendingRequest()

    request = PlateRequest(
        plate=plate,
        note=clean_text(note),
        status=STATUS_PENDING,
        requested_by=actor.user_id,
        requested_by_name=actor.name,
        requested_by_email=actor.email,
        created_at=utcnow(),
    )
    db.session.add(request)
    flush_or_raise(on_unique=_duplicate_pending_from)
    commit_or_raise()

    logger.info("Plate request id=%s submitted for plate=%s by user id=%s", request.id, plate, actor.user_id)
    return request


# =============================================================================
# DECIDE
# =============================================================================

def approve_request(
    *,
    request_id: int,
    cash_rate,
    card_rate,
    note=None,
    actor: Actor,
) -> DiscountRecord:
    """
    Approve a pending request and create its DiscountRecord.

    `note` overrides the request's note on the new discount; when blank the
    requester's note is used.

    Raises:
        InvalidRate: a rate outside [0, 100] (nothing written)
        NotFoundError: unknown request
        AlreadyProcessed: request is no longer pending
        DuplicateActiveDiscount: plate got a discount by another path meanwhile
    """
    require_capability(actor, "APPROVE_PLATE_REQUESTS")
    cash = parse_rate(cash_rate, "cash_rate")
    card = parse_rate(card_rate, "card_rate")

    request = get_request(request_id)
    if request.status != STATUS_PENDING:
        raise AlreadyProcessed()
    plate = request.plate
    discount_note = clean_text(note) or request.note

    affected = compare_and_set(
        PlateRequest,
        request.id,
        expected={"status": STATUS_PENDING},
        patch={
            "status": STATUS_APPROVED,
            "processed_at": utcnow(),
            "processed_by": actor.user_id,
            "processed_by_name": actor.display_name,
            "cash_rate": cash,
            "card_rate": card,
            "rejection_note": None,
        },
    )
    if affected == 0:
        # Someone else decided first
        db.session.rollback()
        raise AlreadyProcessed()

    # The request is ours now; a record for the plate came from another path
    if discount_service.find_by_plate(plate):
        db.session.rollback()
        raise DuplicateActiveDiscount()

    discount = discount_service.new_discount(
        plate=plate,
        cash_rate=cash,
        card_rate=card,
        note=discount_note,
        active=True,
    )
    compare_and_set(
        PlateRequest,
        request.id,
        expected={"status": STATUS_APPROVED},
        patch={"approved_discount_id": discount.id},
    )

    commit_or_raise()
    db.session.refresh(request)

    logger.info(
        "Plate request id=%s approved by user id=%s -> discount id=%s",
        request.id, actor.user_id, discount.id,
    )
    return discount


def reject_request(*, request_id: int, reason, actor: Actor) -> PlateRequest:
    """
    Reject a pending request. No DiscountRecord is touched.

    Raises:
        MissingReason: reason blank after trimming
        NotFoundError: unknown request
        AlreadyProcessed: request is no longer pending
    """
    require_capability(actor, "APPROVE_PLATE_REQUESTS")
    reason = clean_text(reason)
    if not reason:
        raise MissingReason()

    request = get_request(request_id)
    if request.status != STATUS_PENDING:
        raise AlreadyProcessed()

    affected = compare_and_set(
        PlateRequest,
        request.id,
        expected={"status": STATUS_PENDING},
        patch={
            "status": STATUS_REJECTED,
            "processed_at": utcnow(),
            "processed_by": actor.user_id,
            "processed_by_name": actor.display_name,
            "rejection_note": reason,
        },
    )
    if affected == 0:
        db.session.rollback()
        raise AlreadyProcessed()

    commit_or_raise()
    db.session.refresh(request)

    logger.info("Plate request id=%s rejected by user id=%s", request.id, actor.user_id)
    return request


# =============================================================================
# READ MODELS
# =============================================================================

def pending_queue(*, actor: Actor) -> list[PlateRequest]:
    """All pending requests, newest first. Admin view; reads straight from the store."""
    require_capability(actor, "APPROVE_PLATE_REQUESTS")
    return (
        db.session.query(PlateRequest)
        .filter_by(status=STATUS_PENDING)
        .order_by(PlateRequest.created_at.desc(), PlateRequest.id.desc())
        .all()
    )


def list_plate_requests(*, actor: Actor, status: str | None = None) -> list[PlateRequest]:
    require_capability(actor, "APPROVE_PLATE_REQUESTS")
    if status is not None and status not in STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STATUSES)}")

    query = db.session.query(PlateRequest)
    if status:
        query = query.filter_by(status=status)
    return (
        query.order_by(PlateRequest.created_at.desc(), PlateRequest.id.desc())
        .limit(current_app.config["LIST_LIMIT"])
        .all()
    )


def list_my_plate_requests(*, actor: Actor) -> list[PlateRequest]:
    """A staff member's own requests so they can see what happened to them."""
    require_capability(actor, "REQUEST_PLATE")
    return (
        db.session.query(PlateRequest)
        .filter_by(requested_by=actor.user_id)
        .order_by(PlateRequest.created_at.desc(), PlateRequest.id.desc())
        .limit(current_app.config["LIST_LIMIT"])
        .all()
    )


def plate_request_summary(*, actor: Actor) -> dict:
    """Counts per status for the admin dashboard."""
    require_capability(actor, "APPROVE_PLATE_REQUESTS")
    rows = (
        db.session.query(PlateRequest.status, func.count(PlateRequest.id))
        .group_by(PlateRequest.status)
        .all()
    )
    summary = {status: 0 for status in STATUSES}
    summary.update({status: count for status, count in rows})
    return summary
