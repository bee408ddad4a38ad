# Overview: Service-layer operations for the discount list; admin maintenance and staff lookup.

"""
Discount List Service

One DiscountRecord per plate. Admins create and edit records directly;
approving a PlateRequest also creates one (see plate_request_service).

The unique constraint on `discounts.plate` is the real duplicate guard. The
existence check before insert only turns the common case into a clearer
error message.
"""

import logging

from flask import current_app

from ..errors import DuplicateActiveDiscount, NotFoundError
from ..extensions import db
from ..models import DiscountRecord
from ..permissions import Actor, require_capability
from ..validation import (
    PatchPolicy,
    clean_text,
    normalize_plate,
    parse_bool,
    parse_rate,
    require_plate,
    validate_patch,
)
from .concurrency import commit_or_raise, flush_or_raise, is_unique_violation

logger = logging.getLogger(__name__)


DISCOUNT_PATCH_POLICY = PatchPolicy(
    writable_fields={"cash_rate", "card_rate", "note", "active"},
    coercers={
        "cash_rate": parse_rate,
        "card_rate": parse_rate,
        "note": lambda value, _field: clean_text(value),
        "active": parse_bool,
    },
)


def find_by_plate(plate: str) -> DiscountRecord | None:
    """Any record (active or not) for an already-normalized plate."""
    return db.session.query(DiscountRecord).filter_by(plate=plate).first()


def duplicate_discount_from(exc) -> DuplicateActiveDiscount | None:
    if is_unique_violation(exc, "uq_discounts_plate", "discounts.plate"):
        return DuplicateActiveDiscount()
    return None


def new_discount(*, plate: str, cash_rate: float, card_rate: float, note: str | None, active: bool = True) -> DiscountRecord:
    """
    Stage a DiscountRecord in the current transaction and flush it.

    Caller owns the commit. Raises DuplicateActiveDiscount when the unique
    constraint fires (the session is rolled back in that case).
    """
    discount = DiscountRecord(
        plate=plate,
        cash_rate=cash_rate,
        card_rate=card_rate,
        note=note,
        active=active,
    )
    db.session.add(discount)
    flush_or_raise(on_unique=duplicate_discount_from)
    return discount


def create_discount(
    *,
    plate,
    cash_rate,
    card_rate,
    note=None,
    active=True,
    actor: Actor,
) -> DiscountRecord:
    """
    Add a plate to the discount list directly (admin).

    Raises:
        ValidationError / InvalidRate: bad plate or rates
        DuplicateActiveDiscount: plate already has a record
    """
    require_capability(actor, "MANAGE_DISCOUNTS")
    plate = require_plate(plate)
    cash = parse_rate(cash_rate, "cash_rate")
    card = parse_rate(card_rate, "card_rate")
    active = parse_bool(active, "active")

    if find_by_plate(plate):
        raise DuplicateActiveDiscount()

    discount = new_discount(plate=plate, cash_rate=cash, card_rate=card, note=clean_text(note), active=active)
    commit_or_raise()
    logger.info("Discount id=%s created for plate=%s by user id=%s", discount.id, plate, actor.user_id)
    return discount


def get_discount(discount_id: int) -> DiscountRecord:
    discount = db.session.get(DiscountRecord, discount_id)
    if not discount:
        raise NotFoundError("Discount not found")
    return discount


def update_discount(*, discount_id: int, patch: dict, actor: Actor) -> DiscountRecord:
    """Edit rates, note or active flag. The plate itself cannot change."""
    require_capability(actor, "MANAGE_DISCOUNTS")
    cleaned = validate_patch(patch, DISCOUNT_PATCH_POLICY)
    discount = get_discount(discount_id)

    for key, value in cleaned.items():
        setattr(discount, key, value)

    commit_or_raise()
    logger.info("Discount id=%s updated (%s) by user id=%s", discount.id, ", ".join(sorted(cleaned)), actor.user_id)
    return discount


def list_discounts(*, actor: Actor, search: str | None = None, active: bool | None = None) -> list[DiscountRecord]:
    require_capability(actor, "MANAGE_DISCOUNTS")
    query = db.session.query(DiscountRecord)

    needle = normalize_plate(search)
    if needle:
        query = query.filter(DiscountRecord.plate.contains(needle, autoescape=True))
    if active is not None:
        query = query.filter(DiscountRecord.active.is_(active))

    return query.order_by(DiscountRecord.plate).limit(current_app.config["LIST_LIMIT"]).all()


def lookup_plate(*, plate, actor: Actor) -> DiscountRecord | None:
    """Staff lookup at the pump: the active discount for a plate, if any."""
    require_capability(actor, "VIEW_DISCOUNTS")
    normalized = require_plate(plate)
    return db.session.query(DiscountRecord).filter_by(plate=normalized, active=True).first()
