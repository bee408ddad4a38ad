# Overview: Service-layer operations for discounted fuel sales; recording and history.

"""
Discounted Sale Service

Staff record a sale for a plate on the discount list; the applicable rate
depends on the payment method. Money is kept as integer cents and every
intermediate amount is rounded half-up to the cent.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import DiscountRecord, DiscountSale, User
from ..permissions import Actor, require_capability
from ..time_utils import day_bounds, parse_iso_date, utcnow
from ..validation import clean_text, normalize_plate, parse_positive_decimal, require_plate, require_text
from .concurrency import commit_or_raise, flush_or_raise

logger = logging.getLogger(__name__)


PAYMENT_METHODS = ("cash", "card")

_CENT = Decimal("0.01")


def _to_cents(amount: Decimal) -> int:
    return int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def compute_amounts(liters: Decimal, price_per_liter: Decimal, rate: float) -> dict:
    """
    gross = liters x unit price
    discount = gross x rate / 100
    net = gross - discount
    """
    gross = (liters * price_per_liter).quantize(_CENT, rounding=ROUND_HALF_UP)
    discount = (gross * Decimal(str(rate)) / Decimal("100")).quantize(_CENT, rounding=ROUND_HALF_UP)
    net = gross - discount
    return {
        "gross_cents": _to_cents(gross),
        "discount_cents": _to_cents(discount),
        "net_cents": _to_cents(net),
    }


def record_sale(
    *,
    plate,
    fuel_type,
    liters,
    price_per_liter,
    payment_method,
    note=None,
    actor: Actor,
) -> DiscountSale:
    """
    Record a discounted sale for a plate with an active discount.

    `price_per_liter` is in currency units (e.g. "42.50").

    Raises:
        ValidationError: bad plate, fuel type, amounts or payment method
        NotFoundError: no active discount for the plate
    """
    require_capability(actor, "RECORD_SALE")
    plate = require_plate(plate)
    fuel_type = require_text(fuel_type, "fuel_type")
    liters = parse_positive_decimal(liters, "liters")
    price = parse_positive_decimal(price_per_liter, "price_per_liter")
    method = (payment_method or "").strip().lower() if isinstance(payment_method, str) else None
    if method not in PAYMENT_METHODS:
        raise ValidationError("payment_method must be 'cash' or 'card'")

    discount = db.session.query(DiscountRecord).filter_by(plate=plate, active=True).first()
    if not discount:
        raise NotFoundError(f"No active discount for plate {plate}")

    rate = discount.rate_for(method)
    amounts = compute_amounts(liters, price, rate)

    sale = DiscountSale(
        discount_id=discount.id,
        plate=discount.plate,
        fuel_type=fuel_type,
        liters=float(liters),
        price_per_liter_cents=_to_cents(price),
        payment_method=method,
        rate_applied=rate,
        note=clean_text(note),
        recorded_by=actor.user_id,
        created_at=utcnow(),
        **amounts,
    )
    db.session.add(sale)
    flush_or_raise()
    commit_or_raise()

    logger.info(
        "Sale id=%s recorded plate=%s method=%s net_cents=%s by user id=%s",
        sale.id, plate, method, sale.net_cents, actor.user_id,
    )
    return sale


def get_sale(sale_id: int) -> DiscountSale:
    sale = db.session.get(DiscountSale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def _as_date(value, field_name: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def list_sales(
    *,
    actor: Actor,
    plate=None,
    fuel_type=None,
    staff=None,
    date_from=None,
    date_to=None,
) -> list[DiscountSale]:
    """
    Sale history for admins, newest first.

    Text filters are case-insensitive substrings; the date range is
    inclusive on both ends.
    """
    require_capability(actor, "VIEW_SALES")
    start = _as_date(date_from, "date_from")
    end = _as_date(date_to, "date_to")
    if start and end and start > end:
        raise ValidationError("date_from must not be after date_to")

    query = db.session.query(DiscountSale)

    plate_needle = normalize_plate(plate)
    if plate_needle:
        query = query.filter(DiscountSale.plate.contains(plate_needle, autoescape=True))

    fuel_needle = clean_text(fuel_type)
    if fuel_needle:
        query = query.filter(DiscountSale.fuel_type.icontains(fuel_needle, autoescape=True))

    staff_needle = clean_text(staff)
    if staff_needle:
        query = query.join(User, DiscountSale.recorded_by == User.id).filter(
            User.name.icontains(staff_needle, autoescape=True)
        )

    if start:
        query = query.filter(DiscountSale.created_at >= day_bounds(start)[0])
    if end:
        query = query.filter(DiscountSale.created_at < day_bounds(end)[1])

    return (
        query.order_by(DiscountSale.created_at.desc(), DiscountSale.id.desc())
        .limit(current_app.config["LIST_LIMIT"])
        .all()
    )
