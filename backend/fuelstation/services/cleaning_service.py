# Overview: Service-layer operations for the cleaning log.

import logging
from datetime import date, datetime, timedelta, timezone

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import CleaningLog, CleaningOperation, User
from ..permissions import Actor, require_capability
from ..time_utils import day_bounds, parse_iso_date, parse_iso_datetime, utcnow
from ..validation import clean_text, require_text
from .concurrency import commit_or_raise, flush_or_raise, is_unique_violation

logger = logging.getLogger(__name__)


def list_operations(*, actor: Actor) -> list[CleaningOperation]:
    require_capability(actor, "LOG_CLEANING")
    return (
        db.session.query(CleaningOperation)
        .filter(CleaningOperation.active.is_(True))
        .order_by(CleaningOperation.sort_order, CleaningOperation.id)
        .all()
    )


def bootstrap_operation(*, name, sort_order: int = 0) -> CleaningOperation:
    """Create a cleaning operation template. CLI use only."""
    operation = CleaningOperation(name=require_text(name, "name"), sort_order=sort_order, active=True)
    db.session.add(operation)
    flush_or_raise(
        on_unique=lambda exc: ValidationError("A cleaning operation with this name already exists")
        if is_unique_violation(exc, "uq_cleaning_operations_name", "cleaning_operations.name") else None
    )
    commit_or_raise()
    return operation


def _parse_performed_at(value) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        performed_at = value
        if performed_at.tzinfo is not None:
            performed_at = performed_at.astimezone(timezone.utc).replace(tzinfo=None)
    else:
        try:
            performed_at = parse_iso_datetime(value)
        except (TypeError, ValueError):
            raise ValidationError("performed_at must be an ISO-8601 datetime")
        if performed_at is None:
            return utcnow()
    return performed_at


def log_cleaning(*, operation_ids, performed_at=None, note=None, actor: Actor) -> CleaningLog:
    """
    Record a cleaning visit.

    Rules:
    - at least one operation, each an active template
    - performed_at defaults to now; it may not be in the future nor older
      than CLEANING_BACKDATE_DAYS
    """
    require_capability(actor, "LOG_CLEANING")

    if not isinstance(operation_ids, list) or not operation_ids:
        raise ValidationError("Select at least one cleaning operation")
    if any(isinstance(op_id, bool) or not isinstance(op_id, int) for op_id in operation_ids):
        raise ValidationError("operation_ids must be integers")
    wanted = set(operation_ids)

    operations = (
        db.session.query(CleaningOperation)
        .filter(CleaningOperation.id.in_(wanted), CleaningOperation.active.is_(True))
        .all()
    )
    missing = sorted(wanted - {op.id for op in operations})
    if missing:
        raise ValidationError(f"Unknown or inactive cleaning operations: {', '.join(str(i) for i in missing)}")

    when = _parse_performed_at(performed_at)
    now = utcnow()
    # A minute of slack for clocks on the tablets
    if when > now + timedelta(minutes=1):
        raise ValidationError("performed_at cannot be in the future")
    backdate_days = current_app.config["CLEANING_BACKDATE_DAYS"]
    if when < now - timedelta(days=backdate_days):
        raise ValidationError(f"performed_at cannot be more than {backdate_days} days ago")

    log = CleaningLog(
        performed_at=when,
        note=clean_text(note),
        recorded_by=actor.user_id,
        created_at=now,
    )
    log.operations = operations
    db.session.add(log)
    flush_or_raise()
    commit_or_raise()

    logger.info("Cleaning log id=%s (%s operations) by user id=%s", log.id, len(operations), actor.user_id)
    return log


def list_cleaning_logs(*, actor: Actor, search=None, on_date=None) -> list[CleaningLog]:
    """Admin view. `search` matches staff name or note; `on_date` is a calendar day."""
    require_capability(actor, "VIEW_CLEANING_LOGS")
    query = db.session.query(CleaningLog).join(User, CleaningLog.recorded_by == User.id)

    needle = clean_text(search)
    if needle:
        query = query.filter(db.or_(
            User.name.icontains(needle, autoescape=True),
            CleaningLog.note.icontains(needle, autoescape=True),
        ))

    if on_date is not None and not isinstance(on_date, date):
        try:
            on_date = parse_iso_date(on_date)
        except (TypeError, ValueError):
            raise ValidationError("date must be YYYY-MM-DD")
    if on_date:
        start, end = day_bounds(on_date)
        query = query.filter(CleaningLog.performed_at >= start, CleaningLog.performed_at < end)

    return (
        query.order_by(CleaningLog.performed_at.desc(), CleaningLog.id.desc())
        .limit(current_app.config["LIST_LIMIT"])
        .all()
    )
