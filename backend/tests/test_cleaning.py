"""
Cleaning log tests.
"""

from datetime import timedelta

import pytest

from fuelstation.errors import PermissionDenied, ValidationError
from fuelstation.models import CleaningLog
from fuelstation.services import cleaning_service
from fuelstation.time_utils import to_utc_z, utcnow


class TestLogCleaning:

    def test_log_with_operations(self, db_session, staff, cleaning_operations):
        restrooms, forecourt, _ = cleaning_operations

        log = cleaning_service.log_cleaning(
            operation_ids=[forecourt.id, restrooms.id],
            note="  mopped after delivery ",
            actor=staff,
        )
        assert log.recorded_by == staff.user_id
        assert log.note == "mopped after delivery"
        assert [op.name for op in log.operations] == ["Restrooms", "Forecourt"]

    def test_at_least_one_operation(self, db_session, staff, cleaning_operations):
        with pytest.raises(ValidationError):
            cleaning_service.log_cleaning(operation_ids=[], actor=staff)
        assert db_session.query(CleaningLog).count() == 0

    def test_inactive_operation_rejected(self, db_session, staff, cleaning_operations):
        inactive = cleaning_operations[2]
        with pytest.raises(ValidationError):
            cleaning_service.log_cleaning(operation_ids=[inactive.id], actor=staff)

    def test_future_time_rejected(self, db_session, staff, cleaning_operations):
        future = to_utc_z(utcnow() + timedelta(hours=2))
        with pytest.raises(ValidationError):
            cleaning_service.log_cleaning(
                operation_ids=[cleaning_operations[0].id], performed_at=future, actor=staff
            )

    def test_backdate_window(self, db_session, staff, cleaning_operations):
        op_id = cleaning_operations[0].id

        log = cleaning_service.log_cleaning(
            operation_ids=[op_id], performed_at=utcnow() - timedelta(days=6), actor=staff
        )
        assert log.id is not None

        with pytest.raises(ValidationError):
            cleaning_service.log_cleaning(
                operation_ids=[op_id], performed_at=utcnow() - timedelta(days=8), actor=staff
            )

    def test_malformed_time_rejected(self, db_session, staff, cleaning_operations):
        with pytest.raises(ValidationError):
            cleaning_service.log_cleaning(
                operation_ids=[cleaning_operations[0].id], performed_at="last tuesday", actor=staff
            )

    def test_list_operations_only_active(self, db_session, staff, cleaning_operations):
        assert [op.name for op in cleaning_service.list_operations(actor=staff)] == ["Restrooms", "Forecourt"]


class TestListCleaningLogs:

    def test_search_by_staff_name_or_note(self, db_session, admin, staff, other_staff, cleaning_operations):
        op_id = cleaning_operations[0].id
        mine = cleaning_service.log_cleaning(operation_ids=[op_id], note="soap refilled", actor=staff)
        theirs = cleaning_service.log_cleaning(operation_ids=[op_id], note="all fine", actor=other_staff)

        assert [log.id for log in cleaning_service.list_cleaning_logs(actor=admin, search="mehmet")] == [mine.id]
        assert [log.id for log in cleaning_service.list_cleaning_logs(actor=admin, search="FINE")] == [theirs.id]
        assert len(cleaning_service.list_cleaning_logs(actor=admin)) == 2

    def test_search_wildcards_are_literal(self, db_session, admin, staff, cleaning_operations):
        op_id = cleaning_operations[0].id
        cleaning_service.log_cleaning(operation_ids=[op_id], note="all fine", actor=staff)
        discounted = cleaning_service.log_cleaning(operation_ids=[op_id], note="50% off soap", actor=staff)

        assert cleaning_service.list_cleaning_logs(actor=admin, search="_ll") == []
        assert [log.id for log in cleaning_service.list_cleaning_logs(actor=admin, search="%")] == [discounted.id]

    def test_filter_by_day(self, db_session, admin, staff, cleaning_operations):
        op_id = cleaning_operations[0].id
        earlier = utcnow() - timedelta(days=3)
        old = cleaning_service.log_cleaning(operation_ids=[op_id], performed_at=earlier, actor=staff)
        cleaning_service.log_cleaning(operation_ids=[op_id], actor=staff)

        logs = cleaning_service.list_cleaning_logs(actor=admin, on_date=earlier.date().isoformat())
        assert [log.id for log in logs] == [old.id]

    def test_staff_cannot_list(self, db_session, staff):
        with pytest.raises(PermissionDenied):
            cleaning_service.list_cleaning_logs(actor=staff)
