"""
Shift handover workflow tests.

Verifies:
- Participants are validated (outgoing user required, different, active)
- Handover and checklist answers are written together
- Only the outgoing user may decide, exactly once (AlreadyDecided)
- Pending queue is scoped to the outgoing user
"""

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from fuelstation.errors import (
    AlreadyDecided,
    InvalidParticipants,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from fuelstation.models import ChecklistAnswer, ShiftHandover
from fuelstation.services import auth_service, handover_service


# =============================================================================
# START
# =============================================================================


class TestStartHandover:

    def test_start_creates_pending_handover_with_answers(self, db_session, staff, other_staff, checklist_items):
        first, second, _ = checklist_items

        handover = handover_service.start_handover(
            outgoing_user_id=other_staff.user_id,
            answers=[
                {"item_id": first.id, "passed": True},
                {"item_id": second.id, "passed": False, "note": "  pump 3 display flickers "},
            ],
            actor=staff,
        )

        assert handover.status == "pending"
        assert handover.incoming_user == staff.user_id
        assert handover.outgoing_user == other_staff.user_id
        assert handover.approved_at is None

        answers = db_session.query(ChecklistAnswer).filter_by(handover_id=handover.id).order_by(ChecklistAnswer.item_id).all()
        assert [(a.item_id, a.passed, a.note) for a in answers] == [
            (first.id, True, None),
            (second.id, False, "pump 3 display flickers"),
        ]

    def test_answers_may_be_empty(self, db_session, staff, other_staff):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, answers=[], actor=staff)
        assert handover.status == "pending"
        assert handover.answers == []

    def test_outgoing_user_is_required(self, db_session, staff):
        with pytest.raises(InvalidParticipants):
            handover_service.start_handover(outgoing_user_id=None, actor=staff)

    def test_cannot_hand_over_to_self(self, db_session, staff):
        with pytest.raises(InvalidParticipants) as excinfo:
            handover_service.start_handover(outgoing_user_id=staff.user_id, actor=staff)
        assert isinstance(excinfo.value, ValidationError)
        assert db_session.query(ShiftHandover).count() == 0

    def test_unknown_outgoing_user(self, db_session, staff):
        with pytest.raises(InvalidParticipants):
            handover_service.start_handover(outgoing_user_id=99999, actor=staff)

    def test_deactivated_outgoing_user(self, db_session, staff, other_staff, admin):
        auth_service.set_user_active(user_id=other_staff.user_id, active=False, actor=admin)

        with pytest.raises(InvalidParticipants):
            handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

    def test_inactive_checklist_item_rejected_and_nothing_written(self, db_session, staff, other_staff, checklist_items):
        inactive = checklist_items[2]

        with pytest.raises(ValidationError):
            handover_service.start_handover(
                outgoing_user_id=other_staff.user_id,
                answers=[{"item_id": inactive.id, "passed": True}],
                actor=staff,
            )
        assert db_session.query(ShiftHandover).count() == 0
        assert db_session.query(ChecklistAnswer).count() == 0

    def test_duplicate_item_in_one_submission_rejected(self, db_session, staff, other_staff, checklist_items):
        first = checklist_items[0]

        with pytest.raises(ValidationError):
            handover_service.start_handover(
                outgoing_user_id=other_staff.user_id,
                answers=[
                    {"item_id": first.id, "passed": True},
                    {"item_id": first.id, "passed": False},
                ],
                actor=staff,
            )
        assert db_session.query(ShiftHandover).count() == 0

    @pytest.mark.parametrize(
        "answer",
        [
            {"item_id": "1", "passed": True},
            {"item_id": 1},
            {"item_id": 1, "passed": "maybe"},
        ],
    )
    def test_malformed_answer_rejected(self, db_session, staff, other_staff, checklist_items, answer):
        with pytest.raises(ValidationError):
            handover_service.start_handover(
                outgoing_user_id=other_staff.user_id, answers=[answer], actor=staff
            )

    def test_answer_insert_failure_is_a_validation_error_and_leaves_no_handover(
        self, db_session, staff, other_staff, checklist_items, monkeypatch
    ):
        first = checklist_items[0]
        # Duplicate answers slip past validation so the answer insert itself fails
        monkeypatch.setattr(
            handover_service,
            "_parse_answers",
            lambda answers: [
                {"item_id": first.id, "passed": True, "note": None},
                {"item_id": first.id, "passed": True, "note": None},
            ],
        )

        with pytest.raises(ValidationError, match="answered only once"):
            handover_service.start_handover(outgoing_user_id=other_staff.user_id, answers=[], actor=staff)

        db_session.rollback()
        assert db_session.query(ShiftHandover).count() == 0
        assert db_session.query(ChecklistAnswer).count() == 0


# =============================================================================
# DECIDE
# =============================================================================


class TestDecideHandover:

    def test_end_to_end_reject_then_second_decision_fails(self, db_session, staff, other_staff, checklist_items):
        handover = handover_service.start_handover(
            outgoing_user_id=other_staff.user_id,
            answers=[{"item_id": checklist_items[0].id, "passed": True}],
            actor=staff,
        )

        decided = handover_service.decide_handover(
            handover_id=handover.id, approve=False, note="checklist incomplete", actor=other_staff
        )
        assert decided.status == "rejected"
        assert decided.approver_note == "checklist incomplete"
        assert decided.approved_at is not None

        with pytest.raises(AlreadyDecided):
            handover_service.decide_handover(handover_id=handover.id, approve=True, actor=other_staff)

        db_session.refresh(handover)
        assert handover.status == "rejected"

    def test_approve(self, db_session, staff, other_staff):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        decided = handover_service.decide_handover(handover_id=handover.id, approve=True, actor=other_staff)
        assert decided.status == "approved"
        assert decided.approver_note is None

    def test_incoming_user_cannot_decide(self, db_session, staff, other_staff):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        with pytest.raises(PermissionDenied):
            handover_service.decide_handover(handover_id=handover.id, approve=True, actor=staff)

        db_session.refresh(handover)
        assert handover.status == "pending"

    def test_admin_cannot_decide_for_outgoing_user(self, db_session, staff, other_staff, admin):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        with pytest.raises(PermissionDenied):
            handover_service.decide_handover(handover_id=handover.id, approve=True, actor=admin)

    def test_unknown_handover(self, db_session, other_staff):
        with pytest.raises(NotFoundError):
            handover_service.decide_handover(handover_id=424242, approve=True, actor=other_staff)

    def test_concurrent_approvals_produce_one_winner(self, db_session, staff, other_staff):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        # Two tabs open on the same pending handover
        handover_service.decide_handover(handover_id=handover.id, approve=True, note="first tab", actor=other_staff)
        db_session.refresh(handover)
        set_committed_value(handover, "status", "pending")

        with pytest.raises(AlreadyDecided):
            handover_service.decide_handover(
                handover_id=handover.id, approve=True, note="second tab", actor=other_staff
            )

        db_session.refresh(handover)
        assert handover.status == "approved"
        assert handover.approver_note == "first tab"

    def test_write_predicate_enforces_outgoing_user(self, db_session, staff, other_staff, admin_user):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        # A stale read claims the admin is the outgoing user; the UPDATE must still refuse
        db_session.refresh(handover)
        set_committed_value(handover, "outgoing_user", admin_user.id)

        with pytest.raises(AlreadyDecided):
            handover_service.decide_handover(
                handover_id=handover.id, approve=True, actor=auth_service.actor_for(admin_user)
            )

        db_session.refresh(handover)
        assert handover.status == "pending"


# =============================================================================
# READ MODELS AND CHECKLIST TEMPLATES
# =============================================================================


class TestHandoverReads:

    def test_pending_queue_scoped_to_outgoing_user(self, db_session, staff, other_staff, admin):
        to_other = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)
        later = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=admin)
        handover_service.start_handover(outgoing_user_id=staff.user_id, actor=other_staff)

        queue = handover_service.pending_queue(actor=other_staff)
        assert [h.id for h in queue] == [later.id, to_other.id]

        handover_service.decide_handover(handover_id=later.id, approve=True, actor=other_staff)
        assert [h.id for h in handover_service.pending_queue(actor=other_staff)] == [to_other.id]

    def test_get_handover_visible_to_participants_and_admins(self, db_session, staff, other_staff, admin):
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        assert handover_service.get_handover(handover_id=handover.id, actor=staff).id == handover.id
        assert handover_service.get_handover(handover_id=handover.id, actor=other_staff).id == handover.id
        assert handover_service.get_handover(handover_id=handover.id, actor=admin).id == handover.id

    def test_get_handover_hidden_from_other_staff(self, db_session, staff, other_staff, admin_user):
        third = auth_service.bootstrap_user(
            email="third@station.local", name="Third", password="Password123!", role="staff"
        )
        handover = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)

        with pytest.raises(PermissionDenied):
            handover_service.get_handover(handover_id=handover.id, actor=auth_service.actor_for(third))

    def test_list_my_handovers_includes_both_sides(self, db_session, staff, other_staff, admin):
        incoming = handover_service.start_handover(outgoing_user_id=other_staff.user_id, actor=staff)
        outgoing = handover_service.start_handover(outgoing_user_id=staff.user_id, actor=admin)
        handover_service.start_handover(outgoing_user_id=admin.user_id, actor=other_staff)

        ids = {h.id for h in handover_service.list_my_handovers(actor=staff)}
        assert ids == {incoming.id, outgoing.id}

    def test_checklist_lists_active_items_in_order(self, db_session, staff, checklist_items):
        items = handover_service.list_checklist_items(actor=staff)
        assert [i.title for i in items] == ["Cash drawer counted", "Pumps checked"]

    def test_admin_creates_checklist_item_at_the_end(self, db_session, admin, checklist_items):
        item = handover_service.create_checklist_item(title="Car wash stocked", actor=admin)
        assert item.sort_order == 4
        assert item.active is True

    def test_staff_cannot_create_checklist_item(self, db_session, staff):
        with pytest.raises(PermissionDenied):
            handover_service.create_checklist_item(title="Anything", actor=staff)

    def test_checklist_title_required(self, db_session, admin):
        with pytest.raises(ValidationError):
            handover_service.create_checklist_item(title="   ", actor=admin)
