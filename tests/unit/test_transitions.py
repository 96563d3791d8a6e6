"""Unit tests for the workshop and enrollment transition tables."""

import pytest

from dna_community.errors import StateConflictError
from dna_community.workshops.states import (
    ALREADY_ENROLLED_MESSAGES,
    ENROLLMENT_TRANSITIONS,
    validate_enrollment_transition,
    validate_workshop_transition,
)


class TestWorkshopTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [("draft", "published"), ("draft", "cancelled"), ("published", "cancelled"), ("ongoing", "completed")],
    )
    def test_allowed(self, current: str, target: str) -> None:
        validate_workshop_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [("completed", "published"), ("cancelled", "published"), ("published", "draft"), ("draft", "ongoing")],
    )
    def test_rejected(self, current: str, target: str) -> None:
        with pytest.raises(StateConflictError) as exc_info:
            validate_workshop_transition(current, target)
        assert f"{current} -> {target}" in exc_info.value.message
        assert "validTransitions" in exc_info.value.to_dict()


class TestEnrollmentTransitions:
    def test_completed_is_terminal(self) -> None:
        assert ENROLLMENT_TRANSITIONS["completed"] == []
        with pytest.raises(StateConflictError):
            validate_enrollment_transition("completed", "cancelled")

    def test_cancelled_can_re_enroll(self) -> None:
        validate_enrollment_transition("cancelled", "enrolled")
        validate_enrollment_transition("cancelled", "waitlisted")

    def test_waitlisted_promotes_to_enrolled(self) -> None:
        validate_enrollment_transition("waitlisted", "enrolled")

    def test_every_active_status_has_a_message(self) -> None:
        assert set(ALREADY_ENROLLED_MESSAGES) == {"enrolled", "waitlisted", "completed", "attended"}
