"""Workshop and enrollment status machines."""

from __future__ import annotations

from dna_community.errors import StateConflictError

# --- Workshop lifecycle ---

WORKSHOP_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["published", "cancelled"],
    "published": ["ongoing", "completed", "cancelled"],
    "ongoing": ["completed", "cancelled"],
    "completed": [],
    "cancelled": [],
}

# --- Enrollment lifecycle ---
# "cancelled" and "no_show" are re-enterable: re-enrollment reuses the row.

ENROLLMENT_TRANSITIONS: dict[str, list[str]] = {
    "enrolled": ["attended", "completed", "no_show", "cancelled"],
    "waitlisted": ["enrolled", "cancelled"],
    "attended": ["completed", "no_show"],
    "no_show": ["enrolled", "waitlisted"],
    "cancelled": ["enrolled", "waitlisted"],
    "completed": [],
}

# Message used when an enroll attempt hits an existing active enrollment.
ALREADY_ENROLLED_MESSAGES: dict[str, str] = {
    "enrolled": "User is already enrolled in this workshop",
    "waitlisted": "User is already on the waitlist for this workshop",
    "completed": "User has already completed this workshop",
    "attended": "User has already attended this workshop",
}


def _validate(table: dict[str, list[str]], kind: str, current_status: str, target_status: str) -> None:
    valid = table.get(current_status, [])
    if target_status not in valid:
        raise StateConflictError(
            f"Invalid {kind} transition: {current_status} -> {target_status}",
            validTransitions=valid,
        )


def validate_workshop_transition(current_status: str, target_status: str) -> None:
    """Raise StateConflictError unless the workshop may move to ``target_status``."""
    _validate(WORKSHOP_TRANSITIONS, "workshop", current_status, target_status)


def validate_enrollment_transition(current_status: str, target_status: str) -> None:
    """Raise StateConflictError unless the enrollment may move to ``target_status``."""
    _validate(ENROLLMENT_TRANSITIONS, "enrollment", current_status, target_status)
