"""Quote approval state definitions and transition map.

Reversing an approval always returns the quote to draft, whatever state it
was approved from.
"""

from __future__ import annotations

from src.models.enums import QuoteStatus

SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
CANCEL_APPROVAL = "cancel_approval"

# Transition map: {current_status: {trigger_name: next_status}}
TRANSITIONS: dict[QuoteStatus, dict[str, QuoteStatus]] = {
    QuoteStatus.DRAFT: {
        SUBMIT: QuoteStatus.PENDING,
        APPROVE: QuoteStatus.APPROVED,
        REJECT: QuoteStatus.REJECTED,
    },
    QuoteStatus.PENDING: {
        APPROVE: QuoteStatus.APPROVED,
        REJECT: QuoteStatus.REJECTED,
    },
    QuoteStatus.APPROVED: {
        CANCEL_APPROVAL: QuoteStatus.DRAFT,
    },
    QuoteStatus.REJECTED: {},
}


def sources_for(trigger: str) -> set[QuoteStatus]:
    """All statuses from which ``trigger`` is allowed."""
    return {status for status, triggers in TRANSITIONS.items() if trigger in triggers}


def target_for(trigger: str) -> QuoteStatus:
    """The status ``trigger`` leads to (each trigger has exactly one target)."""
    targets = {triggers[trigger] for triggers in TRANSITIONS.values() if trigger in triggers}
    if len(targets) != 1:
        msg = f"Unknown lifecycle trigger: {trigger!r}"
        raise ValueError(msg)
    return targets.pop()


def can_transition(status: QuoteStatus | str, trigger: str) -> bool:
    """Check if a trigger is valid from the given status."""
    try:
        current = QuoteStatus(status)
    except ValueError:
        return False
    return trigger in TRANSITIONS.get(current, {})


def valid_triggers(status: QuoteStatus | str) -> list[str]:
    """Return all valid trigger names for the given status."""
    try:
        current = QuoteStatus(status)
    except ValueError:
        return []
    return list(TRANSITIONS.get(current, {}).keys())
