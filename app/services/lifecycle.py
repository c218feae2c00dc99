"""Leak lifecycle: NOT_REPORTED -> ACTIVE -> RESOLVED.

Reporting is gated by the debounce threshold in :mod:`app.services.severity`;
resolution is always an explicit caller decision.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from app.core.errors import InvalidTransitionError
from app.schemas.leak import LeakStatus


class LeakState(str, Enum):
    NOT_REPORTED = "not_reported"
    ACTIVE = "active"
    RESOLVED = "resolved"

    @classmethod
    def from_record(cls, record_id: Optional[str], status: Optional[str] = None) -> "LeakState":
        if not record_id:
            return cls.NOT_REPORTED
        if status == LeakStatus.RESOLVED.value:
            return cls.RESOLVED
        return cls.ACTIVE


class LeakEvent(str, Enum):
    REPORT = "report"
    OBSERVE = "observe"
    RESOLVE = "resolve"


_TRANSITIONS = {
    (LeakState.NOT_REPORTED, LeakEvent.REPORT): LeakState.ACTIVE,
    (LeakState.ACTIVE, LeakEvent.OBSERVE): LeakState.ACTIVE,
    (LeakState.ACTIVE, LeakEvent.RESOLVE): LeakState.RESOLVED,
}


def transition(state: LeakState, event: LeakEvent) -> LeakState:
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(f"Cannot {event.value} a leak in state {state.value}.") from None
