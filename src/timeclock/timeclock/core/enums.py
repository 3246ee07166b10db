from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Work session state persisted in the store."""

    WORKING = "WORKING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"

    @property
    def is_open(self) -> bool:
        return self is not SessionStatus.FINISHED


class Transition(str, Enum):
    """Named state machine transitions, used in errors and logs."""

    OPEN = "open"
    PAUSE = "pause"
    RESUME = "resume"
    CLOCK_OUT = "clock_out"
