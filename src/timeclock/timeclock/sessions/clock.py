"""Worked-time arithmetic for work sessions.

Everything here is read-only. ``elapsed_seconds`` clamps at zero so a bad
timestamp shows up as ``00:00:00`` on a display instead of an exception;
ordering violations are rejected earlier, at the transition boundary.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING

from ..core.constants import SECONDS_PER_HOUR

if TYPE_CHECKING:
    from .model import WorkSession


def elapsed_seconds(session: WorkSession, now: datetime) -> int:
    raw = (now - session.start_time).total_seconds()
    for b in session.breaks:
        if b.end is not None:
            raw -= (b.end - b.start).total_seconds()
        else:
            raw -= (now - b.start).total_seconds()
    return max(0, math.floor(raw))


def total_hours_at_close(session: WorkSession) -> float:
    if session.end_time is None:
        raise ValueError("total hours are only defined for a closed session")
    return elapsed_seconds(session, session.end_time) / SECONDS_PER_HOUR
