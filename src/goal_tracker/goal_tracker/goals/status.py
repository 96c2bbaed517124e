from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.constants import MAX_PROGRESS
from ..core.enums import GoalStatus

STICKY_STATUSES = frozenset({GoalStatus.CANCELLED, GoalStatus.COMPLETED})


def resolve_status(
    progress: float,
    due_date: Optional[date],
    previous_status: Optional[GoalStatus],
    today: date,
) -> GoalStatus:
    """Derive a lifecycle status from progress and due date.

    CANCELLED and COMPLETED are sticky: only an explicit status edit can leave
    them. Zero progress wins over the overdue check. A missing due date is
    never overdue (key results have none).
    """

    if previous_status in STICKY_STATUSES:
        return previous_status
    if progress >= MAX_PROGRESS:
        return GoalStatus.COMPLETED
    if progress <= 0:
        return GoalStatus.NOT_STARTED
    if due_date is not None and today > due_date:
        return GoalStatus.AT_RISK
    return GoalStatus.IN_PROGRESS


def is_overdue(status: GoalStatus, due_date: date, today: date) -> bool:
    return status not in STICKY_STATUSES and due_date < today
