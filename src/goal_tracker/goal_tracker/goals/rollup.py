from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from ..common.datetime_utils import today_local
from ..core.constants import DEFAULT_HIERARCHY_MAX_DEPTH
from .key_result_repository import KeyResultRepository
from .model import Goal
from .progress import compute_progress
from .repository import GoalRepository
from .status import resolve_status

logger = logging.getLogger(__name__)


class RollUpEngine:
    """Re-derives progress/status along a goal's ancestor chain.

    Each ancestor is recomputed from its OWN key results (or its own
    current/target pair), never from its children. The walk is sequential,
    commits every step on its own and always continues to the root. A
    missing or soft-deleted ancestor ends the walk without raising, since the
    leaf write that triggered it has already been committed.
    """

    def __init__(
        self,
        goals: GoalRepository,
        key_results: KeyResultRepository,
        *,
        today: Optional[Callable[[], date]] = None,
        max_depth: int = DEFAULT_HIERARCHY_MAX_DEPTH,
    ):
        self._goals = goals
        self._key_results = key_results
        self._today = today or today_local
        self._max_depth = int(max_depth)

    def roll_up(self, goal_id: int, tenant_id: int) -> list[int]:
        """Recompute every ancestor of ``goal_id``; returns the ids written."""

        record = self._goals.find_goal(tenant_id, goal_id)
        if not isinstance(record, Goal) or record.parent_id is None:
            return []
        return self.roll_up_from(record.parent_id, tenant_id)

    def roll_up_from(self, ancestor_id: int, tenant_id: int) -> list[int]:
        """Recompute ``ancestor_id`` and everything above it."""

        today = self._today()
        updated: list[int] = []
        seen: set[int] = set()
        current_id: Optional[int] = ancestor_id

        while current_id is not None:
            if current_id in seen:
                logger.error("Goal %s appears twice in its own ancestor chain (tenant %s)", current_id, tenant_id)
                break
            if len(updated) >= self._max_depth:
                logger.warning("Roll-up stopped at depth %d (goal %s, tenant %s)", self._max_depth, current_id, tenant_id)
                break
            seen.add(current_id)

            ancestor = self._goals.find_goal(tenant_id, current_id)
            if not isinstance(ancestor, Goal):
                logger.warning("Roll-up chain broken at goal %s (tenant %s)", current_id, tenant_id)
                break

            progress = compute_progress(ancestor, self._key_results.find_key_results(ancestor.goal_id))
            status = resolve_status(progress, ancestor.due_date, ancestor.status, today)
            self._goals.save_goal(ancestor.goal_id, tenant_id, progress=progress, status=status)
            updated.append(ancestor.goal_id)
            logger.debug("Rolled up goal %s: progress=%s status=%s", ancestor.goal_id, progress, status.value)

            current_id = ancestor.parent_id

        return updated
