from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from ..core.enums import GoalType
from .model import Goal, GoalFilters, GoalRecord, NewGoal


class GoalRepository(Protocol):
    """Store adapter for goals.

    Note: every lookup is tenant-scoped. ``find_goal`` returns ``None`` when the
    id does not exist in the tenant and a ``Tombstone`` when it was soft-deleted.
    """

    def find_goal(self, tenant_id: int, goal_id: int) -> Optional[GoalRecord]:
        raise NotImplementedError

    def find_children(self, tenant_id: int, parent_id: int, *, active_only: bool = True) -> Sequence[GoalRecord]:
        raise NotImplementedError

    def find_roots(self, tenant_id: int, *, goal_type: Optional[GoalType] = GoalType.COMPANY) -> Sequence[Goal]:
        raise NotImplementedError

    def create_goal(self, data: NewGoal) -> int:
        """Insert the goal and ``data.key_results`` in one transaction."""

        raise NotImplementedError

    def save_goal(self, goal_id: int, tenant_id: int, **fields: Any) -> bool:
        """Partial update: only the given fields are written."""

        raise NotImplementedError

    def soft_delete_goal(self, goal_id: int) -> bool:
        raise NotImplementedError

    def list_goals(
        self,
        tenant_id: int,
        filters: GoalFilters,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Goal]:
        """Active goals ordered by status then due date."""

        raise NotImplementedError

    def count_goals(self, tenant_id: int, filters: GoalFilters) -> int:
        raise NotImplementedError
