from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Mapping, Optional

from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import today_local
from ..common.validators import parse_optional_id
from ..core.constants import (
    DEFAULT_HIERARCHY_MAX_DEPTH,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PROGRESS_DECIMALS,
)
from ..core.enums import GoalStatus, GoalType, Role
from ..core.exceptions import NotFoundError, ValidationError
from .guard import MutationGuard
from .hierarchy import HierarchyBuilder
from .key_result_repository import KeyResultRepository
from .model import Actor, Goal, GoalDetail, GoalFilters, GoalNode, GoalPage, GoalStats, KeyResult
from .progress import completion_ratio, compute_progress
from .repository import GoalRepository
from .rollup import RollUpEngine
from .status import is_overdue, resolve_status

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _positive_int(value: Any, field_name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a positive integer")
    if number < 1:
        raise ValidationError(f"{field_name} must be a positive integer")
    return number


def _optional_enum(enum_cls, value: Any, field_name: str):
    if value is None or value == "":
        return None
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}")


class GoalService:
    """Use cases: goals, key results, hierarchy and stats for one tenant at a time."""

    def __init__(
        self,
        goals: GoalRepository,
        key_results: KeyResultRepository,
        audit: AuditRecorder,
        *,
        today: Optional[Callable[[], date]] = None,
        hierarchy_max_depth: int = DEFAULT_HIERARCHY_MAX_DEPTH,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._goals = goals
        self._key_results = key_results
        self._auditor = audit
        self._today = today or today_local
        self._default_page_size = int(default_page_size)
        self._guard = MutationGuard(goals, max_depth=hierarchy_max_depth)
        self._rollup = RollUpEngine(goals, key_results, today=self._today, max_depth=hierarchy_max_depth)
        self._hierarchy = HierarchyBuilder(goals, max_depth=hierarchy_max_depth)

    # Reads

    def get_goal(self, *, tenant_id: int, goal_id: int) -> GoalDetail:
        goal = self._guard.require_goal(tenant_id, goal_id)
        return self._detail(goal)

    def list_goals(
        self,
        *,
        actor: Actor,
        query: Mapping[str, Any],
        page: Any = 1,
        limit: Any = None,
    ) -> GoalPage:
        filters = self._list_filters(actor, query)
        page_n = _positive_int(page, "Page", 1)
        limit_n = min(_positive_int(limit, "Limit", self._default_page_size), MAX_PAGE_SIZE)
        include_key_results = _flag(query.get("include_key_results"), default=True)

        goals = self._goals.list_goals(
            actor.tenant_id,
            filters,
            offset=(page_n - 1) * limit_n,
            limit=limit_n,
        )
        total = self._goals.count_goals(actor.tenant_id, filters)
        items = [self._detail(g, include_key_results=include_key_results) for g in goals]
        return GoalPage(items=items, page=page_n, limit=limit_n, total=total)

    def get_hierarchy(self, *, tenant_id: int, root_id: Optional[int] = None) -> list[GoalNode]:
        if root_id is not None:
            record = self._goals.find_goal(tenant_id, root_id)
            roots = [record] if isinstance(record, Goal) else []
        else:
            roots = list(self._goals.find_roots(tenant_id, goal_type=GoalType.COMPANY))
        return self._hierarchy.build(tenant_id, roots)

    def get_stats(self, *, tenant_id: int, query: Mapping[str, Any]) -> GoalStats:
        filters = GoalFilters(
            user_id=parse_optional_id(query.get("user_id"), "User"),
            department_id=parse_optional_id(query.get("department_id"), "Department"),
        )
        goals = list(self._goals.list_goals(tenant_id, filters))
        today = self._today()

        total = len(goals)
        avg_progress = round(sum(g.progress for g in goals) / total, PROGRESS_DECIMALS) if total else 0.0
        overdue_count = sum(1 for g in goals if is_overdue(g.status, g.due_date, today))

        return GoalStats(
            total=total,
            avg_progress=avg_progress,
            overdue_count=overdue_count,
            by_status=dict(Counter(g.status.value for g in goals)),
            by_type=dict(Counter(g.goal_type.value for g in goals)),
            by_category=dict(Counter(g.category for g in goals)),
        )

    # Goal mutations

    def create_goal(self, *, actor: Actor, data: Mapping[str, Any]) -> GoalDetail:
        new_goal = self._guard.check_create(actor, data)

        goal_id = self._goals.create_goal(new_goal)
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        detail = self._detail(goal)
        logger.info("Goal %s created (tenant %s, parent %s)", goal_id, actor.tenant_id, goal.parent_id)
        self._record(actor, "Goal", goal_id, None, detail.to_dict())
        return detail

    def update_goal_fields(self, *, actor: Actor, goal_id: int, data: Mapping[str, Any]) -> GoalDetail:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        changes = self._guard.check_update(goal, data)

        if changes:
            self._goals.save_goal(goal.goal_id, actor.tenant_id, **changes)
            logger.info("Goal %s updated: %s", goal.goal_id, ", ".join(sorted(changes)))

        updated = self._guard.require_goal(actor.tenant_id, goal_id)
        self._record(actor, "Goal", goal.goal_id, goal.to_dict(), updated.to_dict())
        return self._detail(updated)

    def update_goal_progress(
        self,
        *,
        actor: Actor,
        goal_id: int,
        current_value: Any = None,
        note: Optional[str] = None,
    ) -> GoalDetail:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        key_results = list(self._key_results.find_key_results(goal.goal_id))
        new_current = self._guard.check_progress(goal, key_results, current_value)

        fields: dict[str, Any] = {}
        if new_current is None:
            progress = compute_progress(goal, key_results)
        else:
            progress = compute_progress(replace(goal, current_value=new_current), [])
            fields["current_value"] = new_current
        status = resolve_status(progress, goal.due_date, goal.status, self._today())
        fields.update(progress=progress, status=status)

        self._goals.save_goal(goal.goal_id, actor.tenant_id, **fields)
        if goal.parent_id is not None:
            self._rollup.roll_up(goal.goal_id, actor.tenant_id)

        self._record(
            actor,
            "Goal",
            goal.goal_id,
            {"current_value": goal.current_value, "progress": goal.progress, "status": goal.status.value},
            {
                "current_value": fields.get("current_value", goal.current_value),
                "progress": progress,
                "status": status.value,
                "note": note,
            },
        )
        return self._detail(self._guard.require_goal(actor.tenant_id, goal_id))

    def delete_goal(self, *, actor: Actor, goal_id: int) -> None:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        self._guard.check_delete(goal)

        self._goals.soft_delete_goal(goal.goal_id)
        logger.info("Goal %s soft-deleted (tenant %s)", goal.goal_id, actor.tenant_id)
        if goal.parent_id is not None:
            self._rollup.roll_up_from(goal.parent_id, actor.tenant_id)

        self._record(actor, "Goal", goal.goal_id, goal.to_dict(), None)

    # Key results

    def add_key_result(self, *, actor: Actor, goal_id: int, data: Mapping[str, Any]) -> KeyResult:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        new_kr = self._guard.parse_key_result(data)

        kr_id = self._key_results.create_key_result(goal.goal_id, new_kr)
        self._recompute_goal(goal)

        key_result = self._require_key_result(goal.goal_id, kr_id)
        self._record(actor, "KeyResult", kr_id, None, key_result.to_dict())
        return key_result

    def update_key_result(
        self,
        *,
        actor: Actor,
        goal_id: int,
        key_result_id: int,
        data: Mapping[str, Any],
    ) -> KeyResult:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        existing = self._require_key_result(goal.goal_id, key_result_id)
        changes = self._guard.check_key_result_update(data)

        if "current_value" in changes and "status" not in changes:
            ratio = completion_ratio(changes["current_value"], changes.get("target_value", existing.target_value))
            changes["status"] = resolve_status(ratio, None, existing.status, self._today())

        if changes:
            self._key_results.update_key_result(existing.key_result_id, **changes)
        self._recompute_goal(goal)

        key_result = self._require_key_result(goal.goal_id, key_result_id)
        self._record(actor, "KeyResult", key_result_id, existing.to_dict(), key_result.to_dict())
        return key_result

    def delete_key_result(self, *, actor: Actor, goal_id: int, key_result_id: int) -> None:
        goal = self._guard.require_goal(actor.tenant_id, goal_id)
        existing = self._require_key_result(goal.goal_id, key_result_id)

        self._key_results.delete_key_result(existing.key_result_id)
        self._recompute_goal(goal)
        self._record(actor, "KeyResult", key_result_id, existing.to_dict(), None)

    # Helpers

    def _recompute_goal(self, goal: Goal) -> None:
        """Re-derive a goal from its current key results, then roll up."""

        key_results = list(self._key_results.find_key_results(goal.goal_id))
        progress = compute_progress(goal, key_results)
        status = resolve_status(progress, goal.due_date, goal.status, self._today())
        self._goals.save_goal(goal.goal_id, goal.tenant_id, progress=progress, status=status)
        if goal.parent_id is not None:
            self._rollup.roll_up(goal.goal_id, goal.tenant_id)

    def _require_key_result(self, goal_id: int, key_result_id: int) -> KeyResult:
        key_result = self._key_results.get_key_result(goal_id, key_result_id)
        if not key_result:
            raise NotFoundError("Key result not found")
        return key_result

    def _detail(self, goal: Goal, *, include_key_results: bool = True) -> GoalDetail:
        key_results = list(self._key_results.find_key_results(goal.goal_id)) if include_key_results else []
        children = [
            c for c in self._goals.find_children(goal.tenant_id, goal.goal_id, active_only=True) if isinstance(c, Goal)
        ]
        return GoalDetail(goal=goal, key_results=key_results, children=children)

    def _list_filters(self, actor: Actor, query: Mapping[str, Any]) -> GoalFilters:
        raw_parent = query.get("parent_id")
        roots_only = raw_parent == "null"
        user_id = parse_optional_id(query.get("user_id"), "User")
        if _flag(query.get("my_goals")):
            user_id = actor.user_id

        filters = GoalFilters(
            goal_type=_optional_enum(GoalType, query.get("type"), "goal type"),
            category=(str(query["category"]).strip() or None) if query.get("category") else None,
            status=_optional_enum(GoalStatus, query.get("status"), "status"),
            user_id=user_id,
            department_id=parse_optional_id(query.get("department_id"), "Department"),
            parent_id=None if roots_only else parse_optional_id(raw_parent, "Parent goal"),
            roots_only=roots_only,
        )
        if user_id is None and actor.role == Role.EMPLOYEE:
            filters = replace(
                filters,
                visible_to_user_id=actor.user_id,
                visible_to_department_id=actor.department_id,
            )
        return filters

    def _record(
        self,
        actor: Actor,
        entity_type: str,
        entity_id: int,
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        # Fire-and-forget: the mutation has already been committed.
        try:
            self._auditor.record_change(actor.tenant_id, actor.user_id, entity_type, entity_id, before, after)
        except Exception:
            logger.warning("Audit record failed for %s %s", entity_type, entity_id, exc_info=True)
