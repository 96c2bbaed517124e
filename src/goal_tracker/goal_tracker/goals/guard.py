from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import coerce_date
from ..common.validators import (
    optional_text,
    parse_number,
    parse_optional_id,
    parse_optional_number,
    parse_weight,
    require_non_empty,
)
from ..core.constants import DEFAULT_CATEGORY, DEFAULT_HIERARCHY_MAX_DEPTH, DEFAULT_WEIGHT
from ..core.enums import GoalStatus, GoalType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import Actor, Goal, KeyResult, NewGoal, NewKeyResult
from .repository import GoalRepository


def _parse_goal_type(value: Any) -> GoalType:
    try:
        return GoalType(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid goal type: {value!r}")


def _parse_status(value: Any) -> GoalStatus:
    try:
        return GoalStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid status: {value!r}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_target(value: Any) -> float:
    target = parse_number(value, "Target value")
    if target <= 0:
        raise ValidationError("Target value must be greater than 0")
    return target


def _parse_current(value: Any) -> float:
    current = parse_number(value, "Current value")
    if current < 0:
        raise ValidationError("Current value cannot be negative")
    return current


class MutationGuard:
    """Validates goal mutations before anything is written.

    Every method either returns fully coerced values or raises a
    ``DomainError``; callers only write after the guard has returned.
    """

    def __init__(self, goals: GoalRepository, *, max_depth: int = DEFAULT_HIERARCHY_MAX_DEPTH):
        self._goals = goals
        self._max_depth = int(max_depth)

    def require_goal(self, tenant_id: int, goal_id: int) -> Goal:
        record = self._goals.find_goal(tenant_id, goal_id)
        # Other tenants' goals and tombstones are reported the same way as missing ones.
        if not isinstance(record, Goal):
            raise NotFoundError("Goal not found")
        return record

    def _require_parent(self, tenant_id: int, parent_id: int) -> Goal:
        record = self._goals.find_goal(tenant_id, parent_id)
        if not isinstance(record, Goal):
            raise NotFoundError("Parent goal not found")
        return record

    # Create

    def check_create(self, actor: Actor, data: Mapping[str, Any]) -> NewGoal:
        if _is_blank(data.get("title")) or _is_blank(data.get("start_date")) or _is_blank(data.get("due_date")):
            raise ValidationError("Title, start date, and due date are required")

        goal_type = _parse_goal_type(data.get("type") or GoalType.INDIVIDUAL.value)
        department_id = parse_optional_id(data.get("department_id"), "Department")
        if goal_type == GoalType.TEAM and department_id is None:
            raise ValidationError("Department is required for team goals")

        key_results = data.get("key_results") or []
        if not isinstance(key_results, (list, tuple)):
            raise ValidationError("Key results must be a list")

        weight = data.get("weight")
        new_goal = NewGoal(
            tenant_id=actor.tenant_id,
            user_id=parse_optional_id(data.get("assigned_user_id"), "Assigned user") or actor.user_id,
            title=require_non_empty(data.get("title"), "Title"),
            description=optional_text(data.get("description")),
            goal_type=goal_type,
            category=optional_text(data.get("category")) or DEFAULT_CATEGORY,
            target_value=parse_optional_number(data.get("target_value"), "Target value"),
            unit=optional_text(data.get("unit")),
            start_date=coerce_date(data.get("start_date"), "Start date"),
            due_date=coerce_date(data.get("due_date"), "Due date"),
            weight=DEFAULT_WEIGHT if weight is None else parse_weight(weight),
            parent_id=parse_optional_id(data.get("parent_id"), "Parent goal"),
            department_id=department_id,
            key_results=tuple(self.parse_key_result(kr) for kr in key_results),
        )

        if new_goal.parent_id is not None:
            self._require_parent(actor.tenant_id, new_goal.parent_id)
        return new_goal

    # Update

    def check_update(self, goal: Goal, data: Mapping[str, Any]) -> dict[str, Any]:
        """Return only the fields present in ``data``, coerced to domain types."""

        changes: dict[str, Any] = {}
        if "title" in data:
            changes["title"] = require_non_empty(data["title"], "Title")
        if "description" in data:
            changes["description"] = optional_text(data["description"])
        if "type" in data:
            changes["goal_type"] = _parse_goal_type(data["type"])
        if "category" in data:
            changes["category"] = require_non_empty(data["category"], "Category")
        if "target_value" in data:
            changes["target_value"] = parse_optional_number(data["target_value"], "Target value")
        if "unit" in data:
            changes["unit"] = optional_text(data["unit"])
        if "start_date" in data:
            changes["start_date"] = coerce_date(data["start_date"], "Start date")
        if "due_date" in data:
            changes["due_date"] = coerce_date(data["due_date"], "Due date")
        if "status" in data:
            changes["status"] = _parse_status(data["status"])
        if "weight" in data:
            changes["weight"] = parse_weight(data["weight"])
        if "department_id" in data:
            changes["department_id"] = parse_optional_id(data["department_id"], "Department")
        if "parent_id" in data:
            changes["parent_id"] = parse_optional_id(data["parent_id"], "Parent goal")

        goal_type = changes.get("goal_type", goal.goal_type)
        department_id = changes["department_id"] if "department_id" in changes else goal.department_id
        if goal_type == GoalType.TEAM and department_id is None:
            raise ValidationError("Department is required for team goals")

        new_parent_id = changes.get("parent_id")
        if new_parent_id is not None and new_parent_id != goal.parent_id:
            self._check_reparent(goal, new_parent_id)
        return changes

    def _check_reparent(self, goal: Goal, new_parent_id: int) -> None:
        if new_parent_id == goal.goal_id:
            raise ValidationError("A goal cannot be its own parent")

        parent = self._require_parent(goal.tenant_id, new_parent_id)
        steps = 0
        ancestor: Optional[Goal] = parent
        while ancestor is not None:
            if ancestor.goal_id == goal.goal_id:
                raise ValidationError("A goal cannot be moved under one of its own descendants")
            steps += 1
            if steps > self._max_depth:
                raise ValidationError("Goal hierarchy is too deep")
            if ancestor.parent_id is None:
                break
            record = self._goals.find_goal(goal.tenant_id, ancestor.parent_id)
            ancestor = record if isinstance(record, Goal) else None

    # Delete

    def check_delete(self, goal: Goal) -> None:
        if self._goals.find_children(goal.tenant_id, goal.goal_id, active_only=True):
            raise ConflictError("Cannot delete goal with child goals. Delete children first.")

    # Progress

    def check_progress(self, goal: Goal, key_results: Sequence[KeyResult], current_value: Any) -> Optional[float]:
        """Return the new direct value, or ``None`` when key results drive progress."""

        if key_results:
            return None
        if current_value is None:
            raise ConflictError("Current value is required for goals without key results")
        return parse_number(current_value, "Current value")

    # Key results

    def parse_key_result(self, data: Mapping[str, Any]) -> NewKeyResult:
        if not isinstance(data, Mapping):
            raise ValidationError("Key result must be an object")
        if _is_blank(data.get("title")) or _is_blank(data.get("target_value")):
            raise ValidationError("Title and target value are required")

        weight = data.get("weight")
        return NewKeyResult(
            title=require_non_empty(data.get("title"), "Title"),
            description=optional_text(data.get("description")),
            target_value=_parse_target(data.get("target_value")),
            unit=optional_text(data.get("unit")),
            weight=DEFAULT_WEIGHT if weight is None else parse_weight(weight),
        )

    def check_key_result_update(self, data: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "title" in data:
            changes["title"] = require_non_empty(data["title"], "Title")
        if "description" in data:
            changes["description"] = optional_text(data["description"])
        if "target_value" in data:
            changes["target_value"] = _parse_target(data["target_value"])
        if "current_value" in data:
            changes["current_value"] = _parse_current(data["current_value"])
        if "unit" in data:
            changes["unit"] = optional_text(data["unit"])
        if "weight" in data:
            changes["weight"] = parse_weight(data["weight"])
        if "status" in data and not _is_blank(data["status"]):
            changes["status"] = _parse_status(data["status"])
        return changes
