from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Union

from ..core.enums import GoalStatus, GoalType, Role


@dataclass(frozen=True)
class Goal:
    """Domain entity: an active goal row.

    Note: soft-deleted rows never come back as ``Goal``; the store returns a
    ``Tombstone`` for them instead.
    """

    goal_id: int
    tenant_id: int
    user_id: int
    title: str
    goal_type: GoalType
    category: str
    start_date: date
    due_date: date
    status: GoalStatus = GoalStatus.NOT_STARTED
    progress: float = 0.0
    current_value: float = 0.0
    target_value: Optional[float] = None
    weight: float = 1.0
    unit: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None
    department_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.goal_id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "type": self.goal_type.value,
            "category": self.category,
            "target_value": self.target_value,
            "current_value": self.current_value,
            "unit": self.unit,
            "start_date": self.start_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "status": self.status.value,
            "progress": self.progress,
            "weight": self.weight,
            "parent_id": self.parent_id,
            "department_id": self.department_id,
        }


@dataclass(frozen=True)
class Tombstone:
    """A soft-deleted goal. The row is kept for audit history only."""

    goal_id: int
    tenant_id: int
    parent_id: Optional[int] = None


GoalRecord = Union[Goal, Tombstone]


@dataclass(frozen=True)
class KeyResult:
    key_result_id: int
    goal_id: int
    title: str
    target_value: float
    current_value: float = 0.0
    weight: float = 1.0
    unit: Optional[str] = None
    description: Optional[str] = None
    status: GoalStatus = GoalStatus.NOT_STARTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.key_result_id,
            "goal_id": self.goal_id,
            "title": self.title,
            "description": self.description,
            "target_value": self.target_value,
            "current_value": self.current_value,
            "unit": self.unit,
            "weight": self.weight,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class NewKeyResult:
    title: str
    target_value: float
    weight: float = 1.0
    unit: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class NewGoal:
    """Validated input for goal creation (output of the mutation guard)."""

    tenant_id: int
    user_id: int
    title: str
    goal_type: GoalType
    category: str
    start_date: date
    due_date: date
    target_value: Optional[float] = None
    weight: float = 1.0
    unit: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None
    department_id: Optional[int] = None
    key_results: tuple[NewKeyResult, ...] = ()


@dataclass(frozen=True)
class Actor:
    """Identity of the caller, resolved by the auth layer."""

    user_id: int
    tenant_id: int
    role: Role = Role.EMPLOYEE
    department_id: Optional[int] = None


@dataclass(frozen=True)
class GoalFilters:
    goal_type: Optional[GoalType] = None
    category: Optional[str] = None
    status: Optional[GoalStatus] = None
    user_id: Optional[int] = None
    department_id: Optional[int] = None
    parent_id: Optional[int] = None
    roots_only: bool = False
    # Employee visibility: own goals, team goals of the department, company goals.
    visible_to_user_id: Optional[int] = None
    visible_to_department_id: Optional[int] = None


@dataclass(frozen=True)
class GoalDetail:
    goal: Goal
    key_results: list[KeyResult] = field(default_factory=list)
    children: list[Goal] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.goal.to_dict()
        data["key_results"] = [kr.to_dict() for kr in self.key_results]
        data["children"] = [
            {
                "id": c.goal_id,
                "title": c.title,
                "progress": c.progress,
                "status": c.status.value,
                "due_date": c.due_date.isoformat(),
            }
            for c in self.children
        ]
        return data


@dataclass(frozen=True)
class GoalPage:
    items: list[GoalDetail]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [item.to_dict() for item in self.items],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "total_pages": self.total_pages,
            },
        }


@dataclass
class GoalNode:
    goal: Goal
    children: list["GoalNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        # Iterative so deep trees cannot exhaust the call stack.
        root = {**self.goal.to_dict(), "children": []}
        stack = [(self, root)]
        while stack:
            node, out = stack.pop()
            for child in node.children:
                child_out = {**child.goal.to_dict(), "children": []}
                out["children"].append(child_out)
                stack.append((child, child_out))
        return root


@dataclass(frozen=True)
class GoalStats:
    total: int
    avg_progress: float
    overdue_count: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    by_category: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "avg_progress": self.avg_progress,
            "overdue_count": self.overdue_count,
            "by_status": dict(self.by_status),
            "by_type": dict(self.by_type),
            "by_category": dict(self.by_category),
        }
