from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional

import pytest

from goal_tracker.core.enums import GoalType
from goal_tracker.goals.model import Actor, Goal, GoalFilters, KeyResult, NewGoal, NewKeyResult, Tombstone
from goal_tracker.goals.service import GoalService

TODAY = date(2026, 3, 1)


class InMemoryGoals:
    def __init__(self, key_results: InMemoryKeyResults):
        self._key_results = key_results
        self._next_id = 1
        self._goals: dict[int, Goal] = {}
        self._inactive: set[int] = set()
        self.saves: list[tuple[int, dict]] = []

    def add(self, **kwargs) -> Goal:
        goal_id = self._next_id
        self._next_id += 1
        defaults = dict(
            goal_id=goal_id,
            tenant_id=1,
            user_id=1,
            title=f"Goal {goal_id}",
            goal_type=GoalType.INDIVIDUAL,
            category="OKR",
            start_date=date(2026, 1, 1),
            due_date=date(2026, 12, 31),
        )
        defaults.update(kwargs)
        goal = Goal(**defaults)
        self._goals[goal_id] = goal
        return goal

    def get(self, goal_id: int) -> Goal:
        return self._goals[goal_id]

    def is_active(self, goal_id: int) -> bool:
        return goal_id not in self._inactive

    def deactivate(self, goal_id: int) -> None:
        self._inactive.add(goal_id)

    # GoalRepository

    def find_goal(self, tenant_id, goal_id):
        goal = self._goals.get(goal_id)
        if not goal or goal.tenant_id != tenant_id:
            return None
        if goal_id in self._inactive:
            return Tombstone(goal_id=goal_id, tenant_id=tenant_id, parent_id=goal.parent_id)
        return goal

    def find_children(self, tenant_id, parent_id, *, active_only=True):
        out = []
        for goal in self._goals.values():
            if goal.tenant_id != tenant_id or goal.parent_id != parent_id:
                continue
            if goal.goal_id in self._inactive:
                if not active_only:
                    out.append(Tombstone(goal_id=goal.goal_id, tenant_id=tenant_id, parent_id=parent_id))
                continue
            out.append(goal)
        return out

    def find_roots(self, tenant_id, *, goal_type=GoalType.COMPANY):
        return [
            g
            for g in self._goals.values()
            if g.tenant_id == tenant_id
            and g.parent_id is None
            and g.goal_id not in self._inactive
            and (goal_type is None or g.goal_type == goal_type)
        ]

    def create_goal(self, data: NewGoal) -> int:
        goal = self.add(
            tenant_id=data.tenant_id,
            user_id=data.user_id,
            title=data.title,
            description=data.description,
            goal_type=data.goal_type,
            category=data.category,
            target_value=data.target_value,
            unit=data.unit,
            start_date=data.start_date,
            due_date=data.due_date,
            weight=data.weight,
            parent_id=data.parent_id,
            department_id=data.department_id,
        )
        for kr in data.key_results:
            self._key_results.create_key_result(goal.goal_id, kr)
        return goal.goal_id

    def save_goal(self, goal_id, tenant_id, **fields) -> bool:
        goal = self._goals.get(goal_id)
        if not goal or goal.tenant_id != tenant_id or goal_id in self._inactive:
            return False
        self._goals[goal_id] = replace(goal, **fields)
        self.saves.append((goal_id, dict(fields)))
        return True

    def soft_delete_goal(self, goal_id) -> bool:
        if goal_id not in self._goals or goal_id in self._inactive:
            return False
        self._inactive.add(goal_id)
        return True

    def _matches(self, goal: Goal, tenant_id: int, f: GoalFilters) -> bool:
        if goal.tenant_id != tenant_id or goal.goal_id in self._inactive:
            return False
        if f.goal_type and goal.goal_type != f.goal_type:
            return False
        if f.category and goal.category != f.category:
            return False
        if f.status and goal.status != f.status:
            return False
        if f.department_id is not None and goal.department_id != f.department_id:
            return False
        if f.parent_id is not None and goal.parent_id != f.parent_id:
            return False
        if f.parent_id is None and f.roots_only and goal.parent_id is not None:
            return False
        if f.user_id is not None:
            return goal.user_id == f.user_id
        if f.visible_to_user_id is not None:
            return (
                goal.user_id == f.visible_to_user_id
                or (goal.goal_type == GoalType.TEAM and goal.department_id == f.visible_to_department_id)
                or goal.goal_type == GoalType.COMPANY
            )
        return True

    def list_goals(self, tenant_id, filters, *, offset=0, limit=None):
        rows = [g for g in self._goals.values() if self._matches(g, tenant_id, filters)]
        rows.sort(key=lambda g: (g.status.value, g.due_date, g.goal_id))
        if limit is None:
            return rows[offset:]
        return rows[offset : offset + limit]

    def count_goals(self, tenant_id, filters) -> int:
        return len([g for g in self._goals.values() if self._matches(g, tenant_id, filters)])


class InMemoryKeyResults:
    def __init__(self):
        self._next_id = 1
        self._items: dict[int, KeyResult] = {}

    def add(self, goal_id: int, **kwargs) -> KeyResult:
        kr_id = self._next_id
        self._next_id += 1
        defaults = dict(key_result_id=kr_id, goal_id=goal_id, title=f"KR {kr_id}", target_value=10.0)
        defaults.update(kwargs)
        kr = KeyResult(**defaults)
        self._items[kr_id] = kr
        return kr

    def find_key_results(self, goal_id):
        return [kr for kr in self._items.values() if kr.goal_id == goal_id]

    def get_key_result(self, goal_id, key_result_id) -> Optional[KeyResult]:
        kr = self._items.get(key_result_id)
        return kr if kr and kr.goal_id == goal_id else None

    def create_key_result(self, goal_id, data: NewKeyResult) -> int:
        return self.add(
            goal_id,
            title=data.title,
            description=data.description,
            target_value=data.target_value,
            unit=data.unit,
            weight=data.weight,
        ).key_result_id

    def update_key_result(self, key_result_id, **fields) -> bool:
        kr = self._items.get(key_result_id)
        if not kr:
            return False
        self._items[key_result_id] = replace(kr, **fields)
        return True

    def delete_key_result(self, key_result_id) -> bool:
        return self._items.pop(key_result_id, None) is not None


class RecordingAudit:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.entries: list[dict] = []

    def record_change(self, tenant_id, actor_id, entity_type, entity_id, before, after):
        if self.fail:
            raise RuntimeError("audit store down")
        self.entries.append(
            {
                "tenant_id": tenant_id,
                "actor_id": actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "before": before,
                "after": after,
            }
        )


@pytest.fixture
def goals(key_results):
    return InMemoryGoals(key_results)


@pytest.fixture
def key_results():
    return InMemoryKeyResults()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def actor():
    return Actor(user_id=7, tenant_id=1)


@pytest.fixture
def service(goals, key_results, audit):
    return GoalService(goals, key_results, audit, today=lambda: TODAY)


@pytest.fixture
def failing_audit_service(goals, key_results):
    return GoalService(goals, key_results, RecordingAudit(fail=True), today=lambda: TODAY)
