from datetime import date
from decimal import Decimal

import pytest

from goal_tracker.core.enums import GoalStatus, GoalType
from goal_tracker.goals.model import Goal, GoalFilters, NewGoal, NewKeyResult, Tombstone
from goal_tracker.goals.mysql_goal_repository import MySQLGoalRepository, _filters_sql, _row_to_record


def _row(**kwargs):
    row = {
        "goal_id": 5,
        "tenant_id": 1,
        "user_id": 2,
        "title": "Cut costs",
        "description": None,
        "goal_type": "TEAM",
        "category": "OKR",
        "target_value": Decimal("200.00"),
        "current_value": Decimal("50.00"),
        "unit": "k",
        "start_date": date(2026, 1, 1),
        "due_date": date(2026, 6, 30),
        "status": "IN_PROGRESS",
        "progress": Decimal("25.00"),
        "weight": Decimal("1.00"),
        "parent_id": 3,
        "department_id": 9,
        "is_active": 1,
    }
    row.update(kwargs)
    return row


def test_active_row_becomes_goal():
    record = _row_to_record(_row())

    assert isinstance(record, Goal)
    assert record.goal_type == GoalType.TEAM
    assert record.status == GoalStatus.IN_PROGRESS
    assert record.progress == 25.0
    assert record.target_value == 200.0


def test_inactive_row_becomes_tombstone():
    record = _row_to_record(_row(is_active=0))

    assert record == Tombstone(goal_id=5, tenant_id=1, parent_id=3)


def test_filters_always_scope_tenant_and_active_rows():
    where, params = _filters_sql(4, GoalFilters())

    assert where == "tenant_id=%s AND is_active=1"
    assert params == [4]


def test_roots_only_and_employee_visibility():
    where, params = _filters_sql(1, GoalFilters(roots_only=True, visible_to_user_id=7, visible_to_department_id=3))

    assert "parent_id IS NULL" in where
    assert "goal_type='COMPANY'" in where
    assert params == [1, 7, 3]


def test_explicit_user_filter_replaces_visibility():
    where, params = _filters_sql(1, GoalFilters(user_id=8, visible_to_user_id=7))

    assert "user_id=%s" in where
    assert "COMPANY" not in where
    assert params == [1, 8]


class FakeCursor:
    def __init__(self, fail_on_insert: int = 0):
        self.fail_on_insert = fail_on_insert
        self.executed = []
        self.lastrowid = 0

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.fail_on_insert and len(self.executed) == self.fail_on_insert:
            raise RuntimeError("Out of range value for column 'target_value'")
        self.lastrowid += 1

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cur):
        self.cur = cur
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, dictionary=False):
        return self.cur

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        pass


class FakeConnFactory:
    def __init__(self, cur):
        self.conn = FakeConnection(cur)
        self.connects = 0

    def connect(self):
        self.connects += 1
        return self.conn


def _new_goal() -> NewGoal:
    return NewGoal(
        tenant_id=1,
        user_id=2,
        title="Big",
        goal_type=GoalType.INDIVIDUAL,
        category="OKR",
        start_date=date(2026, 1, 1),
        due_date=date(2026, 12, 31),
        key_results=(NewKeyResult(title="ok", target_value=10), NewKeyResult(title="huge", target_value=20)),
    )


def test_create_goal_inserts_key_results_in_one_transaction():
    factory = FakeConnFactory(FakeCursor())

    goal_id = MySQLGoalRepository(factory).create_goal(_new_goal())

    assert goal_id == 1
    assert factory.connects == 1
    assert factory.conn.commits == 1
    inserts = [params for _, params in factory.conn.cur.executed]
    assert [p[0] for p in inserts[1:]] == [goal_id, goal_id]
    assert [p[1] for p in inserts[1:]] == ["ok", "huge"]


def test_create_goal_rolls_back_when_a_key_result_insert_fails():
    factory = FakeConnFactory(FakeCursor(fail_on_insert=3))

    with pytest.raises(RuntimeError):
        MySQLGoalRepository(factory).create_goal(_new_goal())

    assert factory.conn.commits == 0
    assert factory.conn.rollbacks == 1
