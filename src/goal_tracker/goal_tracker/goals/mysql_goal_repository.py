from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence

from ..core.enums import GoalStatus, GoalType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_date, to_float
from .model import Goal, GoalFilters, GoalRecord, NewGoal, Tombstone
from .mysql_key_result_repository import insert_key_result
from .repository import GoalRepository

_GOAL_COLUMNS = """
    goal_id, tenant_id, user_id, title, description, goal_type, category,
    target_value, current_value, unit, start_date, due_date, status, progress,
    weight, parent_id, department_id, is_active
"""

# Domain field name -> column. Anything else passed to save_goal is rejected.
_WRITABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "goal_type": "goal_type",
    "category": "category",
    "target_value": "target_value",
    "current_value": "current_value",
    "unit": "unit",
    "start_date": "start_date",
    "due_date": "due_date",
    "status": "status",
    "progress": "progress",
    "weight": "weight",
    "parent_id": "parent_id",
    "department_id": "department_id",
}


def _row_to_record(row: dict) -> GoalRecord:
    if not bool(row.get("is_active", True)):
        return Tombstone(
            goal_id=int(row["goal_id"]),
            tenant_id=int(row["tenant_id"]),
            parent_id=row.get("parent_id"),
        )
    return Goal(
        goal_id=int(row["goal_id"]),
        tenant_id=int(row["tenant_id"]),
        user_id=int(row["user_id"]),
        title=row["title"],
        description=row.get("description"),
        goal_type=GoalType(row["goal_type"]),
        category=row.get("category") or "OKR",
        target_value=to_float(row.get("target_value")),
        current_value=to_float(row.get("current_value")) or 0.0,
        unit=row.get("unit"),
        start_date=to_date(row["start_date"]),
        due_date=to_date(row["due_date"]),
        status=GoalStatus(row["status"]),
        progress=to_float(row.get("progress")) or 0.0,
        weight=to_float(row.get("weight")) or 1.0,
        parent_id=row.get("parent_id"),
        department_id=row.get("department_id"),
    )


def _filters_sql(tenant_id: int, filters: GoalFilters) -> tuple[str, list[Any]]:
    clauses = ["tenant_id=%s", "is_active=1"]
    params: list[Any] = [tenant_id]

    if filters.goal_type:
        clauses.append("goal_type=%s")
        params.append(filters.goal_type.value)
    if filters.category:
        clauses.append("category=%s")
        params.append(filters.category)
    if filters.status:
        clauses.append("status=%s")
        params.append(filters.status.value)
    if filters.department_id is not None:
        clauses.append("department_id=%s")
        params.append(filters.department_id)
    if filters.parent_id is not None:
        clauses.append("parent_id=%s")
        params.append(filters.parent_id)
    elif filters.roots_only:
        clauses.append("parent_id IS NULL")
    if filters.user_id is not None:
        clauses.append("user_id=%s")
        params.append(filters.user_id)
    elif filters.visible_to_user_id is not None:
        clauses.append("(user_id=%s OR (goal_type='TEAM' AND department_id=%s) OR goal_type='COMPANY')")
        params.extend([filters.visible_to_user_id, filters.visible_to_department_id])

    return " AND ".join(clauses), params


class MySQLGoalRepository(GoalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_goal(self, tenant_id: int, goal_id: int) -> Optional[GoalRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_GOAL_COLUMNS} FROM goals WHERE goal_id=%s AND tenant_id=%s",
                (goal_id, tenant_id),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def find_children(self, tenant_id: int, parent_id: int, *, active_only: bool = True) -> Sequence[GoalRecord]:
        sql = f"SELECT {_GOAL_COLUMNS} FROM goals WHERE tenant_id=%s AND parent_id=%s"
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY goal_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (tenant_id, parent_id))
            return [_row_to_record(r) for r in fetchall(cur)]

    def find_roots(self, tenant_id: int, *, goal_type: Optional[GoalType] = GoalType.COMPANY) -> Sequence[Goal]:
        sql = f"SELECT {_GOAL_COLUMNS} FROM goals WHERE tenant_id=%s AND parent_id IS NULL AND is_active=1"
        params: list[Any] = [tenant_id]
        if goal_type is not None:
            sql += " AND goal_type=%s"
            params.append(goal_type.value)
        sql += " ORDER BY goal_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def create_goal(self, data: NewGoal) -> int:
        # Goal and key results commit together or not at all.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO goals(
                    tenant_id, user_id, title, description, goal_type, category,
                    target_value, current_value, unit, start_date, due_date,
                    status, progress, weight, parent_id, department_id, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s,%s,%s,%s,0,%s,%s,%s,1)
                """,
                (
                    data.tenant_id,
                    data.user_id,
                    data.title,
                    data.description,
                    data.goal_type.value,
                    data.category,
                    data.target_value,
                    data.unit,
                    data.start_date,
                    data.due_date,
                    GoalStatus.NOT_STARTED.value,
                    data.weight,
                    data.parent_id,
                    data.department_id,
                ),
            )
            goal_id = int(cur.lastrowid)
            for kr in data.key_results:
                insert_key_result(cur, goal_id, kr)
            return goal_id

    def save_goal(self, goal_id: int, tenant_id: int, **fields: Any) -> bool:
        if not fields:
            return True

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            column = _WRITABLE_COLUMNS.get(name)
            if column is None:
                raise ValueError(f"Unknown goal field: {name}")
            assignments.append(f"{column}=%s")
            params.append(value.value if isinstance(value, Enum) else value)
        params.extend([goal_id, tenant_id])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE goals SET {', '.join(assignments)} WHERE goal_id=%s AND tenant_id=%s AND is_active=1",
                tuple(params),
            )
            return cur.rowcount > 0

    def soft_delete_goal(self, goal_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE goals SET is_active=0 WHERE goal_id=%s AND is_active=1", (goal_id,))
            return cur.rowcount > 0

    def list_goals(
        self,
        tenant_id: int,
        filters: GoalFilters,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Goal]:
        where, params = _filters_sql(tenant_id, filters)
        sql = f"SELECT {_GOAL_COLUMNS} FROM goals WHERE {where} ORDER BY status ASC, due_date ASC, goal_id ASC"
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_goals(self, tenant_id: int, filters: GoalFilters) -> int:
        where, params = _filters_sql(tenant_id, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM goals WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["total"]) if row else 0
