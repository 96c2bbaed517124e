from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence

from ..core.enums import GoalStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_float
from .key_result_repository import KeyResultRepository
from .model import KeyResult, NewKeyResult

_WRITABLE_COLUMNS = {"title", "description", "target_value", "current_value", "unit", "weight", "status"}


def _row_to_key_result(row: dict) -> KeyResult:
    return KeyResult(
        key_result_id=int(row["key_result_id"]),
        goal_id=int(row["goal_id"]),
        title=row["title"],
        description=row.get("description"),
        target_value=to_float(row["target_value"]) or 0.0,
        current_value=to_float(row.get("current_value")) or 0.0,
        unit=row.get("unit"),
        weight=to_float(row.get("weight")) or 1.0,
        status=GoalStatus(row["status"]),
    )


def insert_key_result(cur, goal_id: int, data: NewKeyResult) -> int:
    """Insert on an open cursor so callers can share the transaction."""

    cur.execute(
        """
        INSERT INTO key_results(goal_id, title, description, target_value, current_value, unit, weight, status)
        VALUES(%s,%s,%s,%s,0,%s,%s,%s)
        """,
        (
            goal_id,
            data.title,
            data.description,
            data.target_value,
            data.unit,
            data.weight,
            GoalStatus.NOT_STARTED.value,
        ),
    )
    return int(cur.lastrowid)


class MySQLKeyResultRepository(KeyResultRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_key_results(self, goal_id: int) -> Sequence[KeyResult]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT key_result_id, goal_id, title, description, target_value,
                       current_value, unit, weight, status
                FROM key_results
                WHERE goal_id=%s
                ORDER BY key_result_id
                """,
                (goal_id,),
            )
            return [_row_to_key_result(r) for r in fetchall(cur)]

    def get_key_result(self, goal_id: int, key_result_id: int) -> Optional[KeyResult]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT key_result_id, goal_id, title, description, target_value,
                       current_value, unit, weight, status
                FROM key_results
                WHERE key_result_id=%s AND goal_id=%s
                """,
                (key_result_id, goal_id),
            )
            row = fetchone(cur)
            return _row_to_key_result(row) if row else None

    def create_key_result(self, goal_id: int, data: NewKeyResult) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_key_result(cur, goal_id, data)

    def update_key_result(self, key_result_id: int, **fields: Any) -> bool:
        if not fields:
            return True

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name not in _WRITABLE_COLUMNS:
                raise ValueError(f"Unknown key result field: {name}")
            assignments.append(f"{name}=%s")
            params.append(value.value if isinstance(value, Enum) else value)
        params.append(key_result_id)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE key_results SET {', '.join(assignments)} WHERE key_result_id=%s", tuple(params))
            return cur.rowcount > 0

    def delete_key_result(self, key_result_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM key_results WHERE key_result_id=%s", (key_result_id,))
            return cur.rowcount > 0
