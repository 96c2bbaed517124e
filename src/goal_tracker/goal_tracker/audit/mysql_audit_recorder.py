from __future__ import annotations

import json
from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .recorder import AuditRecorder, action_for


def _dump(values: Optional[dict[str, Any]]) -> Optional[str]:
    return json.dumps(values, default=str) if values is not None else None


class MySQLAuditRecorder(AuditRecorder):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record_change(
        self,
        tenant_id: int,
        actor_id: Optional[int],
        entity_type: str,
        entity_id: int,
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(tenant_id, actor_id, action, entity_type, entity_id, old_values, new_values)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    tenant_id,
                    actor_id,
                    action_for(before, after),
                    entity_type,
                    entity_id,
                    _dump(before),
                    _dump(after),
                ),
            )
