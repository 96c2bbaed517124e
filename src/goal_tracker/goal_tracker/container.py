from __future__ import annotations

from dataclasses import dataclass

from .audit.mysql_audit_recorder import MySQLAuditRecorder
from .core.constants import DEFAULT_HIERARCHY_MAX_DEPTH, DEFAULT_PAGE_SIZE
from .database.connection import DBConfig, DatabaseConnection
from .goals.mysql_goal_repository import MySQLGoalRepository
from .goals.mysql_key_result_repository import MySQLKeyResultRepository
from .goals.service import GoalService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    goals_repo: MySQLGoalRepository
    key_results_repo: MySQLKeyResultRepository
    audit_recorder: MySQLAuditRecorder

    goal_service: GoalService


def build_container(
    *,
    db_config: dict,
    hierarchy_max_depth: int = DEFAULT_HIERARCHY_MAX_DEPTH,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    goals_repo = MySQLGoalRepository(conn)
    key_results_repo = MySQLKeyResultRepository(conn)
    audit_recorder = MySQLAuditRecorder(conn)

    goal_service = GoalService(
        goals_repo,
        key_results_repo,
        audit_recorder,
        hierarchy_max_depth=hierarchy_max_depth,
        default_page_size=default_page_size,
    )

    return Container(
        conn=conn,
        goals_repo=goals_repo,
        key_results_repo=key_results_repo,
        audit_recorder=audit_recorder,
        goal_service=goal_service,
    )
