from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles resolved by the auth layer and stored in the session."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    HR = "HR"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class GoalType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    TEAM = "TEAM"
    COMPANY = "COMPANY"


class GoalStatus(str, Enum):
    """Lifecycle status of a goal or key result."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    AT_RISK = "AT_RISK"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
