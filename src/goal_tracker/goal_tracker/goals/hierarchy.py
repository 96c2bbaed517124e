from __future__ import annotations

import logging
from typing import Sequence

from ..core.constants import DEFAULT_HIERARCHY_MAX_DEPTH
from .model import Goal, GoalNode
from .repository import GoalRepository

logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """Assembles goals and their active descendants into nested nodes (read-only).

    Uses an explicit stack instead of recursion; nodes deeper than
    ``max_depth`` are returned without children.
    """

    def __init__(self, goals: GoalRepository, *, max_depth: int = DEFAULT_HIERARCHY_MAX_DEPTH):
        self._goals = goals
        self._max_depth = int(max_depth)

    def build(self, tenant_id: int, root_goals: Sequence[Goal]) -> list[GoalNode]:
        roots = [GoalNode(goal=g) for g in root_goals]
        stack: list[tuple[GoalNode, int]] = [(node, 0) for node in roots]

        while stack:
            node, depth = stack.pop()
            if depth >= self._max_depth:
                logger.warning(
                    "Hierarchy truncated below goal %s at depth %d (tenant %s)",
                    node.goal.goal_id,
                    depth,
                    tenant_id,
                )
                continue

            for child in self._goals.find_children(tenant_id, node.goal.goal_id, active_only=True):
                if not isinstance(child, Goal):
                    continue
                child_node = GoalNode(goal=child)
                node.children.append(child_node)
                stack.append((child_node, depth + 1))

        return roots
