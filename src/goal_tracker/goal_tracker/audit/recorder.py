from __future__ import annotations

from typing import Any, Optional, Protocol


class AuditRecorder(Protocol):
    """Audit collaborator. Callers treat it as fire-and-forget."""

    def record_change(
        self,
        tenant_id: int,
        actor_id: Optional[int],
        entity_type: str,
        entity_id: int,
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        raise NotImplementedError


def action_for(before: Optional[dict[str, Any]], after: Optional[dict[str, Any]]) -> str:
    if before is None:
        return "CREATE"
    if after is None:
        return "DELETE"
    return "UPDATE"
