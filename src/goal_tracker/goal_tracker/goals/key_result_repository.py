from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import KeyResult, NewKeyResult


class KeyResultRepository(Protocol):
    def find_key_results(self, goal_id: int) -> Sequence[KeyResult]:
        raise NotImplementedError

    def get_key_result(self, goal_id: int, key_result_id: int) -> Optional[KeyResult]:
        raise NotImplementedError

    def create_key_result(self, goal_id: int, data: NewKeyResult) -> int:
        raise NotImplementedError

    def update_key_result(self, key_result_id: int, **fields: Any) -> bool:
        raise NotImplementedError

    def delete_key_result(self, key_result_id: int) -> bool:
        raise NotImplementedError
