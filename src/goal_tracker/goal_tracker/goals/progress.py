"""Progress calculation for goals and key results.

Progress is a percentage in [0, 100]. A goal with key results takes the
weighted average of their completion ratios; a goal without key results uses
its own current/target pair. Only the final value is rounded.
"""
from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import MAX_PROGRESS, PROGRESS_DECIMALS
from .model import Goal, KeyResult


def completion_ratio(current_value: float, target_value: Optional[float]) -> float:
    """Completion of a single current/target pair, unrounded, kept in [0, 100]."""

    if target_value is None or target_value <= 0:
        return 0.0
    return min(MAX_PROGRESS, max(0.0, float(current_value) / float(target_value) * 100.0))


def key_result_ratio(key_result: KeyResult) -> float:
    return completion_ratio(key_result.current_value, key_result.target_value)


def weighted_key_result_progress(key_results: Sequence[KeyResult]) -> float:
    # Callers guarantee weight > 0 on every key result.
    total_weight = sum(kr.weight for kr in key_results)
    weighted = sum(key_result_ratio(kr) * kr.weight for kr in key_results)
    return weighted / total_weight


def finalize_progress(value: float) -> float:
    return round(min(MAX_PROGRESS, max(0.0, value)), PROGRESS_DECIMALS)


def compute_progress(goal: Goal, key_results: Sequence[KeyResult]) -> float:
    if key_results:
        return finalize_progress(weighted_key_result_progress(key_results))
    return finalize_progress(completion_ratio(goal.current_value, goal.target_value))
