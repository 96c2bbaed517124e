from datetime import date

import pytest

from goal_tracker.core.enums import GoalType
from goal_tracker.goals.model import Goal, KeyResult
from goal_tracker.goals.progress import completion_ratio, compute_progress


def _goal(**kwargs) -> Goal:
    defaults = dict(
        goal_id=1,
        tenant_id=1,
        user_id=1,
        title="Ship it",
        goal_type=GoalType.INDIVIDUAL,
        category="OKR",
        start_date=date(2026, 1, 1),
        due_date=date(2026, 12, 31),
    )
    defaults.update(kwargs)
    return Goal(**defaults)


def _kr(kr_id: int, current: float, target: float, weight: float = 1.0) -> KeyResult:
    return KeyResult(key_result_id=kr_id, goal_id=1, title=f"KR {kr_id}", target_value=target, current_value=current, weight=weight)


def test_direct_progress_uses_current_over_target():
    assert compute_progress(_goal(current_value=25, target_value=200), []) == 12.5


def test_direct_progress_without_target_is_zero():
    assert compute_progress(_goal(current_value=50, target_value=None), []) == 0.0
    assert compute_progress(_goal(current_value=50, target_value=0), []) == 0.0


def test_direct_progress_is_capped_at_100():
    assert compute_progress(_goal(current_value=300, target_value=100), []) == 100.0


def test_negative_current_value_clamps_to_zero():
    assert compute_progress(_goal(current_value=-5, target_value=10), []) == 0.0


def test_weighted_key_results():
    krs = [_kr(1, 5, 10, weight=1), _kr(2, 10, 10, weight=3)]
    # (50*1 + 100*3) / 4
    assert compute_progress(_goal(), krs) == 87.5


def test_key_results_override_goal_values():
    goal = _goal(current_value=100, target_value=100)
    assert compute_progress(goal, [_kr(1, 0, 10)]) == 0.0


def test_each_key_result_is_capped_before_weighting():
    krs = [_kr(1, 30, 10), _kr(2, 0, 10)]
    assert compute_progress(_goal(), krs) == 50.0


def test_key_result_with_zero_target_counts_as_zero():
    krs = [_kr(1, 5, 0), _kr(2, 10, 10)]
    assert compute_progress(_goal(), krs) == 50.0


def test_rounding_is_applied_once_at_the_end():
    krs = [_kr(1, 1, 3), _kr(2, 1, 3), _kr(3, 1, 3)]
    assert compute_progress(_goal(), krs) == 33.33


def test_completion_ratio_is_unrounded():
    assert completion_ratio(1, 3) == 100.0 / 3


def test_negative_key_result_counts_as_zero_not_below():
    assert compute_progress(_goal(), [_kr(1, -50, 10), _kr(2, 10, 10)]) == 50.0


@pytest.mark.parametrize(
    "krs",
    [
        [(10, 10, 1)],
        [(10, 10, 1), (25, 20, 3)],
        [(5, 5, 0.5), (100, 1, 2), (7, 7, 10)],
    ],
)
def test_all_key_results_met_gives_100(krs):
    key_results = [_kr(i, current, target, weight) for i, (current, target, weight) in enumerate(krs, start=1)]

    assert compute_progress(_goal(), key_results) == 100.0


@pytest.mark.parametrize(
    "current,target,expected",
    [(0, 10, 0.0), (3, 8, 37.5), (2, 3, 66.67), (10, 10, 100.0), (40, 10, 100.0)],
)
def test_single_key_result_is_its_own_ratio(current, target, expected):
    assert compute_progress(_goal(), [_kr(1, current, target, weight=4)]) == expected
