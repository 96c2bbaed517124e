from datetime import date

from goal_tracker.core.enums import GoalStatus, GoalType
from goal_tracker.goals.rollup import RollUpEngine

TODAY = date(2026, 3, 1)


def _engine(goals, key_results, max_depth=50):
    return RollUpEngine(goals, key_results, today=lambda: TODAY, max_depth=max_depth)


def test_ancestors_are_recomputed_from_their_own_key_results(goals, key_results):
    company = goals.add(goal_type=GoalType.COMPANY)
    team = goals.add(goal_type=GoalType.TEAM, department_id=3, parent_id=company.goal_id)
    leaf = goals.add(parent_id=team.goal_id, current_value=10, target_value=10, progress=100.0)
    key_results.add(company.goal_id, current_value=2, target_value=10)
    key_results.add(team.goal_id, current_value=5, target_value=10)

    updated = _engine(goals, key_results).roll_up(leaf.goal_id, 1)

    assert updated == [team.goal_id, company.goal_id]
    # The leaf being complete has no effect: the parent only looks at its own key results.
    assert goals.get(team.goal_id).progress == 50.0
    assert goals.get(team.goal_id).status == GoalStatus.IN_PROGRESS
    assert goals.get(company.goal_id).progress == 20.0


def test_parent_is_rewritten_even_when_unchanged(goals, key_results):
    parent = goals.add(goal_type=GoalType.COMPANY, progress=50.0, status=GoalStatus.IN_PROGRESS)
    key_results.add(parent.goal_id, current_value=5, target_value=10)
    child = goals.add(parent_id=parent.goal_id)

    _engine(goals, key_results).roll_up(child.goal_id, 1)

    assert goals.saves == [(parent.goal_id, {"progress": 50.0, "status": GoalStatus.IN_PROGRESS})]


def test_root_goal_has_nothing_to_roll_up(goals, key_results):
    root = goals.add(goal_type=GoalType.COMPANY)

    assert _engine(goals, key_results).roll_up(root.goal_id, 1) == []
    assert goals.saves == []


def test_chain_stops_silently_at_missing_ancestor(goals, key_results):
    middle = goals.add(parent_id=999)
    leaf = goals.add(parent_id=middle.goal_id)

    updated = _engine(goals, key_results).roll_up(leaf.goal_id, 1)

    assert updated == [middle.goal_id]


def test_chain_stops_at_soft_deleted_ancestor(goals, key_results):
    top = goals.add(goal_type=GoalType.COMPANY)
    middle = goals.add(parent_id=top.goal_id)
    leaf = goals.add(parent_id=middle.goal_id)
    goals.deactivate(middle.goal_id)

    assert _engine(goals, key_results).roll_up(leaf.goal_id, 1) == []
    assert goals.get(top.goal_id).progress == 0.0


def test_sticky_ancestor_status_survives_roll_up(goals, key_results):
    parent = goals.add(goal_type=GoalType.COMPANY, status=GoalStatus.CANCELLED)
    key_results.add(parent.goal_id, current_value=10, target_value=10)
    child = goals.add(parent_id=parent.goal_id)

    _engine(goals, key_results).roll_up(child.goal_id, 1)

    assert goals.get(parent.goal_id).progress == 100.0
    assert goals.get(parent.goal_id).status == GoalStatus.CANCELLED


def test_corrupt_cycle_is_walked_once(goals, key_results):
    a = goals.add(parent_id=2)
    b = goals.add(parent_id=a.goal_id)

    updated = _engine(goals, key_results).roll_up_from(a.goal_id, 1)

    assert updated == [a.goal_id, b.goal_id]


def test_walk_is_bounded_by_max_depth(goals, key_results):
    previous = None
    for _ in range(5):
        previous = goals.add(parent_id=previous.goal_id if previous else None)

    updated = _engine(goals, key_results, max_depth=2).roll_up_from(previous.goal_id, 1)

    assert len(updated) == 2


def test_other_tenants_are_not_touched(goals, key_results):
    foreign_parent = goals.add(tenant_id=2)
    child = goals.add(tenant_id=1, parent_id=foreign_parent.goal_id)

    assert _engine(goals, key_results).roll_up(child.goal_id, 1) == []
