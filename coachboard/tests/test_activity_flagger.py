# tests/test_activity_flagger.py
from datetime import date

from coachboard.models.records import NutritionPlan, Program, StepsPlan, WorkoutPlan
from coachboard.services.activity_flagger import (
    flag_plans,
    flag_steps_plans,
    synthesize_steps_entry,
)
from coachboard.tests.rows import plan_row, program_row


def _nutrition(*rows):
    return [NutritionPlan.from_row(r) for r in rows]


def test_plan_under_active_program_is_flagged_and_first():
    plans = _nutrition(
        plan_row(id="new-other", budget_id="Y", start_date="2024-06-01"),
        plan_row(id="active", budget_id="X", start_date="2024-01-01"),
        plan_row(id="adhoc", budget_id=None, start_date="2024-03-01"),
    )
    flagged = flag_plans(plans, "X")
    assert [p.id for p in flagged] == ["active", "new-other", "adhoc"]
    assert [p.is_active for p in flagged] == [True, False, False]


def test_never_more_than_one_active_even_without_dedup():
    plans = _nutrition(
        plan_row(id="a", budget_id="X", start_date="2024-01-01"),
        plan_row(id="b", budget_id="X", start_date="2024-02-01"),
        plan_row(id="c", budget_id="X", start_date="2024-02-01", created_at="2023-01-01T00:00:00Z"),
    )
    flagged = flag_plans(plans, "X")
    assert sum(p.is_active for p in flagged) == 1
    assert flagged[0].id == "b"


def test_no_active_program_is_pure_reverse_chronological():
    plans = _nutrition(
        plan_row(id="mid", budget_id="X", start_date="2024-02-01"),
        plan_row(id="late", budget_id="Y", start_date="2024-05-01"),
        plan_row(id="tie-new", budget_id="Z", start_date="2024-01-01", created_at="2024-01-03T00:00:00Z"),
        plan_row(id="tie-old", budget_id="W", start_date="2024-01-01", created_at="2024-01-02T00:00:00Z"),
    )
    flagged = flag_plans(plans, None)
    assert [p.id for p in flagged] == ["late", "mid", "tie-new", "tie-old"]
    assert not any(p.is_active for p in flagged)


def test_unmatched_active_program_flags_nothing():
    plans = _nutrition(plan_row(id="a", budget_id="X", start_date="2024-01-01"))
    assert not flag_plans(plans, "nope")[0].is_active


def test_incoming_active_flags_are_overwritten():
    plans = [p.model_copy(update={"is_active": True}) for p in _nutrition(plan_row(budget_id="X"), plan_row(budget_id="Y"))]
    assert not any(p.is_active for p in flag_plans(plans, None))


def test_flagging_does_not_mutate_input():
    plans = [WorkoutPlan.from_row(plan_row(id="a", budget_id="X"))]
    flag_plans(plans, "X")
    assert plans[0].is_active is False


def test_steps_fall_back_to_program_when_no_plan_exists():
    program = Program.model_validate(program_row("P", steps_goal=9000, steps_instructions="Walk after lunch"))
    today = date(2024, 7, 1)
    steps = flag_steps_plans([], "P", program, today)
    assert len(steps) == 1
    entry = steps[0]
    assert entry.synthetic and entry.is_active
    assert entry.steps_goal == 9000
    assert entry.steps_instructions == "Walk after lunch"
    assert entry.start_date == today
    assert entry.program_id == "P"


def test_no_synthetic_steps_when_program_has_no_goal_or_plans_exist():
    today = date(2024, 7, 1)
    assert synthesize_steps_entry(Program.model_validate(program_row("P", steps_goal=0)), today) is None
    assert synthesize_steps_entry(None, today) is None

    program = Program.model_validate(program_row("P", steps_goal=9000))
    existing = [StepsPlan.from_row(plan_row(id="s", budget_id="old", steps_goal=5000))]
    steps = flag_steps_plans(existing, "P", program, today)
    assert [s.id for s in steps] == ["s"]
    assert not steps[0].synthetic
