"""
Per-field source-priority cascade for the current program view.

For every field group the live active plan's value wins when it is
meaningful, else the active program's value, else nothing. Groups are
resolved independently, so one client can get nutrition from a plan and
supplements from the program at the same time.
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional, TypeVar

from pydantic import ValidationError

from coachboard.models.records import (
    NutritionPlan,
    NutritionTargets,
    Program,
    StepsPlan,
    Supplement,
    SupplementPlan,
    WorkoutPlan,
)
from coachboard.models.resolution import (
    CurrentNutrition,
    CurrentSteps,
    CurrentSupplements,
    CurrentWorkout,
    EffectiveValue,
)

T = TypeVar("T")


# -----------------------
# "Meaningful" rules
# -----------------------
def is_meaningful_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and value != 0


def is_meaningful_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_meaningful_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _as_targets(raw: Any) -> Optional[NutritionTargets]:
    if not isinstance(raw, dict) or not raw:
        return None
    try:
        return NutritionTargets.model_validate(raw)
    except ValidationError:
        return None


def plan_targets(raw: Any) -> Optional[NutritionTargets]:
    """A plan's targets object counts only when non-empty with calories > 0."""
    targets = _as_targets(raw)
    if targets is None or targets.calories is None or not targets.calories > 0:
        return None
    return targets


def program_targets(raw: Any) -> Optional[NutritionTargets]:
    """A program's targets count when they are a non-empty object with any value set."""
    targets = _as_targets(raw)
    if targets is None:
        return None
    if not any(is_meaningful_number(v) for v in targets.model_dump().values()):
        return None
    return targets


def cascade(
    value_type: Any,
    plan_value: Optional[T],
    program_value: Optional[T],
    meaningful: Callable[[Any], bool],
) -> EffectiveValue[T]:
    typed = EffectiveValue[value_type]
    if meaningful(plan_value):
        return typed.from_plan(plan_value)
    if meaningful(program_value):
        return typed.from_program(program_value)
    return typed.empty()


# -----------------------
# Field groups
# -----------------------
def resolve_nutrition(plan: Optional[NutritionPlan], program: Optional[Program]) -> CurrentNutrition:
    return CurrentNutrition(
        plan_id=plan.id if plan else None,
        program_id=program.id if program else (plan.program_id if plan else None),
        targets=cascade(
            NutritionTargets,
            plan_targets(plan.targets) if plan else None,
            program_targets(program.nutrition_targets) if program else None,
            lambda v: v is not None,
        ),
        template_id=cascade(
            str,
            plan.template_id if plan else None,
            program.nutrition_template_id if program else None,
            is_meaningful_text,
        ),
        # eating guidance only lives on the program
        eating_order=cascade(str, None, program.eating_order if program else None, is_meaningful_text),
        eating_rules=cascade(str, None, program.eating_rules if program else None, is_meaningful_text),
    )


def resolve_steps(plan: Optional[StepsPlan], program: Optional[Program]) -> CurrentSteps:
    return CurrentSteps(
        plan_id=plan.id if plan else None,
        program_id=program.id if program else (plan.program_id if plan else None),
        goal=cascade(
            int,
            plan.steps_goal if plan else None,
            program.steps_goal if program else None,
            is_meaningful_number,
        ),
        instructions=cascade(
            str,
            plan.steps_instructions if plan else None,
            program.steps_instructions if program else None,
            is_meaningful_text,
        ),
    )


def resolve_supplements(plan: Optional[SupplementPlan], program: Optional[Program]) -> CurrentSupplements:
    return CurrentSupplements(
        plan_id=plan.id if plan else None,
        program_id=program.id if program else (plan.program_id if plan else None),
        supplements=cascade(
            List[Supplement],
            plan.supplements if plan else None,
            program.supplements if program else None,
            is_meaningful_list,
        ),
    )


def resolve_workout(plan: Optional[WorkoutPlan], program: Optional[Program]) -> CurrentWorkout:
    return CurrentWorkout(
        plan=plan,
        program_id=program.id if program else (plan.program_id if plan else None),
        template_id=cascade(
            str,
            plan.template_id if plan else None,
            program.workout_template_id if program else None,
            is_meaningful_text,
        ),
    )
