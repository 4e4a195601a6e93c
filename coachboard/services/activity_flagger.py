"""
Mark the one plan per kind that belongs to the active program, and order a
plan list for display: active entry first, the rest newest first.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence, TypeVar

from coachboard.models.records import PlanRecord, Program, StepsPlan
from coachboard.services.effective_values import is_meaningful_number
from coachboard.services.ordering import is_newer, newest_first

P = TypeVar("P", bound=PlanRecord)


def find_active_index(plans: Sequence[PlanRecord], active_program_id: Optional[str]) -> Optional[int]:
    if not active_program_id:
        return None
    active_index: Optional[int] = None
    for index, plan in enumerate(plans):
        if plan.program_id != active_program_id:
            continue
        if active_index is None or is_newer(plan, plans[active_index]):
            active_index = index
    return active_index


def order_for_display(plans: Sequence[P]) -> List[P]:
    ordered = newest_first(plans)
    return [p for p in ordered if p.is_active] + [p for p in ordered if not p.is_active]


def flag_plans(plans: Sequence[P], active_program_id: Optional[str]) -> List[P]:
    """
    Return copies of `plans` with `is_active` set on at most one entry (the
    newest plan under the active program), sorted for display. Any incoming
    is_active value is overwritten.
    """
    active_index = find_active_index(plans, active_program_id)
    flagged = [
        plan.model_copy(update={"is_active": index == active_index})
        for index, plan in enumerate(plans)
    ]
    return order_for_display(flagged)


def synthesize_steps_entry(program: Optional[Program], today: date) -> Optional[StepsPlan]:
    """A "current" steps entry sourced from the program, for clients with no steps plan."""
    if program is None or not is_meaningful_number(program.steps_goal):
        return None
    return StepsPlan(
        program_id=program.id,
        start_date=today,
        steps_goal=program.steps_goal,
        steps_instructions=program.steps_instructions,
        is_active=True,
        synthetic=True,
    )


def flag_steps_plans(
    plans: Sequence[StepsPlan],
    active_program_id: Optional[str],
    program: Optional[Program],
    today: date,
) -> List[StepsPlan]:
    flagged = flag_plans(plans, active_program_id)
    if flagged:
        return flagged
    synthetic = synthesize_steps_entry(program, today)
    return [synthetic] if synthetic is not None else []
