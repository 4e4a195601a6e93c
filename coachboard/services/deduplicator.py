"""
Collapse a raw plan list of one kind into at most one row per program.

Duplicates come from the store matching the same person on both customer_id
and lead_id; they are an artifact, never an intended multiplicity.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set, TypeVar

from coachboard.models.records import PlanRecord
from coachboard.services.ordering import is_newer

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=PlanRecord)


def dedupe_by_identity(plans: Iterable[P]) -> List[P]:
    """Drop repeated ids, keeping the first occurrence. Rows without an id pass through."""
    seen: Set[str] = set()
    unique: List[P] = []
    for plan in plans:
        if plan.id is not None:
            if plan.id in seen:
                continue
            seen.add(plan.id)
        unique.append(plan)
    return unique


def dedupe_plans(plans: Iterable[P]) -> List[P]:
    """
    Keep one plan per non-null program_id: the one with the latest start_date,
    created_at breaking ties, the earlier-seen row winning full ties.

    Plans without a program_id are ad-hoc and are never merged. Survivors keep
    the position of the first row seen for their program, so the output is
    deterministic and running this twice changes nothing.
    """
    unique = dedupe_by_identity(plans)

    survivors: List[P] = []
    slot_by_program: Dict[str, int] = {}
    for plan in unique:
        if plan.program_id is None:
            survivors.append(plan)
            continue
        slot = slot_by_program.get(plan.program_id)
        if slot is None:
            slot_by_program[plan.program_id] = len(survivors)
            survivors.append(plan)
        elif is_newer(plan, survivors[slot]):
            survivors[slot] = plan

    if len(survivors) != len(unique):
        logger.debug(
            "dedupe_plans collapsed %d rows into %d (%d programs)",
            len(unique),
            len(survivors),
            len(slot_by_program),
        )
    return survivors
