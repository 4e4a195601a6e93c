"""
Recency ordering shared by the deduplicator, the activity flagger and the
assignment history.

A record is "newer" when its start_date is later; equal (or both missing)
start dates fall back to created_at. Missing values always sort oldest.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Tuple, TypeVar

from coachboard.models.records import Assignment, PlanRecord

P = TypeVar("P", bound=PlanRecord)
A = TypeVar("A", bound=Assignment)

_OLDEST_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

RecencyKey = Tuple[bool, date, bool, datetime]


def recency_key(plan: PlanRecord) -> RecencyKey:
    return (
        plan.start_date is not None,
        plan.start_date or date.min,
        plan.created_at is not None,
        plan.created_at or _OLDEST_TIMESTAMP,
    )


def is_newer(candidate: PlanRecord, incumbent: PlanRecord) -> bool:
    """Strictly newer; ties keep the incumbent."""
    return recency_key(candidate) > recency_key(incumbent)


def newest_first(plans: Iterable[P]) -> List[P]:
    # sorted() is stable under reverse=True, so ties keep input order
    return sorted(plans, key=recency_key, reverse=True)


def assigned_key(assignment: Assignment) -> Tuple[bool, datetime]:
    return (
        assignment.assigned_at is not None,
        assignment.assigned_at or _OLDEST_TIMESTAMP,
    )


def most_recently_assigned_first(assignments: Iterable[A]) -> List[A]:
    return sorted(assignments, key=assigned_key, reverse=True)
