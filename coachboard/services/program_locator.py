"""
Find the client's single active assignment, and with it the active program id.

The store is trusted to hold at most one active assignment per client. When
it does not, a named conflict policy picks one instead of failing.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from coachboard.models.records import Assignment
from coachboard.services.ordering import assigned_key

logger = logging.getLogger(__name__)

ConflictPolicy = Callable[[Sequence[Assignment]], Optional[Assignment]]


def pick_most_recently_assigned(candidates: Sequence[Assignment]) -> Optional[Assignment]:
    """Latest assigned_at wins; on equal timestamps the first candidate wins."""
    if not candidates:
        return None
    return max(candidates, key=assigned_key)


def locate_active_assignment(
    assignments: Iterable[Assignment],
    policy: ConflictPolicy = pick_most_recently_assigned,
) -> Optional[Assignment]:
    active = [a for a in assignments if a.is_active and a.program_id]
    if len(active) > 1:
        logger.warning(
            "Found %d active assignments for one client (ids=%s); applying %s",
            len(active),
            [a.id for a in active],
            getattr(policy, "__name__", repr(policy)),
        )
    return policy(active)


def locate_active_program(
    assignments: Iterable[Assignment],
    policy: ConflictPolicy = pick_most_recently_assigned,
) -> Optional[str]:
    assignment = locate_active_assignment(assignments, policy)
    return assignment.program_id if assignment else None
