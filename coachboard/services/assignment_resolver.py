"""
Decide which assignment governs a lead-scoped screen.

A program can be assigned once at the customer level and must then be
visible from every one of that customer's leads; an assignment made on the
lead itself overrides it.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from coachboard.models.records import Assignment
from coachboard.services.program_locator import (
    ConflictPolicy,
    locate_active_assignment,
    pick_most_recently_assigned,
)

logger = logging.getLogger(__name__)


def resolve_governing_assignment(
    assignments: Iterable[Assignment],
    lead_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    customer_lead_ids: Iterable[str] = (),
    policy: ConflictPolicy = pick_most_recently_assigned,
) -> Optional[Assignment]:
    """
    Priority:
      (a) an active assignment on `lead_id` itself;
      (b) otherwise an active assignment on `customer_id` or on any of the
          customer's other leads.
    (a) wins unconditionally when both exist.
    """
    rows: List[Assignment] = list(assignments)

    if lead_id:
        own = [a for a in rows if a.lead_id == lead_id]
        picked = locate_active_assignment(own, policy)
        if picked is not None:
            logger.debug("Governing assignment %s is lead-specific (lead=%s)", picked.id, lead_id)
            return picked

    other_leads = {lid for lid in customer_lead_ids if lid and lid != lead_id}
    shared = [
        a
        for a in rows
        if (customer_id and a.customer_id == customer_id) or (a.lead_id in other_leads)
    ]
    picked = locate_active_assignment(shared, policy)
    if picked is not None:
        logger.debug(
            "Governing assignment %s inherited via customer=%s / leads=%s",
            picked.id,
            customer_id,
            sorted(other_leads),
        )
    return picked
