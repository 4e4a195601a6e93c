# coachboard/services/history_composer.py
"""
Active program resolution: one "current program" view plus four ordered
plan histories for a client.

The work is split in two:
- `compose_resolution` / `resolve` are pure functions of a record snapshot.
- `ProgramHistoryService` does the I/O: it fans out the independent store
  reads concurrently, waits for all of them, locates the governing
  assignment, fetches its program, then hands everything to the pure part.

Nothing is cached between calls. Read failures degrade only the affected
kind unless strict reads are enabled, in which case the whole call fails
with RecordStoreError.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from pydantic import Field

from coachboard.config.settings import settings
from coachboard.models.records import (
    Assignment,
    ClientKey,
    CoachModel,
    NutritionPlan,
    PlanKind,
    PlanRecord,
    Program,
    StepsPlan,
    SupplementPlan,
    WorkoutPlan,
)
from coachboard.models.resolution import AssignmentEntry, ProgramResolution
from coachboard.services.activity_flagger import flag_plans, flag_steps_plans
from coachboard.services.assignment_resolver import resolve_governing_assignment
from coachboard.services.deduplicator import dedupe_by_identity, dedupe_plans
from coachboard.services.effective_values import (
    resolve_nutrition,
    resolve_steps,
    resolve_supplements,
    resolve_workout,
)
from coachboard.services.ordering import assigned_key
from coachboard.services.program_locator import ConflictPolicy, pick_most_recently_assigned
from coachboard.services.record_store import RecordStore, RecordStoreError

logger = logging.getLogger(__name__)


class RecordSnapshot(CoachModel):
    """Everything the engine reads for one client, already fetched."""

    assignments: List[Assignment] = Field(default_factory=list)
    workout_plans: List[WorkoutPlan] = Field(default_factory=list)
    nutrition_plans: List[NutritionPlan] = Field(default_factory=list)
    supplement_plans: List[SupplementPlan] = Field(default_factory=list)
    steps_plans: List[StepsPlan] = Field(default_factory=list)
    programs: Dict[str, Program] = Field(default_factory=dict)


def _current(entries: List[PlanRecord]) -> Optional[Any]:
    # synthetic entries are program values, not a live plan
    return next((e for e in entries if e.is_active and not e.synthetic), None)


def order_assignments(
    assignments: List[Assignment], governing: Optional[Assignment]
) -> List[AssignmentEntry]:
    """Governing assignment first, then active ones, then latest assigned_at first."""
    governing_id = governing.id if governing else None
    entries = [
        AssignmentEntry(
            **a.model_dump(),
            is_governing=governing is not None and (a is governing or (a.id is not None and a.id == governing_id)),
        )
        for a in dedupe_by_identity(assignments)
    ]
    return sorted(
        entries,
        key=lambda e: (e.is_governing, e.is_active) + assigned_key(e),
        reverse=True,
    )


def compose_resolution(
    snapshot: RecordSnapshot,
    governing: Optional[Assignment],
    program: Optional[Program],
    today: date,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> ProgramResolution:
    active_program_id = governing.program_id if governing else None

    workout = flag_plans(dedupe_plans(snapshot.workout_plans), active_program_id)
    nutrition = flag_plans(dedupe_plans(snapshot.nutrition_plans), active_program_id)
    supplements = flag_plans(dedupe_plans(snapshot.supplement_plans), active_program_id)
    steps = flag_steps_plans(dedupe_plans(snapshot.steps_plans), active_program_id, program, today)

    resolution = ProgramResolution(
        active_program_id=active_program_id,
        program_name=program.name if program else None,
        nutrition_history=nutrition,
        steps_history=steps,
        supplement_history=supplements,
        workout_history=workout,
        assignment_history=order_assignments(snapshot.assignments, governing),
        diagnostics=dict(diagnostics or {}),
    )
    if active_program_id is None:
        return resolution

    if program is None:
        # orphaned program id: histories still display, no template fallback
        resolution.diagnostics.setdefault("missing_program", active_program_id)

    resolution.status = "active"
    resolution.current_nutrition = resolve_nutrition(_current(nutrition), program)
    resolution.current_steps = resolve_steps(_current(steps), program)
    resolution.current_supplements = resolve_supplements(_current(supplements), program)
    resolution.current_workout = resolve_workout(_current(workout), program)
    return resolution


def resolve(
    client_key: ClientKey,
    snapshot: RecordSnapshot,
    today: Optional[date] = None,
    policy: ConflictPolicy = pick_most_recently_assigned,
) -> ProgramResolution:
    """Pure entry point: resolve a client from an in-memory snapshot."""
    if client_key.is_empty:
        return ProgramResolution.empty()
    governing = resolve_governing_assignment(
        snapshot.assignments,
        lead_id=client_key.lead_id,
        customer_id=client_key.customer_id,
        customer_lead_ids=client_key.customer_lead_ids,
        policy=policy,
    )
    program = snapshot.programs.get(governing.program_id) if governing else None
    return compose_resolution(snapshot, governing, program, today or date.today())


class ProgramHistoryService:

    def __init__(
        self,
        record_store: Optional[RecordStore] = None,
        strict: Optional[bool] = None,
        policy: ConflictPolicy = pick_most_recently_assigned,
        today_fn: Callable[[], date] = date.today,
    ):
        self.record_store = record_store or RecordStore()
        self.strict = settings.strict_reads if strict is None else strict
        self.policy = policy
        self.today_fn = today_fn

    # -----------------------
    # Helpers
    # -----------------------
    def _take(self, what: str, res: Dict[str, Any], degraded: Dict[str, str], default: Any) -> Any:
        if res.get("ok"):
            return res.get("data")
        error = res.get("error") or "unknown_error"
        if self.strict:
            raise RecordStoreError(what, error, res.get("diagnostics"))
        logger.warning("Read for %s failed (%s); continuing without it", what, error)
        degraded[what] = error
        return default

    async def client_key_for(self, customer_id: Optional[str] = None, lead_id: Optional[str] = None) -> ClientKey:
        """Build a ClientKey, looking up the customer's leads when a customer is given."""
        key = ClientKey(customer_id=customer_id, lead_id=lead_id)
        if not key.customer_id:
            return key
        res = await self.record_store.fetch_customer_lead_ids(key.customer_id)
        lead_ids = self._take("leads", res, {}, [])
        return key.model_copy(update={"customer_lead_ids": lead_ids})

    # -----------------------
    # Public API
    # -----------------------
    async def governing_assignment(self, client_key: ClientKey) -> Optional[Assignment]:
        if client_key.is_empty:
            return None
        res = await self.record_store.fetch_assignments(
            client_key.customer_id, client_key.assignment_lead_ids
        )
        assignments = self._take("assignments", res, {}, [])
        return resolve_governing_assignment(
            assignments,
            lead_id=client_key.lead_id,
            customer_id=client_key.customer_id,
            customer_lead_ids=client_key.customer_lead_ids,
            policy=self.policy,
        )

    async def resolve(self, client_key: ClientKey) -> ProgramResolution:
        if client_key.is_empty:
            logger.debug("resolve: no client identifiers, returning empty resolution")
            return ProgramResolution.empty()

        store = self.record_store
        kinds = list(PlanKind)
        reads = await asyncio.gather(
            store.fetch_assignments(client_key.customer_id, client_key.assignment_lead_ids),
            *[store.fetch_plans(kind, client_key.customer_id, client_key.lead_id) for kind in kinds],
        )

        degraded: Dict[str, str] = {}
        assignments = self._take("assignments", reads[0], degraded, [])
        plans = {
            kind: self._take(kind.value, res, degraded, [])
            for kind, res in zip(kinds, reads[1:])
        }

        governing = resolve_governing_assignment(
            assignments,
            lead_id=client_key.lead_id,
            customer_id=client_key.customer_id,
            customer_lead_ids=client_key.customer_lead_ids,
            policy=self.policy,
        )

        program: Optional[Program] = None
        if governing is not None:
            res = await store.fetch_program(governing.program_id)
            program = self._take("program", res, degraded, None)

        snapshot = RecordSnapshot(
            assignments=assignments,
            workout_plans=plans[PlanKind.WORKOUT],
            nutrition_plans=plans[PlanKind.NUTRITION],
            supplement_plans=plans[PlanKind.SUPPLEMENT],
            steps_plans=plans[PlanKind.STEPS],
            programs={program.id: program} if program else {},
        )
        resolution = compose_resolution(
            snapshot,
            governing,
            program,
            self.today_fn(),
            diagnostics={"degraded": degraded} if degraded else None,
        )
        logger.info(
            "Resolved client customer=%s lead=%s program=%s (workout=%d nutrition=%d supplements=%d steps=%d)",
            client_key.customer_id,
            client_key.lead_id,
            resolution.active_program_id,
            len(resolution.workout_history),
            len(resolution.nutrition_history),
            len(resolution.supplement_history),
            len(resolution.steps_history),
        )
        return resolution
