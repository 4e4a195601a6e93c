"""
Record shapes read from the hosted store.

Rows arrive as loosely-shaped dicts. Every model here reads them leniently:
unparseable dates become None, malformed payloads collapse to empty values,
and unknown columns are ignored. Nothing in this module raises on data that
merely looks inconsistent.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import (
    AliasChoices,
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="CoachModel")


# -----------------------
# Lenient coercion helpers
# -----------------------
def lenient_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def lenient_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp; naive values are read as UTC so they always compare."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def lenient_number(value: Any) -> Optional[float]:
    """Finite float or None; nan and inf read as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def lenient_int(value: Any) -> Optional[int]:
    number = lenient_number(value)
    return int(number) if number is not None else None


def lenient_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    s = str(value).strip()
    return s or None


def lenient_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


# -----------------------
# Base model
# -----------------------
class CoachModel(BaseModel):
    """Reads snake_case store columns, serializes camelCase for callers."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


def parse_rows(model: Type[R], rows: Iterable[Any]) -> List[R]:
    """Validate raw rows, skipping (and logging) anything that is not a usable row."""
    parsed: List[R] = []
    for row in rows or []:
        if not isinstance(row, dict):
            logger.warning("Skipping non-dict %s row: %r", model.__name__, row)
            continue
        try:
            parsed.append(model.from_row(row) if hasattr(model, "from_row") else model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping unreadable %s row id=%s: %s", model.__name__, row.get("id"), exc)
    return parsed


class PlanKind(str, Enum):
    WORKOUT = "workout"
    NUTRITION = "nutrition"
    SUPPLEMENT = "supplement"
    STEPS = "steps"

    @property
    def table(self) -> str:
        return f"{self.value}_plans"


# -----------------------
# Payload pieces
# -----------------------
class Supplement(CoachModel):
    name: str
    dosage: Optional[str] = None
    timing: Optional[str] = None
    link1: Optional[str] = None
    link2: Optional[str] = None

    @field_validator("dosage", "timing", "link1", "link2", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return lenient_text(v)

    @classmethod
    def coerce_list(cls, raw: Any) -> List["Supplement"]:
        """Entries may be bare names or objects; anything else is dropped."""
        if not isinstance(raw, list):
            return []
        out: List[Supplement] = []
        for entry in raw:
            if isinstance(entry, str):
                if entry.strip():
                    out.append(cls(name=entry.strip()))
            elif isinstance(entry, dict) and lenient_text(entry.get("name")):
                out.append(cls.model_validate({**entry, "name": lenient_text(entry["name"])}))
        return out


class NutritionTargets(CoachModel):
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber_min: Optional[float] = Field(default=None, validation_alias=AliasChoices("fiber_min", "fiber"))
    water_min: Optional[float] = Field(default=None, validation_alias=AliasChoices("water_min", "water"))

    @field_validator("calories", "protein", "carbs", "fat", "fiber_min", "water_min", mode="before")
    @classmethod
    def _number(cls, v: Any) -> Optional[float]:
        return lenient_number(v)


class WorkoutSplit(CoachModel):
    strength: int = 0
    cardio: int = 0
    intervals: int = 0

    @field_validator("strength", "cardio", "intervals", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return lenient_int(v) or 0


# -----------------------
# Program (budget) and assignment
# -----------------------
class Program(CoachModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    # kept raw: judged by the effective-value cascade, not here
    nutrition_targets: Any = None
    steps_goal: Optional[int] = None
    steps_instructions: Optional[str] = None
    supplements: List[Supplement] = Field(default_factory=list)
    eating_order: Optional[str] = None
    eating_rules: Optional[str] = None
    nutrition_template_id: Optional[str] = None
    workout_template_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", "nutrition_template_id", "workout_template_id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> Optional[str]:
        return lenient_id(v)

    @field_validator("steps_goal", mode="before")
    @classmethod
    def _steps(cls, v: Any) -> Optional[int]:
        return lenient_int(v)

    @field_validator("name", "description", "steps_instructions", "eating_order", "eating_rules", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return lenient_text(v)

    @field_validator("supplements", mode="before")
    @classmethod
    def _supplements(cls, v: Any) -> List[Supplement]:
        return Supplement.coerce_list(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _ts(cls, v: Any) -> Optional[datetime]:
        return lenient_timestamp(v)


class Assignment(CoachModel):
    id: Optional[str] = None
    program_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("program_id", "budget_id"))
    customer_id: Optional[str] = None
    lead_id: Optional[str] = None
    is_active: bool = False
    assigned_at: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("id", "program_id", "customer_id", "lead_id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> Optional[str]:
        return lenient_id(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return v is True or (isinstance(v, str) and v.strip().lower() == "true")

    @field_validator("assigned_at", mode="before")
    @classmethod
    def _ts(cls, v: Any) -> Optional[datetime]:
        return lenient_timestamp(v)

    @field_validator("notes", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return lenient_text(v)


# -----------------------
# Plans
# -----------------------
class PlanRecord(CoachModel):
    """Common shape of the four dated plan kinds."""

    kind: ClassVar[PlanKind]

    id: Optional[str] = None
    program_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("program_id", "budget_id"))
    customer_id: Optional[str] = None
    lead_id: Optional[str] = None
    template_id: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    # computed by the activity flagger; the stored column is never trusted
    is_active: bool = False
    # true only for the steps entry synthesized from a program
    synthetic: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]):
        data = {k: v for k, v in row.items() if k not in ("is_active", "synthetic")}
        return cls.model_validate(data)

    @field_validator("id", "program_id", "customer_id", "lead_id", "template_id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> Optional[str]:
        return lenient_id(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[date]:
        return lenient_date(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _ts(cls, v: Any) -> Optional[datetime]:
        return lenient_timestamp(v)

    @field_validator("description", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return lenient_text(v)


class WorkoutPlan(PlanRecord):
    kind: ClassVar[PlanKind] = PlanKind.WORKOUT

    routine: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("routine", "custom_attributes")
    )
    split: WorkoutSplit = Field(default_factory=WorkoutSplit)

    @model_validator(mode="before")
    @classmethod
    def _collect_split(cls, data: Any) -> Any:
        # the split object wins; the flat columns are the older layout
        if not isinstance(data, dict):
            return data
        split = data.get("split") if isinstance(data.get("split"), dict) else {}
        merged = {
            key: lenient_int(split.get(key)) or lenient_int(data.get(key)) or 0
            for key in ("strength", "cardio", "intervals")
        }
        return {**data, "split": merged}

    @field_validator("routine", mode="before")
    @classmethod
    def _routine(cls, v: Any) -> Optional[Dict[str, Any]]:
        return v if isinstance(v, dict) else None


class NutritionPlan(PlanRecord):
    kind: ClassVar[PlanKind] = PlanKind.NUTRITION

    # kept raw: "meaningful" is decided by the cascade
    targets: Any = None


class SupplementPlan(PlanRecord):
    kind: ClassVar[PlanKind] = PlanKind.SUPPLEMENT

    supplements: List[Supplement] = Field(default_factory=list)

    @field_validator("supplements", mode="before")
    @classmethod
    def _supplements(cls, v: Any) -> List[Supplement]:
        return Supplement.coerce_list(v)


class StepsPlan(PlanRecord):
    kind: ClassVar[PlanKind] = PlanKind.STEPS

    steps_goal: Optional[int] = None
    steps_instructions: Optional[str] = None

    @field_validator("steps_goal", mode="before")
    @classmethod
    def _steps(cls, v: Any) -> Optional[int]:
        return lenient_int(v)

    @field_validator("steps_instructions", mode="before")
    @classmethod
    def _instructions(cls, v: Any) -> Optional[str]:
        return lenient_text(v)


PLAN_MODELS: Dict[PlanKind, Type[PlanRecord]] = {
    PlanKind.WORKOUT: WorkoutPlan,
    PlanKind.NUTRITION: NutritionPlan,
    PlanKind.SUPPLEMENT: SupplementPlan,
    PlanKind.STEPS: StepsPlan,
}


# -----------------------
# Client identity
# -----------------------
class ClientKey(CoachModel):
    customer_id: Optional[str] = None
    lead_id: Optional[str] = None
    # every lead owned by the customer, when known
    customer_lead_ids: List[str] = Field(default_factory=list)

    @field_validator("customer_id", "lead_id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> Optional[str]:
        return lenient_id(v)

    @field_validator("customer_lead_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> List[str]:
        if not isinstance(v, (list, tuple, set)):
            return []
        return [i for i in (lenient_id(x) for x in v) if i]

    @property
    def is_empty(self) -> bool:
        return not self.customer_id and not self.lead_id

    @property
    def assignment_lead_ids(self) -> List[str]:
        """The lead itself plus the customer's other leads, first-seen order, no repeats."""
        ids = [self.lead_id] if self.lead_id else []
        ids.extend(self.customer_lead_ids)
        return list(dict.fromkeys(ids))
