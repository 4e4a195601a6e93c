"""
Resolved "current program" view and ordered histories returned to callers.
"""
from __future__ import annotations

from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import Field

from coachboard.models.records import (
    Assignment,
    CoachModel,
    NutritionPlan,
    NutritionTargets,
    StepsPlan,
    Supplement,
    SupplementPlan,
    WorkoutPlan,
)

T = TypeVar("T")

ValueSource = Literal["plan", "program", "none"]


class EffectiveValue(CoachModel, Generic[T]):
    """A value shown to the client, tagged with where it came from."""

    source: ValueSource = "none"
    value: Optional[T] = None

    @classmethod
    def from_plan(cls, value: T) -> "EffectiveValue[T]":
        return cls(source="plan", value=value)

    @classmethod
    def from_program(cls, value: T) -> "EffectiveValue[T]":
        return cls(source="program", value=value)

    @classmethod
    def empty(cls) -> "EffectiveValue[T]":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.source == "none"


class CurrentNutrition(CoachModel):
    plan_id: Optional[str] = None
    program_id: Optional[str] = None
    targets: EffectiveValue[NutritionTargets] = Field(default_factory=EffectiveValue[NutritionTargets])
    template_id: EffectiveValue[str] = Field(default_factory=EffectiveValue[str])
    eating_order: EffectiveValue[str] = Field(default_factory=EffectiveValue[str])
    eating_rules: EffectiveValue[str] = Field(default_factory=EffectiveValue[str])


class CurrentSteps(CoachModel):
    plan_id: Optional[str] = None
    program_id: Optional[str] = None
    goal: EffectiveValue[int] = Field(default_factory=EffectiveValue[int])
    instructions: EffectiveValue[str] = Field(default_factory=EffectiveValue[str])


class CurrentSupplements(CoachModel):
    plan_id: Optional[str] = None
    program_id: Optional[str] = None
    supplements: EffectiveValue[List[Supplement]] = Field(default_factory=EffectiveValue[List[Supplement]])


class CurrentWorkout(CoachModel):
    plan: Optional[WorkoutPlan] = None
    program_id: Optional[str] = None
    template_id: EffectiveValue[str] = Field(default_factory=EffectiveValue[str])


class AssignmentEntry(Assignment):
    # the assignment that fixed the active program for this resolution
    is_governing: bool = False


class ProgramResolution(CoachModel):
    status: Literal["active", "no_active_program"] = "no_active_program"
    active_program_id: Optional[str] = None
    program_name: Optional[str] = None

    current_nutrition: Optional[CurrentNutrition] = None
    current_steps: Optional[CurrentSteps] = None
    current_supplements: Optional[CurrentSupplements] = None
    current_workout: Optional[CurrentWorkout] = None

    nutrition_history: List[NutritionPlan] = Field(default_factory=list)
    steps_history: List[StepsPlan] = Field(default_factory=list)
    supplement_history: List[SupplementPlan] = Field(default_factory=list)
    workout_history: List[WorkoutPlan] = Field(default_factory=list)
    assignment_history: List[AssignmentEntry] = Field(default_factory=list)

    # e.g. {"degraded": {"workout": "timeout"}}
    diagnostics: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def empty(cls, **diagnostics: Any) -> "ProgramResolution":
        return cls(diagnostics=dict(diagnostics))

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
