"""Record and resolution models for active program resolution."""
from coachboard.models.records import (
    Assignment,
    ClientKey,
    NutritionPlan,
    NutritionTargets,
    PlanKind,
    PlanRecord,
    Program,
    StepsPlan,
    Supplement,
    SupplementPlan,
    WorkoutPlan,
    WorkoutSplit,
)
from coachboard.models.resolution import (
    AssignmentEntry,
    CurrentNutrition,
    CurrentSteps,
    CurrentSupplements,
    CurrentWorkout,
    EffectiveValue,
    ProgramResolution,
)

# Export all models
__all__ = [
    "Assignment",
    "AssignmentEntry",
    "ClientKey",
    "CurrentNutrition",
    "CurrentSteps",
    "CurrentSupplements",
    "CurrentWorkout",
    "EffectiveValue",
    "NutritionPlan",
    "NutritionTargets",
    "PlanKind",
    "PlanRecord",
    "Program",
    "ProgramResolution",
    "StepsPlan",
    "Supplement",
    "SupplementPlan",
    "WorkoutPlan",
    "WorkoutSplit",
]
