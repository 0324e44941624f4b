from .sheets import (
    AgentInfo,
    ApplicantDocument,
    EvaluationConfig,
    EvaluationCriterion,
    EvaluationPayload,
    EvaluationResult,
    EvaluationRow,
    EvaluationSection,
    FieldRow,
    FieldValue,
    GenerationResult,
    GenerationSummary,
    ParentOpportunity,
    Phase,
    PhaseSheet,
    RegistrationRecord,
    RelevantPhaseSet,
    RunMetrics,
)

__all__ = [
    "AgentInfo",
    "ApplicantDocument",
    "EvaluationConfig",
    "EvaluationCriterion",
    "EvaluationPayload",
    "EvaluationResult",
    "EvaluationRow",
    "EvaluationSection",
    "FieldRow",
    "FieldValue",
    "GenerationResult",
    "GenerationSummary",
    "ParentOpportunity",
    "Phase",
    "PhaseSheet",
    "RegistrationRecord",
    "RelevantPhaseSet",
    "RunMetrics",
]
