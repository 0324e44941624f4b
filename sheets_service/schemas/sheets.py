"""
Pydantic schemas for registration sheet generation.
These models describe phases, batched rows, evaluation reports and the
per-applicant document handed to the renderer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Phase(BaseModel):
    id: int
    name: str = ""
    parent_id: Optional[int] = None


class RelevantPhaseSet(BaseModel):
    """Root phase followed by its participating child phases, ascending by id."""

    parent: Phase
    children: List[Phase] = Field(default_factory=list)

    @property
    def phases(self) -> List[Phase]:
        return [self.parent, *self.children]

    @property
    def ids(self) -> List[int]:
        return [p.id for p in self.phases]


class ParentOpportunity(BaseModel):
    id: int
    name: str


class RegistrationRecord(BaseModel):
    registration_id: int
    registration_number: Optional[str] = None
    agent_id: Optional[int] = None
    agent_name: Optional[str] = None
    status: Optional[int] = None
    phase_id: int


class FieldValue(BaseModel):
    phase_id: int
    label: str = ""
    order: Optional[int] = None
    raw_value: Optional[str] = None


class EvaluationRow(BaseModel):
    registration_id: int
    phase_id: int
    evaluation_data: Any = None
    result: Optional[str] = None


class EvaluationSection(BaseModel):
    id: str
    name: str = ""


class EvaluationCriterion(BaseModel):
    id: str
    title: str = ""
    section_id: Optional[str] = None


class EvaluationConfig(BaseModel):
    sections: List[EvaluationSection] = Field(default_factory=list)
    criteria: List[EvaluationCriterion] = Field(default_factory=list)

    @property
    def is_technical(self) -> bool:
        return bool(self.criteria)


class TechnicalPayload(BaseModel):
    kind: Literal["technical"] = "technical"
    scores: Dict[str, Any] = Field(default_factory=dict)
    parecer: str = ""
    status: str = ""
    total: float = 0


class SimplifiedPayload(BaseModel):
    kind: Literal["simplified"] = "simplified"
    parecer: str = ""
    status: str = ""
    total: float = 0


class UnevaluatedPayload(BaseModel):
    kind: Literal["unevaluated"] = "unevaluated"
    parecer: str = ""
    status: str = ""


EvaluationPayload = Union[TechnicalPayload, SimplifiedPayload, UnevaluatedPayload]


class CriterionScore(BaseModel):
    label: str
    score: float = 0


class SectionScore(BaseModel):
    title: str
    criteria: List[CriterionScore] = Field(default_factory=list)


class EvaluationResult(BaseModel):
    sections: List[SectionScore] = Field(default_factory=list)
    status: str = ""
    parecer: str = ""
    total: float = 0
    has_technical: bool = False
    has_simplified: bool = False


class FieldRow(BaseModel):
    label: str
    value: str
    raw_value: Optional[str] = None


class AgentInfo(BaseModel):
    id: Optional[int] = None
    name: str = ""


class PhaseSheet(BaseModel):
    phase: Phase
    registration_id: Optional[int] = None
    rows: List[FieldRow] = Field(default_factory=list)
    evaluation: EvaluationResult = Field(default_factory=EvaluationResult)
    attachments: List[str] = Field(default_factory=list)
    status_text: str = ""


class ApplicantDocument(BaseModel):
    registration_id: int
    registration_number: str
    agent: AgentInfo
    phases: List[PhaseSheet] = Field(default_factory=list)


class RunMetrics(BaseModel):
    total_ms: int = 0
    db_ms: int = 0
    queries: int = 0
    render_ms: int = 0
    pdfs: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


class GenerationResult(BaseModel):
    parent_id: int
    pool_phase_id: int
    documents: List[ApplicantDocument] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    zip_file: Optional[str] = None
    metrics: RunMetrics = Field(default_factory=RunMetrics)


class GenerationSummary(BaseModel):
    parent_id: int
    pool_phase_id: int
    applicants: int
    files: List[str]
    failed: List[str]
    zip_file: Optional[str] = None
    metrics: RunMetrics


class TaskAccepted(BaseModel):
    task_id: str
    status: str = "PENDING"


class StatusMessage(BaseModel):
    status: str = Field(..., description="success|error")
    message: str
