"""
Per-applicant document assembly.

Pure functions over the batched data: no I/O happens here, so assembling the
same inputs twice gives equal documents.
"""

from __future__ import annotations

from typing import Dict, Optional

from sheets_service.schemas.sheets import (
    AgentInfo,
    ApplicantDocument,
    EvaluationConfig,
    FieldRow,
    Phase,
    PhaseSheet,
    RegistrationRecord,
    RelevantPhaseSet,
)
from sheets_service.services.batch_loader import BatchedData
from sheets_service.services.evaluation import evaluate
from sheets_service.services.value_format import format_value

STATUS_LABELS = {
    0: "Não avaliada",
    2: "Inválida",
    3: "Não selecionada",
    8: "Suplente",
    10: "Selecionada",
}


def status_text(status: Optional[int]) -> str:
    return STATUS_LABELS.get(status, "")


def governing_registration_id(
    applicant: RegistrationRecord,
    phase: Phase,
    phase_set: RelevantPhaseSet,
    data: BatchedData,
) -> int:
    """
    Registration that sources a phase's data for this applicant.

    1. root phase with a previous-phase link: the linked registration
    2. a registration of the same agent in that phase
    3. the applicant's own registration
    """
    if phase.id == phase_set.parent.id:
        parent_registration_id = data.parent_links.get(applicant.registration_id)
        if parent_registration_id is not None:
            return parent_registration_id

    if applicant.agent_id is not None:
        for record in data.registrations_by_phase.get(phase.id) or []:
            if record.agent_id == applicant.agent_id:
                return record.registration_id

    return applicant.registration_id


def _phase_status(governing_id: int, phase: Phase, applicant: RegistrationRecord, data: BatchedData) -> str:
    for record in data.registrations_by_phase.get(phase.id) or []:
        if record.registration_id == governing_id:
            return status_text(record.status)
    return status_text(applicant.status)


def assemble(
    applicant: RegistrationRecord,
    phase_set: RelevantPhaseSet,
    data: BatchedData,
    configs: Dict[int, EvaluationConfig],
) -> ApplicantDocument:
    phases = []
    for phase in phase_set.phases:
        governing_id = governing_registration_id(applicant, phase, phase_set, data)
        field_values = data.field_values.get(governing_id, {}).get(phase.id) or []
        rows = [
            FieldRow(label=value.label, value=format_value(value.raw_value), raw_value=value.raw_value)
            for value in field_values
        ]
        evaluation = evaluate(
            data.evaluation_rows.get((governing_id, phase.id)),
            configs.get(phase.id) or EvaluationConfig(),
        )
        phases.append(
            PhaseSheet(
                phase=phase,
                registration_id=governing_id,
                rows=rows,
                evaluation=evaluation,
                attachments=list(data.attachment_names.get((governing_id, phase.id)) or []),
                status_text=_phase_status(governing_id, phase, applicant, data),
            )
        )

    return ApplicantDocument(
        registration_id=applicant.registration_id,
        registration_number=applicant.registration_number or str(applicant.registration_id),
        agent=AgentInfo(id=applicant.agent_id, name=applicant.agent_name or ""),
        phases=phases,
    )
