"""Tests for per-applicant document assembly."""

import pytest

from sheets_service.schemas.sheets import (
    EvaluationConfig,
    EvaluationCriterion,
    EvaluationRow,
    EvaluationSection,
    FieldValue,
    Phase,
    RegistrationRecord,
    RelevantPhaseSet,
)
from sheets_service.services.assembler import assemble, governing_registration_id, status_text
from sheets_service.services.batch_loader import BatchedData

PARENT = Phase(id=100, name="Edital")
CHILD = Phase(id=101, name="Habilitação", parent_id=100)
LATER = Phase(id=102, name="Mérito", parent_id=100)
PHASES = RelevantPhaseSet(parent=PARENT, children=[CHILD, LATER])


def _record(registration_id, phase_id, agent_id, status=0, name="Maria"):
    return RegistrationRecord(
        registration_id=registration_id,
        registration_number=f"on-{registration_id}",
        agent_id=agent_id,
        agent_name=name,
        status=status,
        phase_id=phase_id,
    )


@pytest.fixture
def data():
    applicant = _record(501, 101, agent_id=7, status=8)
    return BatchedData(
        registrations_by_phase={
            100: [_record(401, 100, agent_id=7, status=10), _record(402, 100, agent_id=9)],
            101: [applicant],
            102: [_record(601, 102, agent_id=7, status=3)],
        },
        parent_links={501: 401},
        field_values={
            401: {100: [FieldValue(phase_id=100, label="Projeto", order=1, raw_value="Dança")]},
            501: {101: [FieldValue(phase_id=101, label="Nome", order=1, raw_value="Maria")]},
            601: {102: [FieldValue(phase_id=102, label="Início", order=1, raw_value="2024-05-01")]},
        },
        evaluation_rows={
            (601, 102): EvaluationRow(registration_id=601, phase_id=102, evaluation_data='{"c1": "9", "obs": "Ótimo"}', result="9"),
        },
        attachment_names={(401, 100): ["rg.pdf"], (601, 102): ["portfolio.pdf"]},
    )


@pytest.fixture
def configs():
    return {
        102: EvaluationConfig(
            sections=[EvaluationSection(id="s1", name="Mérito")],
            criteria=[EvaluationCriterion(id="c1", title="Relevância", section_id="s1")],
        )
    }


class TestGoverningRegistration:
    def test_parent_link_used_for_root_phase(self, data):
        applicant = data.registrations_by_phase[101][0]
        assert governing_registration_id(applicant, PARENT, PHASES, data) == 401

    def test_parent_link_wins_over_agent_match(self, data):
        # link points to a registration of another agent
        data.parent_links[501] = 402
        applicant = data.registrations_by_phase[101][0]
        assert governing_registration_id(applicant, PARENT, PHASES, data) == 402

    def test_agent_match_without_link(self, data):
        data.parent_links.clear()
        applicant = data.registrations_by_phase[101][0]
        assert governing_registration_id(applicant, PARENT, PHASES, data) == 401

    def test_agent_match_for_child_phase(self, data):
        applicant = data.registrations_by_phase[101][0]
        assert governing_registration_id(applicant, LATER, PHASES, data) == 601

    def test_own_registration_fallback(self, data):
        applicant = _record(777, 101, agent_id=None)
        assert governing_registration_id(applicant, LATER, PHASES, data) == 777


class TestAssemble:
    def test_rows_land_in_their_own_phase(self):
        phases = RelevantPhaseSet(parent=PARENT, children=[CHILD])
        applicant = _record(501, 101, agent_id=None)
        data = BatchedData(
            registrations_by_phase={100: [_record(401, 100, agent_id=None)], 101: [applicant]},
            parent_links={501: 401},
            field_values={
                401: {100: [FieldValue(phase_id=100, label="Projeto", order=1, raw_value="Dança")]},
                501: {101: [FieldValue(phase_id=101, label="Nome", order=1, raw_value="Maria")]},
            },
        )

        document = assemble(applicant, phases, data, {})

        assert [p.phase.id for p in document.phases] == [100, 101]
        assert [(r.label, r.value) for r in document.phases[0].rows] == [("Projeto", "Dança")]
        assert [(r.label, r.value) for r in document.phases[1].rows] == [("Nome", "Maria")]

    def test_full_document(self, data, configs):
        applicant = data.registrations_by_phase[101][0]

        document = assemble(applicant, PHASES, data, configs)

        assert document.registration_number == "on-501"
        assert document.agent.id == 7
        root, child, later = document.phases
        assert root.registration_id == 401
        assert root.attachments == ["rg.pdf"]
        assert root.status_text == "Selecionada"
        assert child.status_text == "Suplente"
        assert later.rows[0].value == "01/05/2024"
        assert later.evaluation.has_technical
        assert later.evaluation.total == 9
        assert later.evaluation.parecer == "Ótimo"
        assert later.status_text == "Não selecionada"
        assert not root.evaluation.has_technical and not root.evaluation.has_simplified

    def test_missing_data_defaults_to_empty(self, data, configs):
        applicant = _record(999, 101, agent_id=42, status=5)

        document = assemble(applicant, PHASES, BatchedData(), configs)

        assert len(document.phases) == 3
        for sheet in document.phases:
            assert sheet.rows == []
            assert sheet.attachments == []
            assert sheet.registration_id == 999
            assert sheet.status_text == ""

    def test_idempotent(self, data, configs):
        applicant = data.registrations_by_phase[101][0]
        first = assemble(applicant, PHASES, data, configs)
        second = assemble(applicant, PHASES, data, configs)
        assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize(
    "status,label",
    [(0, "Não avaliada"), (2, "Inválida"), (3, "Não selecionada"), (8, "Suplente"), (10, "Selecionada"), (1, ""), (None, "")],
)
def test_status_text(status, label):
    assert status_text(status) == label
