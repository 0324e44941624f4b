"""Tests for evaluation parsing and score reports."""

import json

import pytest

from sheets_service.schemas.sheets import (
    EvaluationConfig,
    EvaluationRow,
    SimplifiedPayload,
    TechnicalPayload,
    UnevaluatedPayload,
)
from sheets_service.services.evaluation import (
    UNMATCHED_SECTION_TITLE,
    EvaluationEngine,
    evaluate,
    parse_config,
    parse_payload,
)

SECTIONS = [{"id": "s1", "name": "Mérito cultural"}, {"id": "s2", "name": "Viabilidade"}]
CRITERIA = [
    {"id": "c1", "title": "Relevância", "sid": "s1"},
    {"id": "c2", "title": "Originalidade", "sid": "s1"},
    {"id": "c3", "title": "Orçamento", "sid": "s2"},
]


@pytest.fixture
def technical_config():
    return parse_config(55, json.dumps(SECTIONS), json.dumps(CRITERIA))


def _row(data, result=None):
    return EvaluationRow(registration_id=1, phase_id=55, evaluation_data=data, result=result)


class TestParseConfig:
    def test_criteria_linked_to_sections(self, technical_config):
        assert [s.id for s in technical_config.sections] == ["s1", "s2"]
        assert [(c.id, c.section_id) for c in technical_config.criteria] == [("c1", "s1"), ("c2", "s1"), ("c3", "s2")]
        assert technical_config.is_technical

    def test_malformed_json_yields_empty(self):
        config = parse_config(55, "{not json", None)
        assert config.sections == []
        assert config.criteria == []
        assert not config.is_technical


class TestParsePayload:
    def test_missing_row_is_unevaluated(self, technical_config):
        assert isinstance(parse_payload(None, technical_config), UnevaluatedPayload)

    def test_technical_payload(self, technical_config):
        payload = parse_payload(_row({"c1": "8", "obs": "Bom projeto", "status": "aprovado"}, "15.5"), technical_config)
        assert isinstance(payload, TechnicalPayload)
        assert payload.scores == {"c1": "8"}
        assert payload.parecer == "Bom projeto"
        assert payload.total == 15.5

    def test_simplified_payload(self):
        payload = parse_payload(_row('{"obs": "ok"}', "10"), EvaluationConfig())
        assert isinstance(payload, SimplifiedPayload)
        assert payload.total == 10

    def test_zero_total_without_rubric_is_unevaluated(self):
        assert isinstance(parse_payload(_row("{}", "0"), EvaluationConfig()), UnevaluatedPayload)

    def test_unparseable_data_treated_as_empty(self, technical_config):
        payload = parse_payload(_row("not json", "3"), technical_config)
        assert payload.scores == {}
        assert payload.total == 3


class TestEvaluate:
    def test_technical_report(self, technical_config):
        result = evaluate(_row({"c1": 8, "c2": "7.5", "c3": "abc", "obs": "Parecer"}, "15.5"), technical_config)

        assert result.has_technical
        assert not result.has_simplified
        assert [s.title for s in result.sections] == ["Mérito cultural", "Viabilidade"]
        assert [(c.label, c.score) for c in result.sections[0].criteria] == [("Relevância", 8), ("Originalidade", 7.5)]
        assert result.sections[1].criteria[0].score == 0
        assert result.parecer == "Parecer"

    def test_stored_total_is_authoritative(self, technical_config):
        result = evaluate(_row({"c1": 10, "c2": 10, "c3": 10}, "12"), technical_config)
        assert result.total == 12

    def test_missing_criteria_score_zero(self, technical_config):
        result = evaluate(_row({"c1": 5}, "5"), technical_config)
        assert [c.score for c in result.sections[0].criteria] == [5, 0]

    def test_unmatched_keys_keep_raw_label(self, technical_config):
        result = evaluate(_row({"c1": 5, "c99": "4"}, "9"), technical_config)
        extra = result.sections[-1]
        assert extra.title == UNMATCHED_SECTION_TITLE
        assert [(c.label, c.score) for c in extra.criteria] == [("c99", 4)]

    def test_orphan_criterion_kept(self):
        config = parse_config(55, json.dumps(SECTIONS[:1]), json.dumps(CRITERIA))
        result = evaluate(_row({"c3": 6}, "6"), config)
        assert result.sections[-1].title == UNMATCHED_SECTION_TITLE
        assert [(c.label, c.score) for c in result.sections[-1].criteria] == [("Orçamento", 6)]

    def test_simplified_report(self):
        result = evaluate(_row({"obs": "Aprovado", "status": "ok"}, "7"), EvaluationConfig())
        assert result.has_simplified
        assert not result.has_technical
        assert result.sections == []
        assert result.total == 7
        assert result.status == "ok"

    def test_not_evaluated(self, technical_config):
        result = evaluate(None, technical_config)
        assert result.sections == []
        assert result.total == 0
        assert not result.has_technical and not result.has_simplified

    @pytest.mark.parametrize(
        "data,result_value,config_name",
        [
            ({"c1": 1}, "1", "technical"),
            ({}, "0", "technical"),
            ({"obs": "x"}, "5", "empty"),
            ({"obs": "x"}, None, "empty"),
            ("garbage", "nan", "technical"),
            ({"zzz": "1"}, "inf", "empty"),
        ],
    )
    def test_flags_mutually_exclusive(self, technical_config, data, result_value, config_name):
        config = technical_config if config_name == "technical" else EvaluationConfig()
        result = evaluate(_row(data, result_value), config)
        assert not (result.has_technical and result.has_simplified)


class TestEvaluationEngine:
    def test_configs_loaded_in_one_query_and_cached(self, mapas, session_factory, cache, query_counter):
        mapas.opportunity(10, "Edital")
        mapas.opportunity(55, "Mérito", parent_id=10)
        mapas.rubric(1, 55, SECTIONS, CRITERIA)
        query_counter.reset()
        engine = EvaluationEngine(session_factory, cache, ttl=60)

        configs = engine.load_configs([10, 55])
        again = engine.load_configs([55, 10])

        assert query_counter.count == 1
        assert configs[55].is_technical
        assert configs[10].criteria == []
        assert again == configs

    def test_load_config_single_phase(self, mapas, session_factory, cache):
        mapas.opportunity(55, "Mérito")
        mapas.rubric(1, 55, SECTIONS, CRITERIA)
        config = EvaluationEngine(session_factory, cache).load_config(55)
        assert len(config.criteria) == 3
