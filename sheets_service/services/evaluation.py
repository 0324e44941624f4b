"""
Evaluation reports.

A phase's technical rubric (sections and criteria) is read from the evaluation
method configuration and cached per phase. Each raw evaluation row is parsed into
a tagged payload first and only then turned into the report shown on the sheet,
so the technical and simplified shapes never mix.
"""

from __future__ import annotations

import json
import logging
import math
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sheets_service.cache_db import SheetCache, cache_key
from sheets_service.core import settings
from sheets_service.core.exceptions import BatchFetchError
from sheets_service.repositories import get_evaluation_config_rows
from sheets_service.schemas.sheets import (
    CriterionScore,
    EvaluationConfig,
    EvaluationCriterion,
    EvaluationPayload,
    EvaluationResult,
    EvaluationRow,
    EvaluationSection,
    SectionScore,
    SimplifiedPayload,
    TechnicalPayload,
    UnevaluatedPayload,
)

logger = logging.getLogger("app_logger")

OPINION_KEY = "obs"
STATUS_KEY = "status"
UNMATCHED_SECTION_TITLE = "Outros critérios"


def _to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _to_text(value: Any) -> str:
    if value is None or value == "" or value == 0:
        return ""
    return str(value)


def _load_json_list(raw: Any, phase_id: int, key: str) -> List[dict]:
    if raw is None or raw == "":
        return []
    try:
        parsed = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError as e:
        logger.error(f"Malformed '{key}' configuration for phase {phase_id}: {e}")
        return []
    if not isinstance(parsed, list):
        logger.error(f"'{key}' configuration for phase {phase_id} is not a list")
        return []
    return [item for item in parsed if isinstance(item, dict)]


def parse_config(phase_id: int, sections_raw: Any, criteria_raw: Any) -> EvaluationConfig:
    sections = [
        EvaluationSection(id=str(s.get("id")), name=s.get("name") or "")
        for s in _load_json_list(sections_raw, phase_id, "sections")
        if s.get("id") is not None
    ]
    criteria = [
        EvaluationCriterion(
            id=str(c.get("id")),
            title=c.get("title") or "",
            section_id=str(c["sid"]) if c.get("sid") is not None else None,
        )
        for c in _load_json_list(criteria_raw, phase_id, "criteria")
        if c.get("id") is not None
    ]
    return EvaluationConfig(sections=sections, criteria=criteria)


def parse_payload(row: Optional[EvaluationRow], config: EvaluationConfig) -> EvaluationPayload:
    """
    Classify a raw evaluation row.

    No row means unevaluated. A phase with a rubric yields a technical payload; without
    one, a positive stored total yields a simplified payload.
    """
    if row is None:
        return UnevaluatedPayload()

    data = row.evaluation_data
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            data = {}
    if not isinstance(data, dict):
        data = {}

    parecer = _to_text(data.get(OPINION_KEY))
    status = _to_text(data.get(STATUS_KEY))
    total = _to_number(row.result)

    if config.is_technical:
        scores = {str(k): v for k, v in data.items() if k not in (OPINION_KEY, STATUS_KEY)}
        return TechnicalPayload(scores=scores, parecer=parecer, status=status, total=total)
    if total > 0:
        return SimplifiedPayload(parecer=parecer, status=status, total=total)
    return UnevaluatedPayload(parecer=parecer, status=status)


def evaluate(row: Optional[EvaluationRow], config: EvaluationConfig) -> EvaluationResult:
    payload = parse_payload(row, config)

    if isinstance(payload, UnevaluatedPayload):
        return EvaluationResult(status=payload.status, parecer=payload.parecer)

    if isinstance(payload, SimplifiedPayload):
        return EvaluationResult(
            status=payload.status,
            parecer=payload.parecer,
            total=payload.total,
            has_simplified=True,
        )

    criteria_by_section: Dict[Optional[str], List[EvaluationCriterion]] = defaultdict(list)
    for criterion in config.criteria:
        criteria_by_section[criterion.section_id].append(criterion)

    sections: List[SectionScore] = []
    section_ids = set()
    for section in config.sections:
        section_ids.add(section.id)
        criteria = criteria_by_section.get(section.id) or []
        if not criteria:
            continue
        sections.append(
            SectionScore(
                title=section.name,
                criteria=[
                    CriterionScore(label=c.title, score=_to_number(payload.scores.get(c.id)))
                    for c in criteria
                ],
            )
        )

    # criteria whose section is missing from the config and payload keys no criterion claims
    leftovers = [
        CriterionScore(label=c.title or c.id, score=_to_number(payload.scores.get(c.id)))
        for c in config.criteria
        if c.section_id not in section_ids
    ]
    known_ids = {c.id for c in config.criteria}
    leftovers.extend(
        CriterionScore(label=key, score=_to_number(value))
        for key, value in payload.scores.items()
        if key not in known_ids
    )
    if leftovers:
        sections.append(SectionScore(title=UNMATCHED_SECTION_TITLE, criteria=leftovers))

    has_technical = any(section.criteria for section in sections)
    return EvaluationResult(
        sections=sections,
        status=payload.status,
        parecer=payload.parecer,
        total=payload.total,
        has_technical=has_technical,
        has_simplified=False,
    )


class EvaluationEngine:
    """
    Loads and caches evaluation configurations, one cache entry per phase.

    Args:
        session_factory: callable returning a new SQLAlchemy session.
        cache: process cache shared with the rest of the pipeline.
        ttl: seconds a phase configuration stays cached.
    """

    def __init__(self, session_factory: Callable[[], Session], cache: SheetCache, ttl: Optional[int] = None):
        self.session_factory = session_factory
        self.cache = cache
        self.ttl = settings.EVAL_CONFIG_CACHE_TTL if ttl is None else ttl
        self.queries = 0

    def load_configs(self, phase_ids: Iterable[int], parent_id: Optional[int] = None) -> Dict[int, EvaluationConfig]:
        configs: Dict[int, EvaluationConfig] = {}
        missing: List[int] = []
        for phase_id in sorted(set(phase_ids)):
            cached = self.cache.get(cache_key("eval_config", phase_id))
            if cached is None:
                missing.append(phase_id)
            else:
                configs[phase_id] = EvaluationConfig(**cached)

        if not missing:
            return configs

        db = self.session_factory()
        try:
            rows = get_evaluation_config_rows(db, missing)
        except SQLAlchemyError as e:
            logger.error(f"Evaluation configuration fetch failed for phases {missing}: {e}")
            raise BatchFetchError(f"evaluation configuration fetch failed: {e}", parent_id) from e
        finally:
            db.close()
            self.queries += 1

        raw: Dict[int, Dict[str, Any]] = defaultdict(dict)
        for row in rows:
            raw[row["phase_id"]].setdefault(row["key"], row["value"])

        for phase_id in missing:
            config = parse_config(phase_id, raw[phase_id].get("sections"), raw[phase_id].get("criteria"))
            self.cache.set(cache_key("eval_config", phase_id), config.model_dump(), self.ttl)
            configs[phase_id] = config
        return configs

    def load_config(self, phase_id: int) -> EvaluationConfig:
        return self.load_configs([phase_id])[phase_id]
