"""
Query helpers for opportunity (phase) lookups.
Each helper returns plain dict rows so results can be cached as JSON.
"""

from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from sheets_service.database_layer.db_model import (
    EvaluationMethodConfiguration,
    EvaluationMethodConfigurationMeta,
    Opportunity,
)

TECHNICAL_METHOD = "technical"
RUBRIC_META_KEYS = ("sections", "criteria")


def list_parent_opportunities(db: Session) -> List[dict]:
    rows = (
        db.query(Opportunity.id, Opportunity.name)
        .filter(
            Opportunity.parent_id.is_(None),
            Opportunity.published_registrations.is_(True),
            Opportunity.status == 1,
        )
        .order_by(Opportunity.name)
        .all()
    )
    return [{"id": r.id, "name": r.name} for r in rows]


def get_relevant_phase_rows(db: Session, parent_id: int) -> List[dict]:
    """
    The parent opportunity plus its children, ascending by id.

    The parent_id + 1 child is the "final results" placeholder and is dropped, but
    only when the parent has other children; a lone parent_id + 1 child is a real
    phase.
    """
    rows = (
        db.query(Opportunity.id, Opportunity.name, Opportunity.parent_id)
        .filter(or_(Opportunity.id == parent_id, Opportunity.parent_id == parent_id))
        .order_by(Opportunity.id)
        .all()
    )
    placeholder_id = parent_id + 1
    has_other_children = any(r.id not in (parent_id, placeholder_id) for r in rows)
    return [
        {"id": r.id, "name": r.name or "", "parent_id": r.parent_id}
        for r in rows
        if not (r.id == placeholder_id and has_other_children)
    ]


def get_evaluation_config_rows(db: Session, phase_ids: Iterable[int]) -> List[dict]:
    """Raw `sections` / `criteria` meta values of the technical method of every phase given."""
    phase_ids = list(phase_ids)
    if not phase_ids:
        return []
    rows = (
        db.query(
            EvaluationMethodConfiguration.opportunity_id.label("phase_id"),
            EvaluationMethodConfigurationMeta.key,
            EvaluationMethodConfigurationMeta.value,
        )
        .select_from(EvaluationMethodConfiguration)
        .join(
            EvaluationMethodConfigurationMeta,
            EvaluationMethodConfigurationMeta.object_id == EvaluationMethodConfiguration.id,
        )
        .filter(
            EvaluationMethodConfiguration.opportunity_id.in_(phase_ids),
            EvaluationMethodConfiguration.type == TECHNICAL_METHOD,
            EvaluationMethodConfigurationMeta.key.in_(RUBRIC_META_KEYS),
        )
        .order_by(EvaluationMethodConfiguration.opportunity_id, EvaluationMethodConfigurationMeta.id)
        .all()
    )
    return [{"phase_id": r.phase_id, "key": r.key, "value": r.value} for r in rows]
