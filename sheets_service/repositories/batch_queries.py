"""
Set-keyed queries for sheet generation.

Every helper issues exactly one SELECT regardless of how many registrations or
phases it is given (ids travel in a single IN (...) clause), and returns plain
dict rows. Empty id sets short-circuit without touching the database.
"""

from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import Integer, String, and_, cast, func, literal
from sqlalchemy.orm import Session

from sheets_service.database_layer.db_model import (
    FIELD_META_PREFIX,
    FILE_GROUP_PREFIX,
    PREVIOUS_PHASE_META_KEY,
    Agent,
    File,
    Registration,
    RegistrationEvaluation,
    RegistrationFieldConfiguration,
    RegistrationFileConfiguration,
    RegistrationMeta,
)


def _as_dicts(rows) -> List[dict]:
    return [dict(row._mapping) for row in rows]


def fetch_registration_rows(db: Session, phase_ids: Iterable[int]) -> List[dict]:
    phase_ids = list(phase_ids)
    if not phase_ids:
        return []
    rows = (
        db.query(
            Registration.id.label("registration_id"),
            Registration.number.label("registration_number"),
            Registration.status.label("status"),
            Registration.opportunity_id.label("phase_id"),
            Agent.id.label("agent_id"),
            Agent.name.label("agent_name"),
        )
        .select_from(Registration)
        .outerjoin(Agent, Registration.agent_id == Agent.id)
        .filter(Registration.opportunity_id.in_(phase_ids))
        .order_by(Registration.opportunity_id, Registration.number, Registration.id)
        .all()
    )
    return _as_dicts(rows)


def fetch_parent_link_rows(db: Session, registration_ids: Iterable[int]) -> List[dict]:
    registration_ids = list(registration_ids)
    if not registration_ids:
        return []
    rows = (
        db.query(
            RegistrationMeta.object_id.label("registration_id"),
            RegistrationMeta.value.label("value"),
        )
        .filter(
            RegistrationMeta.object_id.in_(registration_ids),
            RegistrationMeta.key == PREVIOUS_PHASE_META_KEY,
        )
        .order_by(RegistrationMeta.object_id, RegistrationMeta.id)
        .all()
    )
    return _as_dicts(rows)


def fetch_field_value_rows(db: Session, registration_ids: Iterable[int], phase_ids: Iterable[int]) -> List[dict]:
    """
    Dynamic answers, decoded from `field_<configuration id>` meta keys and joined to
    their field configuration, ordered by display order within each phase.
    """
    registration_ids = list(registration_ids)
    phase_ids = list(phase_ids)
    if not registration_ids or not phase_ids:
        return []
    field_id = cast(func.replace(RegistrationMeta.key, FIELD_META_PREFIX, ""), Integer)
    rows = (
        db.query(
            RegistrationMeta.object_id.label("registration_id"),
            RegistrationFieldConfiguration.opportunity_id.label("phase_id"),
            RegistrationFieldConfiguration.title.label("label"),
            RegistrationFieldConfiguration.display_order.label("field_order"),
            RegistrationMeta.value.label("value"),
        )
        .select_from(RegistrationMeta)
        .join(
            RegistrationFieldConfiguration,
            and_(
                RegistrationMeta.key.like(f"{FIELD_META_PREFIX}%"),
                field_id == RegistrationFieldConfiguration.id,
                RegistrationFieldConfiguration.opportunity_id.in_(phase_ids),
            ),
        )
        .filter(RegistrationMeta.object_id.in_(registration_ids))
        .order_by(
            RegistrationMeta.object_id,
            RegistrationFieldConfiguration.opportunity_id,
            RegistrationFieldConfiguration.display_order,
            RegistrationFieldConfiguration.id,
        )
        .all()
    )
    return _as_dicts(rows)


def fetch_evaluation_rows(db: Session, registration_ids: Iterable[int], phase_ids: Iterable[int]) -> List[dict]:
    registration_ids = list(registration_ids)
    phase_ids = list(phase_ids)
    if not registration_ids or not phase_ids:
        return []
    rows = (
        db.query(
            RegistrationEvaluation.registration_id.label("registration_id"),
            Registration.opportunity_id.label("phase_id"),
            RegistrationEvaluation.evaluation_data.label("evaluation_data"),
            RegistrationEvaluation.result.label("result"),
        )
        .select_from(RegistrationEvaluation)
        .join(Registration, Registration.id == RegistrationEvaluation.registration_id)
        .filter(
            RegistrationEvaluation.registration_id.in_(registration_ids),
            Registration.opportunity_id.in_(phase_ids),
        )
        # several evaluators may exist; callers keep the last row per key
        .order_by(RegistrationEvaluation.registration_id, RegistrationEvaluation.id)
        .all()
    )
    return _as_dicts(rows)


def fetch_attachment_rows(db: Session, registration_ids: Iterable[int], phase_ids: Iterable[int]) -> List[dict]:
    """
    Latest upload per declared file field (highest file id wins), for every
    registration and phase given, ordered by the field's display order.
    """
    registration_ids = list(registration_ids)
    phase_ids = list(phase_ids)
    if not registration_ids or not phase_ids:
        return []
    group_name = literal(FILE_GROUP_PREFIX, String) + cast(RegistrationFileConfiguration.id, String)
    ranked = (
        db.query(
            File.object_id.label("registration_id"),
            RegistrationFileConfiguration.opportunity_id.label("phase_id"),
            RegistrationFileConfiguration.id.label("field_id"),
            RegistrationFileConfiguration.display_order.label("field_order"),
            File.name.label("file_name"),
            func.row_number()
            .over(partition_by=(File.object_id, File.grp), order_by=File.id.desc())
            .label("upload_rank"),
        )
        .select_from(File)
        .join(RegistrationFileConfiguration, File.grp == group_name)
        .filter(
            File.object_id.in_(registration_ids),
            RegistrationFileConfiguration.opportunity_id.in_(phase_ids),
        )
        .subquery()
    )
    rows = (
        db.query(ranked.c.registration_id, ranked.c.phase_id, ranked.c.file_name)
        .filter(ranked.c.upload_rank == 1)
        .order_by(ranked.c.registration_id, ranked.c.phase_id, ranked.c.field_order, ranked.c.field_id)
        .all()
    )
    return _as_dicts(rows)
