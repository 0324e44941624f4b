"""
Phase resolution for a parent opportunity.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sheets_service.cache_db import SheetCache, cache_key
from sheets_service.core import settings
from sheets_service.core.exceptions import BatchFetchError, NoApplicantsFoundError, NoRelevantPhasesError
from sheets_service.repositories import get_relevant_phase_rows, list_parent_opportunities
from sheets_service.schemas.sheets import ParentOpportunity, Phase, RegistrationRecord, RelevantPhaseSet

logger = logging.getLogger("app_logger")


def list_parents(db: Session, cache: SheetCache) -> List[ParentOpportunity]:
    rows = cache.get_or_compute(
        cache_key("parent_opportunities"),
        lambda: list_parent_opportunities(db),
        settings.PARENT_LIST_CACHE_TTL,
    )
    return [ParentOpportunity(**row) for row in rows]


def resolve_relevant_phases(
    db: Session,
    cache: SheetCache,
    parent_id: int,
    on_query: Optional[Callable[[], None]] = None,
) -> RelevantPhaseSet:
    """
    Ordered phase set for a parent opportunity: the parent first, then every child
    phase ascending by id. The parent_id + 1 placeholder is left out when the parent
    has other children. A parent without children yields a singleton set.

    on_query is called when the lookup reaches the database instead of the cache.
    """
    def _query():
        try:
            # empty results are not cached so a newly created opportunity shows up at once
            return get_relevant_phase_rows(db, parent_id) or None
        except SQLAlchemyError as e:
            raise BatchFetchError(f"Phase lookup failed for parent {parent_id}: {e}", parent_id) from e
        finally:
            if on_query is not None:
                on_query()

    rows = cache.get_or_compute(cache_key("relevant_phases", parent_id), _query, settings.PHASE_CACHE_TTL) or []
    phases = [Phase(**row) for row in rows]
    parent = next((p for p in phases if p.id == parent_id), None)
    if parent is None:
        raise NoRelevantPhasesError(f"Opportunity {parent_id} not found", parent_id)

    children = sorted((p for p in phases if p.id != parent_id), key=lambda p: p.id)
    phase_set = RelevantPhaseSet(parent=parent, children=children)
    logger.info(f"Relevant phases for {parent_id}: {', '.join(p.name or str(p.id) for p in phase_set.phases)}")
    return phase_set


def choose_applicant_pool(
    phase_set: RelevantPhaseSet,
    registrations_by_phase: Dict[int, List[RegistrationRecord]],
) -> Tuple[Phase, List[RegistrationRecord]]:
    """
    The first child phase (by id) holding at least one registration provides the
    applicants; the parent phase is used when no child has any.
    """
    for child in phase_set.children:
        registrations = registrations_by_phase.get(child.id) or []
        if registrations:
            return child, registrations

    registrations = registrations_by_phase.get(phase_set.parent.id) or []
    if registrations:
        return phase_set.parent, registrations

    raise NoApplicantsFoundError(f"No registrations found for parent {phase_set.parent.id}", phase_set.parent.id)
