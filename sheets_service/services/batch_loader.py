"""
Bulk loading of everything a generation run needs.

Each data kind is fetched with one set-keyed query covering every applicant and
every relevant phase, so the number of round trips does not grow with the
applicant count. Queries run in worker threads, each with its own session, which
lets the independent kinds (links, answers, evaluations, attachments) run
concurrently. Any failure aborts the whole load; nothing partial is returned.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
import time
from collections import defaultdict
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sheets_service.cache_db import SheetCache, cache_key
from sheets_service.core import settings
from sheets_service.core.exceptions import BatchFetchError
from sheets_service.repositories import (
    fetch_attachment_rows,
    fetch_evaluation_rows,
    fetch_field_value_rows,
    fetch_parent_link_rows,
    fetch_registration_rows,
)
from sheets_service.schemas.sheets import EvaluationRow, FieldValue, RegistrationRecord, RelevantPhaseSet
from sheets_service.services.phases import resolve_relevant_phases

logger = logging.getLogger("app_logger")

RegPhaseKey = Tuple[int, int]


@dataclass
class BatchedData:
    """Grouped results of one run's bulk fetches. Missing rows are simply absent."""

    registrations_by_phase: Dict[int, List[RegistrationRecord]] = field(default_factory=dict)
    parent_links: Dict[int, int] = field(default_factory=dict)
    field_values: Dict[int, Dict[int, List[FieldValue]]] = field(default_factory=dict)
    evaluation_rows: Dict[RegPhaseKey, EvaluationRow] = field(default_factory=dict)
    attachment_names: Dict[RegPhaseKey, List[str]] = field(default_factory=dict)


def group_registrations(rows: Iterable[dict]) -> Dict[int, List[RegistrationRecord]]:
    grouped: Dict[int, List[RegistrationRecord]] = defaultdict(list)
    for row in rows:
        grouped[row["phase_id"]].append(RegistrationRecord(**row))
    return dict(grouped)


def group_parent_links(rows: Iterable[dict]) -> Dict[int, int]:
    links: Dict[int, int] = {}
    for row in rows:
        try:
            links[row["registration_id"]] = int(str(row["value"]).strip())
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric previous phase link on registration {row['registration_id']}")
    return links


def group_field_values(rows: Iterable[dict]) -> Dict[int, Dict[int, List[FieldValue]]]:
    grouped: Dict[int, Dict[int, List[FieldValue]]] = {}
    for row in rows:
        by_phase = grouped.setdefault(row["registration_id"], {})
        by_phase.setdefault(row["phase_id"], []).append(
            FieldValue(
                phase_id=row["phase_id"],
                label=row["label"] or "",
                order=row["field_order"],
                raw_value=row["value"],
            )
        )
    for by_phase in grouped.values():
        for values in by_phase.values():
            values.sort(key=lambda v: v.order if v.order is not None else 0)
    return grouped


def group_evaluation_rows(rows: Iterable[dict]) -> Dict[RegPhaseKey, EvaluationRow]:
    evaluations: Dict[RegPhaseKey, EvaluationRow] = {}
    for row in rows:
        evaluations[(row["registration_id"], row["phase_id"])] = EvaluationRow(**row)
    return evaluations


def group_attachment_names(rows: Iterable[dict]) -> Dict[RegPhaseKey, List[str]]:
    names: Dict[RegPhaseKey, List[str]] = {}
    for row in rows:
        bucket = names.setdefault((row["registration_id"], row["phase_id"]), [])
        if row["file_name"] and row["file_name"] not in bucket:
            bucket.append(row["file_name"])
    return names


class BatchLoader:
    """
    Args:
        session_factory: callable returning a new SQLAlchemy session (SessionLocal).
        cache: optional cache for raw batch rows, used only when batch_ttl > 0.
        batch_ttl: seconds raw rows stay cached; 0 disables batch caching.
        executor: thread pool for the blocking queries; None uses the loop default.
        parent_id: parent opportunity of the run, attached to fetch errors.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        cache: Optional[SheetCache] = None,
        batch_ttl: Optional[int] = None,
        executor: Optional[Executor] = None,
        parent_id: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.parent_id = parent_id
        self.batch_ttl = settings.BATCH_CACHE_TTL if batch_ttl is None else batch_ttl
        self.executor = executor
        self.queries = 0
        self.db_ms = 0
        self._metrics_lock = threading.Lock()

    def _run(self, kind: str, query_fn: Callable[..., List[dict]], *id_sets) -> List[dict]:
        try:
            key = cache_key(kind, *id_sets)
        except (TypeError, ValueError) as e:
            raise BatchFetchError(f"{kind} fetch received malformed ids: {e}", self.parent_id) from e

        use_cache = self.cache is not None and self.batch_ttl > 0
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        start = time.perf_counter()
        db = self.session_factory()
        try:
            rows = query_fn(db, *id_sets)
        except SQLAlchemyError as e:
            logger.error(f"Batch fetch '{kind}' failed for parent_id={self.parent_id}: {e}")
            raise BatchFetchError(f"{kind} fetch failed: {e}", self.parent_id) from e
        finally:
            db.close()
            self._record_query(start)

        if use_cache:
            self.cache.set(key, rows, self.batch_ttl)
        return rows

    def _record_query(self, start: float) -> None:
        elapsed = int((time.perf_counter() - start) * 1000)
        with self._metrics_lock:
            self.queries += 1
            self.db_ms += elapsed

    def _resolve_phases(self, parent_id: int) -> RelevantPhaseSet:
        start = time.perf_counter()
        queried = []
        db = self.session_factory()
        try:
            return resolve_relevant_phases(
                db, self.cache if self.cache is not None else SheetCache(), parent_id, on_query=lambda: queried.append(True)
            )
        finally:
            db.close()
            if queried:
                self._record_query(start)

    async def resolve_phases(self, parent_id: int) -> RelevantPhaseSet:
        """Phase lookup in the worker pool, counted with the batch queries."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self._resolve_phases, parent_id)

    async def _fetch(self, kind: str, query_fn: Callable[..., List[dict]], *id_sets) -> List[dict]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(self._run, kind, query_fn, *id_sets))

    async def fetch_registrations(self, phase_ids: Iterable[int]) -> Dict[int, List[RegistrationRecord]]:
        rows = await self._fetch("registrations", fetch_registration_rows, sorted(set(phase_ids)))
        return group_registrations(rows)

    async def fetch_parent_links(self, registration_ids: Iterable[int]) -> Dict[int, int]:
        rows = await self._fetch("parent_links", fetch_parent_link_rows, sorted(set(registration_ids)))
        return group_parent_links(rows)

    async def fetch_field_values(
        self, registration_ids: Iterable[int], phase_ids: Iterable[int]
    ) -> Dict[int, Dict[int, List[FieldValue]]]:
        rows = await self._fetch(
            "field_values", fetch_field_value_rows, sorted(set(registration_ids)), sorted(set(phase_ids))
        )
        return group_field_values(rows)

    async def fetch_evaluation_rows(
        self, registration_ids: Iterable[int], phase_ids: Iterable[int]
    ) -> Dict[RegPhaseKey, EvaluationRow]:
        rows = await self._fetch(
            "evaluations", fetch_evaluation_rows, sorted(set(registration_ids)), sorted(set(phase_ids))
        )
        return group_evaluation_rows(rows)

    async def fetch_attachment_names(
        self, registration_ids: Iterable[int], phase_ids: Iterable[int]
    ) -> Dict[RegPhaseKey, List[str]]:
        rows = await self._fetch(
            "attachments", fetch_attachment_rows, sorted(set(registration_ids)), sorted(set(phase_ids))
        )
        return group_attachment_names(rows)

    async def load_details(
        self,
        phase_set: RelevantPhaseSet,
        registrations_by_phase: Dict[int, List[RegistrationRecord]],
    ) -> BatchedData:
        """
        Fetch links, answers, evaluations and attachment names for every registration
        of every relevant phase, concurrently.
        """
        registration_ids = sorted(
            {record.registration_id for records in registrations_by_phase.values() for record in records}
        )
        phase_ids = phase_set.ids
        logger.info(f"Preloading data for {len(registration_ids)} registrations across {len(phase_ids)} phases")

        parent_links, field_values, evaluation_rows, attachment_names = await asyncio.gather(
            self.fetch_parent_links(registration_ids),
            self.fetch_field_values(registration_ids, phase_ids),
            self.fetch_evaluation_rows(registration_ids, phase_ids),
            self.fetch_attachment_names(registration_ids, phase_ids),
        )
        return BatchedData(
            registrations_by_phase=registrations_by_phase,
            parent_links=parent_links,
            field_values=field_values,
            evaluation_rows=evaluation_rows,
            attachment_names=attachment_names,
        )
