"""
Registration sheet generation for one parent opportunity.

Flow: resolve phases -> fetch registrations -> choose the applicant pool ->
bulk-load details and evaluation configs -> assemble one document per applicant ->
render, merge attachments and write each sheet (bounded window) -> zip.

Fatal errors (unknown parent, no applicants, failed batch fetch) abort the run
before any rendering. A failure while producing one applicant's sheet is logged
and that applicant is reported in `failed`; the run continues.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
import zipfile
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from sheets_service.cache_db import SheetCache, build_cache
from sheets_service.core import settings
from sheets_service.core.exceptions import SheetGenerationError
from sheets_service.database_layer import SessionLocal
from sheets_service.schemas.sheets import ApplicantDocument, GenerationResult, RunMetrics
from sheets_service.services.assembler import assemble
from sheets_service.services.attachments import collect_attachment_files, merge_pdfs
from sheets_service.services.batch_loader import BatchLoader
from sheets_service.services.evaluation import EvaluationEngine
from sheets_service.services.phases import choose_applicant_pool
from sheets_service.services.renderer import render_pdf
from sheets_service.services.sheet_templates import load_assets, render_registration_sheet
from sheets_service.services.value_format import slugify_name

logger = logging.getLogger("app_logger")

RenderFn = Callable[[str], Awaitable[bytes]]
MergeFn = Callable[[bytes, List[bytes]], bytes]
ProgressFn = Callable[[int, int], None]


def sheet_filename(parent_id: int, document: ApplicantDocument) -> str:
    number = re.sub(r"[^A-Za-z0-9_\-]", "", document.registration_number) or str(document.registration_id)
    return f"ficha_{parent_id}_{number}_{slugify_name(document.agent.name)}.pdf"


def zip_filename(parent_id: int) -> str:
    return f"fichas_{parent_id}.zip"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class SheetGenerator:
    """
    Args:
        session_factory: callable returning a new SQLAlchemy session.
        cache: process-wide cache; built from settings when omitted.
        render: async HTML -> PDF bytes collaborator.
        merge: (main pdf, attachment pdfs) -> merged pdf collaborator.
        output_dir: where sheets and the zip are written.
        files_dir: root of the per-registration attachment directories.
        concurrency: number of applicants rendered at the same time.
        assets: (logo base64, bootstrap css); read from settings paths when omitted.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        cache: Optional[SheetCache] = None,
        render: RenderFn = render_pdf,
        merge: MergeFn = merge_pdfs,
        output_dir: Optional[str] = None,
        files_dir: Optional[str] = None,
        concurrency: Optional[int] = None,
        assets: Optional[Tuple[str, str]] = None,
    ):
        self.session_factory = session_factory
        self.cache = cache if cache is not None else build_cache()
        self.render = render
        self.merge = merge
        self.output_dir = output_dir or settings.OUTPUT_DIR
        self.files_dir = files_dir or settings.FILES_DIR
        self.concurrency = max(1, concurrency or settings.RENDER_CONCURRENCY)
        self._assets = assets
        self.evaluations = EvaluationEngine(session_factory, self.cache)
        self.last_metrics: Optional[RunMetrics] = None

    @property
    def assets(self) -> Tuple[str, str]:
        if self._assets is None:
            self._assets = load_assets()
        return self._assets

    async def generate(self, parent_id: int, progress: Optional[ProgressFn] = None) -> GenerationResult:
        run_start = time.perf_counter()
        hits_before, misses_before = self.cache.hits, self.cache.misses
        queries_before = self.evaluations.queries
        logger.info(f"Starting sheet generation for parent_id={parent_id} (cache: {self.cache.stats()})")

        loader = BatchLoader(self.session_factory, self.cache, parent_id=parent_id)
        loop = asyncio.get_running_loop()
        try:
            phase_set = await loader.resolve_phases(parent_id)
            registrations_by_phase = await loader.fetch_registrations(phase_set.ids)
            pool_phase, applicants = choose_applicant_pool(phase_set, registrations_by_phase)
            logger.info(
                f"Applicant pool: phase {pool_phase.id} ({pool_phase.name}) with {len(applicants)} registrations"
            )

            data, configs = await asyncio.gather(
                loader.load_details(phase_set, registrations_by_phase),
                loop.run_in_executor(None, self.evaluations.load_configs, phase_set.ids, parent_id),
            )
        except SheetGenerationError as e:
            if e.parent_id is None:
                e.parent_id = parent_id
            logger.error(f"Sheet generation aborted for parent_id={parent_id}: {e}")
            raise

        documents = [assemble(applicant, phase_set, data, configs) for applicant in applicants]

        os.makedirs(self.output_dir, exist_ok=True)
        window = asyncio.Semaphore(self.concurrency)
        render_ms = [0]
        done = [0]

        async def _produce(document: ApplicantDocument) -> Optional[str]:
            async with window:
                try:
                    return await self._produce_sheet(parent_id, document, render_ms)
                except Exception as e:
                    logger.error(
                        f"Failed to generate sheet for registration {document.registration_number}: {e}",
                        exc_info=True,
                    )
                    return None
                finally:
                    done[0] += 1
                    if progress is not None:
                        progress(done[0], len(documents))

        produced = await asyncio.gather(*(_produce(document) for document in documents))

        files: List[str] = []
        failed: List[str] = []
        kept: List[ApplicantDocument] = []
        for document, filename in zip(documents, produced):
            if filename is None:
                failed.append(document.registration_number)
            else:
                files.append(filename)
                kept.append(document)

        zip_file = None
        if files:
            zip_file = await loop.run_in_executor(None, self._write_zip, parent_id, files)

        metrics = RunMetrics(
            total_ms=_elapsed_ms(run_start),
            db_ms=loader.db_ms,
            queries=loader.queries + self.evaluations.queries - queries_before,
            render_ms=render_ms[0],
            pdfs=len(files),
            cache_hits=self.cache.hits - hits_before,
            cache_misses=self.cache.misses - misses_before,
        )
        self.last_metrics = metrics
        logger.info(
            f"Generation finished for parent_id={parent_id}: {len(files)} sheets, {len(failed)} failed, "
            f"{metrics.queries} queries, {metrics.total_ms} ms"
        )
        return GenerationResult(
            parent_id=parent_id,
            pool_phase_id=pool_phase.id,
            documents=kept,
            files=files,
            failed=failed,
            zip_file=zip_file,
            metrics=metrics,
        )

    async def _produce_sheet(self, parent_id: int, document: ApplicantDocument, render_ms: List[int]) -> str:
        loop = asyncio.get_running_loop()
        logo_b64, bootstrap_css = self.assets
        html = render_registration_sheet(document, logo_b64, bootstrap_css)

        start = time.perf_counter()
        pdf = await self.render(html)
        render_ms[0] += _elapsed_ms(start)

        governing_ids = [sheet.registration_id for sheet in document.phases if sheet.registration_id is not None]
        attachments = await loop.run_in_executor(None, collect_attachment_files, governing_ids, self.files_dir)
        if attachments:
            pdf = await loop.run_in_executor(None, self.merge, pdf, attachments)

        filename = sheet_filename(parent_id, document)
        await loop.run_in_executor(None, self._write_file, filename, pdf)
        return filename

    def _write_file(self, filename: str, content: bytes) -> None:
        with open(os.path.join(self.output_dir, filename), "wb") as fh:
            fh.write(content)

    def _write_zip(self, parent_id: int, files: List[str]) -> str:
        name = zip_filename(parent_id)
        with zipfile.ZipFile(os.path.join(self.output_dir, name), "w", zipfile.ZIP_DEFLATED) as archive:
            for filename in files:
                archive.write(os.path.join(self.output_dir, filename), arcname=filename)
        logger.info(f"Zip written: {name} ({len(files)} sheets)")
        return name
