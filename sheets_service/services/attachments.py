"""
Attachment lookup and PDF merging.

Uploaded files live in one directory per registration id under FILES_DIR. Every
PDF found for the registrations that govern an applicant's phases is appended
after the rendered sheet.
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import Executor
from io import BytesIO
from typing import Iterable, List, Optional

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

logger = logging.getLogger("app_logger")

PDF_EXTENSION = ".pdf"


def collect_attachment_files(governing_ids: Iterable[int], root_dir: str) -> List[bytes]:
    """
    Read every PDF under root_dir/<id> for the given registration ids, in the order
    given. The same file is never read twice, even when several phases resolve to
    the same registration.
    """
    seen = set()
    files: List[bytes] = []
    for registration_id in governing_ids:
        directory = os.path.join(root_dir, str(registration_id))
        if not os.path.isdir(directory):
            continue
        for name in sorted(os.listdir(directory)):
            if not name.lower().endswith(PDF_EXTENSION):
                continue
            path = os.path.abspath(os.path.join(directory, name))
            if path in seen or not os.path.isfile(path):
                continue
            seen.add(path)
            try:
                with open(path, "rb") as fh:
                    files.append(fh.read())
            except OSError as e:
                logger.warning(f"Could not read attachment {path}: {e}")
    return files


def merge_pdfs(main: bytes, attachments: List[bytes]) -> bytes:
    """Append the pages of each attachment after the main document. Unreadable attachments are skipped."""
    if not attachments:
        return main

    writer = PdfWriter()
    for page in PdfReader(BytesIO(main)).pages:
        writer.add_page(page)

    for index, data in enumerate(attachments):
        try:
            pages = list(PdfReader(BytesIO(data)).pages)
        except (PyPdfError, ValueError, KeyError, OSError) as e:
            logger.warning(f"Skipping attachment #{index + 1}, not a readable PDF: {e}")
            continue
        for page in pages:
            writer.add_page(page)

    output = BytesIO()
    writer.write(output)
    return output.getvalue()


async def merge_with_attachments(
    main: bytes,
    governing_ids: Iterable[int],
    root_dir: str,
    executor: Optional[Executor] = None,
) -> bytes:
    """Collect the attachments of the given registrations and merge them in a worker thread."""
    loop = asyncio.get_running_loop()
    attachments = await loop.run_in_executor(executor, collect_attachment_files, list(governing_ids), root_dir)
    if not attachments:
        return main
    logger.debug(f"Merging {len(attachments)} attachments")
    return await loop.run_in_executor(executor, merge_pdfs, main, attachments)
