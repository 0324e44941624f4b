"""
HTML to PDF conversion through wkhtmltopdf (pdfkit).

wkhtmltopdf is a blocking subprocess call, so conversions run in a thread pool.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import pdfkit

from sheets_service.core import settings

logger = logging.getLogger("app_logger")

# Thread pool executor for blocking operations
executor = ThreadPoolExecutor(max_workers=settings.RENDER_WORKERS)

PDF_OPTIONS = {
    "page-size": "A4",
    "margin-top": "1.5cm",
    "margin-bottom": "1.5cm",
    "margin-left": "1cm",
    "margin-right": "1cm",
    "encoding": "UTF-8",
    "print-media-type": None,
    "enable-local-file-access": None,
    "no-outline": None,
    "quiet": None,
}


def _pdfkit_config():
    if not settings.PDFKIT_PATH:
        return None
    try:
        return pdfkit.configuration(wkhtmltopdf=settings.PDFKIT_PATH)
    except OSError as e:
        logger.warning(f"Could not configure pdfkit with PDFKIT_PATH: {e}. Using default configuration.")
        return None


def _generate_pdf_sync(html_content: str) -> bytes:
    try:
        return pdfkit.from_string(html_content, False, options=PDF_OPTIONS, configuration=_pdfkit_config())
    except (OSError, IOError) as e:
        logger.error(f"Error in PDF generation: {e}", exc_info=True)
        raise


async def render_pdf(html_content: str) -> bytes:
    return await asyncio.get_running_loop().run_in_executor(executor, _generate_pdf_sync, html_content)
