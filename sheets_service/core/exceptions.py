"""
Error taxonomy for sheet generation runs.

Fatal conditions raise one of these; the API layer maps them to HTTP status
codes and the Celery task records them as task failures.
"""

from __future__ import annotations

from typing import Optional


class SheetGenerationError(Exception):
    """Base error for a generation run, carrying the parent opportunity id."""

    def __init__(self, message: str, parent_id: Optional[int] = None):
        super().__init__(message)
        self.parent_id = parent_id


class NoRelevantPhasesError(SheetGenerationError):
    """The parent opportunity does not exist, so there is no phase to work on."""


class NoApplicantsFoundError(SheetGenerationError):
    """Neither a child phase nor the parent phase has any registration."""


class BatchFetchError(SheetGenerationError):
    """A set-keyed query failed; the run is aborted before rendering starts."""
