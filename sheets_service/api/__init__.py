from .endpoints.sheets_api import router as sheets_router
from .dependencies import report_progress, get_progress
__all__ = [
    "sheets_router",
    "report_progress",
    "get_progress",
]
