from .progress import report_progress, get_progress

__all__ = ["report_progress", "get_progress"]
