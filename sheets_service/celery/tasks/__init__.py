from .sheet_tasks import generate_sheets_task

__all__ = ["generate_sheets_task"]
