from .phases import choose_applicant_pool, list_parents, resolve_relevant_phases
from .batch_loader import BatchedData, BatchLoader
from .evaluation import EvaluationEngine, evaluate
from .assembler import assemble, governing_registration_id, status_text
from .attachments import collect_attachment_files, merge_pdfs
from .sheet_generator import SheetGenerator

__all__ = [
    "choose_applicant_pool",
    "list_parents",
    "resolve_relevant_phases",
    "BatchedData",
    "BatchLoader",
    "EvaluationEngine",
    "evaluate",
    "assemble",
    "governing_registration_id",
    "status_text",
    "collect_attachment_files",
    "merge_pdfs",
    "SheetGenerator",
]
