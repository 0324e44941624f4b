"""
HTML template for the registration sheet ("ficha de inscrição").
One page section per phase, root phase first. Field values arrive already
formatted and escaped; every other piece of text is escaped here.
"""

from __future__ import annotations

import base64
import logging
from html import escape
from typing import Iterable, Tuple

from sheets_service.core import settings
from sheets_service.schemas.sheets import ApplicantDocument, EvaluationResult, PhaseSheet

logger = logging.getLogger("app_logger")


BASE_TEMPLATE = """<!DOCTYPE html>
<html lang="pt-BR">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>{bootstrap_css}</style>
    <style>
        body {{
            font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
            font-size: 12px;
            color: #333333;
        }}
        .header {{
            text-align: center;
            border-bottom: 2px solid #dee2e6;
            padding-bottom: 12px;
            margin-bottom: 18px;
        }}
        .header img {{
            max-height: 80px;
        }}
        .phase {{
            margin-bottom: 24px;
            page-break-inside: auto;
        }}
        .phase h2 {{
            font-size: 16px;
            background-color: #f0f0f0;
            padding: 6px 10px;
        }}
        .status {{
            font-weight: 600;
            color: #0d6efd;
        }}
        .field-table th {{
            width: 35%;
            background-color: #fafafa;
        }}
        .evaluation {{
            border: 1px solid #dee2e6;
            padding: 10px;
            margin-top: 10px;
        }}
        .parecer {{
            white-space: pre-wrap;
        }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            {logo_block}
            <h1 class="h4">Ficha de Inscrição</h1>
            <p><strong>Inscrição:</strong> {registration_number}</p>
            <p><strong>Agente:</strong> {agent_name}</p>
        </div>
        {phases_block}
    </div>
</body>
</html>
"""


def load_assets() -> Tuple[str, str]:
    """Logo (base64) and Bootstrap CSS embedded in every sheet. Missing assets only degrade styling."""
    logo_b64 = ""
    bootstrap_css = ""
    try:
        with open(settings.LOGO_PATH, "rb") as fh:
            logo_b64 = base64.b64encode(fh.read()).decode("ascii")
    except OSError:
        logger.warning(f"Could not read logo at {settings.LOGO_PATH}; sheets will have no logo")
    try:
        with open(settings.BOOTSTRAP_CSS_PATH, "r", encoding="utf-8") as fh:
            bootstrap_css = fh.read()
    except OSError:
        logger.warning(f"Could not read Bootstrap CSS at {settings.BOOTSTRAP_CSS_PATH}; sheets may lack styles")
    return logo_b64, bootstrap_css


def _format_score(score: float) -> str:
    return f"{score:g}"


def _build_field_table(phase_sheet: PhaseSheet) -> str:
    if not phase_sheet.rows:
        return '<p class="text-muted">Nenhum campo preenchido nesta fase.</p>'
    table_rows = "".join(
        f"<tr><th>{escape(row.label)}</th><td>{row.value}</td></tr>" for row in phase_sheet.rows
    )
    return f"""
    <table class="table table-sm table-bordered field-table">
        <tbody>
            {table_rows}
        </tbody>
    </table>
    """


def _build_criteria_rows(criteria: Iterable) -> str:
    return "".join(
        f"<tr><td>{escape(c.label)}</td><td>{_format_score(c.score)}</td></tr>" for c in criteria
    )


def _build_evaluation_block(evaluation: EvaluationResult) -> str:
    parts = []
    if evaluation.has_technical:
        for section in evaluation.sections:
            parts.append(
                f"""
                <h3 class="h6">{escape(section.title)}</h3>
                <table class="table table-sm">
                    <thead><tr><th>Critério</th><th>Nota</th></tr></thead>
                    <tbody>{_build_criteria_rows(section.criteria)}</tbody>
                </table>
                """
            )
    if evaluation.has_technical or evaluation.has_simplified:
        parts.append(f"<p><strong>Pontuação total:</strong> {_format_score(evaluation.total)}</p>")
    if evaluation.status:
        parts.append(f"<p><strong>Status da avaliação:</strong> {escape(evaluation.status)}</p>")
    if evaluation.parecer:
        parts.append(f'<p><strong>Parecer:</strong></p><p class="parecer">{escape(evaluation.parecer)}</p>')
    if not parts:
        return ""
    return f'<div class="evaluation"><h3 class="h6">Avaliação</h3>{"".join(parts)}</div>'


def _build_attachment_list(attachments: Iterable[str]) -> str:
    items = "".join(f"<li>{escape(name)}</li>" for name in attachments)
    if not items:
        return ""
    return f"<p><strong>Anexos:</strong></p><ul>{items}</ul>"


def _build_phase_block(phase_sheet: PhaseSheet) -> str:
    status = f'<p class="status">{escape(phase_sheet.status_text)}</p>' if phase_sheet.status_text else ""
    return f"""
    <div class="phase">
        <h2>{escape(phase_sheet.phase.name or str(phase_sheet.phase.id))}</h2>
        {status}
        {_build_field_table(phase_sheet)}
        {_build_evaluation_block(phase_sheet.evaluation)}
        {_build_attachment_list(phase_sheet.attachments)}
    </div>
    """


def render_registration_sheet(document: ApplicantDocument, logo_b64: str = "", bootstrap_css: str = "") -> str:
    logo_block = f'<img src="data:image/png;base64,{logo_b64}" alt="Logo">' if logo_b64 else ""
    return BASE_TEMPLATE.format(
        title=f"Ficha {escape(document.registration_number)}",
        bootstrap_css=bootstrap_css,
        logo_block=logo_block,
        registration_number=escape(document.registration_number),
        agent_name=escape(document.agent.name),
        phases_block="".join(_build_phase_block(p) for p in document.phases),
    )
