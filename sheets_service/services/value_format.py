"""
Display formatting for raw registration answers.

Answers are stored as text: ISO dates, JSON lists (multi-select answers) and
JSON lists of objects (repeater groups). The output is HTML-ready text that the
sheet template inserts as-is.
"""

from __future__ import annotations

import html
import json
import re
import unicodedata
from typing import Any

ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
ISO_DATETIME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}:\d{2}:\d{2})")

IGNORED_OBJECT_KEYS = {"$$hashKey"}


def _is_scalar(item: Any) -> bool:
    return isinstance(item, (str, int, float)) and not isinstance(item, bool)


def format_value(raw: Any) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        return html.escape(str(raw))

    match = ISO_DATE.match(raw)
    if match:
        year, month, day = match.groups()
        return f"{day}/{month}/{year}"

    match = ISO_DATETIME.match(raw)
    if match:
        year, month, day, clock = match.groups()
        return f"{day}/{month}/{year} {clock}"

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None

    if isinstance(parsed, list):
        if all(_is_scalar(item) for item in parsed):
            return "<br/>".join(html.escape(str(item)) for item in parsed)
        if all(isinstance(item, dict) for item in parsed):
            lines = []
            for obj in parsed:
                parts = [
                    f"{html.escape(str(k))}: {html.escape(str(v))}"
                    for k, v in obj.items()
                    if k not in IGNORED_OBJECT_KEYS
                ]
                lines.append("; ".join(parts))
            return "<br/><br/>".join(lines)

    return html.escape(raw)


def slugify_name(name: str | None) -> str:
    """Accent-free, lower-case, dash separated name used in output file names."""
    text = unicodedata.normalize("NFD", name or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"\s+", "-", text.strip().lower())
    text = re.sub(r"[^a-z0-9\-]", "", text)
    return text or "sem-nome"
