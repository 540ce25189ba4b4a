from __future__ import annotations

import html
from typing import Any


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def sanitize_input(value: Any) -> Any:
    """
    Trim and HTML-escape every string in a JSON-like structure.
    Non-string scalars pass through untouched.
    """
    if isinstance(value, str):
        return escape_html(value.strip())
    if isinstance(value, list):
        return [sanitize_input(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_input(v) for k, v in value.items()}
    return value
