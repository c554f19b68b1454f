"""Template string rendering: ``(template, data) -> str``."""

from __future__ import annotations

from typing import Any, Mapping

from jinja2 import BaseLoader, Environment, TemplateError

from report_ai.domain.exceptions import ExportError

_TEXT_ENV = Environment(loader=BaseLoader(), autoescape=False, keep_trailing_newline=True)
_HTML_ENV = Environment(loader=BaseLoader(), autoescape=True, keep_trailing_newline=True)


def render_template(template: str, data: Mapping[str, Any], *, html: bool = False) -> str:
    """Render ``template`` with ``data``; missing variables render as empty strings."""

    env = _HTML_ENV if html else _TEXT_ENV
    try:
        return env.from_string(template).render(**data)
    except TemplateError as exc:
        raise ExportError(
            f"Template rendering failed: {exc.message or exc}",
            context={"template": template[:200]},
        ) from exc
