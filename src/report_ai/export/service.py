"""Export entry point: ``render(format, template, data) -> bytes + content type``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from report_ai.domain.exceptions import ExportError, UnsupportedExportFormatError
from report_ai.storage.models import Report

from .renderers import IDocumentRenderer, default_renderers


class ExportFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    XLSX = "xlsx"
    PPTX = "pptx"
    HTML = "html"


@dataclass(frozen=True)
class ExportResult:
    content: bytes
    content_type: str
    format: ExportFormat

    @property
    def size(self) -> int:
        return len(self.content)


def report_payload(report: Report) -> Dict[str, Any]:
    """Plain data object for a stored report, as renderers expect it."""

    content = report.content
    payload: Dict[str, Any] = {
        "title": report.title,
        "status": report.status.value,
        "tags": list(report.tags),
        "metadata": dict(report.metadata),
        "created_at": report.created_at.isoformat(),
        "updated_at": report.updated_at.isoformat(),
    }
    if isinstance(content, Mapping):
        payload.update({key: value for key, value in content.items() if key != "title"})
    elif content is not None:
        payload["sections"] = [{"title": report.title, "content": str(content)}]
    return payload


class ExportService:
    """Registry of renderers keyed by format; ``register`` replaces a built-in."""

    def __init__(
        self,
        renderers: Optional[Iterable[IDocumentRenderer]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._renderers: Dict[ExportFormat, IDocumentRenderer] = {}
        self._logger = logger or logging.getLogger(__name__)
        for renderer in default_renderers() if renderers is None else renderers:
            self.register(renderer)

    def register(self, renderer: IDocumentRenderer) -> None:
        self._renderers[self._resolve_format(renderer.format)] = renderer

    def supported_formats(self) -> List[ExportFormat]:
        return list(self._renderers)

    def render(
        self, format: ExportFormat | str, template: str, data: Mapping[str, Any]
    ) -> ExportResult:
        export_format = self._resolve_format(format)
        renderer = self._renderers.get(export_format)
        if renderer is None:
            raise UnsupportedExportFormatError(
                f"No renderer registered for '{export_format.value}'",
                context={"supported": [item.value for item in self._renderers]},
            )

        try:
            content = renderer.render(template, data)
        except ExportError:
            raise
        except Exception as exc:
            raise ExportError(
                f"{export_format.value} rendering failed: {exc}",
                context={"format": export_format.value},
            ) from exc

        self._logger.info(
            "export_rendered",
            extra={"format": export_format.value, "size": len(content)},
        )
        return ExportResult(
            content=content, content_type=renderer.content_type, format=export_format
        )

    def render_report(
        self, format: ExportFormat | str, report: Report, template: str = ""
    ) -> ExportResult:
        return self.render(format, template, report_payload(report))

    @staticmethod
    def _resolve_format(value: ExportFormat | str) -> ExportFormat:
        try:
            return ExportFormat(str(value).lower()) if not isinstance(value, ExportFormat) else value
        except ValueError as exc:
            raise UnsupportedExportFormatError(
                f"Unknown export format '{value}'",
                context={"known": [item.value for item in ExportFormat]},
            ) from exc
