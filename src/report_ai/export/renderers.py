"""Format encoders turning a template plus plain data into document bytes."""

from __future__ import annotations

import io
import json
from typing import Any, Dict, List, Mapping, Protocol, Sequence

from docx import Document
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from pptx import Presentation
from pptx.util import Pt

from .templating import render_template

DEFAULT_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body>
<h1>{{ title }}</h1>
{% if generated_at %}<p class="generated">Generated at {{ generated_at }}</p>{% endif %}
{% for section in sections %}
<section>
<h2>{{ section.title }}</h2>
{% for line in section.content.splitlines() %}<p>{{ line }}</p>
{% endfor %}
</section>
{% endfor %}
</body>
</html>
"""


class IDocumentRenderer(Protocol):
    format: str
    content_type: str

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        """Encode ``data`` (shaped by ``template``) into the target format."""


def _sections(data: Mapping[str, Any]) -> List[Dict[str, str]]:
    sections = data.get("sections") or []
    return [
        {"title": str(section.get("title", "")), "content": _as_text(section.get("content"))}
        for section in sections
        if isinstance(section, Mapping)
    ]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str, indent=2)


class HtmlRenderer:
    format = "html"
    content_type = "text/html; charset=utf-8"

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        context = {**data, "sections": _sections(data)}
        html = render_template(template or DEFAULT_HTML_TEMPLATE, context, html=True)
        return html.encode("utf-8")


class DocxRenderer:
    """Word document: title heading, rendered template body, then one heading per section."""

    format = "docx"
    content_type = (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        document = Document()
        title = data.get("title")
        if title:
            document.add_heading(str(title), level=0)

        if template:
            for line in render_template(template, data).splitlines():
                if line.strip():
                    document.add_paragraph(line)

        for section in _sections(data):
            document.add_heading(section["title"], level=1)
            for line in section["content"].splitlines():
                if line.strip():
                    document.add_paragraph(line)

        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()


class XlsxRenderer:
    """Workbook with a Report sheet and, when ``rows`` is present, a Data sheet."""

    format = "xlsx"
    content_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Report"

        sheet.append([str(data.get("title", ""))])
        sheet["A1"].font = Font(bold=True, size=14)
        if template:
            for line in render_template(template, data).splitlines():
                sheet.append([line])
        sheet.append([])

        sheet.append(["Section", "Content"])
        for cell in sheet[sheet.max_row]:
            cell.font = Font(bold=True)
        for section in _sections(data):
            sheet.append([section["title"], section["content"]])
        sheet.column_dimensions["A"].width = 28
        sheet.column_dimensions["B"].width = 80

        rows = data.get("rows")
        if isinstance(rows, Sequence) and rows:
            self._write_rows(workbook, [row for row in rows if isinstance(row, Mapping)])

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def _write_rows(workbook: Workbook, rows: List[Mapping[str, Any]]) -> None:
        sheet = workbook.create_sheet("Data")
        headers: List[str] = []
        for row in rows:
            headers.extend(key for key in row if key not in headers)
        sheet.append(headers)
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        for row in rows:
            sheet.append([_cell_value(row.get(header)) for header in headers])
        for index, header in enumerate(headers, 1):
            sheet.column_dimensions[get_column_letter(index)].width = max(12, len(header) + 2)
        sheet.freeze_panes = "A2"


def _cell_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return _as_text(value)


class PdfRenderer:
    """PDF printed by WeasyPrint from the HTML rendering of the same data."""

    format = "pdf"
    content_type = "application/pdf"

    def __init__(self, html: HtmlRenderer | None = None) -> None:
        self._html = html or HtmlRenderer()

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        # weasyprint loads pango at import time
        import weasyprint

        html = self._html.render(template, data).decode("utf-8")
        return weasyprint.HTML(string=html).write_pdf()


class PptxRenderer:
    """Title slide, an optional slide for the rendered template, then one slide per section."""

    format = "pptx"
    content_type = (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    )
    TITLE_LAYOUT = 0
    CONTENT_LAYOUT = 1

    def render(self, template: str, data: Mapping[str, Any]) -> bytes:
        presentation = Presentation()

        title_slide = presentation.slides.add_slide(
            presentation.slide_layouts[self.TITLE_LAYOUT]
        )
        title_slide.shapes.title.text = str(data.get("title", ""))
        if data.get("generated_at"):
            title_slide.placeholders[1].text = f"Generated at {data['generated_at']}"

        if template:
            self._add_content_slide(
                presentation, str(data.get("title", "")), render_template(template, data)
            )
        for section in _sections(data):
            self._add_content_slide(presentation, section["title"], section["content"])

        buffer = io.BytesIO()
        presentation.save(buffer)
        return buffer.getvalue()

    def _add_content_slide(self, presentation: Any, title: str, content: str) -> None:
        slide = presentation.slides.add_slide(
            presentation.slide_layouts[self.CONTENT_LAYOUT]
        )
        slide.shapes.title.text = title
        body = slide.placeholders[1].text_frame
        lines = [line for line in content.splitlines() if line.strip()] or [""]
        body.text = lines[0]
        for line in lines[1:]:
            body.add_paragraph().text = line
        for paragraph in body.paragraphs:
            for run in paragraph.runs:
                run.font.size = Pt(18)


def default_renderers() -> List[IDocumentRenderer]:
    return [HtmlRenderer(), DocxRenderer(), XlsxRenderer(), PdfRenderer(), PptxRenderer()]
