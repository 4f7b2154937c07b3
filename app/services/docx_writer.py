"""Render generated Markdown into a Word document with python-docx."""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-{3,}")
_INLINE_MARKUP_RE = re.compile(r"(\*\*|__|`)")


def _plain(text: str) -> str:
    """Drop inline emphasis markers; Word styling is applied per paragraph."""
    return _INLINE_MARKUP_RE.sub("", text).strip()


def _add_bullet(doc, text: str, style: str = "List Bullet"):
    p = doc.add_paragraph(style=style)
    bold = re.match(r"^\*\*(.+?)\*\*:?\s*(.*)$", text)
    if bold:
        run = p.add_run(bold.group(1) + ":")
        run.bold = True
        p.add_run(f" {_plain(bold.group(2))}")
    else:
        p.add_run(_plain(text))
    return p


def _add_code(doc, text: str):
    p = doc.add_paragraph()
    run = p.add_run(text)
    run.font.name = "Consolas"
    run.font.size = Pt(9)
    run.font.color.rgb = RGBColor(40, 40, 40)
    pf = p.paragraph_format
    pf.space_before = Pt(4)
    pf.space_after = Pt(4)
    return p


def _add_table(doc, rows: List[List[str]]):
    cols = max(len(r) for r in rows)
    table = doc.add_table(rows=len(rows), cols=cols)
    table.style = "Table Grid"
    for i, row in enumerate(rows):
        for j, cell in enumerate(row):
            table.cell(i, j).text = _plain(cell)
            if i == 0:
                for run in table.cell(i, j).paragraphs[0].runs:
                    run.bold = True
    return table


def markdown_to_docx(markdown_text: str, path: Path, title: Optional[str] = None) -> Path:
    """
    Write *markdown_text* to *path* as .docx.

    Supports headings, bullet and numbered lists, fenced code blocks, pipe
    tables and plain paragraphs; anything else becomes a paragraph.
    """
    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    if title:
        heading = doc.add_heading(title, level=0)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    in_code = False
    code_lines: List[str] = []
    table_rows: List[List[str]] = []

    def flush_table() -> None:
        if table_rows:
            _add_table(doc, table_rows)
            table_rows.clear()

    for line in markdown_text.splitlines():
        if line.strip().startswith("```"):
            if in_code:
                _add_code(doc, "\n".join(code_lines))
                code_lines = []
            else:
                flush_table()
            in_code = not in_code
            continue
        if in_code:
            code_lines.append(line)
            continue

        stripped = line.strip()
        if stripped.startswith("|"):
            if not _TABLE_SEPARATOR_RE.match(stripped):
                table_rows.append([c.strip() for c in stripped.strip("|").split("|")])
            continue
        flush_table()

        if not stripped:
            continue

        heading = _HEADING_RE.match(stripped)
        if heading:
            text = _plain(heading.group(2))
            # The title was already written as level 0
            if title and len(heading.group(1)) == 1 and text == title:
                continue
            doc.add_heading(text, level=min(len(heading.group(1)), 4))
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            _add_bullet(doc, bullet.group(1))
            continue

        numbered = _NUMBERED_RE.match(line)
        if numbered:
            _add_bullet(doc, numbered.group(1), style="List Number")
            continue

        doc.add_paragraph(_plain(stripped))

    if in_code and code_lines:
        _add_code(doc, "\n".join(code_lines))
    flush_table()

    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(path))
    return path


def docx_to_markdown(path: Path) -> str:
    """
    Read a .docx back as Markdown-ish text.

    Heading and list styles become ``#`` and ``-``/``1.`` prefixes and tables
    become pipe rows, so structure checks see the same shape as the Markdown
    output.  Paragraphs come first, then tables.
    """
    doc = Document(str(path))
    lines: List[str] = []

    for p in doc.paragraphs:
        text = p.text.strip()
        if not text:
            continue
        style = p.style.name if p.style is not None else ""
        if style == "Title":
            lines.append(f"# {text}")
        elif style.startswith("Heading"):
            level = style.rsplit(" ", 1)[-1]
            lines.append(f"{'#' * (int(level) if level.isdigit() else 1)} {text}")
        elif style.startswith("List Bullet"):
            lines.append(f"- {text}")
        elif style.startswith("List Number"):
            lines.append(f"1. {text}")
        else:
            lines.append(text)

    for table in doc.tables:
        lines.append("")
        for row in table.rows:
            lines.append("| " + " | ".join(cell.text.strip() for cell in row.cells) + " |")

    return "\n".join(lines)
