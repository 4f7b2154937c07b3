"""
Output directory management for generated documents.

Layout::

    {output_dir}/
        README.md                 index grouped by category
        {category}/{key}.md       one file per task (.json / .docx per format)
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import aiofiles

from app.services.docx_writer import markdown_to_docx
from app.services.generation_tasks import GenerationTask, get_available_categories
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

INDEX_FILENAME = "README.md"
CONTEXT_FILES = ("README.md", "PROJECT.md")

_EXTENSIONS = {"markdown": ".md", "json": ".json", "docx": ".docx"}


def output_path(output_dir: Path, task: GenerationTask, fmt: str = "markdown") -> Path:
    """Where *task* is written for format *fmt*."""
    try:
        ext = _EXTENSIONS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported output format '{fmt}'") from None
    return Path(output_dir) / task.category / f"{task.key}{ext}"


def render_json_table(columns: Sequence[str], rows: Any) -> str:
    """Render a list of JSON objects as a markdown pipe table."""
    if isinstance(rows, dict):
        rows = [rows]
    if not isinstance(rows, list):
        return f"```json\n{json.dumps(rows, indent=2, ensure_ascii=False)}\n```"

    columns = list(columns) or sorted({k for r in rows if isinstance(r, dict) for k in r})
    header = "| " + " | ".join(c.replace("_", " ").title() for c in columns) + " |"
    separator = "| " + " | ".join("---" for _ in columns) + " |"
    lines = [header, separator]
    for row in rows:
        if not isinstance(row, dict):
            continue
        cells = [str(row.get(c, "")).replace("|", "\\|").replace("\n", " ") for c in columns]
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


async def save_document(
    output_dir: Path,
    task: GenerationTask,
    content: str,
    fmt: str = "markdown",
    data: Optional[Any] = None,
) -> Path:
    """
    Write one generated document and return its path.

    markdown: a title/generated-at header followed by *content*.
    json:     ``{key, name, category, generated_at, content}`` plus ``data``
              when the task produced structured output.
    docx:     *content* rendered through python-docx.
    """
    path = output_path(output_dir, task, fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    generated_at = utcnow().isoformat()

    if fmt == "docx":
        await asyncio.to_thread(markdown_to_docx, content, path, task.name)
    elif fmt == "json":
        payload: Dict[str, Any] = {
            "key": task.key,
            "name": task.name,
            "category": task.category,
            "generated_at": generated_at,
            "content": content,
        }
        if data is not None:
            payload["data"] = data
        async with aiofiles.open(path, "w", encoding="utf-8") as out:
            await out.write(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        body = content.strip()
        if not body.startswith("# "):
            body = f"# {task.name}\n\n{body}"
        header = f"<!-- Generated by ADPA on {generated_at} | task: {task.key} -->\n\n"
        async with aiofiles.open(path, "w", encoding="utf-8") as out:
            await out.write(header + body + "\n")

    logger.info("✓ Saved %s → %s", task.key, path)
    return path


async def generate_index_file(output_dir: Path, documents: Iterable[Dict[str, Any]]) -> Path:
    """
    Write README.md listing every generated document, grouped by category.

    Each entry in *documents* needs ``name``, ``category`` and ``path``.
    """
    output_dir = Path(output_dir)
    by_category: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for doc in documents:
        by_category[doc["category"]].append(doc)

    total = sum(len(docs) for docs in by_category.values())
    lines = [
        "# Project Documentation",
        "",
        f"Generated by ADPA on {utcnow().strftime('%Y-%m-%d %H:%M UTC')}.",
        f"{total} document(s) in {len(by_category)} categor{'y' if len(by_category) == 1 else 'ies'}.",
        "",
    ]
    for category in sorted(by_category):
        lines.append(f"## {category.replace('-', ' ').title()}")
        lines.append("")
        for doc in sorted(by_category[category], key=lambda d: d["name"]):
            rel = Path(doc["path"]).relative_to(output_dir).as_posix()
            lines.append(f"- [{doc['name']}]({rel})")
        lines.append("")

    index_path = output_dir / INDEX_FILENAME
    index_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(index_path, "w", encoding="utf-8") as out:
        await out.write("\n".join(lines))
    logger.info("✓ Index written → %s", index_path)
    return index_path


def cleanup_output_dir(output_dir: Path) -> List[Path]:
    """
    Remove previously generated category folders and the index.

    Unrelated files and ``.git`` are kept.  Returns what was removed.
    """
    output_dir = Path(output_dir)
    if not output_dir.exists():
        return []

    removed: List[Path] = []
    categories = set(get_available_categories())
    for entry in output_dir.iterdir():
        if entry.is_dir() and entry.name in categories:
            shutil.rmtree(entry)
            removed.append(entry)
        elif entry.is_file() and entry.name == INDEX_FILENAME:
            entry.unlink()
            removed.append(entry)

    if removed:
        logger.info("Cleaned %d generated entr(ies) from %s", len(removed), output_dir)
    return removed


def read_project_context(project_dir: Path, max_chars: int = 20000) -> str:
    """
    Concatenate README.md, PROJECT.md and docs/*.md from *project_dir*.

    Raises ``FileNotFoundError`` if none of them exist.  The result is cut
    to *max_chars*.
    """
    project_dir = Path(project_dir)
    candidates = [project_dir / name for name in CONTEXT_FILES]
    docs_dir = project_dir / "docs"
    if docs_dir.is_dir():
        candidates += sorted(docs_dir.glob("*.md"))

    sections: List[str] = []
    for path in candidates:
        if path.is_file():
            text = path.read_text(encoding="utf-8", errors="replace").strip()
            if text:
                sections.append(f"--- {path.relative_to(project_dir).as_posix()} ---\n{text}")

    if not sections:
        raise FileNotFoundError(
            f"No project context found in {project_dir} "
            f"(looked for {', '.join(CONTEXT_FILES)} and docs/*.md)"
        )

    context = "\n\n".join(sections)
    if len(context) > max_chars:
        logger.warning(
            "Project context truncated from %d to %d characters", len(context), max_chars
        )
        context = context[:max_chars]
    return context
