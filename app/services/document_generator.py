"""
Fan-out document generation.

DocumentGenerator runs a filtered set of catalogue tasks against an AI
provider.  At most ``max_concurrent`` provider calls are in flight at once;
each call goes through ``run_with_retry``; results are written by
``file_manager`` and summarised in a ``GenerationResult``.

Public API
----------
DocumentGenerator.filter_tasks()                         -> List[GenerationTask]
DocumentGenerator.generate_all()                         -> GenerationResult
DocumentGenerator.generate_from_template(template, vals) -> str
DocumentGenerator.validate_generation()                  -> ValidationResult
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from app.config import settings
from app.services import file_manager
from app.services.ai_provider import AIClient, AIProviderClient
from app.services.generation_tasks import (
    GENERATION_TASKS,
    JSON_OUTPUT,
    GenerationTask,
    build_prompts,
    build_template_prompts,
    get_task,
)
from app.services.retry import RetryPolicy, run_with_retry
from app.services.template_renderer import render_template
from app.utils.json_parsing import parse_json_robust

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("markdown", "json", "docx")

# event name ("started" | "completed" | "failed" | "skipped"), task, error
ProgressCallback = Callable[[str, GenerationTask, Optional[BaseException]], None]


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy.from_milliseconds(
        settings.GENERATION_RETRIES,
        settings.GENERATION_RETRY_BACKOFF_MS,
        settings.GENERATION_RETRY_MAX_DELAY_MS,
    )


# ---------------------------------------------------------------------------
# Options and results
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class GenerationOptions:
    include_categories: List[str] = dataclasses.field(default_factory=list)
    exclude_categories: List[str] = dataclasses.field(default_factory=list)
    document_keys: List[str] = dataclasses.field(default_factory=list)
    max_concurrent: int = dataclasses.field(
        default_factory=lambda: settings.GENERATION_MAX_CONCURRENT
    )
    delay_between_calls: float = dataclasses.field(
        default_factory=lambda: settings.GENERATION_DELAY_BETWEEN_CALLS
    )
    continue_on_error: bool = True
    generate_index: bool = True
    cleanup: bool = False
    output_dir: Path = dataclasses.field(default_factory=lambda: Path(settings.OUTPUT_DIR))
    format: str = "markdown"
    retry: RetryPolicy = dataclasses.field(default_factory=default_retry_policy)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if self.delay_between_calls < 0:
            raise ValueError("delay_between_calls must be >= 0")
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(
                f"format must be one of {', '.join(OUTPUT_FORMATS)}, got '{self.format}'"
            )
        self.output_dir = Path(self.output_dir)


@dataclasses.dataclass
class GeneratedDocument:
    key: str
    name: str
    category: str
    path: str
    content: str
    data: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "category": self.category,
            "path": self.path,
            "content": self.content,
        }


@dataclasses.dataclass
class GenerationResult:
    success: bool
    message: str
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    generated_files: List[str] = dataclasses.field(default_factory=list)
    errors: List[Dict[str, str]] = dataclasses.field(default_factory=list)
    duration_seconds: float = 0.0
    documents: List[GeneratedDocument] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class ValidationResult:
    is_complete: bool
    missing: List[str] = dataclasses.field(default_factory=list)


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class DocumentGenerator:
    """Run generation tasks for one project context."""

    def __init__(
        self,
        context: str,
        options: Optional[GenerationOptions] = None,
        ai_client: Optional[AIClient] = None,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.context = context
        self.options = options or GenerationOptions()
        self.ai_client: AIClient = ai_client or AIProviderClient()
        self.on_progress = on_progress
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Task selection
    # ------------------------------------------------------------------

    def filter_tasks(self) -> List[GenerationTask]:
        """
        Tasks this run will generate, ordered by priority then key.

        Explicit ``document_keys`` select the base set (unknown keys raise
        ``KeyError``); category include/exclude filters then apply.
        """
        opts = self.options
        if opts.document_keys:
            tasks = [get_task(key) for key in dict.fromkeys(opts.document_keys)]
        else:
            tasks = list(GENERATION_TASKS)

        if opts.include_categories:
            include = set(opts.include_categories)
            tasks = [t for t in tasks if t.category in include]
        if opts.exclude_categories:
            exclude = set(opts.exclude_categories)
            tasks = [t for t in tasks if t.category not in exclude]

        return sorted(tasks, key=lambda t: (t.priority, t.key))

    # ------------------------------------------------------------------
    # Batch generation
    # ------------------------------------------------------------------

    async def generate_all(self) -> GenerationResult:
        """Generate every filtered task and write the results to disk."""
        started = time.monotonic()
        opts = self.options
        tasks = self.filter_tasks()

        if not tasks:
            return GenerationResult(
                success=False,
                message="No generation tasks matched the selected filters",
            )

        if opts.cleanup:
            file_manager.cleanup_output_dir(opts.output_dir)
        opts.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Generating %d document(s) → %s (max_concurrent=%d, retries=%d)",
            len(tasks),
            opts.output_dir,
            opts.max_concurrent,
            opts.retry.retries,
        )

        semaphore = asyncio.Semaphore(opts.max_concurrent)
        stop = asyncio.Event()
        documents: List[GeneratedDocument] = []
        errors: List[Dict[str, str]] = []
        skipped: List[str] = []

        async def run_one(task: GenerationTask) -> None:
            async with semaphore:
                if stop.is_set():
                    skipped.append(task.key)
                    self._emit("skipped", task)
                    return

                self._emit("started", task)
                try:
                    doc = await self._generate_and_save(task)
                except Exception as exc:
                    logger.error("✗ %s failed: %s", task.key, exc)
                    errors.append({"task": task.key, "error": str(exc)})
                    self._emit("failed", task, exc)
                    if not opts.continue_on_error:
                        stop.set()
                else:
                    documents.append(doc)
                    self._emit("completed", task)

                if opts.delay_between_calls:
                    await self._sleep(opts.delay_between_calls)

        await asyncio.gather(*(run_one(t) for t in tasks))

        if opts.generate_index and documents:
            await file_manager.generate_index_file(
                opts.output_dir, [d.to_dict() for d in documents]
            )

        duration = time.monotonic() - started
        success = not errors and bool(documents)
        message = (
            f"Generated {len(documents)} of {len(tasks)} document(s)"
            + (f", {len(errors)} failed" if errors else "")
            + (f", {len(skipped)} skipped" if skipped else "")
        )
        logger.info("%s %s in %.1fs", "✓" if success else "⚠", message, duration)

        return GenerationResult(
            success=success,
            message=message,
            success_count=len(documents),
            failure_count=len(errors),
            skipped_count=len(skipped),
            generated_files=[d.path for d in documents],
            errors=errors,
            duration_seconds=round(duration, 3),
            documents=documents,
        )

    async def _generate_and_save(self, task: GenerationTask) -> GeneratedDocument:
        content, data = await self.generate_content(task)
        path = await file_manager.save_document(
            self.options.output_dir, task, content, self.options.format, data=data
        )
        return GeneratedDocument(
            key=task.key,
            name=task.name,
            category=task.category,
            path=str(path),
            content=content,
            data=data,
        )

    async def generate_content(self, task: GenerationTask) -> Tuple[str, Optional[Any]]:
        """
        Ask the provider for one task's content.

        JSON tasks are parsed inside the retried operation, so unparseable
        output is retried like a failed call.  Returns ``(markdown, data)``
        where *data* is the parsed JSON for JSON tasks and ``None`` otherwise.
        """
        system_prompt, user_prompt = build_prompts(task, self.context)

        async def operation() -> Tuple[str, Optional[Any]]:
            raw = await self.ai_client.complete(system_prompt, user_prompt)
            if task.output == JSON_OUTPUT:
                data = parse_json_robust(raw)
                table = file_manager.render_json_table(task.json_columns, data)
                return f"# {task.name}\n\n{table}", data
            return raw.strip(), None

        return await run_with_retry(
            operation, self.options.retry, label=task.key, sleep=self._sleep
        )

    # ------------------------------------------------------------------
    # Stored templates
    # ------------------------------------------------------------------

    async def generate_from_template(
        self, template: Any, values: Optional[Mapping[str, str]] = None
    ) -> str:
        """
        Render a stored template's variables and have the provider complete it.

        Raises ``TemplateRenderError`` before any provider call if a required
        variable is missing, and ``RetryExhaustedError`` if the provider keeps
        failing.
        """
        data: Dict[str, Any] = template.template_data or {}
        rendered = render_template(
            data.get("content", ""), data.get("variables") or [], values or {}
        )
        system_prompt, user_prompt = build_template_prompts(template, rendered, self.context)

        async def operation() -> str:
            return (await self.ai_client.complete(system_prompt, user_prompt)).strip()

        return await run_with_retry(
            operation,
            self.options.retry,
            label=f"template:{template.name}",
            sleep=self._sleep,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_generation(self) -> ValidationResult:
        """Check that every expected output file (and the index) exists."""
        opts = self.options
        expected = [
            file_manager.output_path(opts.output_dir, task, opts.format)
            for task in self.filter_tasks()
        ]
        if opts.generate_index:
            expected.append(opts.output_dir / file_manager.INDEX_FILENAME)

        missing = [str(p) for p in expected if not p.exists()]
        return ValidationResult(is_complete=not missing, missing=missing)

    def _emit(
        self, event: str, task: GenerationTask, error: Optional[BaseException] = None
    ) -> None:
        if self.on_progress is not None:
            self.on_progress(event, task, error)
