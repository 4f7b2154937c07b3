"""
In-memory singleton that tracks background document generation jobs.

Usage
-----
    from app.services.job_manager import job_manager

    status = job_manager.start(lambda status: run_generation(request, status))
    # ... later ...
    current = job_manager.get_status(status.job_id)
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import time
import uuid
from typing import Any, Callable, Coroutine, Dict, List, Optional

from app.config import settings
from app.utils.helpers import truncate_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job phase enum
# ---------------------------------------------------------------------------

class JobPhase(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = (JobPhase.COMPLETED, JobPhase.FAILED)


# ---------------------------------------------------------------------------
# Job status (mutable dataclass shared between task and poller)
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class JobStatus:
    job_id: str
    phase: JobPhase = JobPhase.QUEUED
    total_documents: int = 0
    documents_completed: int = 0
    documents_failed: int = 0
    current_document: Optional[str] = None
    generated_files: List[str] = dataclasses.field(default_factory=list)
    document_ids: List[int] = dataclasses.field(default_factory=list)
    errors: List[str] = dataclasses.field(default_factory=list)
    started_at: float = dataclasses.field(default_factory=time.monotonic)
    completed_at: Optional[float] = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.completed_at if self.completed_at else time.monotonic()
        return round(end - self.started_at, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "phase": self.phase.value,
            "total_documents": self.total_documents,
            "documents_completed": self.documents_completed,
            "documents_failed": self.documents_failed,
            "current_document": self.current_document,
            "generated_files": list(self.generated_files),
            "document_ids": list(self.document_ids),
            "errors": list(self.errors),
            "elapsed_seconds": self.elapsed_seconds,
        }


JobFactory = Callable[[JobStatus], Coroutine[Any, Any, Any]]


# ---------------------------------------------------------------------------
# Job manager (class-level state; acts as a singleton)
# ---------------------------------------------------------------------------

class GenerationJobManager:
    """Manages background generation asyncio.Tasks keyed by job id."""

    _tasks: Dict[str, asyncio.Task] = {}
    _status: Dict[str, JobStatus] = {}

    # Oldest finished statuses beyond this are dropped
    history_limit: int = settings.GENERATION_JOB_HISTORY

    @classmethod
    def is_running(cls, job_id: str) -> bool:
        task = cls._tasks.get(job_id)
        return task is not None and not task.done()

    @classmethod
    def get_status(cls, job_id: str) -> Optional[JobStatus]:
        return cls._status.get(job_id)

    @classmethod
    def start(cls, coro_factory: JobFactory) -> JobStatus:
        """
        Launch a background job.

        *coro_factory* receives the job's ``JobStatus`` and returns the
        coroutine to run; the coroutine updates the status in place and is
        expected to set a terminal phase.  Returns the status immediately.
        """
        status = JobStatus(job_id=uuid.uuid4().hex)
        cls._status[status.job_id] = status
        coro = coro_factory(status)

        async def _wrapper() -> None:
            try:
                await coro
            except Exception as exc:
                logger.error(
                    "Generation job %s failed: %s", status.job_id, exc, exc_info=True
                )
                status.phase = JobPhase.FAILED
                status.errors.append(f"job crash: {truncate_text(str(exc))}")
            finally:
                status.completed_at = time.monotonic()
                status.current_document = None
                if status.phase not in TERMINAL_PHASES:
                    status.phase = JobPhase.FAILED
                    status.errors.append("job ended without reporting completion")

        task = asyncio.create_task(_wrapper())
        cls._tasks[status.job_id] = task

        # Cleanup reference when done
        task.add_done_callback(lambda _t: cls._cleanup(status.job_id))

        logger.info("Generation job %s started", status.job_id)
        return status

    @classmethod
    async def wait(cls, job_id: str) -> Optional[JobStatus]:
        """Block until the job has finished; returns its final status."""
        status = cls._status.get(job_id)
        task = cls._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return status

    @classmethod
    def _cleanup(cls, job_id: str) -> None:
        """Remove the task reference and evict finished statuses past ``history_limit``."""
        cls._tasks.pop(job_id, None)
        finished = [
            jid for jid, status in cls._status.items()
            if jid not in cls._tasks and status.phase in TERMINAL_PHASES
        ]
        finished.sort(key=lambda jid: cls._status[jid].completed_at or 0.0)
        for jid in finished[: max(len(finished) - cls.history_limit, 0)]:
            del cls._status[jid]


# Module-level singleton instance
job_manager = GenerationJobManager
