"""
Git operations on the generated documents directory.
"""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from app.errors import VCSError

logger = logging.getLogger(__name__)

_DEFAULT_IDENTITY = {
    "GIT_AUTHOR_NAME": "ADPA",
    "GIT_AUTHOR_EMAIL": "adpa@localhost",
    "GIT_COMMITTER_NAME": "ADPA",
    "GIT_COMMITTER_EMAIL": "adpa@localhost",
}


class GitRepository:
    """Thin wrapper over the ``git`` executable for one working tree."""

    def __init__(self, path: Path, git_executable: str = "git") -> None:
        self.path = Path(path)
        self.git = git_executable

    def _run(self, *args: str) -> str:
        env = dict(os.environ)
        for key, value in _DEFAULT_IDENTITY.items():
            env.setdefault(key, value)
        try:
            proc = subprocess.run(
                [self.git, *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                env=env,
            )
        except FileNotFoundError as exc:
            raise VCSError(f"git executable '{self.git}' not found") from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or proc.stdout).strip()
            raise VCSError(f"git {' '.join(args)} failed ({proc.returncode}): {stderr}")
        return proc.stdout.strip()

    @property
    def is_repository(self) -> bool:
        return (self.path / ".git").exists()

    def init(self) -> str:
        self.path.mkdir(parents=True, exist_ok=True)
        if self.is_repository:
            return f"Already a git repository: {self.path}"
        out = self._run("init")
        logger.info("✓ Initialised git repository in %s", self.path)
        return out

    def status(self) -> List[str]:
        """Porcelain status lines; empty when the tree is clean."""
        out = self._run("status", "--porcelain")
        return [line for line in out.splitlines() if line.strip()]

    def commit(self, message: str) -> Optional[str]:
        """Stage everything and commit. Returns ``None`` if there was nothing to commit."""
        self._run("add", "-A")
        if not self.status():
            logger.info("Nothing to commit in %s", self.path)
            return None
        out = self._run("commit", "-m", message)
        logger.info("✓ Committed generated documents: %s", message)
        return out

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> str:
        args = ["push", remote]
        if branch:
            args.append(branch)
        out = self._run(*args)
        logger.info("✓ Pushed to %s", remote)
        return out
