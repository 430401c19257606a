"""Run grep over a checkout."""

from __future__ import annotations

import shlex
import subprocess
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..logging import get_logger

# grep exits with 1 when no lines were selected.
GREP_EXIT_NO_MATCHES = 1

logger = get_logger("search.grep")


class SearchExecutionError(RuntimeError):
    """Raised when grep fails for a reason other than finding nothing."""


class SearchMode(str, Enum):
    """Shape of the output grep is asked to produce."""

    MATCH = "match"
    COUNT = "count"

    @property
    def flag(self) -> str:
        return "--only-matching" if self is SearchMode.MATCH else "--count"


class GrepSearcher:
    """Builds and runs a recursive, case-insensitive multi-pattern grep."""

    def __init__(
        self,
        runner: Callable[..., "subprocess.CompletedProcess[str]"] | None = None,
        *,
        mode: SearchMode = SearchMode.MATCH,
    ) -> None:
        self._runner = runner or self._default_runner
        self.mode = mode

    def build_command(
        self, path: Path | str, search_words: Sequence[str], exclude_dirs: Sequence[str]
    ) -> List[str]:
        args = ["grep"]
        args.extend(f"--exclude-dir={name}" for name in exclude_dirs)
        args.extend(f"--regexp={word}" for word in search_words)
        args.extend(["--recursive", "--ignore-case", self.mode.flag, str(path)])
        return args

    def search(
        self, path: Path | str, search_words: Sequence[str], exclude_dirs: Sequence[str]
    ) -> str:
        """Return grep's raw stdout, or an empty string when nothing matched."""
        if not search_words:
            logger.debug("No search words given; skipping grep for %s", path)
            return ""

        args = self.build_command(path, search_words, exclude_dirs)
        logger.info("running command: %s", shlex.join(args))
        try:
            completed = self._runner(args)
        except OSError as exc:
            raise SearchExecutionError(f"unable to execute grep command: {exc}") from exc

        stderr = (completed.stderr or "").strip()
        if completed.returncode == 0:
            return completed.stdout or ""
        if completed.returncode == GREP_EXIT_NO_MATCHES and not stderr:
            return ""
        detail = stderr or f"exit status {completed.returncode}"
        raise SearchExecutionError(f"unable to execute grep command: {detail}")

    @staticmethod
    def _default_runner(args: Iterable[str]) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(
            list(args),
            check=False,
            text=True,
            capture_output=True,
            errors="replace",
        )


__all__ = ["GREP_EXIT_NO_MATCHES", "GrepSearcher", "SearchExecutionError", "SearchMode"]
