"""Clone repositories into disposable temporary checkouts."""

from __future__ import annotations

import shlex
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable

from ..config import RepositoryConfig
from ..logging import get_logger

_TEMP_PREFIX = "reposearch-clone-"

logger = get_logger("git.clone")


class AcquisitionError(RuntimeError):
    """Raised when a repository cannot be materialized locally."""


class Checkout:
    """Handle on a cloned repository that owns its temporary directory."""

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Remove the checkout directory. Safe to call more than once; never raises."""
        with self._lock:
            if self._released:
                return
            self._released = True
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Unable to remove checkout %s for %s: %s", self.path, self.name, exc)
        else:
            logger.debug("Removed checkout %s", self.path)

    def __enter__(self) -> "Checkout":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.release()

    def __repr__(self) -> str:
        return f"Checkout(name={self.name!r}, path={str(self.path)!r})"


class GitCloner:
    """Materializes repositories with `git clone` into fresh temp directories."""

    def __init__(
        self,
        runner: Callable[..., str] | None = None,
        *,
        base_dir: Path | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self._base_dir = base_dir

    def acquire(self, repo: RepositoryConfig) -> Checkout:
        """Clone `repo` and return a checkout the caller must release."""
        try:
            path = Path(
                tempfile.mkdtemp(
                    prefix=_TEMP_PREFIX,
                    dir=str(self._base_dir) if self._base_dir is not None else None,
                )
            )
        except OSError as exc:
            raise AcquisitionError(
                f"Unable to create temporary directory for '{repo.name}': {exc}"
            ) from exc

        checkout = Checkout(repo.name, path)
        args = ["git", "clone", repo.url, str(path)]
        logger.info("running command: %s", shlex.join(args))
        try:
            self._run(args)
        except subprocess.CalledProcessError as exc:
            checkout.release()
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise AcquisitionError(f"Unable to git clone '{repo.name}': {detail}") from exc
        except OSError as exc:
            checkout.release()
            raise AcquisitionError(f"Unable to git clone '{repo.name}': {exc}") from exc
        return checkout

    def _run(self, args: Iterable[str]) -> str:
        return self._runner(args, capture_output=True)

    @staticmethod
    def _default_runner(args: Iterable[str], *, capture_output: bool = False) -> str:
        completed = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


__all__ = ["AcquisitionError", "Checkout", "GitCloner"]
