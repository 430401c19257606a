"""Report persistence."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from .models import Report

DEFAULT_REPORT_PATH = Path("./results.json")


class PersistenceError(RuntimeError):
    """Raised when the report cannot be serialized or written."""


def write_report(path: Path | str, report: Report) -> Path:
    """Write `report` as indented JSON, replacing any existing file."""
    target = Path(path).expanduser()
    try:
        payload = json.dumps(report.to_dict(), indent=1)
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"Unable to serialize report: {exc}") from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.write("\n")
            os.chmod(tmp_name, 0o664)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(f"Unable to save report to {target}: {exc}") from exc
    return target


__all__ = ["DEFAULT_REPORT_PATH", "PersistenceError", "write_report"]
