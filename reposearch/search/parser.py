"""Parse grep output into per-file match counts."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..models import FileMatch
from .grep import SearchMode


class ParseAnomaly(ValueError):
    """Raised when grep output does not have the expected shape."""


def relative_name(path: str, base_path: Path | str) -> str:
    """Strip everything up to and including `base_path/` from `path`.

    `base_path` only matches whole path components, either at the start of
    `path` or right after a `/`. Returns an empty string when it does not
    occur; callers treat that as an anomaly.
    """
    prefix = str(base_path).rstrip("/") + "/"
    if path.startswith(prefix):
        return path[len(prefix):]
    if prefix.startswith("/"):
        return ""
    marker = "/" + prefix
    index = path.find(marker)
    if index == -1:
        return ""
    return path[index + len(marker):]


def split_match_line(line: str) -> Tuple[str, str]:
    """Split `<path>:<token>` on the first colon."""
    path, separator, token = line.partition(":")
    if not separator:
        return "", ""
    return path, token


def parse_match_output(raw: str, base_path: Path | str) -> List[FileMatch]:
    """Count `--only-matching` lines per file. Keeps first-seen order."""
    counts: Dict[str, int] = {}
    for line in raw.splitlines():
        path, token = split_match_line(line)
        if not path or not token:
            continue
        name = relative_name(path, base_path)
        counts[name] = counts.get(name, 0) + 1
    return [FileMatch(file_name=name, count=count) for name, count in counts.items()]


def parse_count_output(raw: str, base_path: Path | str) -> List[FileMatch]:
    """Read `--count` lines (`<path>:<n>`); files with a zero count are dropped."""
    counts: Dict[str, int] = {}
    for line in raw.splitlines():
        if not line.strip():
            continue
        path, separator, count_text = line.rpartition(":")
        if not separator or not path:
            raise ParseAnomaly(f"malformed grep count line: {line!r}")
        count = _as_count(count_text)
        if count is None:
            raise ParseAnomaly(f"non-numeric count in grep line: {line!r}")
        if count == 0:
            continue
        name = relative_name(path, base_path)
        counts[name] = counts.get(name, 0) + count
    return [FileMatch(file_name=name, count=count) for name, count in counts.items()]


def parse_output(raw: str, base_path: Path | str, mode: SearchMode = SearchMode.MATCH) -> List[FileMatch]:
    if mode is SearchMode.COUNT:
        return parse_count_output(raw, base_path)
    return parse_match_output(raw, base_path)


def _as_count(value: str) -> Optional[int]:
    text = value.strip()
    if not text.isdigit():
        return None
    return int(text)


__all__ = [
    "ParseAnomaly",
    "parse_count_output",
    "parse_match_output",
    "parse_output",
    "relative_name",
    "split_match_line",
]
