"""Core data models shared across reposearch components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Sequence, Tuple


@dataclass(frozen=True)
class FileMatch:
    """Number of matches grep attributed to one file of a repository."""

    file_name: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file_name": self.file_name, "count": self.count}


@dataclass(frozen=True)
class RepositoryAnalysis:
    """Search outcome for a single repository."""

    name: str
    count_sum: int
    file_matches: Tuple[FileMatch, ...]

    @classmethod
    def from_matches(cls, name: str, matches: Iterable[FileMatch]) -> "RepositoryAnalysis":
        file_matches = tuple(matches)
        return cls(
            name=name,
            count_sum=sum(match.count for match in file_matches),
            file_matches=file_matches,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "count_sum": self.count_sum,
            "grep_results": [match.to_dict() for match in self.file_matches],
        }


@dataclass(frozen=True)
class Report:
    """Ranked aggregate of every repository analysis in a run."""

    total_applications: int
    search_words: Tuple[str, ...]
    total_count_sum: int
    applications: Tuple[RepositoryAnalysis, ...]

    @classmethod
    def build(
        cls, search_words: Sequence[str], analyses: Sequence[RepositoryAnalysis]
    ) -> "Report":
        """Total the analyses and rank them by count sum, highest first."""
        ranked = sorted(analyses, key=lambda analysis: analysis.count_sum, reverse=True)
        return cls(
            total_applications=len(analyses),
            search_words=tuple(search_words),
            total_count_sum=sum(analysis.count_sum for analysis in analyses),
            applications=tuple(ranked),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_applications": self.total_applications,
            "search_words": list(self.search_words),
            "total_count_sum": self.total_count_sum,
            "applications": [analysis.to_dict() for analysis in self.applications],
        }
