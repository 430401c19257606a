"""Per-repository clone, search and parse pipeline."""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence

from .config import RepositoryConfig
from .git.clone import GitCloner
from .logging import get_logger
from .models import FileMatch
from .search.grep import GrepSearcher
from .search.parser import ParseAnomaly, parse_output


class AnalysisAborted(RuntimeError):
    """Raised when a run was aborted before this repository finished."""


class RepositoryAnalyzer:
    """Clones one repository, greps it and returns per-file match counts."""

    def __init__(
        self,
        cloner: GitCloner | None = None,
        searcher: GrepSearcher | None = None,
    ) -> None:
        self.cloner = cloner or GitCloner()
        self.searcher = searcher or GrepSearcher()
        self.logger = get_logger("analyzer")

    def analyze(
        self,
        repo: RepositoryConfig,
        search_words: Sequence[str],
        exclude_dirs: Sequence[str],
        *,
        abort: Optional[threading.Event] = None,
    ) -> List[FileMatch]:
        """Return the file matches for `repo`, sorted by count then file name.

        The checkout is released whether searching succeeds or not. Once `abort`
        is set the analysis stops at the next step boundary with `AnalysisAborted`.
        """
        self._check_abort(repo, abort)
        checkout = self.cloner.acquire(repo)
        with checkout:
            self._check_abort(repo, abort)
            raw = self.searcher.search(checkout.path, search_words, exclude_dirs)
            matches = parse_output(raw, checkout.path, self.searcher.mode)

        anomalies = [match for match in matches if not match.file_name]
        if anomalies:
            self.logger.error(
                "grep output for '%s' contained %d match(es) outside %s",
                repo.name,
                sum(match.count for match in anomalies),
                checkout.path,
            )
            raise ParseAnomaly(
                f"grep reported paths outside the checkout of '{repo.name}'"
            )

        self.logger.debug("Found matches in %d file(s) of %s", len(matches), repo.name)
        return sorted(matches, key=lambda match: (-match.count, match.file_name))

    def _check_abort(self, repo: RepositoryConfig, abort: Optional[threading.Event]) -> None:
        if abort is not None and abort.is_set():
            self.logger.info("Skipping remaining steps for %s; run aborted", repo.name)
            raise AnalysisAborted(f"analysis of '{repo.name}' aborted")


__all__ = ["AnalysisAborted", "RepositoryAnalyzer"]
