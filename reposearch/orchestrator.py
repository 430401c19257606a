"""Concurrent fan-out over configured repositories and report aggregation."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .analyzer import AnalysisAborted, RepositoryAnalyzer
from .config import DEFAULT_CONFIG_PATH, RepositoryConfig, SearchConfig, load_config
from .logging import get_logger, repository_context
from .models import Report, RepositoryAnalysis
from .report import DEFAULT_REPORT_PATH, write_report


class RepositoryRunError(RuntimeError):
    """Raised when analysing a single repository fails; aborts the whole run."""

    def __init__(self, repository: str, cause: BaseException) -> None:
        super().__init__(f"failed on repo '{repository}': {cause}")
        self.repository = repository
        self.cause = cause


class Orchestrator:
    """Runs one analysis per repository concurrently and ranks the results."""

    def __init__(
        self,
        analyzer: RepositoryAnalyzer | None = None,
        *,
        max_workers: int | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.analyzer = analyzer or RepositoryAnalyzer()
        self.max_workers = max_workers
        self.logger = get_logger("orchestrator")

    def run_from_path(
        self,
        config_path: Path | str = DEFAULT_CONFIG_PATH,
        output_path: Path | str = DEFAULT_REPORT_PATH,
    ) -> Path:
        """Load the configuration, run every repository and write the report."""
        config = load_config(config_path)
        self.logger.info(
            "Loaded %d repositories and %d search words from %s",
            len(config.repositories),
            len(config.search_words),
            config.source,
        )
        report = self.run(config)
        written = write_report(output_path, report)
        self.logger.info("Report written to %s", written)
        return written

    def run(self, config: SearchConfig) -> Report:
        """Analyse every configured repository; any failure aborts the run."""
        repositories = config.repositories
        slots: List[Optional[RepositoryAnalysis]] = [None] * len(repositories)

        if repositories:
            workers = min(self.max_workers or len(repositories), len(repositories))
            self.logger.debug("Analysing %d repositories with %d workers", len(repositories), workers)
            abort = threading.Event()
            executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reposearch")
            futures: Dict[Future[None], RepositoryConfig] = {
                executor.submit(self._analyze_into, slots, index, repo, config, abort): repo
                for index, repo in enumerate(repositories)
            }
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failure = _first_failure(futures, done)
            if failure is None:
                executor.shutdown(wait=True)
            else:
                # Workers still running stop at their next step boundary and
                # release their checkouts; the run does not wait for them.
                abort.set()
                executor.shutdown(wait=False, cancel_futures=True)
                repo, cause = failure
                self.logger.error("Analysis of %s failed: %s", repo.name, cause)
                raise RepositoryRunError(repo.name, cause) from cause

        analyses = [slot for slot in slots if slot is not None]
        report = Report.build(config.search_words, analyses)
        self.logger.info(
            "Analysed %d repositories with %d total matches",
            report.total_applications,
            report.total_count_sum,
        )
        return report

    def _analyze_into(
        self,
        slots: List[Optional[RepositoryAnalysis]],
        index: int,
        repo: RepositoryConfig,
        config: SearchConfig,
        abort: threading.Event,
    ) -> None:
        with repository_context(repo.name):
            if abort.is_set():
                raise AnalysisAborted(f"analysis of '{repo.name}' aborted")
            self.logger.info("Analysing %s", repo.name)
            matches = self.analyzer.analyze(
                repo,
                config.search_words,
                config.exclude_dirs_for(repo),
                abort=abort,
            )
            analysis = RepositoryAnalysis.from_matches(repo.name, matches)
            slots[index] = analysis
            self.logger.info("Finished %s with %d matches", repo.name, analysis.count_sum)


def _first_failure(
    futures: Dict[Future[None], RepositoryConfig], done: Set[Future[None]]
) -> Optional[Tuple[RepositoryConfig, BaseException]]:
    """Return the earliest-submitted failed task and its exception, if any."""
    for future, repo in futures.items():
        if future not in done:
            continue
        cause = future.exception()
        if cause is not None:
            return repo, cause
    return None


__all__ = ["Orchestrator", "RepositoryRunError"]
