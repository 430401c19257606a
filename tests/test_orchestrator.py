"""Tests for reposearch.orchestrator."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest

from reposearch.analyzer import RepositoryAnalyzer
from reposearch.config import ConfigError, RepositoryConfig, SearchConfig
from reposearch.git.clone import AcquisitionError, GitCloner
from reposearch.models import FileMatch
from reposearch.orchestrator import Orchestrator, RepositoryRunError
from reposearch.search.grep import SearchMode
from tests._fixtures.repo_builder import RepoBuilder


class ScriptedAnalyzer:
    """Analyzer double returning canned matches, optionally after a delay."""

    def __init__(
        self,
        results: Dict[str, List[FileMatch] | Exception],
        delays: Dict[str, float] | None = None,
    ) -> None:
        self.results = results
        self.delays = delays or {}
        self.calls: List[tuple[str, List[str], List[str]]] = []
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def analyze(self, repo: RepositoryConfig, search_words: Sequence[str], exclude_dirs: Sequence[str], *, abort=None):  # type: ignore[no-untyped-def]
        with self._lock:
            self.calls.append((repo.name, list(search_words), list(exclude_dirs)))
            self.threads.add(threading.current_thread().name)
        time.sleep(self.delays.get(repo.name, 0.0))
        outcome = self.results[repo.name]
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _config(names: Sequence[str], **kwargs) -> SearchConfig:  # type: ignore[no-untyped-def]
    return SearchConfig(
        search_words=("fell",),
        exclude_dirs=kwargs.get("exclude_dirs", (".git",)),
        repositories=tuple(
            RepositoryConfig(name=name, url=f"https://example.invalid/{name}.git") for name in names
        ),
    )


def test_run_ranks_repositories_by_count_sum() -> None:
    analyzer = ScriptedAnalyzer(
        {
            "first": [FileMatch("a.txt", 2)],
            "second": [FileMatch("b.txt", 3), FileMatch("c.txt", 1)],
        }
    )

    report = Orchestrator(analyzer).run(_config(["first", "second"]))  # type: ignore[arg-type]

    assert report.total_applications == 2
    assert report.total_count_sum == 6
    assert [app.name for app in report.applications] == ["second", "first"]
    assert [app.count_sum for app in report.applications] == [4, 2]
    assert report.search_words == ("fell",)


@pytest.mark.parametrize(
    "delays",
    [
        {"low": 0.0, "mid": 0.02, "high": 0.04},
        {"low": 0.04, "mid": 0.02, "high": 0.0},
        {"low": 0.02, "mid": 0.0, "high": 0.04},
    ],
)
def test_run_ordering_is_independent_of_completion_order(delays: Dict[str, float]) -> None:
    analyzer = ScriptedAnalyzer(
        {
            "low": [FileMatch("a", 1)],
            "mid": [FileMatch("a", 5)],
            "high": [FileMatch("a", 7), FileMatch("b", 3)],
        },
        delays,
    )

    report = Orchestrator(analyzer).run(_config(["low", "mid", "high"]))  # type: ignore[arg-type]

    assert [app.name for app in report.applications] == ["high", "mid", "low"]
    assert report.total_count_sum == sum(app.count_sum for app in report.applications)
    assert report.total_count_sum == sum(
        match.count for app in report.applications for match in app.file_matches
    )


def test_run_with_no_repositories_yields_empty_report() -> None:
    analyzer = ScriptedAnalyzer({})

    report = Orchestrator(analyzer).run(_config([]))  # type: ignore[arg-type]

    assert report.total_applications == 0
    assert report.total_count_sum == 0
    assert report.applications == ()
    assert analyzer.calls == []


def test_run_passes_merged_exclude_dirs_per_repository() -> None:
    analyzer = ScriptedAnalyzer({"one": [], "two": []})
    config = SearchConfig(
        search_words=("fell", "rose"),
        exclude_dirs=(".git", "vendor"),
        repositories=(
            RepositoryConfig(name="one", url="u1", exclude_dirs=("docs",)),
            RepositoryConfig(name="two", url="u2", exclude_dirs=("vendor", "build")),
        ),
    )

    Orchestrator(analyzer).run(config)  # type: ignore[arg-type]

    calls = {name: (words, excludes) for name, words, excludes in analyzer.calls}
    assert calls["one"] == (["fell", "rose"], [".git", "vendor", "docs"])
    assert calls["two"] == (["fell", "rose"], [".git", "vendor", "build"])


def test_run_uses_one_worker_per_repository_by_default() -> None:
    barrier = threading.Barrier(3, timeout=5)

    class BarrierAnalyzer(ScriptedAnalyzer):
        def analyze(self, repo, search_words, exclude_dirs, *, abort=None):  # type: ignore[no-untyped-def]
            barrier.wait()
            return super().analyze(repo, search_words, exclude_dirs, abort=abort)

    analyzer = BarrierAnalyzer({"a": [], "b": [], "c": []})

    report = Orchestrator(analyzer).run(_config(["a", "b", "c"]))  # type: ignore[arg-type]

    assert report.total_applications == 3
    assert len(analyzer.threads) == 3


def test_run_respects_max_workers() -> None:
    analyzer = ScriptedAnalyzer({name: [FileMatch("f", 1)] for name in "abcd"})

    report = Orchestrator(analyzer, max_workers=1).run(_config(list("abcd")))  # type: ignore[arg-type]

    assert report.total_count_sum == 4
    assert len(analyzer.threads) == 1


def test_invalid_max_workers_is_rejected() -> None:
    with pytest.raises(ValueError):
        Orchestrator(ScriptedAnalyzer({}), max_workers=0)  # type: ignore[arg-type]


def test_run_fails_fast_and_names_the_repository() -> None:
    analyzer = ScriptedAnalyzer(
        {
            "ok": [FileMatch("a", 1)],
            "broken": AcquisitionError("Unable to git clone 'broken': fatal"),
            "slow": [FileMatch("b", 2)],
        },
        {"slow": 0.05},
    )

    with pytest.raises(RepositoryRunError) as excinfo:
        Orchestrator(analyzer).run(_config(["ok", "broken", "slow"]))  # type: ignore[arg-type]

    assert excinfo.value.repository == "broken"
    assert isinstance(excinfo.value.cause, AcquisitionError)
    assert "failed on repo 'broken'" in str(excinfo.value)


def test_run_from_path_writes_report(
    repo_builder: RepoBuilder, clone_dir: Path, write_config: Callable[..., Path], tmp_path: Path
) -> None:
    small = repo_builder.add("small", {"a.txt": "fell\n"})
    large = repo_builder.add("large", {"b.txt": "fell\n"})
    config_path = write_config(
        {
            "search_words": ["fell"],
            "exclude_dirs": [".git"],
            "repositories": [
                {"name": "small", "url": small, "exclude_dirs": []},
                {"name": "large", "url": large},
            ],
        }
    )

    class CannedSearcher:
        mode = SearchMode.MATCH

        def search(self, path, search_words, exclude_dirs):  # type: ignore[no-untyped-def]
            files = sorted(p.name for p in Path(path).iterdir())
            repeat = 4 if "b.txt" in files else 2
            return "\n".join(f"{path}/{files[0]}:fell" for _ in range(repeat))

    analyzer = RepositoryAnalyzer(
        GitCloner(runner=repo_builder.clone_runner, base_dir=clone_dir),
        CannedSearcher(),  # type: ignore[arg-type]
    )
    output = tmp_path / "out" / "results.json"

    written = Orchestrator(analyzer).run_from_path(config_path, output)

    assert written == output
    document = json.loads(output.read_text(encoding="utf-8"))
    assert document == {
        "total_applications": 2,
        "search_words": ["fell"],
        "total_count_sum": 6,
        "applications": [
            {"name": "large", "count_sum": 4, "grep_results": [{"file_name": "b.txt", "count": 4}]},
            {"name": "small", "count_sum": 2, "grep_results": [{"file_name": "a.txt", "count": 2}]},
        ],
    }
    assert list(clone_dir.iterdir()) == []


def test_clone_failure_aborts_run_without_report(
    repo_builder: RepoBuilder, clone_dir: Path, write_config: Callable[..., Path], tmp_path: Path
) -> None:
    first = repo_builder.add("first", {"a.txt": "fell\n"})
    second = repo_builder.add("second", {"a.txt": "fell\n"})
    third = repo_builder.add("third", {"a.txt": "fell\n"})
    repo_builder.fail(second)
    config_path = write_config(
        {
            "search_words": ["fell"],
            "repositories": [
                {"name": "first", "url": first},
                {"name": "second", "url": second},
                {"name": "third", "url": third},
            ],
        }
    )

    class EmptySearcher:
        mode = SearchMode.MATCH

        def search(self, path, search_words, exclude_dirs):  # type: ignore[no-untyped-def]
            return ""

    analyzer = RepositoryAnalyzer(
        GitCloner(runner=repo_builder.clone_runner, base_dir=clone_dir),
        EmptySearcher(),  # type: ignore[arg-type]
    )
    output = tmp_path / "results.json"

    with pytest.raises(RepositoryRunError, match="second"):
        Orchestrator(analyzer).run_from_path(config_path, output)

    assert not output.exists()
    assert _wait_until(lambda: not any(clone_dir.iterdir()))


def test_run_from_path_propagates_config_errors(tmp_path: Path) -> None:
    output = tmp_path / "results.json"

    with pytest.raises(ConfigError):
        Orchestrator(ScriptedAnalyzer({})).run_from_path(tmp_path / "missing.json", output)  # type: ignore[arg-type]

    assert not output.exists()


def test_failure_surfaces_without_waiting_for_siblings(
    repo_builder: RepoBuilder, clone_dir: Path
) -> None:
    broken = repo_builder.add("broken", {"a.txt": "fell\n"})
    slow = repo_builder.add("slow", {"a.txt": "fell\n"})
    slower = repo_builder.add("slower", {"b.txt": "fell\n"})
    repo_builder.fail(broken)
    all_cloning = threading.Barrier(3, timeout=5)
    gate = threading.Event()

    def runner(args, capture_output=False):  # type: ignore[no-untyped-def]
        argv = list(args)
        all_cloning.wait()
        if argv[2] != broken:
            gate.wait(timeout=5)
        return repo_builder.clone_runner(argv, capture_output=capture_output)

    class RecordingSearcher:
        mode = SearchMode.MATCH

        def __init__(self) -> None:
            self.calls: List[Path] = []

        def search(self, path, search_words, exclude_dirs):  # type: ignore[no-untyped-def]
            self.calls.append(Path(path))
            return ""

    searcher = RecordingSearcher()
    analyzer = RepositoryAnalyzer(GitCloner(runner=runner, base_dir=clone_dir), searcher)  # type: ignore[arg-type]
    config = SearchConfig(
        search_words=("fell",),
        repositories=(
            RepositoryConfig(name="broken", url=broken),
            RepositoryConfig(name="slow", url=slow),
            RepositoryConfig(name="slower", url=slower),
        ),
    )

    started = time.monotonic()
    try:
        with pytest.raises(RepositoryRunError, match="broken"):
            Orchestrator(analyzer).run(config)
        elapsed = time.monotonic() - started
    finally:
        gate.set()

    assert elapsed < 2.0
    assert _wait_until(lambda: not any(clone_dir.iterdir()))
    assert searcher.calls == []
