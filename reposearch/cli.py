"""CLI entrypoint for reposearch."""

from __future__ import annotations

import argparse
from pathlib import Path

from .analyzer import RepositoryAnalyzer
from .config import DEFAULT_CONFIG_PATH, ConfigError
from .logging import configure_logging
from .orchestrator import Orchestrator, RepositoryRunError
from .report import DEFAULT_REPORT_PATH, PersistenceError
from .search.grep import GrepSearcher, SearchMode


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reposearch",
        description="Clone configured repositories, grep them for search words and rank the results.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the configuration document (defaults to ./config.json).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_REPORT_PATH,
        help="Where to write the report (defaults to ./results.json).",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SearchMode],
        default=SearchMode.MATCH.value,
        help="Count every match (match) or let grep count matching lines per file (count).",
    )
    parser.add_argument(
        "--max-workers",
        type=_positive_int,
        default=None,
        help="Cap the number of repositories analysed at once (default: all at once).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write detailed logs to this file.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for reposearch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    analyzer = RepositoryAnalyzer(searcher=GrepSearcher(mode=SearchMode(args.mode)))
    orchestrator = Orchestrator(analyzer, max_workers=args.max_workers)

    try:
        report_path = orchestrator.run_from_path(args.config, args.output)
    except (ConfigError, RepositoryRunError, PersistenceError) as exc:
        parser.exit(1, f"reposearch failed: {exc}\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(1, f"reposearch failed: {exc}\nRun with --verbose for more details.\n")
    print(f"Report written to {report_path}")


if __name__ == "__main__":  # pragma: no cover
    main()
