"""Logging utilities for reposearch runs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator

_LOGGER_NAME = "reposearch"

# Worker threads start with a fresh context, so each repository task sees only its own name.
_current_repository: ContextVar[str] = ContextVar("reposearch_repository", default="-")


class RepositoryContextFilter(logging.Filter):
    """Stamps each record with the repository the emitting worker is analysing."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.repository = _current_repository.get()
        return True


@contextmanager
def repository_context(name: str) -> Iterator[None]:
    """Attribute log records emitted inside the block to repository `name`."""
    token = _current_repository.set(name)
    try:
        yield
    finally:
        _current_repository.reset(token)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the reposearch hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the reposearch logger with console output and optional file sink.

    Both sinks carry the repository a record belongs to (`-` outside a
    repository task), so interleaved output from parallel clones stays readable.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    context_filter = RepositoryContextFilter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.addFilter(context_filter)
    stream_handler.setFormatter(
        logging.Formatter("[reposearch] %(levelname)s [%(repository)s] %(message)s")
    )
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(threadName)s [%(repository)s] %(name)s: %(message)s"
            )
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["RepositoryContextFilter", "configure_logging", "get_logger", "repository_context"]
