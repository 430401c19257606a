"""Configuration loading for reposearch (config.json)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import yaml

DEFAULT_CONFIG_PATH = Path("./config.json")

_YAML_SUFFIXES = {".yml", ".yaml"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be read or parsed."""


@dataclass(frozen=True)
class RepositoryConfig:
    """A named repository to clone and search."""

    name: str
    url: str
    exclude_dirs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchConfig:
    """Process-wide search settings loaded once at startup."""

    search_words: Tuple[str, ...]
    exclude_dirs: Tuple[str, ...] = ()
    repositories: Tuple[RepositoryConfig, ...] = field(default_factory=tuple)
    source: Optional[Path] = None

    def exclude_dirs_for(self, repo: RepositoryConfig) -> List[str]:
        """Global excludes followed by the repository's own, without duplicates."""
        return list(dict.fromkeys((*self.exclude_dirs, *repo.exclude_dirs)))


def load_config(config_path: Path | str = DEFAULT_CONFIG_PATH) -> SearchConfig:
    """Load configuration from disk."""
    path = Path(config_path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    data = _read_config(path)
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")

    search_words = _as_str_list(data.get("search_words"), "search_words", path)
    if not search_words:
        raise ConfigError(f"{path.name}: 'search_words' must list at least one word")

    exclude_dirs = _as_str_list(data.get("exclude_dirs"), "exclude_dirs", path)

    raw_repos = data.get("repositories")
    if raw_repos is None:
        raw_repos = []
    if not isinstance(raw_repos, list):
        raise ConfigError(f"{path.name}: 'repositories' must be a list")

    repositories: List[RepositoryConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw_repos):
        repo = _parse_repository(entry, index, path)
        if repo.name in seen:
            raise ConfigError(f"{path.name}: duplicate repository name '{repo.name}'")
        seen.add(repo.name)
        repositories.append(repo)

    return SearchConfig(
        search_words=tuple(search_words),
        exclude_dirs=tuple(exclude_dirs),
        repositories=tuple(repositories),
        source=path.resolve(),
    )


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc


def _parse_repository(entry: Any, index: int, path: Path) -> RepositoryConfig:
    if not isinstance(entry, dict):
        raise ConfigError(f"{path.name}: repositories[{index}] must be a mapping")

    name = _as_str(entry.get("name"))
    url = _as_str(entry.get("url"))
    if not name:
        raise ConfigError(f"{path.name}: repositories[{index}] is missing 'name'")
    if not url:
        raise ConfigError(f"{path.name}: repository '{name}' is missing 'url'")

    excludes = _as_str_list(entry.get("exclude_dirs"), f"repositories[{index}].exclude_dirs", path)
    return RepositoryConfig(name=name, url=url, exclude_dirs=tuple(excludes))


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _as_str_list(value: Any, key: str, path: Path) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigError(f"{path.name}: '{key}' must be a list of strings")
    result: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(f"{path.name}: '{key}' must be a list of strings")
        if item:
            result.append(item)
    return result
