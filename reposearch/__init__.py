"""Clone repositories, grep them for words and rank the match counts."""

from .config import ConfigError, RepositoryConfig, SearchConfig, load_config
from .models import FileMatch, Report, RepositoryAnalysis
from .orchestrator import Orchestrator, RepositoryRunError

__all__ = [
    "ConfigError",
    "FileMatch",
    "Orchestrator",
    "Report",
    "RepositoryAnalysis",
    "RepositoryConfig",
    "RepositoryRunError",
    "SearchConfig",
    "load_config",
]
