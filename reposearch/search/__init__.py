"""Text search over checkouts and parsing of its output."""

from .grep import GrepSearcher, SearchExecutionError, SearchMode
from .parser import ParseAnomaly, parse_count_output, parse_match_output, parse_output

__all__ = [
    "GrepSearcher",
    "ParseAnomaly",
    "SearchExecutionError",
    "SearchMode",
    "parse_count_output",
    "parse_match_output",
    "parse_output",
]
