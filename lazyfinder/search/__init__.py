"""Search backends producing ``index:line`` matches for a query."""

from .commands import (
    DEFAULT_FILTER_COMMAND,
    ExternalFilterSearch,
    SearchCommand,
    SubsequenceSearch,
    build_filter_argv,
    create_search_command,
)
from .matching import subsequence_match

__all__ = [
    "DEFAULT_FILTER_COMMAND",
    "ExternalFilterSearch",
    "SearchCommand",
    "SubsequenceSearch",
    "build_filter_argv",
    "create_search_command",
    "subsequence_match",
]
