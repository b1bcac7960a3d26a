"""LocalStack log retrieval, parsing and analysis."""

from .models import ApiCallStats, LogEntry, LogRetrievalResult
from .parser import LogLineParser, parse_log_line
from .retriever import LocalStackLogRetriever, analyze_api_calls, group_logs_by_error

__all__ = [
    "ApiCallStats",
    "LogEntry",
    "LogRetrievalResult",
    "LogLineParser",
    "parse_log_line",
    "LocalStackLogRetriever",
    "analyze_api_calls",
    "group_logs_by_error",
]
