"""Core infrastructure: logging, canonical JSON, configuration."""

from contractual.core.canonical import canonical_json, stable_hash
from contractual.core.config import ContractualSettings, DuplicateContentPolicy, LoggingSettings, load_settings
from contractual.core.logging import configure_from_settings, configure_logging, get_logger, operation_context

__all__ = [
    "ContractualSettings",
    "DuplicateContentPolicy",
    "LoggingSettings",
    "canonical_json",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "operation_context",
    "stable_hash",
]
