"""Storage drivers and the bindings that dispatch to them.

Built-in store kinds:
- memory: MemoryDriver, process-local reference adapter
- sql: SqlDriver, any SQLAlchemy-supported database

Further drivers are contributed through the ``contractual_get_drivers``
pluggy hook (see contractual.drivers.hookspecs).
"""

from contractual.drivers.base import DataDriver, DeleteTarget, Record
from contractual.drivers.binding import (
    CreateStrategy,
    DeleteStrategy,
    MergeStrategy,
    ReadStrategy,
    ReplaceStrategy,
    Strategy,
    resolve_binding,
)
from contractual.drivers.discovery import DriverFactory, discover_drivers
from contractual.drivers.duplicates import ContentFingerprinter
from contractual.drivers.hookspecs import BuiltinDriversPlugin, hookimpl
from contractual.drivers.memory import MemoryDriver
from contractual.drivers.search import rank, relevance, search_terms, tokenize
from contractual.drivers.sql import SqlDriver

__all__ = [
    "BuiltinDriversPlugin",
    "ContentFingerprinter",
    "CreateStrategy",
    "DataDriver",
    "DeleteStrategy",
    "DeleteTarget",
    "DriverFactory",
    "MemoryDriver",
    "MergeStrategy",
    "ReadStrategy",
    "Record",
    "ReplaceStrategy",
    "SqlDriver",
    "Strategy",
    "discover_drivers",
    "hookimpl",
    "rank",
    "relevance",
    "search_terms",
    "resolve_binding",
    "tokenize",
]
