"""
Core primitives shared by every vnext-sync module: typed errors,
structured logging, settings, the ``Connection`` protocol and its
SQLite/PostgreSQL adapters.
"""

from vnext_sync.core.errors import (
    ConfigError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MissingConfigError,
    PublishError,
    SourceError,
    SyncError,
)
from vnext_sync.core.logging import LogContext, configure_logging, get_logger
from vnext_sync.core.settings import DeleteFailurePolicy, SyncSettings

__all__ = [
    "ConfigError",
    "DatabaseError",
    "DeleteFailurePolicy",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "LogContext",
    "MissingConfigError",
    "PublishError",
    "SourceError",
    "SyncError",
    "SyncSettings",
    "configure_logging",
    "get_logger",
]
