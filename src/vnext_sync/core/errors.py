"""
Structured error types for vnext-sync.

Every failure the engine can observe is expressed as a :class:`SyncError`
subclass carrying a category, a retry hint, structured context and the
chained underlying exception. The reconciliation boundary converts these
into result records; only configuration errors are allowed to abort a run.

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different stores
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry file, flow and key for logging
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        SyncError                             │
        │  (category, retryable, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigError          SourceError          DatabaseError     │
        │  (CONFIG, fatal)      (SOURCE)             (DATABASE)        │
        │       │                   │                     │            │
        │  MissingConfigError   DefinitionParseError  DatabaseConnectionError
        │  InvalidConfigError   ScriptReadError       QueryError       │
        │                                             UnsafeIdentifierError
        │                                                              │
        │  PublishError (NETWORK)                                      │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise generic Exception from engine code
    ✅ DO: Use the SyncError subclass for the store that failed

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    NETWORK = "NETWORK"           # Publish API, timeouts
    DATABASE = "DATABASE"         # Index lookup / delete

    SOURCE = "SOURCE"             # Definition / script files
    PARSE = "PARSE"               # JSON decoding
    VALIDATION = "VALIDATION"     # Unsafe identifiers, bad payloads

    CONFIG = "CONFIG"             # vnext.config.json, settings

    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-None fields are serialised by :meth:`to_dict`; anything
    that does not fit a typed field goes into ``metadata``.
    """

    file: str | None = None
    component_type: str | None = None
    flow: str | None = None
    key: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name in ("file", "component_type", "flow", "key", "url", "http_status"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SyncError(Exception):
    """Base exception for all vnext-sync errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.
    """

    default_category: ErrorCategory = ErrorCategory.UNKNOWN
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SyncError:
        """Attach context fields in place and return self (fluent)."""
        for name, value in kwargs.items():
            if hasattr(self.context, name) and name != "metadata":
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(SyncError):
    """Configuration cannot be resolved. Aborts the run."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """A required configuration file or value is absent."""

    def __init__(self, key: str, message: str | None = None, **kwargs: Any):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}", **kwargs)


class InvalidConfigError(ConfigError):
    """Configuration is present but malformed."""

    def __init__(self, key: str, message: str, **kwargs: Any):
        self.key = key
        super().__init__(f"Invalid configuration for {key}: {message}", **kwargs)


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(SyncError):
    """Error reading a definition or script from disk."""

    default_category = ErrorCategory.SOURCE


class DefinitionParseError(SourceError):
    """A JSON definition could not be read or is not a JSON object."""

    default_category = ErrorCategory.PARSE


class ScriptReadError(SourceError):
    """A script file could not be read."""


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(SyncError):
    """Error talking to the instance index."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """The index database could not be reached."""

    default_retryable = True


class QueryError(DatabaseError):
    """A lookup or delete statement failed."""


class UnsafeIdentifierError(DatabaseError):
    """A schema name derived from a flow is not a safe SQL identifier."""

    default_category = ErrorCategory.VALIDATION


# =============================================================================
# PUBLISH ERRORS
# =============================================================================


class PublishError(SyncError):
    """The definition API rejected or failed a request."""

    default_category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.details = details
        if status_code is not None:
            self.context.http_status = status_code


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SyncError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "SourceError",
    "DefinitionParseError",
    "ScriptReadError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "UnsafeIdentifierError",
    "PublishError",
]
