"""
Models shared across the remote configuration client.

This module defines:
- Client settings (environment-driven, see app wiring in core.dependencies)
- The error kinds and error payload returned by every public operation
- The generic Result type that carries either a value or a ConfigError

Settings and errors use Pydantic for validation and serialization; Result is a
plain frozen dataclass since it wraps arbitrary values.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Client Settings
# ---------------------------------------------------------------------------


class ClientSettings(BaseModel):
    """
    Runtime settings for downloading and resolving component configuration.

    Durations are expressed in seconds. Values are normally populated from
    REMOTE_CONFIG_* environment variables by get_settings().
    """

    server_url: str = Field(
        default="http://localhost:8000",
        description="Base address of the configuration server (requests go to <server_url>/get/<component>).",
    )
    data_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory under which bundle directories and temporary archives are created.",
    )
    http_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for the HTTP transport.",
    )
    cache_entry_ttl: float = Field(
        default=1800.0,
        ge=0,
        description="How long (in seconds) a parsed file stays cached after it was loaded.",
    )
    cache_max_lifetime: float = Field(
        default=3600.0,
        ge=0,
        description="Absolute ceiling (in seconds) on how long any key may stay cached after first insertion.",
    )
    serve_root: Optional[Path] = Field(
        default=None,
        description="Directory of component folders served by the development server. Defaults to <data_dir>/components.",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level name used by the command line entry point.",
    )

    def resolved_serve_root(self) -> Path:
        return self.serve_root or self.data_dir / "components"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Categories of failure reported by the downloader, provider and cache."""

    NOT_FOUND = "not_found"
    INVALID_FILE_CONTENT = "invalid_file_content"
    INVALID_ARGUMENTS = "invalid_arguments"
    DOWNLOAD_FAILURE = "download_failure"
    EXCEPTION_THROWN = "exception_thrown"


class ConfigError(BaseModel):
    """
    Error payload carried by a failed Result.

    The message is meant for diagnostics; for exception-derived errors it holds
    the exception type name, its message and the formatted traceback.
    """

    kind: ErrorKind = Field(description="Category of the failure.")
    message: str = Field(default="", description="Human readable diagnostic text.")

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def describe_exception(e: BaseException, context: str = "") -> str:
    """Format an exception as type name, message and traceback text."""
    stack = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    return f"an exception '{type(e).__name__}' has been thrown{context}: {e}: {stack}"


class ResultError(Exception):
    """Raised by Result.unwrap() when called on a failed result."""

    def __init__(self, error: ConfigError):
        super().__init__(str(error))
        self.error = error


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


_MISSING: Any = object()


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a successful value or a ConfigError, never both.

    Build instances with Result.ok(value) or Result.err(kind, message).
    """

    value: Any = _MISSING
    error: Optional[ConfigError] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, kind: ErrorKind, message: str = "") -> "Result[T]":
        return cls(error=ConfigError(kind=kind, message=message))

    @classmethod
    def from_error(cls, error: ConfigError) -> "Result[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_err(self) -> bool:
        return self.error is not None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise ResultError(self.error)
        return self.value

    def unwrap_err(self) -> ConfigError:
        if self.error is None:
            raise ValueError("called unwrap_err() on a successful result")
        return self.error

    def unwrap_or(self, default: T) -> T:
        return default if self.error is not None else self.value
