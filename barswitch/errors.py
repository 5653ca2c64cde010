"""
Error kinds for barswitch.

Validation problems are values returned to the caller. Store failures at
startup are fatal exceptions. Inconsistencies found in the store are only
logged; reload and reconciliation repair them.

Also logs full stack traces for debugging while the CLI shows clean
messages to users.
"""

import enum
import logging
import os
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .types import POINTER_SEPARATOR

logger = logging.getLogger(__name__)


class ValidationReason(enum.Enum):
    EMPTY = "empty"
    RESERVED_CHARACTER = "reserved_character"
    DUPLICATE = "duplicate"


_MESSAGES = {
    ValidationReason.EMPTY: "Please provide a name.",
    ValidationReason.RESERVED_CHARACTER: "The name can't contain a colon.",
    ValidationReason.DUPLICATE: "This name is taken.",
}


@dataclass(frozen=True)
class ValidationError:
    """A rejected collection name. Returned, never raised."""
    reason: ValidationReason
    name: str

    @property
    def message(self) -> str:
        return _MESSAGES[self.reason]

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Result:
    """Outcome of an operation that can fail validation."""
    ok: bool
    error: Optional[ValidationError] = None

    @classmethod
    def success(cls) -> "Result":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: ValidationError) -> "Result":
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok


def validate_name(name: str, existing: Iterable[str]) -> Optional[ValidationError]:
    """Check a collection name: non-empty, no separator, not already used."""
    if not name:
        return ValidationError(ValidationReason.EMPTY, name)
    if POINTER_SEPARATOR in name:
        return ValidationError(ValidationReason.RESERVED_CHARACTER, name)
    if name in set(existing):
        return ValidationError(ValidationReason.DUPLICATE, name)
    return None


class StoreUnavailable(Exception):
    """The host store could not be reached during bootstrap."""


class UnknownCollection(KeyError):
    """select() was asked for a name with no storage folder."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown collection: {self.name!r}"


class Inconsistency(enum.Enum):
    MISSING_POINTER = "missing pointer record"
    DUPLICATE_POINTER = "duplicate pointer record"
    ORPHANED_CURRENT = "current collection has no storage folder"
    MISSING_FOLDER = "storage folder vanished"


def report_inconsistency(kind: Inconsistency, detail: str = "") -> None:
    """Log a store inconsistency. These are repaired, not surfaced."""
    if detail:
        logger.warning("Inconsistent state: %s (%s)", kind.value, detail)
    else:
        logger.warning("Inconsistent state: %s", kind.value)


def _error_log_path() -> Path:
    """Resolve error log path, respecting BARSWITCH_STORE_PATH."""
    store = os.environ.get("BARSWITCH_STORE_PATH")
    if store:
        return Path(store) / "barswitch-errors.log"
    return Path.home() / ".barswitch" / "barswitch-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write(f" {type(exc).__name__}: {exc}\n")
            f.write(traceback.format_exc())
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
