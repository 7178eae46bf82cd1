"""Shared type definitions for the evaluation core."""

from collections.abc import Callable
from datetime import UTC, datetime

type Clock = Callable[[], datetime]
type ValidationOutcome = dict[str, bool | str | list[str]]


def utcnow() -> datetime:
    return datetime.now(UTC)


def require_id(value: str | None, name: str) -> str:
    """Return a stripped identifier, raising ValueError when it is blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} is required")
    return value.strip()
