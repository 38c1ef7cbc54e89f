from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

AVAILABLE = "AVAILABLE"


@dataclass(frozen=True)
class ClassOffering:
    """One bookable class as listed in the schedule."""

    id: str
    workout_id: str
    state: str
    start_time: str | None = None
    end_time: str | None = None


@dataclass(frozen=True)
class CenterClasses:
    center_id: str
    classes: tuple[ClassOffering, ...] = ()


@dataclass(frozen=True)
class ScheduleDocument:
    """Validated top level of the classes endpoint response.

    `days` keeps the provider order (chronological), `None` entries are days
    that came without a usable id. Day payloads in `classes_by_date` are kept
    as sent and only the one being booked from gets parsed.
    """

    days: tuple[str | None, ...]
    classes_by_date: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Candidate:
    activity_id: str
    workout_id: str
    state: str
    start_time: str | None
    end_time: str | None
    rank: int


@dataclass(frozen=True)
class BookingResult:
    candidate: Candidate
    response: Any
    attempt: int
    dry_run: bool = False


class CultBotError(Exception):
    """Base exception for the booking bot."""


class ConfigurationError(CultBotError):
    """Required setting is missing or invalid. Raised before any network call."""


class TransientError(CultBotError):
    """Attempt failure that the orchestrator retries."""


class TransportError(TransientError):
    """Network level failure: DNS, connect, TLS, timeout."""


class ApiError(TransientError):
    def __init__(self, status: int, body: Any, message: str | None = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"HTTP {status}")


class FormatError(TransientError):
    """Schedule document does not have the expected shape."""


class NoAvailabilityError(TransientError):
    """Schedule was fetched but nothing matches slot/center/workout filters."""
