"""Tagged fetch outcomes returned by the EODHD client.

The client never raises for provider-side conditions; the orchestrator
branches on ``FetchOutcome.kind`` instead.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class OutcomeKind(str, enum.Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    QUOTA_EXHAUSTED = "quota_exhausted"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    """Result of one logical provider call (possibly several attempts)."""

    kind: OutcomeKind
    data: T | None = None
    error: Exception | None = None
    attempts: int = 0
    endpoint: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @classmethod
    def ok(cls, data: Any, attempts: int = 1, endpoint: str | None = None) -> "FetchOutcome":
        return cls(OutcomeKind.OK, data=data, attempts=attempts, endpoint=endpoint)

    @classmethod
    def not_found(
        cls, error: Exception | None = None, attempts: int = 1, endpoint: str | None = None
    ) -> "FetchOutcome":
        return cls(OutcomeKind.NOT_FOUND, error=error, attempts=attempts, endpoint=endpoint)

    @classmethod
    def rate_limited(
        cls, error: Exception, attempts: int, endpoint: str | None = None
    ) -> "FetchOutcome":
        return cls(OutcomeKind.RATE_LIMITED, error=error, attempts=attempts, endpoint=endpoint)

    @classmethod
    def quota_exhausted(
        cls, error: Exception, attempts: int = 1, endpoint: str | None = None
    ) -> "FetchOutcome":
        return cls(
            OutcomeKind.QUOTA_EXHAUSTED, error=error, attempts=attempts, endpoint=endpoint
        )

    @classmethod
    def fatal(
        cls, error: Exception, attempts: int, endpoint: str | None = None
    ) -> "FetchOutcome":
        return cls(OutcomeKind.FATAL, error=error, attempts=attempts, endpoint=endpoint)

    def describe(self) -> str:
        if self.error is not None:
            return f"{self.kind.value}: {self.error}"
        return self.kind.value
