from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a pipeline step: either a value or an error message, never both."""

    value: T | None = None
    error: str | None = None
    ok: bool = field(default=False)

    def __post_init__(self) -> None:
        if self.ok and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("failed result requires an error message")
        if not self.ok and self.value is not None:
            raise ValueError("failed result cannot carry a value")

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value, ok=True)

    @classmethod
    def failure(cls, error: str) -> Result[T]:
        return cls(error=error, ok=False)

    def unwrap(self) -> T:
        if not self.ok:
            raise ValueError(self.error)
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict[str, object]:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "error": self.error}


class ServiceKind(str, Enum):
    NONE = "none"
    AZURE = "azure"
    OPENAI = "openai"


@dataclass(frozen=True)
class ServiceConfig:
    kind: ServiceKind
    endpoint: str
    api_key: str
    deployment_name: str = ""
    model_id: str = ""

    def redacted(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "endpoint": self.endpoint,
            "api_key_configured": bool(self.api_key),
            "deployment_name": self.deployment_name,
            "model_id": self.model_id,
        }


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    pause_seconds: float = 1.0


@dataclass(frozen=True)
class TranslationRequest:
    schema: str
    request: str
    max_depth: int = 4
    attempt_repair: bool = True
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class HttpOutcome:
    status_code: int
    body: str
    reason_phrase: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
