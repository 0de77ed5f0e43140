from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from typechat.app.translation.types import HttpOutcome


class ConfigurationError(Exception):
    """Raised when a transport is built from an unusable service configuration."""


class TransportError(Exception):
    """Raised when a completion request cannot be delivered."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class CompletionTransport(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> HttpOutcome:
        raise NotImplementedError

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return build_chat_payload(prompt)

    def reply_text(self, outcome: HttpOutcome) -> str:
        return outcome.body

    async def aclose(self) -> None:
        return None


def build_chat_payload(prompt: str, model_id: str = "") -> dict[str, Any]:
    payload: dict[str, Any] = {
        "messages": [{"role": "user", "content": prompt}],
        "temperature": 0,
        "n": 1,
    }
    if model_id:
        payload["model"] = model_id
    return payload
