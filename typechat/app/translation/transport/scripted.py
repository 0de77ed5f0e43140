from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable

from typechat.app.translation.transport.base import CompletionTransport
from typechat.app.translation.types import HttpOutcome

_REASONS = {
    200: "OK",
    400: "Bad Request",
    401: "Unauthorized",
    404: "Not Found",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


@dataclass(frozen=True)
class ScriptedReply:
    status_code: int = 200
    body: str = ""

    def to_outcome(self) -> HttpOutcome:
        return HttpOutcome(
            status_code=self.status_code,
            body=self.body,
            reason_phrase=_REASONS.get(self.status_code, ""),
        )


class ScriptedCompletionTransport(CompletionTransport):
    """Replays a fixed sequence of replies, repeating the last one when exhausted."""

    def __init__(
        self,
        replies: Iterable[ScriptedReply | str | int],
        delay_seconds: float = 0.0,
    ) -> None:
        self._replies = [self._coerce(item) for item in replies]
        if not self._replies:
            raise ValueError("scripted transport requires at least one reply")
        self._delay_seconds = max(0.0, delay_seconds)
        self._cursor = 0
        self.payloads: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "scripted-transport"

    @property
    def calls(self) -> int:
        return len(self.payloads)

    async def send(self, payload: dict[str, Any]) -> HttpOutcome:
        self.payloads.append(payload)
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

        reply = self._replies[min(self._cursor, len(self._replies) - 1)]
        self._cursor += 1
        return reply.to_outcome()

    def prompts(self) -> list[str]:
        return [payload["messages"][0]["content"] for payload in self.payloads]

    def _coerce(self, item: ScriptedReply | str | int) -> ScriptedReply:
        if isinstance(item, ScriptedReply):
            return item
        if isinstance(item, int):
            return ScriptedReply(status_code=item)
        return ScriptedReply(body=item)
