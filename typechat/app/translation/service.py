from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from typechat.app.settings import Settings
from typechat.app.translation.transport.base import CompletionTransport
from typechat.app.translation.transport.http import HttpCompletionTransport
from typechat.app.translation.transport.scripted import ScriptedCompletionTransport
from typechat.app.translation.translator import JsonTranslator
from typechat.app.translation.types import Result

T = TypeVar("T")


@dataclass
class TranslationMetrics:
    target_type: str
    transport_name: str
    requests: int = 0
    succeeded: int = 0
    failed: int = 0
    average_latency_ms: float = 0.0
    last_latency_ms: float = 0.0
    last_result_at: str | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class TranslationRecord:
    request: str
    ok: bool
    error: str | None
    latency_ms: float
    created_at: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "request": self.request,
            "ok": self.ok,
            "error": self.error,
            "latency_ms": self.latency_ms,
            "created_at": self.created_at.isoformat(),
        }


def build_transport(settings: Settings) -> CompletionTransport:
    if settings.service_kind == "scripted":
        return ScriptedCompletionTransport(settings.scripted_replies or ('{"actions": []}',))

    return HttpCompletionTransport(
        config=settings.service_config(),
        timeout_seconds=settings.request_timeout_seconds,
        request_encoding=settings.request_encoding,
        unwrap_chat_completion=settings.unwrap_chat_completion,
    )


def to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


class TranslationService(Generic[T]):
    """Shares one transport and translator across concurrent requests and tracks outcomes."""

    def __init__(
        self,
        settings: Settings,
        target: type[T],
        logger: logging.Logger,
        transport_override: CompletionTransport | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._transport = transport_override or build_transport(settings)
        self._translator: JsonTranslator[T] = JsonTranslator(
            target,
            self._transport,
            max_depth=settings.schema_max_depth,
            attempt_repair=settings.attempt_repair,
            retry_policy=settings.retry_policy(),
            logger=logger,
        )
        self._metrics = TranslationMetrics(
            target_type=self._translator.type_name,
            transport_name=self._transport.name,
        )
        self._lock = asyncio.Lock()
        self._recent: deque[TranslationRecord] = deque(maxlen=50)

    @property
    def translator(self) -> JsonTranslator[T]:
        return self._translator

    async def translate(self, request: str) -> Result[T]:
        started = monotonic()
        result = await self._translator.translate(request)
        latency_ms = round((monotonic() - started) * 1000.0, 3)
        finished_at = datetime.now(timezone.utc)

        async with self._lock:
            previous_count = self._metrics.requests
            previous_avg = self._metrics.average_latency_ms
            self._metrics.requests += 1
            if result.ok:
                self._metrics.succeeded += 1
            else:
                self._metrics.failed += 1
                self._metrics.last_error = result.error
            self._metrics.last_latency_ms = latency_ms
            self._metrics.last_result_at = finished_at.isoformat()
            self._metrics.average_latency_ms = round(
                ((previous_avg * previous_count) + latency_ms) / self._metrics.requests,
                3,
            )
            self._recent.append(
                TranslationRecord(
                    request=request,
                    ok=result.ok,
                    error=result.error,
                    latency_ms=latency_ms,
                    created_at=finished_at,
                )
            )
        return result

    def snapshot(self) -> dict[str, object]:
        payload = asdict(self._metrics)
        payload["service_kind"] = self._settings.service_kind
        payload["recent_count"] = len(self._recent)
        return payload

    def recent(self, limit: int = 10) -> list[dict[str, object]]:
        bounded = max(1, min(limit, 50))
        return [item.to_dict() for item in list(self._recent)[-bounded:]][::-1]

    async def aclose(self) -> None:
        await self._transport.aclose()
