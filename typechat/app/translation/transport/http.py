from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx

from typechat.app.translation.transport.base import (
    CompletionTransport,
    ConfigurationError,
    TransportError,
    build_chat_payload,
)
from typechat.app.translation.types import HttpOutcome, ServiceConfig, ServiceKind

_REQUEST_ENCODINGS = ("form", "json")


class HttpCompletionTransport(CompletionTransport):
    """POSTs chat payloads to a completion endpoint over one shared client.

    The client is created lazily and reused by every caller until ``aclose``.
    Retries are not performed here; see ``RetryingCompleter``.
    """

    def __init__(
        self,
        config: ServiceConfig,
        timeout_seconds: float = 30.0,
        request_encoding: str = "form",
        unwrap_chat_completion: bool = True,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        if config.kind not in (ServiceKind.AZURE, ServiceKind.OPENAI):
            raise ConfigurationError(f"Invalid API service type: {config.kind.value}")
        if not config.endpoint.strip():
            raise ConfigurationError("endpoint is required")
        _check_endpoint(config.endpoint)
        if not config.api_key.strip():
            raise ConfigurationError("api key is required")
        if request_encoding not in _REQUEST_ENCODINGS:
            raise ConfigurationError(
                f"request_encoding must be one of: {', '.join(_REQUEST_ENCODINGS)}"
            )

        self._config = config
        self._timeout_seconds = timeout_seconds
        self._request_encoding = request_encoding
        self._unwrap_chat_completion = unwrap_chat_completion
        self._client_factory = client_factory
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return f"{self._config.kind.value}-http-transport"

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return build_chat_payload(prompt, model_id=self._config.model_id)

    async def send(self, payload: dict[str, Any]) -> HttpOutcome:
        client = await self._ensure_client()
        try:
            if self._request_encoding == "json":
                response = await client.post(self._config.endpoint, json=payload)
            else:
                response = await client.post(
                    self._config.endpoint, data=self._form_fields(payload)
                )
        except httpx.RequestError as exc:
            raise TransportError(f"REST API request failed: {exc}", transient=True) from exc
        except httpx.InvalidURL as exc:
            raise TransportError(f"REST API request failed: {exc}") from exc

        return HttpOutcome(
            status_code=response.status_code,
            body=response.text,
            reason_phrase=response.reason_phrase,
        )

    def reply_text(self, outcome: HttpOutcome) -> str:
        if not self._unwrap_chat_completion:
            return outcome.body
        try:
            envelope = json.loads(outcome.body)
        except (ValueError, RecursionError):
            return outcome.body

        if not isinstance(envelope, dict):
            return outcome.body
        choices = envelope.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return outcome.body
        message = choices[0].get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        return outcome.body

    async def aclose(self) -> None:
        if self._client is None:
            return

        await self._client.aclose()
        self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                if self._client_factory is not None:
                    self._client = self._client_factory()
                    self._client.headers.update(self.auth_headers())
                else:
                    self._client = httpx.AsyncClient(
                        headers=self.auth_headers(),
                        timeout=httpx.Timeout(self._timeout_seconds),
                    )
        return self._client

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _form_fields(self, payload: dict[str, Any]) -> dict[str, str]:
        fields: dict[str, str] = {}
        for key, value in payload.items():
            if isinstance(value, str):
                fields[key] = value
            else:
                fields[key] = json.dumps(value)
        return fields


def _check_endpoint(endpoint: str) -> None:
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"invalid endpoint {endpoint!r}: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"endpoint must be an absolute http(s) URL: {endpoint!r}")
