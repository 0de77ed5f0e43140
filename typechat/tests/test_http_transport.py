from __future__ import annotations

import json
import unittest
from dataclasses import dataclass
from urllib.parse import parse_qs

import httpx

from typechat.app.translation.transport.base import ConfigurationError, TransportError
from typechat.app.translation.transport.http import HttpCompletionTransport
from typechat.app.translation.translator import JsonTranslator
from typechat.app.translation.types import HttpOutcome, RetryPolicy, ServiceConfig, ServiceKind

ENDPOINT = "https://llm.example.test/v1/chat/completions"


@dataclass
class Counter:
    a: int


def _config(kind: ServiceKind = ServiceKind.OPENAI, model_id: str = "") -> ServiceConfig:
    return ServiceConfig(kind=kind, endpoint=ENDPOINT, api_key="sk-test", model_id=model_id)


def _envelope(content: str) -> str:
    return json.dumps({"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]})


class HttpCompletionTransportTest(unittest.IsolatedAsyncioTestCase):
    def _transport(
        self,
        handler,
        config: ServiceConfig | None = None,
        request_encoding: str = "form",
        unwrap_chat_completion: bool = True,
    ) -> HttpCompletionTransport:
        mock_transport = httpx.MockTransport(handler)
        return HttpCompletionTransport(
            config=config or _config(),
            request_encoding=request_encoding,
            unwrap_chat_completion=unwrap_chat_completion,
            client_factory=lambda: httpx.AsyncClient(transport=mock_transport, timeout=1.0),
        )

    async def test_form_payload_and_bearer_header(self) -> None:
        captured: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status_code=200, text='{"a": 1}')

        transport = self._transport(handler)
        outcome = await transport.send(transport.build_payload("the prompt"))
        await transport.aclose()

        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.body, '{"a": 1}')
        request = captured[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), ENDPOINT)
        self.assertEqual(request.headers["authorization"], "Bearer sk-test")
        self.assertTrue(
            request.headers["content-type"].startswith("application/x-www-form-urlencoded")
        )

        fields = parse_qs(request.content.decode("utf-8"))
        self.assertEqual(
            json.loads(fields["messages"][0]),
            [{"role": "user", "content": "the prompt"}],
        )
        self.assertEqual(fields["temperature"], ["0"])
        self.assertEqual(fields["n"], ["1"])
        self.assertNotIn("model", fields)

    async def test_json_payload_includes_model(self) -> None:
        captured: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status_code=200, text=_envelope('{"a": 1}'))

        transport = self._transport(
            handler,
            config=_config(ServiceKind.AZURE, model_id="gpt-4o-mini"),
            request_encoding="json",
        )
        await transport.send(transport.build_payload("prompt"))
        await transport.aclose()

        body = json.loads(captured[0].content)
        self.assertEqual(body["messages"], [{"role": "user", "content": "prompt"}])
        self.assertEqual(body["temperature"], 0)
        self.assertEqual(body["n"], 1)
        self.assertEqual(body["model"], "gpt-4o-mini")

    async def test_error_status_is_returned_not_raised(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code=503, text="busy")

        transport = self._transport(handler)
        outcome = await transport.send(transport.build_payload("prompt"))
        await transport.aclose()

        self.assertFalse(outcome.is_success)
        self.assertEqual(outcome.status_code, 503)
        self.assertEqual(outcome.reason_phrase, "Service Unavailable")

    async def test_request_errors_become_transient_transport_errors(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = self._transport(handler)
        with self.assertRaises(TransportError) as ctx:
            await transport.send(transport.build_payload("prompt"))
        await transport.aclose()

        self.assertTrue(ctx.exception.transient)
        self.assertIn("connection refused", str(ctx.exception))

    def test_reply_text_unwraps_chat_completion(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code=200)

        transport = self._transport(handler)
        wrapped = HttpOutcome(status_code=200, body=_envelope('{"a": 1}'), reason_phrase="OK")
        plain = HttpOutcome(status_code=200, body='text {"a": 1}', reason_phrase="OK")
        other = HttpOutcome(status_code=200, body='{"choices": []}', reason_phrase="OK")

        self.assertEqual(transport.reply_text(wrapped), '{"a": 1}')
        self.assertEqual(transport.reply_text(plain), 'text {"a": 1}')
        self.assertEqual(transport.reply_text(other), '{"choices": []}')

        verbatim = self._transport(handler, unwrap_chat_completion=False)
        self.assertEqual(verbatim.reply_text(wrapped), wrapped.body)

    def test_invalid_configuration_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            HttpCompletionTransport(config=_config(ServiceKind.NONE))
        with self.assertRaises(ConfigurationError):
            HttpCompletionTransport(
                config=ServiceConfig(kind=ServiceKind.OPENAI, endpoint=ENDPOINT, api_key="")
            )
        with self.assertRaises(ConfigurationError):
            HttpCompletionTransport(
                config=ServiceConfig(kind=ServiceKind.AZURE, endpoint=" ", api_key="k")
            )
        with self.assertRaises(ConfigurationError):
            HttpCompletionTransport(config=_config(), request_encoding="xml")

        for endpoint in (
            "api.openai.com/v1/chat/completions",
            "http://[::1/c",
            "ftp://llm.example.test/v1/chat/completions",
            "https:///chat/completions",
        ):
            with self.subTest(endpoint=endpoint):
                with self.assertRaises(ConfigurationError):
                    HttpCompletionTransport(
                        config=ServiceConfig(
                            kind=ServiceKind.OPENAI, endpoint=endpoint, api_key="k"
                        )
                    )

    async def test_deeply_nested_reply_fails_validation_without_raising(self) -> None:
        nested = "[" * 200000 + "]" * 200000

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code=200, text=nested)

        transport = self._transport(handler)
        self.assertEqual(
            transport.reply_text(HttpOutcome(status_code=200, body=nested, reason_phrase="OK")),
            nested,
        )

        translator = JsonTranslator(Counter, transport, retry_policy=RetryPolicy(0, 0.0))
        result = await translator.translate("x")
        await transport.aclose()

        self.assertFalse(result.ok)
        self.assertTrue((result.error or "").startswith("Response is not JSON:\n"))

    async def test_translation_over_http_with_retry(self) -> None:
        request_counter = {"count": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            request_counter["count"] += 1
            if request_counter["count"] <= 2:
                return httpx.Response(status_code=429, text="slow down")
            return httpx.Response(status_code=200, text=_envelope('Here you go: {"a": 4}'))

        transport = self._transport(handler)
        translator = JsonTranslator(
            Counter,
            transport,
            retry_policy=RetryPolicy(max_attempts=3, pause_seconds=0.0),
        )
        result = await translator.translate("four")
        await transport.aclose()

        self.assertTrue(result.ok)
        self.assertEqual(result.value, Counter(a=4))
        self.assertEqual(request_counter["count"], 3)


if __name__ == "__main__":
    unittest.main()
