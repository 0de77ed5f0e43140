from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

from typechat.app.translation.completer import RetryingCompleter
from typechat.app.translation.extraction import (
    Extracted,
    NotJson,
    extract_and_validate,
)
from typechat.app.translation.prompts import (
    append_repair,
    build_repair_prompt,
    build_request_prompt,
)
from typechat.app.translation.schema import describe_schema
from typechat.app.translation.transport.base import CompletionTransport
from typechat.app.translation.types import Result, RetryPolicy, TranslationRequest

T = TypeVar("T")

MAX_REPAIR_ATTEMPTS = 1


class JsonTranslator(Generic[T]):
    """Translates natural-language requests into validated ``target`` instances.

    A translation makes one completion call, then at most one repair call
    when the reply's JSON fails validation. Per-call state (prompt text,
    repair count, retry count) lives on the stack, so one translator may serve
    concurrent ``translate`` calls over a shared transport.
    """

    def __init__(
        self,
        target: type[T],
        transport: CompletionTransport,
        schema: str | None = None,
        max_depth: int = 4,
        attempt_repair: bool = True,
        retry_policy: RetryPolicy | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._target = target
        self._type_name = getattr(target, "__name__", str(target))
        self._max_depth = max_depth
        self._schema = schema or describe_schema(target, max_depth=max_depth)
        self._attempt_repair = attempt_repair
        self._retry_policy = retry_policy or RetryPolicy()
        self._adapter: TypeAdapter[T] = TypeAdapter(target)
        self._logger = logger or logging.getLogger(__name__)
        self._completer = RetryingCompleter(
            transport,
            policy=self._retry_policy,
            logger=self._logger,
        )

    @property
    def schema(self) -> str:
        return self._schema

    @property
    def type_name(self) -> str:
        return self._type_name

    def create_request_prompt(self, request: str) -> str:
        return build_request_prompt(self._schema, request, self._type_name)

    def create_repair_prompt(self, validation_error: str) -> str:
        return build_repair_prompt(validation_error)

    async def translate(
        self,
        request: str,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[T]:
        translation_request = TranslationRequest(
            schema=self._schema,
            request=request,
            max_depth=self._max_depth,
            attempt_repair=self._attempt_repair,
            retry_policy=self._retry_policy,
        )
        return await self._run(translation_request, cancel_event)

    async def _run(
        self,
        translation_request: TranslationRequest,
        cancel_event: asyncio.Event | None,
    ) -> Result[T]:
        prompt = self.create_request_prompt(translation_request.request)
        repairs_used = 0
        repair_budget = MAX_REPAIR_ATTEMPTS if translation_request.attempt_repair else 0

        while True:
            completion = await self._completer.complete(
                prompt,
                policy=translation_request.retry_policy,
                cancel_event=cancel_event,
            )
            if not completion.ok:
                return self._fail(completion.error or "completion failed", "transport_failed")

            reply = completion.value or ""
            outcome = extract_and_validate(reply, self._adapter)

            if isinstance(outcome, Extracted):
                self._logger.info(
                    "translation_succeeded",
                    extra={
                        "event": "translation_succeeded",
                        "target_type": self._type_name,
                        "repairs_used": repairs_used,
                        "reply_chars": len(reply),
                    },
                )
                return Result.success(outcome.value)

            if isinstance(outcome, NotJson):
                return self._fail(outcome.message, "not_json")

            if repairs_used >= repair_budget:
                return self._fail(outcome.message, "validation_failed")

            repairs_used += 1
            prompt = append_repair(prompt, reply, outcome.error)
            self._logger.info(
                "translation_repair_requested",
                extra={
                    "event": "translation_repair",
                    "target_type": self._type_name,
                    "repairs_used": repairs_used,
                    "reply_chars": len(reply),
                },
            )

    def _fail(self, message: str, state: str) -> Result[Any]:
        self._logger.warning(
            "translation_failed",
            extra={
                "event": "translation_failed",
                "target_type": self._type_name,
                "state": state,
                "reason": message.splitlines()[0] if message else "",
            },
        )
        return Result.failure(message)
