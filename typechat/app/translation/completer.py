from __future__ import annotations

import asyncio
import logging

from typechat.app.translation.transport.base import CompletionTransport, TransportError
from typechat.app.translation.types import HttpOutcome, Result, RetryPolicy

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

CANCELLED_MESSAGE = "Translation cancelled"


def is_transient_status(status_code: int) -> bool:
    return status_code in TRANSIENT_STATUS_CODES


class RetryingCompleter:
    """Sends one prompt, retrying transient failures with a fixed pause.

    Each ``complete`` call owns its retry counter, so a single completer can
    serve any number of concurrent translations. At most
    ``policy.max_attempts + 1`` requests are made per call.
    """

    def __init__(
        self,
        transport: CompletionTransport,
        policy: RetryPolicy | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._policy = policy or RetryPolicy()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def transport(self) -> CompletionTransport:
        return self._transport

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def complete(
        self,
        prompt: str,
        policy: RetryPolicy | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[str]:
        active_policy = policy or self._policy
        payload = self._transport.build_payload(prompt)
        retry_count = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return Result.failure(CANCELLED_MESSAGE)

            try:
                outcome = await self._send(payload, cancel_event)
            except TransportError as exc:
                if not exc.transient or retry_count >= active_policy.max_attempts:
                    self._log_failure(str(exc), exc.status_code, retry_count)
                    return Result.failure(str(exc))
                detail = str(exc)
                status_code = exc.status_code
            else:
                if outcome is None:
                    return Result.failure(CANCELLED_MESSAGE)
                if outcome.is_success:
                    return Result.success(self._transport.reply_text(outcome))

                message = f"REST API error {outcome.status_code}: {outcome.reason_phrase}"
                if (
                    not is_transient_status(outcome.status_code)
                    or retry_count >= active_policy.max_attempts
                ):
                    self._log_failure(message, outcome.status_code, retry_count)
                    return Result.failure(message)
                detail = message
                status_code = outcome.status_code

            self._logger.warning(
                "completion_retry_scheduled",
                extra={
                    "event": "completion_retry",
                    "transport": self._transport.name,
                    "status_code": status_code,
                    "reason": detail,
                    "retry_count": retry_count + 1,
                    "retry_max_attempts": active_policy.max_attempts,
                    "pause_seconds": active_policy.pause_seconds,
                },
            )
            if active_policy.pause_seconds > 0:
                cancelled = await self._pause(active_policy.pause_seconds, cancel_event)
                if cancelled:
                    return Result.failure(CANCELLED_MESSAGE)

            retry_count += 1

    async def _send(
        self,
        payload: dict[str, object],
        cancel_event: asyncio.Event | None,
    ) -> HttpOutcome | None:
        if cancel_event is None:
            return await self._transport.send(payload)

        send_task = asyncio.create_task(self._transport.send(payload))
        cancel_task = asyncio.create_task(cancel_event.wait())
        try:
            await asyncio.wait(
                {send_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            send_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if send_task.done():
            return send_task.result()

        send_task.cancel()
        try:
            await send_task
        except asyncio.CancelledError:
            pass
        return None

    async def _pause(self, seconds: float, cancel_event: asyncio.Event | None) -> bool:
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return False

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def _log_failure(self, message: str, status_code: int | None, retry_count: int) -> None:
        self._logger.error(
            "completion_failed",
            extra={
                "event": "completion_failed",
                "transport": self._transport.name,
                "status_code": status_code,
                "reason": message,
                "retry_count": retry_count,
            },
        )
