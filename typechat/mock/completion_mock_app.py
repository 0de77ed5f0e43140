from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass

from fastapi import FastAPI, Request, Response

DEFAULT_REPLY = json.dumps(
    {
        "actions": [
            {
                "action_type": "add event",
                "event": {
                    "description": "team sync",
                    "day": "Friday",
                    "time_range": {"start_time": "10:00 am", "duration": "30 minutes"},
                    "participants": ["Avery", "Jordan"],
                },
            }
        ]
    },
    indent=2,
)

MALFORMED_REPLY = '{\n  "actions": [\n    {"action_type": "add event"}\n  ]\n}'


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


@dataclass
class MockState:
    request_count: int = 0
    fail_first_requests: int = 0
    fail_status_code: int = 503
    malformed_first_replies: int = 0
    replies_served: int = 0
    reply_delay_seconds: float = 0.0

    def should_fail(self) -> bool:
        return self.request_count <= self.fail_first_requests

    def next_content(self) -> str:
        self.replies_served += 1
        if self.replies_served <= self.malformed_first_replies:
            return MALFORMED_REPLY
        return DEFAULT_REPLY


def _envelope(content: str) -> dict[str, object]:
    return {
        "id": "chatcmpl-mock",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def create_mock_app() -> FastAPI:
    app = FastAPI(title="Mock Chat Completion Endpoint")

    state = MockState(
        fail_first_requests=_env_int("COMPLETION_MOCK_FAIL_FIRST_REQUESTS", 0),
        fail_status_code=_env_int("COMPLETION_MOCK_FAIL_STATUS_CODE", 503),
        malformed_first_replies=_env_int("COMPLETION_MOCK_MALFORMED_FIRST_REPLIES", 0),
        reply_delay_seconds=_env_float("COMPLETION_MOCK_REPLY_DELAY_SECONDS", 0.0),
    )
    app.state.mock_state = state

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {
            "status": "ok",
            "request_count": state.request_count,
            "replies_served": state.replies_served,
            "fail_first_requests": state.fail_first_requests,
            "malformed_first_replies": state.malformed_first_replies,
        }

    @app.post("/chat/completions")
    async def chat_completions(request: Request) -> Response:
        state.request_count += 1
        if not request.headers.get("authorization", "").startswith("Bearer "):
            return Response(status_code=401, content=b"missing bearer token")

        if state.reply_delay_seconds > 0:
            await asyncio.sleep(state.reply_delay_seconds)

        if state.should_fail():
            return Response(status_code=state.fail_status_code, content=b"mock overloaded")

        body = json.dumps(_envelope(state.next_content()))
        return Response(content=body, media_type="application/json")

    return app


app = create_mock_app()
