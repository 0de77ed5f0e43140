from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class Extracted(Generic[T]):
    value: T
    json_text: str


@dataclass(frozen=True)
class NotJson:
    reply: str

    @property
    def message(self) -> str:
        return f"Response is not JSON:\n{self.reply}"


@dataclass(frozen=True)
class ValidationFailure:
    error: str
    json_text: str

    @property
    def message(self) -> str:
        return f"JSON validation failed: {self.error}\n{self.json_text}"


ExtractionOutcome = Union[Extracted[T], NotJson, ValidationFailure]


def extract_json_span(reply: str) -> str | None:
    """Return the text from the first ``{`` through the last ``}``.

    This is a best-effort slice, not a brace matcher: braces in surrounding
    prose are captured too, and the slice is left for the validator to reject.
    """
    start = reply.find("{")
    end = reply.rfind("}")
    if start < 0 or end <= start:
        return None
    return reply[start : end + 1]


def extract_and_validate(reply: str, adapter: TypeAdapter[T]) -> ExtractionOutcome[T]:
    json_text = extract_json_span(reply)
    if json_text is None:
        return NotJson(reply=reply)

    try:
        value = adapter.validate_json(json_text)
    except ValidationError as exc:
        return ValidationFailure(error=str(exc), json_text=json_text)
    return Extracted(value=value, json_text=json_text)
