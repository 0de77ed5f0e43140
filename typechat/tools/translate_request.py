from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from typechat.app.calendar.actions import CalendarActions
from typechat.app.logging_config import configure_logging
from typechat.app.settings import build_settings
from typechat.app.translation.service import build_transport, to_jsonable
from typechat.app.translation.transport.base import ConfigurationError
from typechat.app.translation.translator import JsonTranslator


def emit(message: str = "") -> None:
    print(message, flush=True)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Translate a natural-language calendar request into a validated "
            "CalendarActions JSON object using the configured completion endpoint."
        )
    )
    parser.add_argument(
        "request",
        nargs="?",
        help="Request text (default: read from stdin)",
    )
    parser.add_argument(
        "--show-schema",
        action="store_true",
        help="Print the schema sent to the model and exit",
    )
    parser.add_argument(
        "--project-root",
        default=str(Path.cwd()),
        help="Directory containing the optional .env file (default: cwd)",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = build_settings(Path(args.project_root))
    configure_logging(settings.log_level)
    logger = logging.getLogger("typechat.cli")

    try:
        transport = build_transport(settings)
    except ConfigurationError as exc:
        emit(f"configuration error: {exc}")
        return 2

    translator = JsonTranslator(
        CalendarActions,
        transport,
        max_depth=settings.schema_max_depth,
        attempt_repair=settings.attempt_repair,
        retry_policy=settings.retry_policy(),
        logger=logger,
    )
    try:
        if args.show_schema:
            emit(translator.schema)
            return 0

        request = args.request if args.request is not None else sys.stdin.read()
        if not request.strip():
            emit("request text is empty")
            return 2

        result = await translator.translate(request.strip())
    finally:
        await transport.aclose()

    if not result.ok:
        emit(result.error or "translation failed")
        return 1

    emit(json.dumps(to_jsonable(result.value), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
