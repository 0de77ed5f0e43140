from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from typechat.app.translation.types import RetryPolicy, ServiceConfig, ServiceKind

SERVICE_KINDS = ("azure", "openai", "scripted")
REQUEST_ENCODINGS = ("form", "json")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export ") :]

        key, separator, value = line.partition("=")
        if not separator or not key.strip():
            continue

        os.environ.setdefault(key.strip(), _strip_quotes(value.strip()))


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(key: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.getenv(key, default).strip().lower()
    if value not in allowed:
        allowed_csv = ", ".join(allowed)
        raise ValueError(f"{key} must be one of: {allowed_csv}")
    return value


def _env_replies(key: str) -> tuple[str, ...]:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return ()
    parsed = json.loads(raw)
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError(f"{key} must be a JSON list of strings")
    return tuple(parsed)


@dataclass(frozen=True)
class Settings:
    service_name: str
    service_version: str
    environment: str
    log_level: str
    host: str
    port: int
    service_kind: str
    endpoint: str
    api_key: str | None
    deployment_name: str = ""
    model_id: str = ""
    request_encoding: str = "form"
    unwrap_chat_completion: bool = True
    request_timeout_seconds: float = 30.0
    retry_max_attempts: int = 3
    retry_pause_seconds: float = 1.0
    attempt_repair: bool = True
    schema_max_depth: int = 4
    scripted_replies: tuple[str, ...] = ()

    @property
    def endpoint_configured(self) -> bool:
        return bool(self.endpoint.strip())

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=max(0, self.retry_max_attempts),
            pause_seconds=max(0.0, self.retry_pause_seconds),
        )

    def service_config(self) -> ServiceConfig:
        kind = ServiceKind.NONE
        if self.service_kind in (ServiceKind.AZURE.value, ServiceKind.OPENAI.value):
            kind = ServiceKind(self.service_kind)
        return ServiceConfig(
            kind=kind,
            endpoint=self.endpoint,
            api_key=self.api_key or "",
            deployment_name=self.deployment_name,
            model_id=self.model_id,
        )

    def redacted(self) -> dict[str, str | int | float | bool | None]:
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "environment": self.environment,
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "service_kind": self.service_kind,
            "endpoint": self.endpoint,
            "endpoint_configured": self.endpoint_configured,
            "api_key_configured": self.api_key_configured,
            "deployment_name": self.deployment_name,
            "model_id": self.model_id,
            "request_encoding": self.request_encoding,
            "unwrap_chat_completion": self.unwrap_chat_completion,
            "request_timeout_seconds": self.request_timeout_seconds,
            "retry_max_attempts": self.retry_max_attempts,
            "retry_pause_seconds": self.retry_pause_seconds,
            "attempt_repair": self.attempt_repair,
            "schema_max_depth": self.schema_max_depth,
            "scripted_reply_count": len(self.scripted_replies),
        }


def build_settings(project_root: Path) -> Settings:
    load_env_file(project_root / ".env")

    return Settings(
        service_name=os.getenv("TYPECHAT_SERVICE_NAME", "typechat-translator"),
        service_version=os.getenv("TYPECHAT_SERVICE_VERSION", "0.1.0"),
        environment=os.getenv("TYPECHAT_ENV", "development"),
        log_level=os.getenv("TYPECHAT_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("TYPECHAT_HOST", "127.0.0.1"),
        port=int(os.getenv("TYPECHAT_PORT", "8000")),
        service_kind=_env_choice("TYPECHAT_SERVICE_KIND", "openai", SERVICE_KINDS),
        endpoint=os.getenv(
            "TYPECHAT_ENDPOINT",
            "https://api.openai.com/v1/chat/completions",
        ).strip(),
        api_key=os.getenv("TYPECHAT_API_KEY"),
        deployment_name=os.getenv("TYPECHAT_DEPLOYMENT_NAME", "").strip(),
        model_id=os.getenv("TYPECHAT_MODEL_ID", "").strip(),
        request_encoding=_env_choice("TYPECHAT_REQUEST_ENCODING", "form", REQUEST_ENCODINGS),
        unwrap_chat_completion=_env_bool("TYPECHAT_UNWRAP_CHAT_COMPLETION", True),
        request_timeout_seconds=float(os.getenv("TYPECHAT_REQUEST_TIMEOUT_SECONDS", "30.0")),
        retry_max_attempts=int(os.getenv("TYPECHAT_RETRY_MAX_ATTEMPTS", "3")),
        retry_pause_seconds=float(os.getenv("TYPECHAT_RETRY_PAUSE_SECONDS", "1.0")),
        attempt_repair=_env_bool("TYPECHAT_ATTEMPT_REPAIR", True),
        schema_max_depth=int(os.getenv("TYPECHAT_SCHEMA_MAX_DEPTH", "4")),
        scripted_replies=_env_replies("TYPECHAT_SCRIPTED_REPLIES"),
    )
