from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typechat.app.settings import build_settings
from typechat.app.translation.service import build_transport
from typechat.app.translation.transport.base import ConfigurationError
from typechat.app.translation.transport.http import HttpCompletionTransport
from typechat.app.translation.transport.scripted import ScriptedCompletionTransport
from typechat.app.translation.types import ServiceKind


class SettingsTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.project_root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = build_settings(self.project_root)

        self.assertEqual(settings.service_kind, "openai")
        self.assertEqual(settings.endpoint, "https://api.openai.com/v1/chat/completions")
        self.assertIsNone(settings.api_key)
        self.assertEqual(settings.request_encoding, "form")
        self.assertEqual(settings.retry_policy().max_attempts, 3)
        self.assertEqual(settings.retry_policy().pause_seconds, 1.0)
        self.assertTrue(settings.attempt_repair)
        self.assertEqual(settings.schema_max_depth, 4)

    def test_env_file_is_loaded_without_overriding_environment(self) -> None:
        (self.project_root / ".env").write_text(
            "# local overrides\n"
            "export TYPECHAT_SERVICE_KIND=azure\n"
            "TYPECHAT_API_KEY='from-file'\n"
            'TYPECHAT_DEPLOYMENT_NAME="calendar-gpt"\n'
            "TYPECHAT_RETRY_MAX_ATTEMPTS=5\n"
            "not a setting\n",
            encoding="utf-8",
        )
        with mock.patch.dict(os.environ, {"TYPECHAT_RETRY_MAX_ATTEMPTS": "1"}, clear=True):
            settings = build_settings(self.project_root)

        self.assertEqual(settings.service_kind, "azure")
        self.assertEqual(settings.api_key, "from-file")
        self.assertEqual(settings.deployment_name, "calendar-gpt")
        self.assertEqual(settings.retry_max_attempts, 1)

        config = settings.service_config()
        self.assertEqual(config.kind, ServiceKind.AZURE)
        self.assertEqual(config.api_key, "from-file")

    def test_invalid_choices_raise(self) -> None:
        with mock.patch.dict(os.environ, {"TYPECHAT_SERVICE_KIND": "none"}, clear=True):
            with self.assertRaises(ValueError):
                build_settings(self.project_root)

        with mock.patch.dict(os.environ, {"TYPECHAT_REQUEST_ENCODING": "xml"}, clear=True):
            with self.assertRaises(ValueError):
                build_settings(self.project_root)

        with mock.patch.dict(os.environ, {"TYPECHAT_SCRIPTED_REPLIES": '{"a": 1}'}, clear=True):
            with self.assertRaises(ValueError):
                build_settings(self.project_root)

    def test_redacted_hides_api_key(self) -> None:
        env = {"TYPECHAT_API_KEY": "sk-very-secret", "TYPECHAT_MODEL_ID": "gpt-4o-mini"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = build_settings(self.project_root)

        redacted = settings.redacted()
        self.assertTrue(redacted["api_key_configured"])
        self.assertNotIn("sk-very-secret", repr(redacted))
        self.assertEqual(redacted["model_id"], "gpt-4o-mini")

    def test_transport_selection(self) -> None:
        env = {
            "TYPECHAT_SERVICE_KIND": "scripted",
            "TYPECHAT_SCRIPTED_REPLIES": '["{\\"actions\\": []}"]',
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = build_settings(self.project_root)
        self.assertEqual(settings.scripted_replies, ('{"actions": []}',))
        self.assertEqual(settings.service_config().kind, ServiceKind.NONE)
        self.assertIsInstance(build_transport(settings), ScriptedCompletionTransport)

        with mock.patch.dict(os.environ, {"TYPECHAT_API_KEY": "sk-test"}, clear=True):
            settings = build_settings(self.project_root)
        self.assertIsInstance(build_transport(settings), HttpCompletionTransport)

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = build_settings(self.project_root)
        with self.assertRaises(ConfigurationError):
            build_transport(settings)


if __name__ == "__main__":
    unittest.main()
