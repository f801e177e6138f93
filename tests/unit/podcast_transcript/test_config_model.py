#!/usr/bin/env python3
"""Tests for the Config model and config file loading."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from podcast_transcript import config

# Add tests directory to path for conftest import
tests_dir = Path(__file__).resolve().parents[2]
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import create_test_config  # noqa: E402


class TestConfigDefaults(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = config.Config()
        self.assertEqual(cfg.metadata_timeout, 15)
        self.assertEqual(cfg.transcript_timeout, 30)
        self.assertEqual(cfg.api_timeout, 10)
        self.assertEqual(cfg.fetch_endpoints[0], "")
        self.assertEqual(len(cfg.fetch_endpoints), 4)
        self.assertEqual(cfg.allowed_hosts, ["podcasts.apple.com"])
        self.assertEqual(cfg.prefer_types, [])
        self.assertIsNone(cfg.apple_bearer_token)
        self.assertFalse(cfg.vendor_api_enabled)
        self.assertEqual(cfg.log_level, "INFO")

    def test_frozen(self):
        cfg = create_test_config()
        with self.assertRaises(ValidationError):
            cfg.metadata_timeout = 3

    def test_extra_fields_forbidden(self):
        with self.assertRaises(ValidationError):
            config.Config(unknown_option=True)


class TestConfigValidation(unittest.TestCase):
    def test_blank_user_agent_falls_back(self):
        self.assertEqual(create_test_config(user_agent="  ").user_agent, config.DEFAULT_USER_AGENT)

    def test_timeout_minimum(self):
        cfg = create_test_config(metadata_timeout=0, transcript_timeout=-5)
        self.assertEqual(cfg.metadata_timeout, 1)
        self.assertEqual(cfg.transcript_timeout, 1)

    def test_timeout_blank_uses_field_default(self):
        self.assertEqual(create_test_config(api_timeout="").api_timeout, 10)

    def test_timeout_not_integer(self):
        with self.assertRaises(ValidationError):
            create_test_config(metadata_timeout="soon")

    def test_proxy_alias_and_dedupe(self):
        cfg = config.Config(proxy=["", "https://p.example/?u=", "https://p.example/?u="])
        self.assertEqual(cfg.fetch_endpoints, ["", "https://p.example/?u="])

    def test_single_endpoint_string(self):
        self.assertEqual(create_test_config(fetch_endpoints="").fetch_endpoints, [""])

    def test_empty_endpoint_list_rejected(self):
        with self.assertRaises(ValidationError):
            create_test_config(fetch_endpoints=[])

    def test_non_http_endpoint_rejected(self):
        with self.assertRaises(ValidationError):
            create_test_config(fetch_endpoints=["ftp://proxy/"])

    def test_allowed_hosts_comma_string(self):
        cfg = create_test_config(allowed_hosts="Podcasts.Apple.com, example.org")
        self.assertEqual(cfg.allowed_hosts, ["podcasts.apple.com", "example.org"])

    def test_prefer_type_alias(self):
        self.assertEqual(config.Config(prefer_type="srt").prefer_types, ["srt"])

    def test_log_level_normalized_and_validated(self):
        self.assertEqual(create_test_config(log_level="debug").log_level, "DEBUG")
        with self.assertRaises(ValidationError):
            create_test_config(log_level="LOUD")


class TestEnvironmentFallbacks(unittest.TestCase):
    def test_bearer_token_from_environment(self):
        with patch.dict(os.environ, {"APPLE_BEARER_TOKEN": "env-token"}):
            cfg = config.Config()
        self.assertEqual(cfg.apple_bearer_token, "env-token")
        self.assertTrue(cfg.vendor_api_enabled)

    def test_explicit_token_wins_and_is_not_in_repr(self):
        with patch.dict(os.environ, {"APPLE_BEARER_TOKEN": "env-token"}):
            cfg = config.Config(apple_bearer_token="explicit")
        self.assertEqual(cfg.apple_bearer_token, "explicit")
        self.assertNotIn("explicit", repr(cfg))

    def test_vendor_api_can_be_disabled(self):
        cfg = create_test_config(apple_bearer_token="t", use_vendor_api=False)
        self.assertFalse(cfg.vendor_api_enabled)

    def test_log_file_from_environment(self):
        with patch.dict(os.environ, {"LOG_FILE": "/tmp/podcast.log"}):
            cfg = config.Config()
        self.assertEqual(cfg.log_file, "/tmp/podcast.log")  # nosec B108


class TestLoadConfigFile(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def _write(self, name, text):
        path = Path(self.tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_yaml(self):
        path = self._write("cfg.yaml", "metadata_timeout: 5\nproxy:\n  - ''\nprefer_type: [srt]\n")
        data = config.load_config_file(path)
        cfg = config.Config(**data)
        self.assertEqual(cfg.metadata_timeout, 5)
        self.assertEqual(cfg.fetch_endpoints, [""])
        self.assertEqual(cfg.prefer_types, ["srt"])

    def test_json(self):
        path = self._write("cfg.json", json.dumps({"api_timeout": 7}))
        self.assertEqual(config.load_config_file(path), {"api_timeout": 7})

    def test_errors(self):
        with self.assertRaises(ValueError):
            config.load_config_file("")
        with self.assertRaises(ValueError):
            config.load_config_file(str(Path(self.tmpdir.name) / "missing.yaml"))
        with self.assertRaises(ValueError):
            config.load_config_file(self._write("cfg.toml", "x = 1"))
        with self.assertRaises(ValueError):
            config.load_config_file(self._write("bad.json", "{not json"))
        with self.assertRaises(ValueError):
            config.load_config_file(self._write("list.yaml", "- a\n- b\n"))


if __name__ == "__main__":
    unittest.main()
