# tests/unit/config/test_settings.py — v3
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from syndication.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_entitlement_policy(self):
        s = Settings(_env_file=None)
        assert s.entitlement_policy == {"ACE": True, "OtherProvider": False}

    def test_default_token_geometry(self):
        s = Settings(_env_file=None)
        assert s.callback_field_size == 256
        assert s.callback_field_count == 3
        assert s.token_length == 640

    def test_default_execution(self):
        s = Settings(_env_file=None)
        assert s.execution_timeout_seconds == 3600.0
        assert s.video_heartbeat_timeout_seconds is None
        assert s.execution_history == 1000
        assert s.callback_retention_seconds == 3600.0
        assert s.source_bucket == "syndication.source"

    def test_default_image(self):
        s = Settings(_env_file=None)
        assert s.watermark_padding == 10
        assert s.image_output_format == "JPEG"
        assert s.metadata_indent == 4


class TestSettingsValidation:
    def test_capacity_above_ceiling(self):
        with pytest.raises(ConfigurationError, match="exceeds 768"):
            Settings(_env_file=None, callback_field_size=300)

    def test_token_does_not_fit(self):
        with pytest.raises(ConfigurationError, match="CALLBACK_TOKEN_BYTES"):
            Settings(_env_file=None, callback_token_bytes=600)

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError, match="EXECUTION_TIMEOUT"):
            Settings(_env_file=None, execution_timeout_seconds=0)

    def test_non_positive_heartbeat(self):
        with pytest.raises(ConfigurationError, match="HEARTBEAT"):
            Settings(_env_file=None, video_heartbeat_timeout_seconds=0)

    def test_history_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="EXECUTION_HISTORY"):
            Settings(_env_file=None, execution_history=0)

    def test_negative_callback_retention(self):
        with pytest.raises(ConfigurationError, match="CALLBACK_RETENTION"):
            Settings(_env_file=None, callback_retention_seconds=-1)

    def test_local_backend_requires_root(self):
        with pytest.raises(ConfigurationError, match="LOCAL_STORE_ROOT"):
            Settings(_env_file=None, object_store_backend="local")

    def test_local_backend_with_root(self, tmp_path: Path):
        s = Settings(_env_file=None, object_store_backend="local", local_store_root=tmp_path)
        assert s.local_store_root == tmp_path

    def test_negative_padding(self):
        with pytest.raises(ValueError, match="watermark_padding"):
            Settings(_env_file=None, watermark_padding=-1)

    def test_errors_are_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(
                _env_file=None,
                execution_timeout_seconds=-1,
                object_store_backend="local",
            )
        assert "EXECUTION_TIMEOUT" in str(exc_info.value)
        assert "LOCAL_STORE_ROOT" in str(exc_info.value)


class TestSettingsHelpers:
    def test_partners_enabled_list(self):
        s = Settings(_env_file=None, partners_enabled=" ACE, ,OtherProvider ")
        assert s.partners_enabled_list == ["ACE", "OtherProvider"]

    def test_partners_enabled_empty(self):
        assert Settings(_env_file=None).partners_enabled_list == []

    def test_output_bucket_fallback(self):
        s = Settings(
            _env_file=None,
            partner_output_buckets={"ACE": "ace-out"},
            default_output_bucket="shared-out",
        )
        assert s.output_bucket_for("ACE") == "ace-out"
        assert s.output_bucket_for("OtherProvider") == "shared-out"


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, manifest_filename="package.json")
        assert s.manifest_filename == "package.json"

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("EXECUTION_TIMEOUT_SECONDS", "120")
        monkeypatch.setenv("ENTITLEMENT_POLICY", '{"ACE": false, "OtherProvider": true}')
        s = load_settings(_env_file=None)
        assert s.execution_timeout_seconds == 120.0
        assert s.entitlement_policy == {"ACE": False, "OtherProvider": True}
