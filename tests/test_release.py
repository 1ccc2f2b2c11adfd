"""
Tests for kandjitool.release module.

Tests the release hooks including:
- Plugin config parsing
- Release / pre-release gating
- Asset pattern resolution
- verify_conditions, prepare and publish
"""

from __future__ import annotations

from pathlib import Path

import pytest
import requests_mock

from kandjitool.exceptions import ApiError, AssetResolutionError, ConfigError
from kandjitool.release import (
    PluginConfig,
    ReleaseContext,
    prepare,
    publish,
    resolve_asset,
    should_publish,
    verify_conditions,
)

BASE_URL = "https://acme.api.kandji.io"
UPLOAD_URL = f"{BASE_URL}/api/v1/library/custom-apps/upload"
APP_URL = f"{BASE_URL}/api/v1/library/custom-apps/app-123"
STORAGE_URL = "https://s3.example.com/kandji-uploads"

ENV = {"KANDJI_BASE_URL": BASE_URL, "KANDJI_API_TOKEN": "test-token"}


@pytest.fixture
def dist_dir(tmp_test_dir: Path) -> Path:
    """Provide a dist/ folder with one versioned package."""
    dist = tmp_test_dir / "dist"
    dist.mkdir()
    (dist / "MyApp-1.4.0-universal.pkg").write_bytes(b"pkg")
    (dist / "MyApp-1.3.0-universal.pkg").write_bytes(b"old")
    return dist


def _plugin(dist_dir: Path, **overrides) -> PluginConfig:
    data = {
        "appID": "app-123",
        "asset": str(dist_dir / "MyApp-${nextRelease.version}-*.pkg"),
    }
    data.update(overrides)
    return PluginConfig.from_dict(data)


class TestPluginConfig:
    """Tests for PluginConfig.from_dict."""

    def test_camel_case_keys(self):
        """Test the release tool's camelCase option names."""
        config = PluginConfig.from_dict(
            {
                "appID": "app-123",
                "asset": "dist/*.pkg",
                "release": False,
                "preRelease": True,
                "postinstallScript": ["#!/bin/sh", "exit 0"],
            }
        )

        assert config.app_id == "app-123"
        assert config.release is False
        assert config.pre_release is True
        assert config.postinstall_script == ["#!/bin/sh", "exit 0"]

    def test_defaults(self):
        """Test that release defaults to True and preRelease to False."""
        config = PluginConfig.from_dict({"appID": "a", "asset": "x"})

        assert config.release is True
        assert config.pre_release is False
        assert config.postinstall_script == []

    def test_string_script_is_split(self):
        """Test that a multi-line string script becomes lines."""
        config = PluginConfig.from_dict({"postinstallScript": "#!/bin/sh\nexit 0"})

        assert config.postinstall_script == ["#!/bin/sh", "exit 0"]

    def test_non_boolean_flag_rejected(self):
        """Test that flags must be real booleans."""
        with pytest.raises(ConfigError, match="boolean"):
            PluginConfig.from_dict({"release": "yes"})


class TestShouldPublish:
    """Tests for release gating."""

    @pytest.mark.parametrize(
        ("release", "pre_release", "branch_prerelease", "expected"),
        [
            (True, False, False, True),
            (True, True, False, True),
            (False, True, False, False),
            (False, False, False, False),
            (True, True, True, True),
            (False, True, True, True),
            (True, False, True, False),
            (False, False, True, False),
        ],
    )
    def test_gating_table(self, release, pre_release, branch_prerelease, expected):
        """Test every combination of flags and branch type."""
        assert should_publish(release, pre_release, branch_prerelease) is expected


class TestResolveAsset:
    """Tests for asset pattern resolution."""

    def test_single_match(self, dist_dir):
        """Test that the version placeholder and wildcard resolve one file."""
        pattern = str(dist_dir / "MyApp-${nextRelease.version}-*.pkg")

        assert resolve_asset(pattern, "1.4.0") == dist_dir / "MyApp-1.4.0-universal.pkg"

    def test_no_match(self, dist_dir):
        """Test that zero matches raise AssetResolutionError."""
        pattern = str(dist_dir / "MyApp-${nextRelease.version}-*.pkg")

        with pytest.raises(AssetResolutionError, match="No files found"):
            resolve_asset(pattern, "9.9.9")

    def test_multiple_matches(self, dist_dir):
        """Test that several matches raise AssetResolutionError."""
        with pytest.raises(AssetResolutionError, match="Multiple files matched"):
            resolve_asset(str(dist_dir / "MyApp-*.pkg"), "1.4.0")

    def test_missing_version(self, dist_dir):
        """Test that an undefined version is rejected."""
        with pytest.raises(AssetResolutionError, match="undefined"):
            resolve_asset(str(dist_dir / "*.pkg"), None)

    def test_recursive_pattern(self, tmp_test_dir):
        """Test that ** matches nested folders."""
        nested = tmp_test_dir / "build" / "mac" / "out"
        nested.mkdir(parents=True)
        (nested / "Tool-2.0.0.zip").write_bytes(b"z")

        pattern = str(tmp_test_dir / "build" / "**" / "Tool-${nextRelease.version}.zip")

        assert resolve_asset(pattern, "2.0.0") == nested / "Tool-2.0.0.zip"


class TestVerifyAndPrepare:
    """Tests for verify_conditions and prepare."""

    def test_verify_success(self, dist_dir):
        """Test that credentials and plugin settings pass verification."""
        verify_conditions(_plugin(dist_dir), ReleaseContext("1.4.0", env=ENV))

    def test_verify_missing_env(self, dist_dir):
        """Test that missing credentials fail verification."""
        with pytest.raises(ConfigError, match="KANDJI_BASE_URL"):
            verify_conditions(_plugin(dist_dir), ReleaseContext("1.4.0", env={}))

    def test_verify_missing_app_id(self, dist_dir):
        """Test that a missing appID fails verification."""
        plugin = PluginConfig.from_dict({"asset": "dist/*.pkg"})

        with pytest.raises(ConfigError, match="appID"):
            verify_conditions(plugin, ReleaseContext("1.4.0", env=ENV))

    def test_prepare_returns_asset(self, dist_dir):
        """Test that prepare resolves the versioned asset."""
        asset = prepare(_plugin(dist_dir), ReleaseContext("1.4.0", env=ENV))

        assert asset.name == "MyApp-1.4.0-universal.pkg"


class TestPublish:
    """Tests for the publish hook."""

    @pytest.mark.parametrize(
        ("overrides", "branch_prerelease"),
        [
            ({"release": False}, False),
            ({"preRelease": False}, True),
        ],
    )
    def test_skips_without_network(self, dist_dir, overrides, branch_prerelease):
        """Test that gated-off releases make no requests."""
        context = ReleaseContext("1.4.0", branch_prerelease=branch_prerelease, env=ENV)

        with requests_mock.Mocker() as m:
            result = publish(_plugin(dist_dir, **overrides), context)

        assert result.status == "skipped"
        assert m.call_count == 0

    def test_publish_with_postinstall_script(self, dist_dir, sleeps, sample_app_record):
        """Test upload followed by a post-install script update."""
        plugin = _plugin(dist_dir, postinstallScript=["#!/bin/sh", "exit 0"])

        with requests_mock.Mocker() as m:
            m.post(
                UPLOAD_URL,
                json={"post_url": STORAGE_URL, "file_key": "k1", "post_data": {}},
            )
            m.post(STORAGE_URL, status_code=204)
            m.patch(APP_URL, json=sample_app_record)

            result = publish(plugin, ReleaseContext("1.4.0", env=ENV))

        assert result.status == "published"
        assert result.asset.name == "MyApp-1.4.0-universal.pkg"
        assert result.upload.file_key == "k1"
        assert result.postinstall_updated is True

        patches = [r.json() for r in m.request_history if r.method == "PATCH"]
        assert patches == [
            {"file_key": "k1"},
            {"postinstall_script": "#!/bin/sh\nexit 0"},
        ]

    def test_postinstall_failure_keeps_upload(self, dist_dir, sleeps, sample_app_record):
        """Test that a script failure is raised after the attach succeeded."""
        plugin = _plugin(dist_dir, postinstallScript=["bad"])

        with requests_mock.Mocker() as m:
            m.post(
                UPLOAD_URL,
                json={"post_url": STORAGE_URL, "file_key": "k1", "post_data": {}},
            )
            m.post(STORAGE_URL, status_code=204)
            m.patch(
                APP_URL,
                [
                    {"status_code": 200, "json": sample_app_record},
                    {"status_code": 400, "json": {"detail": "invalid script"}},
                ],
            )

            with pytest.raises(ApiError, match="invalid script"):
                publish(plugin, ReleaseContext("1.4.0", env=ENV))

        # Attach happened once, then exactly one script update; nothing undone.
        assert [r.method for r in m.request_history] == ["POST", "POST", "PATCH", "PATCH"]

    def test_asset_error_before_network(self, dist_dir):
        """Test that an unresolvable asset fails before any request."""
        with requests_mock.Mocker() as m:
            with pytest.raises(AssetResolutionError):
                publish(_plugin(dist_dir), ReleaseContext("7.0.0", env=ENV))

        assert m.call_count == 0

    def test_upload_failure_is_logged(
        self, dist_dir, sleeps, recording_logger
    ):
        """Test that a failed attach is logged as an error and re-raised."""
        context = ReleaseContext("1.4.0", env=ENV, logger=recording_logger)

        with requests_mock.Mocker() as m:
            m.post(
                UPLOAD_URL,
                json={"post_url": STORAGE_URL, "file_key": "k1", "post_data": {}},
            )
            m.post(STORAGE_URL, status_code=204)
            m.patch(APP_URL, status_code=404, json={"detail": "resource not found"})

            with pytest.raises(ApiError):
                publish(_plugin(dist_dir), context)

        assert len(recording_logger.errors) == 1
        assert recording_logger.errors[0].startswith(
            "Error during Kandji app update process:"
        )
        assert "k1" in recording_logger.warnings[0]

    def test_resolve_uses_context_logger(self, dist_dir, recording_logger):
        """Test that asset resolution logs through the context logger."""
        context = ReleaseContext("1.4.0", env=ENV, logger=recording_logger)

        prepare(_plugin(dist_dir), context)

        assert any("MyApp-1.4.0-*.pkg" in msg for msg in recording_logger.debug_messages)
