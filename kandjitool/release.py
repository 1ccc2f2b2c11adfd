# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Release automation hooks for Kandji custom apps.

These hooks mirror the lifecycle of a release tool such as semantic-release
and can be driven from CI through ``kandji-cli release``:

- verify_conditions: Check credentials and plugin configuration
- prepare: Resolve the versioned asset to exactly one file
- publish: Upload the asset and update the post-install script, gated by
  the release / pre-release flags

Plugin configuration (JSON or YAML)::

    {
      "appID": "1b2c3d4e-...",
      "asset": "dist/MyApp-${nextRelease.version}-*.pkg",
      "release": true,
      "preRelease": false,
      "postinstallScript": ["#!/bin/sh", "/usr/local/bin/myapp --register"]
    }

Credentials come from KANDJI_BASE_URL and KANDJI_API_TOKEN.

Gating:

    | branch is prerelease | release | preRelease | publishes |
    |----------------------|---------|------------|-----------|
    | no                   | true    | any        | yes       |
    | yes                  | any     | true       | yes       |
    | otherwise            |         |            | no        |
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import glob
from pathlib import Path
from typing import Any

from kandjitool.client import KandjiClient
from kandjitool.config import config_from_env
from kandjitool.exceptions import AssetResolutionError, ConfigError, KandjiError
from kandjitool.logging import Logger, get_global_logger
from kandjitool.results import PublishResult

VERSION_PLACEHOLDER = "${nextRelease.version}"


@dataclass(frozen=True)
class PluginConfig:
    """Release plugin settings.

    Attributes:
        app_id: Library item ID of the custom app to update.
        asset: Asset path pattern; may contain ${nextRelease.version} and
            glob wildcards.
        release: Publish from regular release branches.
        pre_release: Publish from pre-release branches.
        postinstall_script: Lines of the post-install script (empty to skip).
    """

    app_id: str | None
    asset: str | None
    release: bool = True
    pre_release: bool = False
    postinstall_script: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PluginConfig:
        """Build settings from a plugin config mapping.

        Accepts the camelCase keys used by release tool configs (appID,
        preRelease, postinstallScript) as well as snake_case.

        Raises:
            ConfigError: If a flag is not a boolean or the script is not a
                string or list of strings.
        """
        app_id = data.get("appID", data.get("app_id"))
        release = data.get("release", True)
        pre_release = data.get("preRelease", data.get("pre_release", False))
        script = data.get("postinstallScript", data.get("postinstall_script")) or []

        for name, value in (("release", release), ("preRelease", pre_release)):
            if not isinstance(value, bool):
                raise ConfigError(f"Plugin option {name!r} must be a boolean, got {value!r}")

        if isinstance(script, str):
            script = script.splitlines()
        if not isinstance(script, list) or not all(isinstance(s, str) for s in script):
            raise ConfigError("Plugin option 'postinstallScript' must be a list of strings")

        return cls(
            app_id=str(app_id) if app_id else None,
            asset=data.get("asset"),
            release=release,
            pre_release=pre_release,
            postinstall_script=list(script),
        )


@dataclass
class ReleaseContext:
    """What the release tool knows about the release in progress.

    Attributes:
        next_version: Version being released.
        branch_prerelease: True when releasing from a pre-release branch.
        env: Environment to read credentials from (None for os.environ,
            with .env support).
        logger: Optional logger; defaults to the global logger.
    """

    next_version: str | None
    branch_prerelease: bool = False
    env: Mapping[str, str] | None = None
    logger: Logger | None = None

    def get_logger(self) -> Logger:
        return self.logger or get_global_logger()


def should_publish(release: bool, pre_release: bool, branch_prerelease: bool) -> bool:
    """Decide whether the current branch's release should be published."""
    if branch_prerelease:
        return pre_release
    return release


def resolve_asset(
    asset_pattern: str, next_version: str | None, *, logger: Logger | None = None
) -> Path:
    """Resolve a versioned asset pattern to exactly one file.

    Every ``${nextRelease.version}`` is replaced with ``next_version``, then
    the result is globbed (``**`` matches recursively).

    Raises:
        AssetResolutionError: If the version is missing or the pattern
            matches zero or several files.
    """
    if not next_version:
        raise AssetResolutionError(
            "nextRelease.version is undefined. Cannot resolve asset path."
        )

    if logger is None:
        logger = get_global_logger()

    processed = asset_pattern.replace(VERSION_PLACEHOLDER, next_version)
    logger.debug("RELEASE", f"Resolving asset pattern: {asset_pattern} -> {processed}")

    matches = sorted(p for p in glob.glob(processed, recursive=True) if Path(p).is_file())
    if not matches:
        raise AssetResolutionError(f"No files found for pattern: {processed}")
    if len(matches) > 1:
        raise AssetResolutionError(
            f"Multiple files matched for pattern {processed!r}, but only one asset "
            f"is allowed: {', '.join(matches)}"
        )
    return Path(matches[0])


def verify_conditions(plugin_config: PluginConfig, context: ReleaseContext) -> None:
    """Check that credentials and plugin settings are present.

    Raises:
        ConfigError: If KANDJI_BASE_URL / KANDJI_API_TOKEN are missing, or
            the plugin has no app ID or asset.
    """
    logger = context.get_logger()
    config_from_env(context.env)

    if not plugin_config.app_id or not plugin_config.asset:
        raise ConfigError(
            'The Kandji plugin requires "appID" and a valid "asset" configuration.'
        )
    logger.verbose("RELEASE", "Kandji plugin configuration verified.")


def prepare(plugin_config: PluginConfig, context: ReleaseContext) -> Path:
    """Resolve the release asset and make sure it exists.

    Returns:
        Path to the single matching asset.

    Raises:
        ConfigError: If no asset pattern is configured.
        AssetResolutionError: If the pattern does not resolve to one file.
    """
    logger = context.get_logger()
    if not plugin_config.asset:
        raise ConfigError('The Kandji plugin requires a valid "asset" configuration.')

    asset = resolve_asset(plugin_config.asset, context.next_version, logger=logger)
    logger.verbose("RELEASE", f"Asset exists: {asset}")
    return asset


def publish(plugin_config: PluginConfig, context: ReleaseContext) -> PublishResult:
    """Upload the release asset to Kandji and update the post-install script.

    Does nothing (and touches no network) when the release flags do not
    match the branch type.

    Raises:
        KandjiError: Any configuration, resolution, upload or API error.
            A post-install failure is raised after the upload is attached;
            the upload is not rolled back.
    """
    logger = context.get_logger()

    if not should_publish(
        plugin_config.release, plugin_config.pre_release, context.branch_prerelease
    ):
        logger.verbose("RELEASE", "Skipping Kandji plugin execution: release conditions not met.")
        return PublishResult(status="skipped")

    if not plugin_config.app_id or not plugin_config.asset:
        raise ConfigError(
            'The Kandji plugin requires "appID" and a valid "asset" configuration.'
        )

    client = KandjiClient.from_config(config_from_env(context.env), logger=context.logger)

    try:
        asset = resolve_asset(plugin_config.asset, context.next_version, logger=logger)
        logger.verbose(
            "RELEASE",
            f"Starting upload process for asset: {asset} to app ID: {plugin_config.app_id}",
        )
        upload = client.upload(asset, plugin_config.app_id)
    except KandjiError as err:
        logger.error(f"Error during Kandji app update process: {err}")
        raise

    postinstall_updated = False
    if plugin_config.postinstall_script:
        logger.verbose("RELEASE", "Updating postinstall script for the custom app.")
        try:
            client.update_postinstall_script(
                plugin_config.app_id, plugin_config.postinstall_script
            )
        except KandjiError as err:
            logger.error(
                f"Asset {upload.file_key} is attached to app {plugin_config.app_id}, "
                f"but updating the postinstall script failed: {err}"
            )
            raise
        postinstall_updated = True
        logger.verbose("RELEASE", "Postinstall script updated successfully.")

    logger.verbose("RELEASE", "Kandji app update completed successfully.")
    return PublishResult(
        status="published",
        asset=asset,
        upload=upload,
        postinstall_updated=postinstall_updated,
    )
