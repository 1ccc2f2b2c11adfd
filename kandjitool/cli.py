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

"""Command-line interface for kandjitool.

This module provides the main CLI entry point for the kandji-cli tool,
offering commands to inspect and update Kandji custom apps.

Commands:

    get-app: Show details of a single custom app
    list-apps: List all custom apps (or one, with --id)
    update-app: Upload a file and attach it to a custom app
    release: Run the release hooks (verify, prepare, publish) from CI

Example:
    Show a custom app as JSON:
        ```bash
        $ kandji-cli get-app -c kandji.json -i 1b2c3d4e -o json
        ```

    Upload a new build:
        ```bash
        $ kandji-cli update-app -c kandji.json -i 1b2c3d4e -f dist/MyApp.pkg
        ```

    Publish from a release pipeline:
        ```bash
        $ kandji-cli release -c .kandji-release.yaml --next-version 1.4.0
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, asset resolution, API or upload failure)

Note:
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and shows HTTP details.

"""

from __future__ import annotations

import argparse
from importlib.metadata import version
import json
from pathlib import Path
import sys
import traceback

from kandjitool import release
from kandjitool.api import CustomApp
from kandjitool.client import KandjiClient
from kandjitool.config import load_config, load_plugin_config
from kandjitool.exceptions import (
    ApiError,
    ConvergenceTimeoutError,
    KandjiError,
    StorageUploadError,
)
from kandjitool.logging import get_logger, set_global_logger


def _report_error(err: Exception, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        traceback.print_exc()
    return 1


def _print_app_summary(app: CustomApp, full: bool = False) -> None:
    print(f"- Name: {app.name or 'Unknown'}")
    print(f"- ID: {app.id}")
    print(f"- Version: {app.version or 'Unknown'}")
    print(f"- Description: {app.description or 'No description available'}")
    if full:
        print(f"- Created: {app.created or 'Unknown'}")
        print(f"- Last Modified: {app.modified or 'Unknown'}")
        print(f"- Platform: {app.platform or 'Unknown'}")


def _client_from_args(args: argparse.Namespace) -> KandjiClient:
    return KandjiClient.from_config(load_config(Path(args.config)))


def cmd_get_app(args: argparse.Namespace) -> int:
    """Handler for 'kandji-cli get-app' command.

    Args:
        args: Parsed command-line arguments containing the config path,
            app ID and output format.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))

    try:
        app = _client_from_args(args).get_custom_app(args.id)
    except KandjiError as err:
        return _report_error(err, args)

    if args.output == "json":
        print(json.dumps(app.raw, indent=2))
    else:
        print("Custom App Details:")
        _print_app_summary(app, full=True)
    return 0


def cmd_list_apps(args: argparse.Namespace) -> int:
    """Handler for 'kandji-cli list-apps' command.

    Lists all custom apps, or shows a short summary of one app when --id is
    given.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))

    try:
        client = _client_from_args(args)
        if args.id:
            app = client.get_custom_app(args.id)
            print("Custom App Details:")
            _print_app_summary(app)
            return 0
        apps = client.list_custom_apps()
    except KandjiError as err:
        return _report_error(err, args)

    if not apps:
        print("No custom apps found.")
        return 0

    print(f"Found {len(apps)} custom apps:")
    print()
    for index, app in enumerate(apps, start=1):
        print(f"App {index}:")
        _print_app_summary(app)
        print()
    return 0


def cmd_update_app(args: argparse.Namespace) -> int:
    """Handler for 'kandji-cli update-app' command.

    Uploads a file to Kandji storage and attaches it to the custom app,
    waiting for Kandji to finish processing the upload.

    Returns:
        Exit code (0 for success, 1 for failure).

    Note:
        A storage failure means nothing changed on the app. An attach
        failure or timeout means the file is in storage but not attached;
        the file key is printed so the attach can be retried.
    """
    set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))

    file_path = Path(args.file)
    print(f"Uploading {file_path} to custom app {args.id}")
    print()

    try:
        result = _client_from_args(args).upload(file_path, args.id)
    except StorageUploadError as err:
        print("Upload to storage failed; the custom app was not changed.")
        return _report_error(err, args)
    except ConvergenceTimeoutError as err:
        print(
            f"File uploaded as {err.file_key} but Kandji did not finish processing it; "
            "the custom app was not updated."
        )
        return _report_error(err, args)
    except ApiError as err:
        if err.method == "PATCH":
            print("File uploaded to storage but attaching it to the custom app failed.")
        return _report_error(err, args)
    except KandjiError as err:
        return _report_error(err, args)

    print("=" * 70)
    print("UPLOAD RESULTS")
    print("=" * 70)
    print(f"App ID:          {result.app_id}")
    if result.app is not None:
        print(f"App Name:        {result.app.name or 'Unknown'}")
    print(f"File Name:       {result.filename}")
    print(f"File Key:        {result.file_key}")
    print(f"Attach Attempts: {result.attempts}")
    print("=" * 70)
    print()
    print("[SUCCESS] App updated successfully!")
    return 0


def cmd_release(args: argparse.Namespace) -> int:
    """Handler for 'kandji-cli release' command.

    Runs the release hooks against a plugin config file. With
    ``--phase all`` the hooks run in lifecycle order and stop at the first
    failure.

    Returns:
        Exit code (0 for success or skipped publish, 1 for failure).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    context = release.ReleaseContext(
        next_version=args.next_version,
        branch_prerelease=args.prerelease,
        logger=logger,
    )

    try:
        plugin_config = release.PluginConfig.from_dict(
            load_plugin_config(Path(args.config))
        )
        if args.phase in ("verify", "all"):
            release.verify_conditions(plugin_config, context)
            print("[SUCCESS] Kandji plugin configuration verified.")
        if args.phase in ("prepare", "all"):
            asset = release.prepare(plugin_config, context)
            print(f"[SUCCESS] Asset exists: {asset}")
        if args.phase in ("publish", "all"):
            result = release.publish(plugin_config, context)
            if result.status == "skipped":
                print("Skipping Kandji plugin execution: release conditions not met.")
            else:
                print(f"[SUCCESS] Published {result.asset} to app {plugin_config.app_id}")
    except KandjiError as err:
        return _report_error(err, args)

    return 0


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the kandji-cli argument parser."""
    parser = argparse.ArgumentParser(
        prog="kandji-cli",
        description="CLI tool to interact with Kandji custom apps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"kandji-cli {version('kandjitool')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'get-app' command
    parser_get = subparsers.add_parser(
        "get-app",
        help="Get detailed information about a specific custom app",
    )
    parser_get.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to the configuration file (JSON or YAML)",
    )
    parser_get.add_argument(
        "-i", "--id", required=True, help="Library item ID of the custom app"
    )
    parser_get.add_argument(
        "-o",
        "--output",
        choices=("json", "std"),
        default="std",
        help='Output format: "json" or "std" (default: std)',
    )
    _add_common_flags(parser_get)
    parser_get.set_defaults(func=cmd_get_app)

    # 'list-apps' command
    parser_list = subparsers.add_parser(
        "list-apps",
        help="List all custom apps or details of a specific custom app by ID",
    )
    parser_list.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to the configuration file (JSON or YAML)",
    )
    parser_list.add_argument("-i", "--id", help="ID of the custom app to fetch")
    _add_common_flags(parser_list)
    parser_list.set_defaults(func=cmd_list_apps)

    # 'update-app' command
    parser_update = subparsers.add_parser(
        "update-app",
        help="Upload a file and update a custom app",
    )
    parser_update.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to the configuration file (JSON or YAML)",
    )
    parser_update.add_argument(
        "-i", "--id", required=True, help="ID of the custom app"
    )
    parser_update.add_argument(
        "-f", "--file", required=True, help="Path to the file to upload"
    )
    _add_common_flags(parser_update)
    parser_update.set_defaults(func=cmd_update_app)

    # 'release' command
    parser_release = subparsers.add_parser(
        "release",
        help="Run the Kandji release hooks (verify, prepare, publish)",
        description=(
            "Verify, prepare and publish a release asset to a custom app. "
            "Credentials are read from KANDJI_BASE_URL and KANDJI_API_TOKEN."
        ),
    )
    parser_release.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to the release plugin configuration (JSON or YAML)",
    )
    parser_release.add_argument(
        "--next-version",
        required=True,
        help="Version being released (substituted for ${nextRelease.version})",
    )
    parser_release.add_argument(
        "--prerelease",
        action="store_true",
        help="The release comes from a pre-release branch",
    )
    parser_release.add_argument(
        "--phase",
        choices=("verify", "prepare", "publish", "all"),
        default="all",
        help="Which hook(s) to run (default: all)",
    )
    _add_common_flags(parser_release)
    parser_release.set_defaults(func=cmd_release)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the kandji-cli CLI.

    This function is registered as the 'kandji-cli' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
