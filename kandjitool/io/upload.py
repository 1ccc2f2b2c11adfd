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

"""Upload a build artifact to a Kandji custom app.

The workflow runs in a fixed order:

1. Request a signed upload target for the file name.
2. Stream the file to the signed storage URL.
3. Attach the returned file key to the custom app, retrying while Kandji
   reports that the upload is still being processed.

Only the attach step is retried, and only for the transient
``503 ... still being processed`` response. A failed storage push is never
repeated because every push creates a new storage object.

Retry Policy:

- Attempt counter starts at 0 and stops at ``max_attempts`` (default 10).
- Between attempts the workflow sleeps ``retry_delay`` seconds (default 5).
- Any failure on the last attempt raises ConvergenceTimeoutError.
- Any other error is raised immediately, without sleeping.

Example:
    Upload a package and set a post-install script:
        ```python
        from pathlib import Path
        from kandjitool.api import KandjiTransport
        from kandjitool.config import config_from_env
        from kandjitool.io.upload import upload_custom_app, update_postinstall_script

        transport = KandjiTransport(config_from_env())
        result = upload_custom_app(transport, Path("dist/MyApp.pkg"), "app-123")
        update_postinstall_script(transport, "app-123", ["#!/bin/sh", "exit 0"])
        print(f"Attached {result.file_key} after {result.attempts} attempt(s)")
        ```
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
import time
from typing import Any

from kandjitool.api.models import CustomApp
from kandjitool.api.transport import CUSTOM_APPS_PATH, KandjiTransport
from kandjitool.exceptions import (
    ApiError,
    AssetResolutionError,
    ConvergenceTimeoutError,
    KandjiError,
)
from kandjitool.logging import Logger, get_global_logger
from kandjitool.results import UploadResult

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_RETRY_DELAY = 5.0


@dataclass
class UploadAttempt:
    """State of one attach loop. Lives only for a single upload call."""

    app_id: str
    file_key: str
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    attempt: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


def _app_path(app_id: str) -> str:
    return f"{CUSTOM_APPS_PATH}/{app_id}"


def _as_app(body: Any) -> CustomApp | None:
    if isinstance(body, dict) and "id" in body:
        return CustomApp.from_api(body)
    return None


def attach_file_key(
    transport: KandjiTransport,
    app_id: str,
    file_key: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    logger: Logger | None = None,
) -> tuple[CustomApp | None, int]:
    """Attach an uploaded file key to a custom app, waiting for Kandji to settle.

    Can be called on its own to retry the attach step after a timeout,
    using the ``file_key`` carried by ConvergenceTimeoutError.

    Args:
        transport: Kandji API transport.
        app_id: Library item ID of the custom app.
        file_key: File key returned by the signed upload request.
        max_attempts: Highest attempt number before giving up.
        retry_delay: Seconds to wait between attempts.
        logger: Optional logger; defaults to the global logger.

    Returns:
        A tuple (app, attempts), where app is the updated custom app (None if
            the response carried no record) and attempts is the number of
            PATCH requests made.

    Raises:
        ConvergenceTimeoutError: If the last allowed attempt fails.
        ApiError: For any failure other than the transient 503.
    """
    if logger is None:
        logger = get_global_logger()

    state = UploadAttempt(
        app_id=app_id,
        file_key=file_key,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
    )
    path = _app_path(app_id)

    while True:
        logger.verbose(
            "ATTACH",
            f"[Attempt {state.attempt}] Updating custom app {app_id} with file key {file_key}",
        )
        try:
            body = transport.request("PATCH", path, {"file_key": file_key})
        except ApiError as err:
            if state.exhausted:
                raise ConvergenceTimeoutError(
                    f"Unable to verify updated app {app_id} after "
                    f"{state.max_attempts} attempts",
                    app_id=app_id,
                    file_key=file_key,
                    attempts=state.attempt + 1,
                ) from err
            if not err.is_still_processing:
                raise
            logger.verbose(
                "ATTACH",
                f"Upload is still processing... Retrying in {state.retry_delay:g} seconds.",
            )
            time.sleep(state.retry_delay)
            state.attempt += 1
            continue

        logger.verbose("ATTACH", f"Custom app {app_id} updated")
        return _as_app(body), state.attempt + 1


def upload_custom_app(
    transport: KandjiTransport,
    file_path: Path,
    app_id: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    logger: Logger | None = None,
) -> UploadResult:
    """Upload a file and attach it to a Kandji custom app.

    Args:
        transport: Kandji API transport.
        file_path: Local file to upload. Its final path segment becomes the
            upload name.
        app_id: Library item ID of the custom app.
        max_attempts: Highest attach attempt number before giving up.
        retry_delay: Seconds to wait between attach attempts.
        logger: Optional logger; defaults to the global logger.

    Returns:
        Upload result with the file key and number of attach attempts.

    Raises:
        AssetResolutionError: If file_path does not exist (no network call
            is made).
        ApiError: If the signed upload request or the attach request fails.
        StorageUploadError: If the storage push fails (not retried).
        ConvergenceTimeoutError: If Kandji never finished processing the
            upload.
    """
    if logger is None:
        logger = get_global_logger()

    file_path = Path(file_path)
    if not file_path.is_file():
        raise AssetResolutionError(f"The asset file does not exist: {file_path}")

    filename = file_path.name
    logger.verbose("UPLOAD", f"Resolved file path: {file_path.resolve()}")

    logger.step(1, 3, f"Requesting signed upload URL for {filename}...")
    target = transport.request_signed_upload_target(filename)

    logger.step(2, 3, f"Uploading file to Kandji: {filename}")
    transport.push_to_storage(file_path, target)

    logger.step(3, 3, f"Attaching upload to custom app {app_id}...")
    try:
        app, attempts = attach_file_key(
            transport,
            app_id,
            target.file_key,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            logger=logger,
        )
    except KandjiError:
        logger.warning(
            f"{filename} was uploaded to storage as {target.file_key} but is not "
            f"attached to custom app {app_id}. Retry attaching the file key."
        )
        raise

    return UploadResult(
        app_id=app_id,
        filename=filename,
        file_key=target.file_key,
        attempts=attempts,
        app=app,
    )


def update_postinstall_script(
    transport: KandjiTransport,
    app_id: str,
    lines: Sequence[str],
    *,
    logger: Logger | None = None,
) -> CustomApp | None:
    """Replace a custom app's post-install script.

    Lines are joined with newlines and sent in a single PATCH. A plain
    string is treated as the whole script and split into lines. An empty
    sequence is a no-op. Failures are raised as-is; an already attached
    upload is left in place.

    Returns:
        The updated custom app, or None when nothing was sent or the
            response carried no record.

    Raises:
        ApiError: If Kandji rejects the update.
    """
    if logger is None:
        logger = get_global_logger()

    if isinstance(lines, str):
        lines = lines.splitlines()
    if not lines:
        return None

    logger.verbose("ATTACH", f"Updating post-install script for custom app {app_id}")
    body = transport.request(
        "PATCH", _app_path(app_id), {"postinstall_script": "\n".join(lines)}
    )
    return _as_app(body)
