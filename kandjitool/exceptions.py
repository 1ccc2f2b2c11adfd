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

"""Exception hierarchy for kandjitool.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Missing configuration, environment variables, or bad config files
- AssetResolutionError: Asset pattern matched zero or several files
- ApiError: Non-2xx (or failed) call against the Kandji API
- StorageUploadError: Failed push to the signed storage URL
- ConvergenceTimeoutError: The uploaded file never became attachable

All exceptions inherit from KandjiError, allowing users to catch all
kandjitool errors with a single except clause if needed.

Example:
    Telling "backend never settled" apart from "backend rejected it":
        ```python
        from kandjitool.client import KandjiClient
        from kandjitool.exceptions import ApiError, ConvergenceTimeoutError

        client = KandjiClient("https://acme.api.kandji.io", token)
        try:
            client.upload("build/MyApp.pkg", "app-123")
        except ConvergenceTimeoutError as e:
            print(f"Uploaded as {e.file_key} but not attached yet: {e}")
        except ApiError as e:
            print(f"Kandji rejected the request ({e.status_code}): {e.detail}")
        ```
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "KandjiError",
    "ConfigError",
    "AssetResolutionError",
    "ApiError",
    "StorageUploadError",
    "ConvergenceTimeoutError",
    "STILL_PROCESSING_MARKER",
]

# Substring of the 503 detail Kandji returns while an upload is being
# processed. Matched literally; a wording change on the backend disables
# the retry.
STILL_PROCESSING_MARKER = "still being processed"


class KandjiError(Exception):
    """Base exception for all kandjitool errors.

    All kandjitool-specific exceptions inherit from this class, allowing
    users to catch all errors with a single except clause if needed.
    """

    pass


class ConfigError(KandjiError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Missing base URL or API token
    - Missing KANDJI_BASE_URL / KANDJI_API_TOKEN environment variables
    - Unreadable, unparsable or empty configuration files
    - Release plugin configuration without an app ID or asset pattern
    """

    pass


class AssetResolutionError(KandjiError):
    """Raised when an asset path cannot be resolved to exactly one file.

    Always raised before any network activity takes place.
    """

    pass


class ApiError(KandjiError):
    """Raised for a failed call against the Kandji API.

    Attributes:
        status_code: HTTP status code, or None when the request never got a
            response (connection refused, timeout).
        payload: The server's error body, parsed as JSON when possible,
            otherwise the raw text. None for transport-level failures.
        method: HTTP method of the failed call.
        path: API path of the failed call.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.method = method
        self.path = path

    def __str__(self) -> str:
        server_detail = self._server_detail()
        if server_detail and server_detail not in self.message:
            return f"{self.message}: {server_detail}"
        return self.message

    def _server_detail(self) -> str | None:
        if isinstance(self.payload, dict):
            for field in ("detail", "message", "error"):
                value = self.payload.get(field)
                if value:
                    return str(value)
        if isinstance(self.payload, str) and self.payload:
            return self.payload
        return None

    @property
    def detail(self) -> str:
        """Human-readable server message, falling back to the error text."""
        return self._server_detail() or self.message

    @property
    def is_still_processing(self) -> bool:
        """True for the transient 503 returned while an upload settles."""
        return self.status_code == 503 and STILL_PROCESSING_MARKER in self.detail


class StorageUploadError(KandjiError):
    """Raised when the storage backend rejects the signed upload.

    Attributes:
        status_code: HTTP status from the storage backend, or None when the
            request failed before a response arrived.
        body: Response body returned by the storage backend, if any.
    """

    def __init__(
        self, message: str, *, status_code: int | None = None, body: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConvergenceTimeoutError(KandjiError):
    """Raised when an uploaded file never became attachable to its app.

    The file is already in storage under ``file_key``; only the attach step
    needs to be retried.

    Attributes:
        app_id: Library item the file was meant for.
        file_key: Storage key of the uploaded file.
        attempts: Number of attach requests that were made.
    """

    def __init__(self, message: str, *, app_id: str, file_key: str, attempts: int) -> None:
        super().__init__(message)
        self.app_id = app_id
        self.file_key = file_key
        self.attempts = attempts
