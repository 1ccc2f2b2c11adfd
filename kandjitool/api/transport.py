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

"""HTTP transport for the Kandji custom-apps API.

This module issues single authenticated requests against the Kandji API and
normalizes the result: the parsed body on 2xx, a typed exception otherwise.
It also implements the two storage-side calls the upload workflow needs:
requesting a signed upload target and pushing the file to it.

Key Features:

- **Bearer authentication** on every API call (never sent to storage).
- **No retries** - retry policy lives in the upload orchestrator; the
  session is built without urllib3 retry adapters.
- **Inspectable failures** - ApiError keeps the status code and the server
  payload untouched so callers can recognize the transient
  "still being processed" 503.
- **Streaming multipart** - the storage body is produced by
  requests_toolbelt's MultipartEncoder, so large packages are never read
  into memory.

Example:
    >>> from kandjitool.config import KandjiConfig
    >>> from kandjitool.api import KandjiTransport
    >>> transport = KandjiTransport(KandjiConfig("https://acme.api.kandji.io", token))
    >>> apps = transport.request("GET", "/api/v1/library/custom-apps")
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any

import requests
from requests_toolbelt import MultipartEncoder

from kandjitool import __version__
from kandjitool.config import KandjiConfig
from kandjitool.exceptions import ApiError, StorageUploadError
from kandjitool.logging import Logger, get_global_logger

from .models import SignedUploadTarget

CUSTOM_APPS_PATH = "/api/v1/library/custom-apps"
UPLOAD_PATH = f"{CUSTOM_APPS_PATH}/upload"

DEFAULT_TIMEOUT = 60


def make_session() -> requests.Session:
    """
    Create a requests.Session for the Kandji API and storage calls.

    Unlike a download session this one mounts no retry adapter: a repeated
    POST to storage would create duplicate objects, and the attach retry is
    decided by the orchestrator from the response contents.
    """
    s = requests.Session()
    s.headers.update(
        {"User-Agent": f"kandjitool/{__version__}"}
    )
    return s


def _parse_body(resp: requests.Response) -> Any:
    """Return the JSON body, the text when it is not JSON, or None when empty."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def build_storage_fields(
    target: SignedUploadTarget, file_obj: IO[bytes], filename: str
) -> list[tuple[str, Any]]:
    """Build the ordered multipart fields for a signed storage upload.

    ``key`` comes first and appears exactly once: a ``key`` entry in
    ``post_data`` is dropped because the storage backend rejects a body
    with two of them. The file part is always last.

    Args:
        target: Signed upload target from Kandji.
        file_obj: Open binary file handle to stream.
        filename: Name sent with the file part.

    Returns:
        List of (field name, value) pairs in wire order.
    """
    fields: list[tuple[str, Any]] = [("key", target.file_key)]
    for name, value in target.post_data.items():
        if name == "key":
            continue
        fields.append((name, str(value)))
    fields.append(("file", (filename, file_obj, "application/octet-stream")))
    return fields


class KandjiTransport:
    """Authenticated access to one Kandji tenant.

    Args:
        config: Base URL and API token.
        session: Optional requests session (one is created otherwise).
        timeout: Per-request timeout in seconds.
        logger: Optional logger; defaults to the global logger.
    """

    def __init__(
        self,
        config: KandjiConfig,
        session: requests.Session | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        logger: Logger | None = None,
    ) -> None:
        self.config = config
        self.session = session or make_session()
        self.timeout = timeout
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_token}"}

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        """Issue one JSON request against the Kandji API.

        Args:
            method: HTTP method (GET, POST, PATCH, ...).
            path: API path relative to the base URL.
            payload: Optional JSON-serializable request body.

        Returns:
            The parsed response body.

        Raises:
            ApiError: On a non-2xx status or when no response was received.
        """
        method = method.upper()
        headers = self._auth_headers()
        headers["Content-Type"] = "application/json"

        self.logger.debug("HTTP", f"{method} {path}")
        if isinstance(payload, dict):
            self.logger.debug("HTTP", f"Request body keys: {sorted(payload)}")

        try:
            resp = self.session.request(
                method,
                self._url(path),
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as err:
            raise ApiError(
                f"Kandji API request failed: {method} {path}: {err}",
                method=method,
                path=path,
            ) from err

        return self._handle_response(resp, method, path)

    def _handle_response(self, resp: requests.Response, method: str, path: str) -> Any:
        body = _parse_body(resp)
        self.logger.debug("HTTP", f"Response: {resp.status_code} {resp.reason}")
        if not resp.ok:
            raise ApiError(
                f"Kandji API request failed: {method} {path} -> {resp.status_code}",
                status_code=resp.status_code,
                payload=body,
                method=method,
                path=path,
            )
        return body

    def request_signed_upload_target(self, filename: str) -> SignedUploadTarget:
        """Ask Kandji for a signed storage destination for ``filename``.

        The upload endpoint is form-encoded, not JSON.

        Raises:
            ApiError: On failure or a malformed response.
        """
        self.logger.verbose("UPLOAD", f"Requesting signed upload URL for: {filename}")
        headers = self._auth_headers()
        headers["Content-Type"] = "application/x-www-form-urlencoded"
        try:
            resp = self.session.post(
                self._url(UPLOAD_PATH),
                data={"name": filename},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as err:
            raise ApiError(
                f"Kandji API request failed: POST {UPLOAD_PATH}: {err}",
                method="POST",
                path=UPLOAD_PATH,
            ) from err

        target = SignedUploadTarget.from_api(self._handle_response(resp, "POST", UPLOAD_PATH))
        self.logger.verbose("UPLOAD", f"File key: {target.file_key}")
        self.logger.debug("UPLOAD", f"Storage fields: {sorted(target.post_data)}")
        return target

    def push_to_storage(self, file_path: Path, target: SignedUploadTarget) -> Any:
        """Stream ``file_path`` to the signed storage destination.

        Args:
            file_path: Local file to upload.
            target: Signed upload target from request_signed_upload_target.

        Returns:
            The storage backend's response body (usually empty).

        Raises:
            StorageUploadError: On a non-2xx status or when no response was
                received.
        """
        file_path = Path(file_path)
        self.logger.verbose("UPLOAD", f"Uploading {file_path} to storage")

        with file_path.open("rb") as f:
            encoder = MultipartEncoder(
                fields=build_storage_fields(target, f, file_path.name)
            )
            try:
                resp = self.session.post(
                    target.post_url,
                    data=encoder,
                    headers={"Content-Type": encoder.content_type},
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as err:
                raise StorageUploadError(f"Storage upload failed: {err}") from err

        if not resp.ok:
            raise StorageUploadError(
                f"Storage upload failed: {resp.status_code} {resp.reason}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        self.logger.verbose("UPLOAD", f"Storage response: {resp.status_code}")
        return _parse_body(resp)
