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

"""Client library for Kandji custom apps.

KandjiClient is the programmatic entry point shared by the CLI and the
release hooks. It wraps a KandjiTransport and the upload workflow in
kandjitool.io.upload.

Example:
    ```python
    from kandjitool.client import KandjiClient

    client = KandjiClient("https://acme.api.kandji.io", "api-token")
    for app in client.list_custom_apps():
        print(app.id, app.name)

    result = client.upload("dist/MyApp-1.2.0.pkg", "app-123")
    print(f"Attached after {result.attempts} attempt(s)")
    ```
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from kandjitool.api import CUSTOM_APPS_PATH, CustomApp, KandjiTransport
from kandjitool.config import KandjiConfig
from kandjitool.io import upload as upload_workflow
from kandjitool.logging import Logger, get_global_logger
from kandjitool.results import UploadResult


class KandjiClient:
    """Client for the Kandji custom-apps API.

    Args:
        base_url: Kandji API base URL (e.g., https://acme.api.kandji.io).
        api_token: Kandji API bearer token.
        logger: Optional logger; defaults to the global logger.

    Raises:
        ConfigError: If base_url or api_token is empty.
    """

    def __init__(self, base_url: str, api_token: str, logger: Logger | None = None) -> None:
        self.config = KandjiConfig(base_url=base_url, api_token=api_token)
        self._logger = logger
        self.transport = KandjiTransport(self.config, logger=logger)
        self.logger.debug("CLIENT", f"KandjiClient initialized with base URL: {self.config.base_url}")

    @classmethod
    def from_config(cls, config: KandjiConfig, logger: Logger | None = None) -> KandjiClient:
        return cls(config.base_url, config.api_token, logger=logger)

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        """Issue a raw request against the Kandji API (see KandjiTransport.request)."""
        return self.transport.request(method, path, payload)

    def get_custom_app(self, app_id: str) -> CustomApp:
        """Fetch a specific custom app by ID."""
        self.logger.verbose("CLIENT", f"Fetching custom app: {app_id}")
        return CustomApp.from_api(self.request("GET", f"{CUSTOM_APPS_PATH}/{app_id}"))

    def list_custom_apps(self) -> list[CustomApp]:
        """Fetch all custom apps, in the order Kandji returns them."""
        self.logger.verbose("CLIENT", "Fetching list of custom apps")
        body = self.request("GET", CUSTOM_APPS_PATH)
        # Some tenants wrap list responses in {"results": [...]}.
        if isinstance(body, dict):
            body = body.get("results", [])
        return [CustomApp.from_api(item) for item in body or []]

    def upload(self, file_path: Path | str, app_id: str) -> UploadResult:
        """Upload a file and attach it to a custom app."""
        return upload_workflow.upload_custom_app(
            self.transport, Path(file_path), app_id, logger=self._logger
        )

    def attach_file_key(self, app_id: str, file_key: str) -> CustomApp | None:
        """Retry attaching an already uploaded file key to a custom app."""
        app, _ = upload_workflow.attach_file_key(
            self.transport, app_id, file_key, logger=self._logger
        )
        return app

    def update_postinstall_script(
        self, app_id: str, lines: Sequence[str]
    ) -> CustomApp | None:
        """Replace a custom app's post-install script (no-op for no lines)."""
        return upload_workflow.update_postinstall_script(
            self.transport, app_id, lines, logger=self._logger
        )
