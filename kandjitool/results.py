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

"""Public API return types for kandjitool.

This module defines dataclasses for return values from public API functions:
uploading a file to a custom app and running the release publish hook.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Note:
    Only public API return types belong in this module. Wire records
    (CustomApp, SignedUploadTarget) live in kandjitool.api.models.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kandjitool.api.models import CustomApp


@dataclass(frozen=True)
class UploadResult:
    """Result from uploading a file and attaching it to a custom app.

    Attributes:
        app_id: Library item the file was attached to.
        filename: Name the file was uploaded under.
        file_key: Storage key Kandji assigned to the upload.
        attempts: Number of attach requests made (1 when the first succeeded).
        app: The updated custom app returned by the final attach request.
    """

    app_id: str
    filename: str
    file_key: str
    attempts: int
    app: CustomApp | None


@dataclass(frozen=True)
class PublishResult:
    """Result from the release publish hook.

    Attributes:
        status: "published" or "skipped".
        asset: Resolved asset path, or None when skipped.
        upload: Upload result, or None when skipped.
        postinstall_updated: True if the post-install script was patched.
    """

    status: str
    asset: Path | None = None
    upload: UploadResult | None = None
    postinstall_updated: bool = False
