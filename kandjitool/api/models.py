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

"""Records exchanged with the Kandji custom-apps API.

Both types are frozen; the server owns every field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kandjitool.exceptions import ApiError


@dataclass(frozen=True)
class CustomApp:
    """A Kandji custom app library item.

    Attributes:
        id: Library item identifier (identity of the record).
        name: Display name.
        version: Version string reported by Kandji.
        description: Free-text description.
        platform: Target platform (e.g., "Mac").
        created: Creation timestamp as returned by the API.
        modified: Last-modified timestamp as returned by the API.
        raw: The full record as returned by the API.
    """

    id: str
    name: str | None = None
    version: str | None = None
    description: str | None = None
    platform: str | None = None
    created: str | None = None
    modified: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CustomApp:
        """Build a CustomApp from a custom-apps API record."""
        if not isinstance(data, dict) or "id" not in data:
            raise ApiError(f"Unexpected custom app record: {data!r}", payload=data)
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            version=data.get("version"),
            description=data.get("description"),
            platform=data.get("platform"),
            created=data.get("created"),
            modified=data.get("modified"),
            raw=dict(data),
        )


@dataclass(frozen=True)
class SignedUploadTarget:
    """Single-use destination for a direct-to-storage upload.

    Attributes:
        post_url: Storage URL to POST the multipart body to.
        file_key: Server-assigned key later attached to the custom app.
        post_data: Extra form fields required by the storage POST policy.
    """

    post_url: str
    file_key: str
    post_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Any) -> SignedUploadTarget:
        """Build a target from the upload endpoint's response.

        Raises:
            ApiError: If post_url or file_key is missing.
        """
        if not isinstance(data, dict) or not data.get("post_url") or not data.get("file_key"):
            raise ApiError(
                f"Signed upload response is missing post_url or file_key: {data!r}",
                payload=data,
            )
        return cls(
            post_url=data["post_url"],
            file_key=data["file_key"],
            post_data=dict(data.get("post_data") or {}),
        )
