# Copyright 2025 Google LLC
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
# ==============================================================================

"""
Storage abstraction for Firebase Cloud Storage and in-memory testing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

from firebase_admin import storage

DOWNLOAD_TOKEN_METADATA_KEY = "firebaseStorageDownloadTokens"


class BlobStorage(Protocol):
    """Defines the operations the client needs from blob storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def download_url(self, path: str) -> str:
        ...

    def delete(self, path: str) -> None:
        ...


@dataclass
class InMemoryBlobStorage:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: Dict[str, bytes] = None
    failures: Dict[str, List[Exception]] = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}
        if self.failures is None:
            self.failures = {}

    def fail_next(self, operation: str, error: Exception) -> None:
        self.failures.setdefault(operation, []).append(error)

    def _maybe_fail(self, operation: str) -> None:
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self._maybe_fail("upload")
        self.stored_objects[path] = bytes(data)

    def download_url(self, path: str) -> str:
        self._maybe_fail("download_url")
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        return f"{self.base_url}/{path}"

    def delete(self, path: str) -> None:
        self._maybe_fail("delete")
        self.stored_objects.pop(path, None)


@dataclass
class FirebaseBlobStorage:
    """
    Cloud Storage client for the Firebase default (or named) bucket.

    Download URLs use the same token scheme as the Firebase client SDKs, so
    they can be handed straight to image views.
    """

    bucket_name: Optional[str] = None
    bucket: Any = None

    def __post_init__(self):
        if self.bucket is None:
            self.bucket = storage.bucket(self.bucket_name)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        blob = self.bucket.blob(path)
        blob.metadata = {DOWNLOAD_TOKEN_METADATA_KEY: uuid.uuid4().hex}
        blob.upload_from_string(data, content_type=content_type)

    def download_url(self, path: str) -> str:
        blob = self.bucket.get_blob(path)
        if blob is None:
            raise FileNotFoundError(path)
        token = (blob.metadata or {}).get(DOWNLOAD_TOKEN_METADATA_KEY, "").split(",")[0]
        url = (
            f"https://firebasestorage.googleapis.com/v0/b/{self.bucket.name}"
            f"/o/{quote(path, safe='')}?alt=media"
        )
        if token:
            url += f"&token={token}"
        return url

    def delete(self, path: str) -> None:
        self.bucket.blob(path).delete()
