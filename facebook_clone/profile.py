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
The signed-in user's profile: user document, own posts, friend count and
profile picture uploads.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, List, Optional

from facebook_clone.constants import (
    FRIENDSHIPS_COLLECTION,
    JPEG_CONTENT_TYPE,
    USERS_COLLECTION,
    user_profile_image_path,
)
from facebook_clone.db import DOCUMENT_ID, DocumentStore, Query
from facebook_clone.feed import FeedScope, FeedSynchronizer
from facebook_clone.images import DEFAULT_JPEG_QUALITY, ImageSource, encode_jpeg
from facebook_clone.models import Post, User, from_document
from facebook_clone.saga import Saga
from facebook_clone.storage import BlobStorage
from facebook_clone.subscriptions import Dispatcher, Synchronizer

if TYPE_CHECKING:
    from facebook_clone.session import Session

logger = logging.getLogger(__name__)


class ProfileSynchronizer(Synchronizer):
    def __init__(
        self,
        session: "Session",
        store: DocumentStore,
        storage: BlobStorage,
        *,
        dispatcher: Optional[Dispatcher] = None,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    ):
        super().__init__(session, store, dispatcher=dispatcher)
        self.storage = storage
        self.jpeg_quality = jpeg_quality
        self.user: Optional[User] = None
        self.friends_count = 0
        self.feed = FeedSynchronizer(
            session, store, storage, dispatcher=dispatcher, jpeg_quality=jpeg_quality
        )
        self.feed.add_observer(lambda _: self._changed())

    def _clear(self) -> None:
        super()._clear()
        self.user = None
        self.friends_count = 0

    @property
    def posts(self) -> List[Post]:
        return self.feed.posts

    @property
    def posts_count(self) -> int:
        return len(self.feed.posts)

    def subscribe(self) -> bool:
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Loading profile")
            return False

        def handle_user(records):
            user = from_document(User, records[0].id, records[0].data) if records else None

            def apply():
                self.user = user

            return apply

        def handle_friendships(records):
            count = len(records)

            def apply():
                self.friends_count = count

            return apply

        user_query = Query(USERS_COLLECTION).where(DOCUMENT_ID, "in", [user_id])
        friends_query = Query(FRIENDSHIPS_COLLECTION).where("users", "array_contains", user_id)
        ok = self._listen("user", user_query, handle_user) is not None
        ok = self._listen("friendships", friends_query, handle_friendships) is not None and ok
        return self.feed.subscribe(FeedScope.by_author(user_id)) and ok

    def cancel(self) -> None:
        super().cancel()
        self.feed.cancel()

    def upload_profile_image(self, image: ImageSource) -> Optional[str]:
        """
        Store a new profile picture and point users/{uid}.profileImageURL at it.

        Returns the picture's download URL. The uploaded file is deleted again
        if the user document cannot be updated.
        """
        self._begin()
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Uploading profile image")
            return None

        path = user_profile_image_path(user_id, str(uuid.uuid4()))
        saga = (
            Saga("upload_profile_image")
            .step("jpeg", lambda ctx: encode_jpeg(image, self.jpeg_quality))
            .step(
                "upload",
                lambda ctx: self.storage.upload_bytes(path, ctx["jpeg"], JPEG_CONTENT_TYPE),
                compensation=lambda ctx: self.storage.delete(path),
            )
            .step("url", lambda ctx: self.storage.download_url(path))
            .step(
                "user",
                lambda ctx: self.store.update(
                    USERS_COLLECTION, user_id, {"profileImageURL": ctx["url"]}
                ),
            )
        )
        result = saga.run()
        if not result.succeeded:
            self._finish(result.error, "Uploading profile image")
            return None

        url = result.context["url"]
        if self.user is not None:
            self.user = replace(self.user, profile_image_url=url)
        self._finish()
        return url
