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
Live post feed and post publishing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from facebook_clone.constants import JPEG_CONTENT_TYPE, POSTS_COLLECTION, post_image_path
from facebook_clone.db import DocumentStore, Query
from facebook_clone.images import DEFAULT_JPEG_QUALITY, ImageSource, encode_jpeg
from facebook_clone.models import Post, from_document
from facebook_clone.saga import Saga
from facebook_clone.storage import BlobStorage
from facebook_clone.subscriptions import Dispatcher, Synchronizer

if TYPE_CHECKING:
    from facebook_clone.session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedScope:
    """Either every post, or the posts of one author."""

    author_id: Optional[str] = None

    @classmethod
    def everyone(cls) -> "FeedScope":
        return cls()

    @classmethod
    def by_author(cls, author_id: str) -> "FeedScope":
        return cls(author_id=author_id)

    def query(self) -> Query:
        query = Query(POSTS_COLLECTION)
        if self.author_id:
            query = query.where("userID", "==", self.author_id)
        return query.ordered("timestamp", descending=True)


def newest_first(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=lambda p: p.timestamp, reverse=True)


class FeedSynchronizer(Synchronizer):
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
        self.posts: List[Post] = []
        self.scope: Optional[FeedScope] = None

    def _clear(self) -> None:
        super()._clear()
        self.posts = []

    def subscribe(self, scope: Optional[FeedScope] = None) -> bool:
        """Mirror the posts in `scope`, newest first. Replaces any earlier scope."""
        self.scope = scope or FeedScope.everyone()

        def handle(records):
            posts = newest_first([from_document(Post, r.id, r.data) for r in records])

            def apply():
                self.posts = posts

            return apply

        return self._listen("posts", self.scope.query(), handle) is not None

    def publish(self, text: str, image: Optional[ImageSource] = None) -> Optional[Post]:
        """
        Write a post, uploading its image first when there is one.

        Nothing is written if encoding or the upload fails. If the post write
        fails after the upload, the uploaded image is deleted again.
        """
        self._begin()
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Publishing post")
            return None

        post_id = self.store.new_id(POSTS_COLLECTION)
        saga = Saga("publish_post")
        if image is not None:
            image_path = post_image_path(str(uuid.uuid4()))
            saga.step("jpeg", lambda ctx: encode_jpeg(image, self.jpeg_quality))
            saga.step(
                "upload",
                lambda ctx: self.storage.upload_bytes(image_path, ctx["jpeg"], JPEG_CONTENT_TYPE),
                compensation=lambda ctx: self.storage.delete(image_path),
            )
            saga.step("image_url", lambda ctx: self.storage.download_url(image_path))
        saga.step(
            "post",
            lambda ctx: self.store.set(
                POSTS_COLLECTION,
                post_id,
                {
                    "userID": user_id,
                    "text": text,
                    "imageURL": ctx.get("image_url"),
                    "timestamp": SERVER_TIMESTAMP,
                },
            ),
        )

        result = saga.run()
        if not result.succeeded:
            self._finish(result.error, "Publishing post")
            return None

        self._finish()
        return Post(
            id=post_id,
            user_id=user_id,
            text=text,
            image_url=result.context.get("image_url"),
        )
