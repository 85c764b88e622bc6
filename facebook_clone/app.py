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
Client entry point: one session shared by every synchronizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from facebook_clone.auth import IdentityProvider
from facebook_clone.config import Settings, get_settings
from facebook_clone.conversations import ConversationList, ConversationSynchronizer
from facebook_clone.db import DocumentStore
from facebook_clone.dependencies import (
    get_blob_storage,
    get_document_store,
    get_identity_provider,
)
from facebook_clone.feed import FeedSynchronizer
from facebook_clone.notifications import NotificationSynchronizer
from facebook_clone.profile import ProfileSynchronizer
from facebook_clone.relationships import RelationshipManager
from facebook_clone.session import Session, SessionManager
from facebook_clone.storage import BlobStorage
from facebook_clone.subscriptions import Dispatcher, ImmediateDispatcher
from facebook_clone.users import UserDirectory


@dataclass
class SocialApp:
    settings: Settings
    session: Session
    auth: SessionManager
    feed: FeedSynchronizer
    chat: ConversationSynchronizer
    inbox: ConversationList
    friends: RelationshipManager
    notifications: NotificationSynchronizer
    profile: ProfileSynchronizer

    def shutdown(self) -> None:
        for component in (
            self.feed,
            self.chat,
            self.inbox,
            self.friends,
            self.notifications,
            self.profile,
        ):
            component.cancel()


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    storage: Optional[BlobStorage] = None,
    identity: Optional[IdentityProvider] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> SocialApp:
    settings = settings or get_settings()
    store = store or get_document_store()
    storage = storage or get_blob_storage()
    identity = identity or get_identity_provider()
    dispatcher = dispatcher or ImmediateDispatcher()

    session = Session()
    users = UserDirectory(store, batch_size=settings.user_lookup_batch_size)
    return SocialApp(
        settings=settings,
        session=session,
        auth=SessionManager(session, identity, store),
        feed=FeedSynchronizer(
            session, store, storage, dispatcher=dispatcher, jpeg_quality=settings.image_jpeg_quality
        ),
        chat=ConversationSynchronizer(
            session,
            store,
            users,
            dispatcher=dispatcher,
            separator=settings.conversation_id_separator,
        ),
        inbox=ConversationList(session, store, users, dispatcher=dispatcher),
        friends=RelationshipManager(session, store, users, dispatcher=dispatcher),
        notifications=NotificationSynchronizer(session, store, users, dispatcher=dispatcher),
        profile=ProfileSynchronizer(
            session, store, storage, dispatcher=dispatcher, jpeg_quality=settings.image_jpeg_quality
        ),
    )
