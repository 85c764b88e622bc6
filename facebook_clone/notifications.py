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

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from facebook_clone.constants import NOTIFICATIONS_COLLECTION
from facebook_clone.db import DocumentStore, Query
from facebook_clone.models import Notification, from_document
from facebook_clone.subscriptions import Dispatcher, Synchronizer
from facebook_clone.users import UserDirectory

if TYPE_CHECKING:
    from facebook_clone.session import Session


class NotificationSynchronizer(Synchronizer):
    """Notifications addressed to the signed-in user, newest first."""

    def __init__(
        self,
        session: "Session",
        store: DocumentStore,
        users: UserDirectory,
        *,
        dispatcher: Optional[Dispatcher] = None,
    ):
        super().__init__(session, store, dispatcher=dispatcher)
        self.users = users
        self.notifications: List[Notification] = []

    def _clear(self) -> None:
        super()._clear()
        self.notifications = []

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.is_read)

    def subscribe(self) -> bool:
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Loading notifications")
            return False

        def handle(records):
            notifications = [from_document(Notification, r.id, r.data) for r in records]
            senders, lookup_error = self._resolve_users(
                self.users, (n.sender_id for n in notifications)
            )
            for notification in notifications:
                notification.sender = senders.get(notification.sender_id)
            notifications.sort(key=lambda n: n.timestamp, reverse=True)

            def apply():
                self.notifications = notifications
                if lookup_error is not None:
                    self._record_error(lookup_error)

            return apply

        query = (
            Query(NOTIFICATIONS_COLLECTION)
            .where("receiverId", "==", user_id)
            .ordered("timestamp", descending=True)
        )
        return self._listen("notifications", query, handle) is not None

    def mark_read(self, notification: Notification) -> bool:
        # The local list is left alone; the next snapshot carries the change.
        try:
            self.store.update(
                NOTIFICATIONS_COLLECTION,
                notification.id,
                {"isRead": True, "readAt": SERVER_TIMESTAMP},
            )
        except Exception as e:
            self._finish(e, "Marking notification read")
            return False
        return True
