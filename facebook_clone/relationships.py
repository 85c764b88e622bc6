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
Friend requests and friendships.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from facebook_clone.constants import FRIEND_REQUESTS_COLLECTION, FRIENDSHIPS_COLLECTION
from facebook_clone.db import DocumentStore, Query
from facebook_clone.errors import SocialError
from facebook_clone.models import (
    FriendRequest,
    FriendRequestStatus,
    Friendship,
    User,
    from_document,
)
from facebook_clone.saga import Saga
from facebook_clone.subscriptions import Dispatcher, Synchronizer
from facebook_clone.users import UserDirectory

if TYPE_CHECKING:
    from facebook_clone.session import Session

logger = logging.getLogger(__name__)


class RelationshipManager(Synchronizer):
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
        self.friendships: List[Friendship] = []
        self.friends: List[User] = []
        self.friend_requests: List[FriendRequest] = []

    def _clear(self) -> None:
        super()._clear()
        self.friendships = []
        self.friends = []
        self.friend_requests = []

    @property
    def friends_count(self) -> int:
        return len(self.friends)

    def filter_friends(self, search_text: str) -> List[User]:
        needle = search_text.strip().lower()
        if not needle:
            return list(self.friends)
        return [f for f in self.friends if needle in f.name.lower()]

    def fetch_friends(self) -> bool:
        """Mirror the users the signed-in user is friends with."""
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Loading friends")
            return False

        def handle(records):
            friendships = [from_document(Friendship, r.id, r.data) for r in records]
            peer_ids = list(
                dict.fromkeys(f.peer_of(user_id) for f in friendships if f.peer_of(user_id))
            )
            users, lookup_error = self._resolve_users(self.users, peer_ids)
            friends = [users[peer_id] for peer_id in peer_ids if peer_id in users]

            def apply():
                self.friendships = friendships
                self.friends = friends
                if lookup_error is not None:
                    self._record_error(lookup_error)

            return apply

        query = Query(FRIENDSHIPS_COLLECTION).where("users", "array_contains", user_id)
        return self._listen("friends", query, handle) is not None

    def fetch_requests(self) -> bool:
        """Mirror the pending requests addressed to the signed-in user."""
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Loading friend requests")
            return False

        def handle(records):
            requests = [from_document(FriendRequest, r.id, r.data) for r in records]
            senders, lookup_error = self._resolve_users(
                self.users, (r.sender_id for r in requests)
            )
            for request in requests:
                request.sender = senders.get(request.sender_id)

            def apply():
                self.friend_requests = requests
                if lookup_error is not None:
                    self._record_error(lookup_error)

            return apply

        query = (
            Query(FRIEND_REQUESTS_COLLECTION)
            .where("receiverId", "==", user_id)
            .where("status", "==", FriendRequestStatus.PENDING.value)
        )
        return self._listen("requests", query, handle) is not None

    def send_request(self, receiver_id: str) -> Optional[str]:
        self._begin()
        try:
            sender_id = self._require_user_id()
            if receiver_id == sender_id:
                raise SocialError("You cannot send a friend request to yourself")
            request_id = self.store.add(
                FRIEND_REQUESTS_COLLECTION,
                {
                    "senderId": sender_id,
                    "receiverId": receiver_id,
                    "status": FriendRequestStatus.PENDING.value,
                    "createdAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )
        except Exception as e:
            self._finish(e, "Sending friend request")
            return None
        self._finish()
        return request_id

    def accept(self, request: FriendRequest) -> bool:
        """
        Mark the request accepted, then record the friendship.

        The friendship is only written once the status update succeeded. If
        that second write fails the request stays accepted without a
        friendship; the error is reported and nothing reconciles it.
        """
        self._begin()
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Accepting friend request")
            return False

        saga = (
            Saga("accept_friend_request")
            .step("status", lambda ctx: self._set_status(request, FriendRequestStatus.ACCEPTED))
            .step(
                "friendship",
                lambda ctx: self.store.add(
                    FRIENDSHIPS_COLLECTION,
                    {"users": [user_id, request.sender_id], "createdAt": SERVER_TIMESTAMP},
                ),
            )
        )
        result = saga.run()
        if result.failed_step == "status":
            self._finish(result.error, "Accepting friend request")
            return False

        self._drop_request(request)
        if not result.succeeded:
            logger.error(
                "Request %s accepted but no friendship was recorded: %s",
                request.id,
                result.error,
            )
            self._finish(result.error)
            return False
        self._finish()
        return True

    def decline(self, request: FriendRequest) -> bool:
        self._begin()
        try:
            self._set_status(request, FriendRequestStatus.DECLINED)
        except Exception as e:
            self._finish(e, "Declining friend request")
            return False
        self._drop_request(request)
        self._finish()
        return True

    def _set_status(self, request: FriendRequest, status: FriendRequestStatus) -> None:
        self.store.update(
            FRIEND_REQUESTS_COLLECTION,
            request.id,
            {"status": status.value, "updatedAt": SERVER_TIMESTAMP},
        )

    def _drop_request(self, request: FriendRequest) -> None:
        self.friend_requests = [r for r in self.friend_requests if r.id != request.id]
