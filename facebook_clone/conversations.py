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
Direct-message conversations between two users.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from facebook_clone.constants import CONVERSATIONS_COLLECTION, messages_collection
from facebook_clone.db import DocumentStore, Query
from facebook_clone.models import Conversation, Message, User, from_document
from facebook_clone.subscriptions import Dispatcher, Synchronizer
from facebook_clone.users import UserDirectory

if TYPE_CHECKING:
    from facebook_clone.session import Session

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "_"


def conversation_id(user_a: str, user_b: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Both participants derive the same id: the two ids sorted and joined."""
    return separator.join(sorted([user_a, user_b]))


def oldest_first(messages: List[Message]) -> List[Message]:
    return sorted(messages, key=lambda m: m.timestamp)


class ConversationSynchronizer(Synchronizer):
    """Mirrors the messages of one conversation at a time."""

    def __init__(
        self,
        session: "Session",
        store: DocumentStore,
        users: UserDirectory,
        *,
        dispatcher: Optional[Dispatcher] = None,
        separator: str = DEFAULT_SEPARATOR,
    ):
        super().__init__(session, store, dispatcher=dispatcher)
        self.users = users
        self.separator = separator
        self.messages: List[Message] = []
        self.conversation_id: Optional[str] = None

    def _clear(self) -> None:
        super()._clear()
        self.messages = []
        self.conversation_id = None

    def conversation_with(self, recipient_id: str) -> str:
        return conversation_id(self._require_user_id(), recipient_id, self.separator)

    def open(self, conv_id: str) -> bool:
        """Subscribe to `conv_id`, dropping the subscription of any other conversation."""
        if conv_id == self.conversation_id and "messages" in self._subscriptions:
            return True
        self._cancel_key("messages")
        self.conversation_id = conv_id
        self.messages = []

        def handle(records):
            messages = [from_document(Message, r.id, r.data) for r in records]
            senders, lookup_error = self._resolve_users(
                self.users, (m.sender_id for m in messages)
            )
            for message in messages:
                message.sender = senders.get(message.sender_id)
            messages = oldest_first(messages)

            def apply():
                self.messages = messages
                if lookup_error is not None:
                    self._record_error(lookup_error)

            return apply

        query = Query(messages_collection(conv_id)).ordered("timestamp")
        return self._listen("messages", query, handle) is not None

    def open_with(self, recipient_id: str) -> bool:
        try:
            conv_id = self.conversation_with(recipient_id)
        except Exception as e:
            self._finish(e, "Opening conversation")
            return False
        return self.open(conv_id)

    def send(self, text: str, recipient_id: str) -> bool:
        """
        Append a message and merge-upsert the conversation summary.

        The two writes are independent: both are attempted, and a failure of
        either one is reported without undoing the other.
        """
        if not text.strip():
            return False
        try:
            sender_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Sending message")
            return False

        conv_id = conversation_id(sender_id, recipient_id, self.separator)
        self.error = None
        ok = True
        try:
            self.store.add(
                messages_collection(conv_id),
                {
                    "text": text,
                    "senderId": sender_id,
                    "timestamp": SERVER_TIMESTAMP,
                    "read": False,
                },
            )
        except Exception as e:
            self._record_error(e, "Appending message")
            ok = False

        try:
            self.store.set(
                CONVERSATIONS_COLLECTION,
                conv_id,
                {
                    "participants": sorted([sender_id, recipient_id]),
                    "lastMessage": text,
                    "lastMessageTimestamp": SERVER_TIMESTAMP,
                },
                merge=True,
            )
        except Exception as e:
            self._record_error(e, "Updating conversation summary")
            ok = False

        self._changed()
        return ok

    def close(self) -> None:
        self.cancel()
        self.conversation_id = None


class ConversationList(Synchronizer):
    """The signed-in user's conversations, most recently active first."""

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
        self.conversations: List[Conversation] = []
        self.peers: Dict[str, User] = {}

    def _clear(self) -> None:
        super()._clear()
        self.conversations = []
        self.peers = {}

    def peer_of(self, conversation: Conversation) -> Optional[User]:
        user_id = self.session.user_id
        for participant in conversation.participants:
            if participant != user_id:
                return self.peers.get(participant)
        return None

    def subscribe(self) -> bool:
        try:
            user_id = self._require_user_id()
        except Exception as e:
            self._finish(e, "Loading conversations")
            return False

        def handle(records):
            conversations = [from_document(Conversation, r.id, r.data) for r in records]
            peer_ids = [p for c in conversations for p in c.participants if p != user_id]
            peers, lookup_error = self._resolve_users(self.users, peer_ids)

            def apply():
                self.conversations = conversations
                self.peers = peers
                if lookup_error is not None:
                    self._record_error(lookup_error)

            return apply

        query = (
            Query(CONVERSATIONS_COLLECTION)
            .where("participants", "array_contains", user_id)
            .ordered("lastMessageTimestamp", descending=True)
        )
        return self._listen("conversations", query, handle) is not None
