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
Dataclasses for the documents the client reads from and writes to Firestore.

Documents are stored with camelCase keys, except the id and URL fields in
STORED_FIELD_NAMES, which keep the names older clients write (`userID`,
`imageURL`, ...). Conversion goes through json_utils.convert_keys and dacite;
the document id is injected as `id`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, List, Optional, Type, TypeVar

from dacite import Config, from_dict

from facebook_clone.json_utils import convert_keys

T = TypeVar("T")

# Relationships resolved on the client; never written back.
_CLIENT_ONLY_FIELDS = ("id", "sender")

# Fields whose stored name is not the plain camelCase of the attribute.
STORED_FIELD_NAMES = {
    "user_id": "userID",
    "image_url": "imageURL",
    "profile_image_url": "profileImageURL",
    "cover_image_url": "coverPhotoURL",
}
_ATTRIBUTE_NAMES = {stored: attr for attr, stored in STORED_FIELD_NAMES.items()}


class FriendRequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass
class User:
    id: str
    name: str = ""
    email: str = ""
    profile_image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    bio: Optional[str] = None


@dataclass
class Post:
    id: str
    user_id: str = ""
    text: str = ""
    image_url: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass
class Conversation:
    """Summary document kept next to a conversation's messages."""

    id: str
    participants: List[str] = field(default_factory=list)
    last_message: str = ""
    last_message_timestamp: Optional[datetime] = None


@dataclass
class Message:
    id: str
    sender_id: str = ""
    text: str = ""
    timestamp: Optional[datetime] = None
    read: bool = False
    sender: Optional[User] = None


@dataclass
class FriendRequest:
    id: str
    sender_id: str = ""
    receiver_id: str = ""
    status: FriendRequestStatus = FriendRequestStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sender: Optional[User] = None


@dataclass
class Friendship:
    id: str
    users: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def includes(self, user_id: str) -> bool:
        return user_id in self.users

    def peer_of(self, user_id: str) -> Optional[str]:
        """Return the other participant, or None if user_id is not a member."""
        if user_id not in self.users:
            return None
        for other in self.users:
            if other != user_id:
                return other
        return None


@dataclass
class Notification:
    id: str
    type: str = ""
    message: str = ""
    is_read: bool = False
    timestamp: Optional[datetime] = None
    receiver_id: Optional[str] = None
    sender_id: Optional[str] = None
    read_at: Optional[datetime] = None
    sender: Optional[User] = None


_DACITE_CONFIG = Config(check_types=False, cast=[FriendRequestStatus])

_TIMESTAMP_FIELDS = {
    Post: ("timestamp",),
    Message: ("timestamp",),
    Notification: ("timestamp",),
}


def from_document(data_class: Type[T], doc_id: str, data: dict) -> T:
    """Builds a model from a raw Firestore document."""
    payload = {
        _ATTRIBUTE_NAMES.get(key, key): value for key, value in data.items()
    }
    payload = convert_keys(payload, "camel_to_snake")
    payload["id"] = doc_id
    for name in _TIMESTAMP_FIELDS.get(data_class, ()):
        if payload.get(name) is None:
            payload[name] = datetime.now(timezone.utc)
    return from_dict(data_class=data_class, data=payload, config=_DACITE_CONFIG)


def to_document(model: Any) -> dict:
    """Serializes a model to a camelCase Firestore payload without its id."""
    payload = {
        key: value
        for key, value in asdict(model).items()
        if key not in _CLIENT_ONLY_FIELDS
    }
    if isinstance(payload.get("status"), FriendRequestStatus):
        payload["status"] = payload["status"].value
    payload = {STORED_FIELD_NAMES.get(key, key): value for key, value in payload.items()}
    return convert_keys(payload, "snake_to_camel")
