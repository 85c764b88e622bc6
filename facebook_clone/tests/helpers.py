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

from datetime import datetime, timedelta, timezone

from PIL import Image

from facebook_clone.constants import USERS_COLLECTION
from facebook_clone.db import InMemoryDocumentStore
from facebook_clone.models import User, to_document
from facebook_clone.session import Session

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def seed_user(store: InMemoryDocumentStore, user_id: str, name: str, **fields) -> User:
    user = User(id=user_id, name=name, email=f"{user_id}@example.com", **fields)
    store.set(USERS_COLLECTION, user_id, to_document(user))
    return user


def signed_in(user: User) -> Session:
    return Session(user)


def make_image(mode: str = "RGB", size=(8, 8), color="red") -> Image.Image:
    if mode == "RGBA":
        color = (255, 0, 0, 128)
    elif mode == "P":
        color = 1
    return Image.new(mode, size, color)
