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

import logging
from typing import Dict, Iterable, List, Optional

from facebook_clone.constants import MAX_IN_QUERY_VALUES, USERS_COLLECTION
from facebook_clone.db import DocumentStore
from facebook_clone.models import User, from_document

logger = logging.getLogger(__name__)


class UserDirectory:
    """Resolves user ids to User documents with batched "in" queries."""

    def __init__(self, store: DocumentStore, batch_size: int = MAX_IN_QUERY_VALUES):
        self.store = store
        self.batch_size = max(1, min(batch_size, MAX_IN_QUERY_VALUES))

    def get_user(self, user_id: str) -> Optional[User]:
        record = self.store.get(USERS_COLLECTION, user_id)
        if record is None:
            return None
        return from_document(User, record.id, record.data)

    def fetch_users(self, ids: Iterable[Optional[str]]) -> List[User]:
        """
        Fetch the distinct users among `ids`.

        An empty id set returns [] without touching the store. Otherwise one
        query is issued per `batch_size` distinct ids.
        """
        unique = list(dict.fromkeys(i for i in ids if i))
        if not unique:
            return []

        users: List[User] = []
        for start in range(0, len(unique), self.batch_size):
            chunk = unique[start : start + self.batch_size]
            records = self.store.get_many(USERS_COLLECTION, chunk)
            users.extend(from_document(User, r.id, r.data) for r in records)
        logger.debug("Resolved %d of %d users", len(users), len(unique))
        return users

    def fetch_user_map(self, ids: Iterable[Optional[str]]) -> Dict[str, User]:
        return {user.id: user for user in self.fetch_users(ids)}
