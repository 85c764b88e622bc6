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

import unittest

from facebook_clone.constants import USERS_COLLECTION
from facebook_clone.db import InMemoryDocumentStore
from facebook_clone.tests.helpers import seed_user
from facebook_clone.users import UserDirectory


class UserDirectoryTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        for i in range(5):
            seed_user(self.store, f"u{i}", f"User {i}")
        self.directory = UserDirectory(self.store)

    def test_empty_id_set_issues_no_query(self):
        self.assertEqual(self.directory.fetch_users([]), [])
        self.assertEqual(self.directory.fetch_users([None, ""]), [])
        self.assertEqual(self.store.query_count, 0)

    def test_duplicate_ids_resolved_with_one_query(self):
        users = self.directory.fetch_users(["u1", "u2", "u1", "u2", "u1"])
        self.assertEqual(sorted(u.id for u in users), ["u1", "u2"])
        self.assertEqual(self.store.query_count, 1)

    def test_unknown_ids_are_skipped(self):
        users = self.directory.fetch_user_map(["u3", "ghost"])
        self.assertEqual(list(users), ["u3"])
        self.assertEqual(users["u3"].name, "User 3")

    def test_large_id_sets_are_chunked(self):
        directory = UserDirectory(self.store, batch_size=2)
        users = directory.fetch_users([f"u{i}" for i in range(5)])
        self.assertEqual(len(users), 5)
        self.assertEqual(self.store.query_count, 3)

    def test_batch_size_capped_at_firestore_limit(self):
        self.assertEqual(UserDirectory(self.store, batch_size=500).batch_size, 30)

    def test_get_user(self):
        self.assertEqual(self.directory.get_user("u4").email, "u4@example.com")
        self.assertIsNone(self.directory.get_user("nobody"))

    def test_profile_image_from_stored_url_field(self):
        self.store.set(
            USERS_COLLECTION, "ann", {"name": "Ann", "email": "ann@example.com", "profileImageURL": "http://img"}
        )
        self.assertEqual(self.directory.get_user("ann").profile_image_url, "http://img")


if __name__ == "__main__":
    unittest.main()
