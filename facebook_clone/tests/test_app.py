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
from unittest.mock import patch

from facebook_clone import dependencies
from facebook_clone.app import create_app
from facebook_clone.auth import InMemoryIdentityProvider
from facebook_clone.config import Settings
from facebook_clone.db import InMemoryDocumentStore
from facebook_clone.storage import InMemoryBlobStorage
from facebook_clone.subscriptions import SubscriptionState


class DependenciesTests(unittest.TestCase):
    def setUp(self):
        dependencies.reset_clients()
        self.addCleanup(dependencies.reset_clients)

    def test_in_memory_backends_without_project(self):
        settings = Settings(_env_file=None, firebase_project_id=None, firebase_api_key=None)
        with patch.object(dependencies, "get_settings", return_value=settings):
            store = dependencies.get_document_store()
            self.assertIsInstance(store, InMemoryDocumentStore)
            self.assertIs(dependencies.get_document_store(), store)
            self.assertIsInstance(dependencies.get_blob_storage(), InMemoryBlobStorage)
            self.assertIsInstance(dependencies.get_identity_provider(), InMemoryIdentityProvider)

    def test_in_memory_flag_overrides_project(self):
        settings = Settings(
            _env_file=None,
            firebase_project_id="demo",
            firebase_storage_bucket="demo.appspot.com",
            firebase_api_key="key",
            use_in_memory_backends=True,
        )
        with patch.object(dependencies, "get_settings", return_value=settings):
            self.assertIsInstance(dependencies.get_document_store(), InMemoryDocumentStore)
            self.assertIsInstance(dependencies.get_identity_provider(), InMemoryIdentityProvider)


class CreateAppTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.identity = InMemoryIdentityProvider()
        self.app = create_app(
            Settings(_env_file=None, use_in_memory_backends=True),
            store=self.store,
            storage=InMemoryBlobStorage(),
            identity=self.identity,
        )

    def test_components_share_the_session(self):
        self.assertTrue(self.app.auth.signup("ann@example.com", "secret1", "Ann"))
        for component in (self.app.feed, self.app.friends, self.app.profile):
            self.assertIs(component.session, self.app.session)
        self.assertEqual(self.app.session.user.name, "Ann")

    def test_logout_cancels_every_subscription(self):
        self.app.auth.signup("ann@example.com", "secret1", "Ann")
        self.app.feed.subscribe()
        self.app.inbox.subscribe()
        self.app.friends.fetch_friends()
        self.app.friends.fetch_requests()
        self.app.notifications.subscribe()
        self.app.profile.subscribe()
        self.app.chat.open_with("bob")
        self.assertGreater(self.store.listener_count, 0)

        self.assertTrue(self.app.auth.logout())

        self.assertEqual(self.store.listener_count, 0)
        self.assertEqual(self.app.feed.state, SubscriptionState.IDLE)
        self.assertEqual(self.app.chat.state, SubscriptionState.IDLE)

    def test_shutdown(self):
        self.app.auth.signup("ann@example.com", "secret1", "Ann")
        self.app.feed.subscribe()
        self.app.notifications.subscribe()

        self.app.shutdown()

        self.assertEqual(self.store.listener_count, 0)
        self.assertTrue(self.app.session.is_signed_in)


if __name__ == "__main__":
    unittest.main()
