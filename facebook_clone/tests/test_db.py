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
from datetime import datetime
from unittest.mock import MagicMock, call

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from facebook_clone.db import (
    DOCUMENT_ID,
    DocumentNotFoundError,
    Filter,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    Query,
)
from facebook_clone.tests.helpers import at


class InMemoryDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_server_timestamp_is_resolved_on_write(self):
        doc_id = self.store.add("posts", {"text": "hi", "timestamp": SERVER_TIMESTAMP})
        stored = self.store.get("posts", doc_id)
        self.assertIsInstance(stored.data["timestamp"], datetime)
        self.assertIsNotNone(stored.data["timestamp"].tzinfo)

    def test_server_timestamps_strictly_increase(self):
        first = self.store.add("posts", {"timestamp": SERVER_TIMESTAMP})
        second = self.store.add("posts", {"timestamp": SERVER_TIMESTAMP})
        self.assertLess(
            self.store.get("posts", first).data["timestamp"],
            self.store.get("posts", second).data["timestamp"],
        )

    def test_merge_set_preserves_absent_fields(self):
        self.store.set("conversations", "a_b", {"participants": ["a", "b"], "pinned": True})
        self.store.set("conversations", "a_b", {"lastMessage": "yo"}, merge=True)
        data = self.store.get("conversations", "a_b").data
        self.assertEqual(data["pinned"], True)
        self.assertEqual(data["lastMessage"], "yo")
        self.assertEqual(data["participants"], ["a", "b"])

    def test_plain_set_replaces_document(self):
        self.store.set("users", "u1", {"name": "A", "bio": "x"})
        self.store.set("users", "u1", {"name": "B"})
        self.assertEqual(self.store.get("users", "u1").data, {"name": "B"})

    def test_update_missing_document_raises(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update("friend_requests", "missing", {"status": "accepted"})

    def test_query_filters_and_order(self):
        self.store.set("posts", "p1", {"userID": "u1", "timestamp": at(1)})
        self.store.set("posts", "p2", {"userID": "u2", "timestamp": at(2)})
        self.store.set("posts", "p3", {"userID": "u1", "timestamp": at(3)})
        self.store.set("posts", "p4", {"userID": "u1"})

        query = Query("posts").where("userID", "==", "u1").ordered("timestamp", descending=True)
        ids = [r.id for r in self.store.query(query)]

        # p4 has no timestamp and is dropped, like Firestore does.
        self.assertEqual(ids, ["p3", "p1"])

    def test_array_contains_and_document_id_in(self):
        self.store.set("friendships", "f1", {"users": ["a", "b"]})
        self.store.set("friendships", "f2", {"users": ["b", "c"]})
        self.store.set("friendships", "f3", {"users": ["c", "d"]})

        contains_b = self.store.query(Query("friendships").where("users", "array_contains", "b"))
        self.assertEqual(sorted(r.id for r in contains_b), ["f1", "f2"])

        by_id = self.store.query(Query("friendships").where(DOCUMENT_ID, "in", ["f3", "zz"]))
        self.assertEqual([r.id for r in by_id], ["f3"])

    def test_unsupported_operator_rejected(self):
        with self.assertRaises(ValueError):
            Filter("age", ">", 3)

    def test_listener_receives_initial_and_pushed_snapshots(self):
        snapshots = []
        handle = self.store.listen(
            Query("posts").ordered("timestamp"), lambda records, error: snapshots.append(records)
        )
        self.store.set("posts", "p1", {"timestamp": at(1)})
        self.store.set("other", "x", {"timestamp": at(1)})

        self.assertEqual(len(snapshots), 2)
        self.assertEqual(snapshots[0], [])
        self.assertEqual([r.id for r in snapshots[1]], ["p1"])

        handle.unsubscribe()
        self.store.set("posts", "p2", {"timestamp": at(2)})
        self.assertEqual(len(snapshots), 2)
        self.assertEqual(self.store.listener_count, 0)

    def test_fail_next_raises_once(self):
        self.store.fail_next("add", RuntimeError("offline"))
        with self.assertRaises(RuntimeError):
            self.store.add("posts", {})
        self.store.add("posts", {})
        self.assertEqual(len(self.store.documents("posts")), 1)

    def test_get_many_counts_as_one_query(self):
        self.store.set("users", "u1", {"name": "A"})
        self.store.set("users", "u2", {"name": "B"})
        records = self.store.get_many("users", ["u1", "u2"])
        self.assertEqual(sorted(r.id for r in records), ["u1", "u2"])
        self.assertEqual(self.store.query_count, 1)


class FirestoreDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.store = FirestoreDocumentStore(client=self.client)

    def test_document_id_in_filter_uses_references(self):
        self.store._build(Query("users").where(DOCUMENT_ID, "in", ["ann", "bob"]))

        self.client.collection.assert_called_once_with("users")
        self.assertEqual(self.collection.document.call_args_list, [call("ann"), call("bob")])
        flt = self.collection.where.call_args.kwargs["filter"]
        self.assertEqual(flt.op_string, "in")
        self.assertEqual(len(flt.value), 2)

    def test_document_id_equality_uses_single_reference(self):
        self.store._build(Query("users").where(DOCUMENT_ID, "==", "ann"))

        self.collection.document.assert_called_once_with("ann")
        flt = self.collection.where.call_args.kwargs["filter"]
        self.assertIs(flt.value, self.collection.document.return_value)

    def test_field_filters_pass_values_through(self):
        self.store._build(Query("posts").where("userID", "==", "ann"))

        self.collection.document.assert_not_called()
        flt = self.collection.where.call_args.kwargs["filter"]
        self.assertEqual((flt.field_path, flt.value), ("userID", "ann"))


if __name__ == "__main__":
    unittest.main()
