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
Dependency wiring for the client: Firebase adapters or in-memory doubles.
"""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials

from facebook_clone.auth import FirebaseIdentityProvider, IdentityProvider, InMemoryIdentityProvider
from facebook_clone.config import Settings, get_settings
from facebook_clone.db import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from facebook_clone.storage import BlobStorage, FirebaseBlobStorage, InMemoryBlobStorage

logger = logging.getLogger(__name__)

_firebase_app: firebase_admin.App | None = None
_document_store: DocumentStore | None = None
_blob_storage: BlobStorage | None = None
_identity_provider: IdentityProvider | None = None


def _use_in_memory(settings: Settings) -> bool:
    return settings.use_in_memory_backends or not settings.firebase_project_id


def get_firebase_app() -> firebase_admin.App:
    """Initialise the default Firebase app once."""
    global _firebase_app
    if _firebase_app:
        return _firebase_app

    settings = get_settings()
    options = {"projectId": settings.firebase_project_id}
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket
    credential = None
    if settings.google_application_credentials:
        credential = credentials.Certificate(settings.google_application_credentials)
    _firebase_app = firebase_admin.initialize_app(credential, options)
    logger.info("Initialised Firebase app for project %s", settings.firebase_project_id)
    return _firebase_app


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so every component sees the same data.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if _use_in_memory(settings):
        _document_store = InMemoryDocumentStore()
    else:
        get_firebase_app()
        _document_store = FirestoreDocumentStore()
    return _document_store


def get_blob_storage() -> BlobStorage:
    global _blob_storage
    if _blob_storage:
        return _blob_storage

    settings = get_settings()
    if _use_in_memory(settings) or not settings.firebase_storage_bucket:
        _blob_storage = InMemoryBlobStorage()
    else:
        get_firebase_app()
        _blob_storage = FirebaseBlobStorage(bucket_name=settings.firebase_storage_bucket)
    return _blob_storage


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider:
        return _identity_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_api_key:
        _identity_provider = InMemoryIdentityProvider()
    else:
        _identity_provider = FirebaseIdentityProvider(
            api_key=settings.firebase_api_key,
            timeout=settings.auth_request_timeout,
        )
    return _identity_provider


def reset_clients() -> None:
    """Forget the cached clients (the Firebase app itself is kept)."""
    global _document_store, _blob_storage, _identity_provider
    _document_store = None
    _blob_storage = None
    _identity_provider = None
