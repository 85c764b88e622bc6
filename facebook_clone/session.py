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
Signed-in identity and the login / signup / logout flows.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from facebook_clone.auth import AuthAccount, IdentityProvider
from facebook_clone.constants import USERS_COLLECTION
from facebook_clone.db import DocumentStore
from facebook_clone.errors import AuthError, AuthErrorCode, NotSignedInError
from facebook_clone.models import User, to_document
from facebook_clone.subscriptions import ViewModel

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[User]], None]


class Session:
    """
    The current identity, passed explicitly to every component.

    Changes are announced to listeners registered with add_listener(); there
    is no guard against overlapping sign-ins, the last set_user() wins.
    """

    def __init__(self, user: Optional[User] = None):
        self._user = user
        self._listeners: List[SessionListener] = []
        self._lock = threading.Lock()

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def user_id(self) -> Optional[str]:
        return self._user.id if self._user else None

    @property
    def is_signed_in(self) -> bool:
        return self._user is not None

    def require_user_id(self) -> str:
        if self._user is None:
            raise NotSignedInError()
        return self._user.id

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def set_user(self, user: Optional[User]) -> None:
        self._user = user
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(user)


def user_from_account(account: AuthAccount, display_name: Optional[str] = None) -> User:
    return User(
        id=account.uid,
        name=display_name if display_name is not None else (account.display_name or ""),
        email=account.email or "",
        profile_image_url=account.photo_url,
    )


class SessionManager(ViewModel):
    """Login, signup and logout against the identity provider."""

    def __init__(
        self,
        session: Session,
        identity: IdentityProvider,
        store: Optional[DocumentStore] = None,
    ):
        super().__init__()
        self.session = session
        self.identity = identity
        self.store = store
        self.error_code: Optional[AuthErrorCode] = None

    @property
    def user(self) -> Optional[User]:
        return self.session.user

    def _fail(self, error: Exception, context: str) -> None:
        self.error_code = error.code if isinstance(error, AuthError) else AuthErrorCode.OTHER
        self._finish(error, context)

    def _start(self) -> None:
        self.error_code = None
        self._begin()

    def login(self, email: str, password: str) -> bool:
        self._start()
        try:
            account = self.identity.sign_in(email, password)
        except Exception as e:
            self._fail(e, "Login")
            return False

        self.session.set_user(user_from_account(account))
        logger.info("Signed in %s", account.uid)
        self._finish()
        return True

    def signup(self, email: str, password: str, display_name: str) -> bool:
        """
        Create the account, commit its display name, then write users/{uid}.

        The steps are not rolled back: if the name commit fails the account
        exists without the display name and the session stays signed out.
        """
        self._start()
        try:
            account = self.identity.create_user(email, password)
        except Exception as e:
            self._fail(e, "Signup")
            return False

        try:
            account = self.identity.update_profile(account, display_name=display_name)
        except Exception as e:
            logger.warning("Account %s created without display name", account.uid)
            self._fail(e, "Display name update")
            return False

        user = user_from_account(account, display_name=display_name)
        user.email = user.email or email
        self.session.set_user(user)

        if self.store is not None:
            try:
                self.store.set(USERS_COLLECTION, user.id, to_document(user), merge=True)
            except Exception as e:
                self._finish(e, "Writing user profile")
                return True

        self._finish()
        return True

    def logout(self) -> bool:
        self._start()
        try:
            self.identity.sign_out()
        except Exception as e:
            self._fail(e, "Logout")
            return False
        self.session.set_user(None)
        self._finish()
        return True
