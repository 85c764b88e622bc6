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
Identity provider abstraction: Firebase Auth (email/password) and an in-memory double.

The Admin SDK cannot verify passwords, so the Firebase implementation talks to
the Identity Toolkit REST API with the project's web API key, exactly like the
client SDKs do.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Protocol

import requests

from facebook_clone.errors import AuthError, AuthErrorCode

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error message -> classified code.
PROVIDER_ERROR_CODES = {
    "EMAIL_EXISTS": AuthErrorCode.EMAIL_ALREADY_IN_USE,
    "INVALID_EMAIL": AuthErrorCode.INVALID_EMAIL,
    "MISSING_EMAIL": AuthErrorCode.INVALID_EMAIL,
    "WEAK_PASSWORD": AuthErrorCode.WEAK_PASSWORD,
    "INVALID_PASSWORD": AuthErrorCode.WRONG_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorCode.WRONG_PASSWORD,
    "EMAIL_NOT_FOUND": AuthErrorCode.USER_NOT_FOUND,
    "USER_DISABLED": AuthErrorCode.USER_NOT_FOUND,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorCode.TOO_MANY_REQUESTS,
}


@dataclass
class AuthAccount:
    """Profile fields returned by the identity provider."""

    uid: str
    email: str = ""
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    id_token: Optional[str] = None


class IdentityProvider(Protocol):
    def sign_in(self, email: str, password: str) -> AuthAccount:
        ...

    def create_user(self, email: str, password: str) -> AuthAccount:
        ...

    def update_profile(
        self,
        account: AuthAccount,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> AuthAccount:
        ...

    def sign_out(self) -> None:
        ...


def classify_provider_error(message: str) -> AuthErrorCode:
    """Map an Identity Toolkit error message (e.g. "WEAK_PASSWORD : ...") to a code."""
    key = (message or "").split(":")[0].strip()
    return PROVIDER_ERROR_CODES.get(key, AuthErrorCode.OTHER)


class FirebaseIdentityProvider:
    """Email/password auth against Firebase via the Identity Toolkit REST API."""

    def __init__(self, api_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        if not api_key:
            raise ValueError("FIREBASE_API_KEY is required for FirebaseIdentityProvider")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.current: Optional[AuthAccount] = None

    def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"
        try:
            resp = self.session.post(
                url, params={"key": self.api_key}, json=payload, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise AuthError(AuthErrorCode.NETWORK_ERROR, str(e)) from e
        except requests.RequestException as e:
            raise AuthError(AuthErrorCode.OTHER, str(e)) from e

        if not resp.ok:
            try:
                message = resp.json().get("error", {}).get("message", "")
            except ValueError:
                message = resp.text
            logger.debug("accounts:%s failed with HTTP %s: %s", endpoint, resp.status_code, message)
            raise AuthError(classify_provider_error(message), message or resp.reason)
        return resp.json()

    @staticmethod
    def _to_account(data: dict, fallback: Optional[AuthAccount] = None) -> AuthAccount:
        fallback = fallback or AuthAccount(uid="")
        return AuthAccount(
            uid=data.get("localId") or fallback.uid,
            email=data.get("email") or fallback.email,
            display_name=data.get("displayName") or fallback.display_name,
            photo_url=data.get("photoUrl") or data.get("profilePicture") or fallback.photo_url,
            id_token=data.get("idToken") or fallback.id_token,
        )

    def sign_in(self, email: str, password: str) -> AuthAccount:
        data = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self.current = self._to_account(data)
        return self.current

    def create_user(self, email: str, password: str) -> AuthAccount:
        data = self._post(
            "signUp", {"email": email, "password": password, "returnSecureToken": True}
        )
        self.current = self._to_account(data)
        return self.current

    def update_profile(
        self,
        account: AuthAccount,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> AuthAccount:
        payload = {"idToken": account.id_token, "returnSecureToken": True}
        if display_name is not None:
            payload["displayName"] = display_name
        if photo_url is not None:
            payload["photoUrl"] = photo_url
        data = self._post("update", payload)
        updated = self._to_account(data, fallback=account)
        if self.current and self.current.uid == updated.uid:
            self.current = updated
        return updated

    def sign_out(self) -> None:
        # Tokens are only held in memory; dropping them signs the client out.
        self.current = None


@dataclass
class _StoredAccount:
    account: AuthAccount
    password: str


@dataclass
class InMemoryIdentityProvider:
    """Test double backed by a dict of accounts."""

    accounts: Dict[str, _StoredAccount] = field(default_factory=dict)
    failures: Dict[str, List[Exception]] = field(default_factory=dict)
    current: Optional[AuthAccount] = None
    min_password_length: int = 6

    def fail_next(self, operation: str, error: Exception) -> None:
        self.failures.setdefault(operation, []).append(error)

    def _maybe_fail(self, operation: str) -> None:
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def sign_in(self, email: str, password: str) -> AuthAccount:
        self._maybe_fail("sign_in")
        stored = self.accounts.get(email.lower())
        if stored is None:
            raise AuthError(AuthErrorCode.USER_NOT_FOUND, "EMAIL_NOT_FOUND")
        if stored.password != password:
            raise AuthError(AuthErrorCode.WRONG_PASSWORD, "INVALID_PASSWORD")
        self.current = replace(stored.account, id_token=uuid.uuid4().hex)
        return self.current

    def create_user(self, email: str, password: str) -> AuthAccount:
        self._maybe_fail("create_user")
        if "@" not in email:
            raise AuthError(AuthErrorCode.INVALID_EMAIL, "INVALID_EMAIL")
        if email.lower() in self.accounts:
            raise AuthError(AuthErrorCode.EMAIL_ALREADY_IN_USE, "EMAIL_EXISTS")
        if len(password) < self.min_password_length:
            raise AuthError(AuthErrorCode.WEAK_PASSWORD, "WEAK_PASSWORD")
        account = AuthAccount(uid=uuid.uuid4().hex[:28], email=email, id_token=uuid.uuid4().hex)
        self.accounts[email.lower()] = _StoredAccount(account=account, password=password)
        self.current = account
        return account

    def update_profile(
        self,
        account: AuthAccount,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> AuthAccount:
        self._maybe_fail("update_profile")
        stored = self.accounts.get(account.email.lower())
        if stored is None:
            raise AuthError(AuthErrorCode.USER_NOT_FOUND, "USER_NOT_FOUND")
        if display_name is not None:
            stored.account.display_name = display_name
        if photo_url is not None:
            stored.account.photo_url = photo_url
        updated = replace(stored.account, id_token=account.id_token)
        self.current = updated
        return updated

    def sign_out(self) -> None:
        self._maybe_fail("sign_out")
        self.current = None
