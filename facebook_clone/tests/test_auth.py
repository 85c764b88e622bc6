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
from unittest.mock import MagicMock

import requests

from facebook_clone.auth import AuthAccount, FirebaseIdentityProvider, classify_provider_error
from facebook_clone.errors import AuthError, AuthErrorCode


def _response(status_code, payload):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.json.return_value = payload
    resp.reason = "Bad Request"
    return resp


class ClassifyProviderErrorTests(unittest.TestCase):
    def test_known_messages(self):
        self.assertEqual(classify_provider_error("EMAIL_EXISTS"), AuthErrorCode.EMAIL_ALREADY_IN_USE)
        self.assertEqual(
            classify_provider_error("WEAK_PASSWORD : Password should be at least 6 characters"),
            AuthErrorCode.WEAK_PASSWORD,
        )
        self.assertEqual(classify_provider_error("INVALID_LOGIN_CREDENTIALS"), AuthErrorCode.WRONG_PASSWORD)
        self.assertEqual(classify_provider_error("EMAIL_NOT_FOUND"), AuthErrorCode.USER_NOT_FOUND)
        self.assertEqual(
            classify_provider_error("TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled"),
            AuthErrorCode.TOO_MANY_REQUESTS,
        )

    def test_unknown_message(self):
        self.assertEqual(classify_provider_error("OPERATION_NOT_ALLOWED"), AuthErrorCode.OTHER)
        self.assertEqual(classify_provider_error(""), AuthErrorCode.OTHER)


class FirebaseIdentityProviderTests(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock()
        self.provider = FirebaseIdentityProvider(api_key="test-key", session=self.http)

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            FirebaseIdentityProvider(api_key="")

    def test_sign_in_maps_profile_fields(self):
        self.http.post.return_value = _response(
            200,
            {
                "localId": "uid-1",
                "email": "ann@example.com",
                "displayName": "Ann",
                "profilePicture": "https://img/ann.jpg",
                "idToken": "tok",
            },
        )

        account = self.provider.sign_in("ann@example.com", "secret1")

        self.assertEqual(
            account,
            AuthAccount(
                uid="uid-1",
                email="ann@example.com",
                display_name="Ann",
                photo_url="https://img/ann.jpg",
                id_token="tok",
            ),
        )
        url = self.http.post.call_args.args[0]
        self.assertTrue(url.endswith("/accounts:signInWithPassword"))
        self.assertEqual(self.http.post.call_args.kwargs["params"], {"key": "test-key"})
        self.assertEqual(
            self.http.post.call_args.kwargs["json"],
            {"email": "ann@example.com", "password": "secret1", "returnSecureToken": True},
        )

    def test_provider_error_is_classified(self):
        self.http.post.return_value = _response(
            400, {"error": {"code": 400, "message": "INVALID_PASSWORD"}}
        )
        with self.assertRaises(AuthError) as ctx:
            self.provider.sign_in("ann@example.com", "nope")
        self.assertEqual(ctx.exception.code, AuthErrorCode.WRONG_PASSWORD)
        self.assertEqual(ctx.exception.user_message, "Your password is incorrect")

    def test_transport_failure_is_network_error(self):
        self.http.post.side_effect = requests.ConnectionError("unreachable")
        with self.assertRaises(AuthError) as ctx:
            self.provider.create_user("ann@example.com", "secret1")
        self.assertEqual(ctx.exception.code, AuthErrorCode.NETWORK_ERROR)

    def test_update_profile_sends_display_name(self):
        self.http.post.return_value = _response(200, {"localId": "uid-1", "displayName": "Ann"})
        account = AuthAccount(uid="uid-1", email="ann@example.com", id_token="tok")

        updated = self.provider.update_profile(account, display_name="Ann")

        self.assertEqual(updated.display_name, "Ann")
        self.assertEqual(updated.id_token, "tok")
        self.assertEqual(
            self.http.post.call_args.kwargs["json"],
            {"idToken": "tok", "returnSecureToken": True, "displayName": "Ann"},
        )

    def test_sign_out_drops_current_account(self):
        self.http.post.return_value = _response(200, {"localId": "uid-1", "idToken": "tok"})
        self.provider.sign_in("ann@example.com", "secret1")
        self.provider.sign_out()
        self.assertIsNone(self.provider.current)


if __name__ == "__main__":
    unittest.main()
