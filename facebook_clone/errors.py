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
Error taxonomy shared by the synchronizers.

Three kinds of failure reach the UI: identity-provider errors classified into
a fixed set of messages, remote (network / serialization) errors surfaced with
their own description, and local precondition failures raised here.
"""

from __future__ import annotations

from enum import StrEnum

from google.api_core import exceptions


class AuthErrorCode(StrEnum):
    EMAIL_ALREADY_IN_USE = "EMAIL_ALREADY_IN_USE"
    INVALID_EMAIL = "INVALID_EMAIL"
    NETWORK_ERROR = "NETWORK_ERROR"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    OTHER = "OTHER"


AUTH_ERROR_MESSAGES = {
    AuthErrorCode.EMAIL_ALREADY_IN_USE: "The email is already in use",
    AuthErrorCode.INVALID_EMAIL: "Please enter a valid email",
    AuthErrorCode.NETWORK_ERROR: "Network error occurred",
    AuthErrorCode.WEAK_PASSWORD: "Your password is too weak",
    AuthErrorCode.WRONG_PASSWORD: "Your password is incorrect",
    AuthErrorCode.USER_NOT_FOUND: "Account not found",
    AuthErrorCode.TOO_MANY_REQUESTS: "Too many requests. Try again later",
}


class SocialError(Exception):
    """Base class for errors raised by this package."""


class AuthError(SocialError):
    """Identity provider failure, classified into an AuthErrorCode."""

    def __init__(self, code: AuthErrorCode, description: str = ""):
        super().__init__(description or code.value)
        self.code = code
        self.description = description or code.value

    @property
    def user_message(self) -> str:
        if self.code in AUTH_ERROR_MESSAGES:
            return AUTH_ERROR_MESSAGES[self.code]
        return f"An error occurred: {self.description}"


class NotSignedInError(SocialError):
    def __init__(self, message: str = "You must be signed in"):
        super().__init__(message)


class ImageEncodingError(SocialError):
    def __init__(self, message: str = "Failed to convert image"):
        super().__init__(message)


def describe_error(error: BaseException) -> str:
    """Return the user-facing description of a failure."""
    if isinstance(error, AuthError):
        return error.user_message
    if isinstance(error, exceptions.GoogleAPICallError) and error.message:
        return error.message
    return str(error) or error.__class__.__name__
