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
Configuration and settings for the Facebook clone client.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from facebook_clone.constants import MAX_IN_QUERY_VALUES


class Settings(BaseSettings):
    """Environment-backed settings for the client."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Firebase project
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(default=None)
    google_application_credentials: Optional[str] = Field(default=None)

    # Web API key used for the Identity Toolkit REST endpoints
    firebase_api_key: Optional[str] = Field(default=None)
    auth_request_timeout: float = Field(default=10.0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    image_jpeg_quality: int = Field(default=50, ge=1, le=95)
    user_lookup_batch_size: int = Field(
        default=MAX_IN_QUERY_VALUES, ge=1, le=MAX_IN_QUERY_VALUES
    )
    conversation_id_separator: str = Field(default="_", min_length=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
