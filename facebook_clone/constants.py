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

# Firestore collections
USERS_COLLECTION = "users"
POSTS_COLLECTION = "posts"
FRIENDSHIPS_COLLECTION = "friendships"
FRIEND_REQUESTS_COLLECTION = "friend_requests"
CONVERSATIONS_COLLECTION = "conversations"
MESSAGES_COLLECTION = "messages"
NOTIFICATIONS_COLLECTION = "notifications"

# Firestore caps "in" filters at 30 values.
MAX_IN_QUERY_VALUES = 30

JPEG_CONTENT_TYPE = "image/jpeg"


def messages_collection(conversation_id: str) -> str:
    return f"{CONVERSATIONS_COLLECTION}/{conversation_id}/{MESSAGES_COLLECTION}"


def post_image_path(post_id: str) -> str:
    return f"posts/{post_id}.jpg"


def user_profile_image_path(user_id: str, image_id: str) -> str:
    return f"profile_images/{user_id}/{image_id}.jpg"
