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

from __future__ import annotations

import io
import logging
from typing import Union

from PIL import Image, UnidentifiedImageError

from facebook_clone.errors import ImageEncodingError

logger = logging.getLogger(__name__)

ImageSource = Union[Image.Image, bytes]

DEFAULT_JPEG_QUALITY = 50


def encode_jpeg(image: ImageSource, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Re-encodes an image as JPEG at the given quality.

    Args:
        image: A PIL image, or the raw bytes of any format PIL can open.
        quality (int): JPEG quality factor, 1-95.

    Returns:
        bytes: The JPEG data.

    Raises:
        ImageEncodingError: If the input cannot be decoded or encoded.
    """
    try:
        if isinstance(image, (bytes, bytearray)):
            with Image.open(io.BytesIO(image)) as opened:
                return _save_jpeg(opened, quality)
        return _save_jpeg(image, quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Could not encode image as JPEG: %s", e)
        raise ImageEncodingError() from e


def _save_jpeg(image: Image.Image, quality: int) -> bytes:
    # JPEG has no alpha or palette support.
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
