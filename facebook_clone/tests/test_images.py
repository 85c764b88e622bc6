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

import io
import unittest

from PIL import Image

from facebook_clone.errors import ImageEncodingError
from facebook_clone.images import encode_jpeg
from facebook_clone.tests.helpers import make_image


class EncodeJpegTests(unittest.TestCase):
    def test_pil_image(self):
        data = encode_jpeg(make_image())
        with Image.open(io.BytesIO(data)) as decoded:
            self.assertEqual(decoded.format, "JPEG")
            self.assertEqual(decoded.size, (8, 8))

    def test_alpha_and_palette_are_flattened(self):
        for mode in ("RGBA", "P"):
            with self.subTest(mode=mode):
                data = encode_jpeg(make_image(mode))
                with Image.open(io.BytesIO(data)) as decoded:
                    self.assertEqual(decoded.mode, "RGB")

    def test_png_bytes(self):
        buffer = io.BytesIO()
        make_image().save(buffer, format="PNG")
        data = encode_jpeg(buffer.getvalue())
        self.assertEqual(data[:2], b"\xff\xd8")

    def test_lower_quality_is_smaller(self):
        image = Image.effect_noise((64, 64), 64).convert("RGB")
        self.assertLess(len(encode_jpeg(image, 10)), len(encode_jpeg(image, 90)))

    def test_garbage_bytes(self):
        with self.assertRaises(ImageEncodingError) as ctx:
            encode_jpeg(b"definitely not an image")
        self.assertEqual(str(ctx.exception), "Failed to convert image")


if __name__ == "__main__":
    unittest.main()
