import unittest

import cv2
import numpy as np

from detect_kit.errors import DecodeError, DimensionError
from detect_kit.preprocess import decode_image, prepare_input, preprocess


def _encode(image: np.ndarray, ext: str = ".png") -> bytes:
    ok, buf = cv2.imencode(ext, image)
    assert ok
    return buf.tobytes()


class TestDecodeImage(unittest.TestCase):
    def test_decodes_png(self) -> None:
        img = np.zeros((30, 40, 3), dtype=np.uint8)
        out = decode_image(_encode(img))
        self.assertEqual(out.shape, (30, 40, 3))

    def test_alpha_channel_is_stripped(self) -> None:
        bgra = np.full((12, 16, 4), 200, dtype=np.uint8)
        bgra[:, :, 3] = 0
        out = decode_image(_encode(bgra))
        self.assertEqual(out.shape, (12, 16, 3))
        self.assertTrue(np.all(out == 200))

    def test_grayscale_expanded_to_three_channels(self) -> None:
        gray = np.full((8, 9), 77, dtype=np.uint8)
        out = decode_image(_encode(gray))
        self.assertEqual(out.shape, (8, 9, 3))

    def test_garbage_bytes_rejected(self) -> None:
        with self.assertRaises(DecodeError):
            decode_image(b"definitely not an image")

    def test_empty_bytes_rejected(self) -> None:
        with self.assertRaises(DecodeError):
            decode_image(b"")


class TestPreprocess(unittest.TestCase):
    def test_blob_layout_and_original_size(self) -> None:
        img = np.zeros((50, 100, 3), dtype=np.uint8)
        prep = preprocess(img)
        self.assertEqual(prep.blob.shape, (1, 3, 640, 640))
        self.assertEqual(prep.blob.dtype, np.float32)
        self.assertEqual(prep.orig_size, (100, 50))

    def test_normalization_bounds(self) -> None:
        white = preprocess(np.full((20, 20, 3), 255, dtype=np.uint8)).blob
        black = preprocess(np.zeros((20, 20, 3), dtype=np.uint8)).blob
        self.assertTrue(np.all(white == 1.0))
        self.assertTrue(np.all(black == 0.0))

    def test_planar_rgb_order(self) -> None:
        # Pure red in BGR.
        img = np.zeros((640, 640, 3), dtype=np.uint8)
        img[:, :, 2] = 255
        img[:, :, 1] = 51
        blob = preprocess(img).blob
        self.assertTrue(np.all(blob[0, 0] == 1.0))
        self.assertTrue(np.allclose(blob[0, 1], 51 / 255.0))
        self.assertTrue(np.all(blob[0, 2] == 0.0))

    def test_stretch_resize_without_padding(self) -> None:
        # A very wide image must fill the whole input, no letterbox bars.
        img = np.full((10, 400, 3), 255, dtype=np.uint8)
        blob = preprocess(img).blob
        self.assertTrue(np.all(blob == 1.0))

    def test_custom_input_size(self) -> None:
        blob = preprocess(np.zeros((7, 5, 3), dtype=np.uint8), input_size=(320, 160)).blob
        self.assertEqual(blob.shape, (1, 3, 160, 320))

    def test_zero_sized_image_rejected(self) -> None:
        with self.assertRaises(DimensionError):
            preprocess(np.zeros((0, 10, 3), dtype=np.uint8))

    def test_wrong_channel_count_rejected(self) -> None:
        with self.assertRaises(ValueError):
            preprocess(np.zeros((10, 10), dtype=np.uint8))

    def test_prepare_input_from_bytes(self) -> None:
        img = np.full((48, 64, 3), 255, dtype=np.uint8)
        prep, decoded = prepare_input(_encode(img))
        self.assertEqual(prep.orig_size, (64, 48))
        self.assertEqual(decoded.shape, (48, 64, 3))
        self.assertTrue(np.all(prep.blob == 1.0))


if __name__ == "__main__":
    unittest.main()
