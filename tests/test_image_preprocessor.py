"""Tests for core.image_preprocessor module."""

import numpy as np
import pytest
from PIL import Image

from core.image_preprocessor import ImagePreprocessor
from core.utils import ImageBuffer, MalformedImage


class TestFromArray:
    def test_rgb_gets_opaque_alpha(self):
        buf = ImagePreprocessor.from_array(np.zeros((4, 6, 3), dtype=np.uint8))
        assert isinstance(buf, ImageBuffer)
        assert (buf.width, buf.height) == (6, 4)
        assert (buf.samples[:, :, 3] == 255).all()

    def test_grayscale_is_replicated(self):
        gray = np.full((3, 3), 77, dtype=np.uint8)
        buf = ImagePreprocessor.from_array(gray)
        assert buf.rgb[1, 1].tolist() == [77, 77, 77]

    def test_rgba_passes_through(self):
        rgba = np.random.randint(0, 255, (5, 5, 4), dtype=np.uint8)
        buf = ImagePreprocessor.from_array(rgba)
        assert np.array_equal(buf.samples, rgba)

    def test_bad_channel_count(self):
        with pytest.raises(MalformedImage):
            ImagePreprocessor.from_array(np.zeros((4, 4, 2), dtype=np.uint8))


class TestLoadImage:
    def test_load_png(self, disc_image_path):
        buf = ImagePreprocessor.load_image(disc_image_path)
        assert (buf.width, buf.height) == (101, 101)
        assert buf.samples.shape == (101, 101, 4)

    def test_missing_file(self):
        with pytest.raises(MalformedImage):
            ImagePreprocessor.load_image("/nonexistent/photo.jpg")

    def test_load_bytes(self, disc_image_path):
        with open(disc_image_path, "rb") as f:
            buf = ImagePreprocessor.load_bytes(f.read())
        assert buf.width == 101

    def test_garbage_bytes(self):
        with pytest.raises(MalformedImage):
            ImagePreprocessor.load_bytes(b"\x00\x01garbage")

    def test_decompression_bomb(self, monkeypatch, disc_image_path):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(MalformedImage):
            ImagePreprocessor.load_image(disc_image_path)

    def test_palette_image_converted(self, tmp_dir):
        path = tmp_dir / "palette.png"
        Image.new("P", (8, 8), color=3).save(path)
        buf = ImagePreprocessor.load_image(str(path))
        assert buf.samples.shape == (8, 8, 4)


class TestPreprocessForClassifier:
    def test_output_shape(self, disc_image):
        tensor = ImagePreprocessor.preprocess_for_classifier(disc_image)
        assert tuple(tensor.shape) == (1, 3, 224, 224)

    def test_output_dtype(self, disc_image):
        import torch
        tensor = ImagePreprocessor.preprocess_for_classifier(disc_image)
        assert tensor.dtype == torch.float32

    def test_normalized_range(self, disc_image):
        tensor = ImagePreprocessor.preprocess_for_classifier(disc_image)
        # ImageNet normalization produces negative values for dark pixels
        assert tensor.min() < 0.0
        assert tensor.max() < 10.0


class TestCreateThumbnail:
    def test_jpeg_bytes(self, disc_image):
        result = ImagePreprocessor.create_thumbnail(disc_image)
        assert isinstance(result, bytes)
        assert result[:2] == b"\xff\xd8"

    def test_from_path(self, disc_image_path):
        result = ImagePreprocessor.create_thumbnail(disc_image_path, size=(32, 32))
        assert len(result) > 0
