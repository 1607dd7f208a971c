"""Tests for core.segmentation module."""

import numpy as np
import pytest

from conftest import paint
from core.image_preprocessor import ImagePreprocessor
from core.segmentation import RegionSegmenter, luminance, segment


class TestLuminance:
    def test_weights(self):
        img = ImagePreprocessor.from_array(np.array([[[100, 0, 0], [0, 100, 0], [0, 0, 100]]], dtype=np.uint8))
        assert luminance(img).tolist() == [[30, 59, 11]]

    def test_gray_is_identity(self):
        img = ImagePreprocessor.from_array(np.full((2, 2, 3), 200, dtype=np.uint8))
        assert (luminance(img) == 200).all()


class TestSegment:
    def test_white_image_is_empty(self, white_image):
        mask = segment(white_image)
        assert mask.area == 0
        assert mask.bbox is None
        assert mask.is_empty

    def test_dark_square_bbox(self):
        membership = np.zeros((20, 30), dtype=bool)
        membership[4:9, 10:17] = True
        mask = segment(ImagePreprocessor.from_array(paint(membership)))
        assert mask.area == 35
        assert mask.bbox == (10, 4, 16, 8)
        assert np.array_equal(mask.membership, membership)

    def test_threshold_is_strict(self):
        arr = np.array([[[127, 127, 127], [128, 128, 128]]], dtype=np.uint8)
        mask = segment(ImagePreprocessor.from_array(arr), threshold=128)
        assert mask.membership.tolist() == [[True, False]]

    def test_custom_threshold(self):
        arr = np.full((3, 3, 3), 150, dtype=np.uint8)
        img = ImagePreprocessor.from_array(arr)
        assert segment(img, threshold=128).area == 0
        assert segment(img, threshold=200).area == 9

    def test_zero_threshold_selects_nothing(self):
        arr = np.zeros((3, 3, 3), dtype=np.uint8)
        assert segment(ImagePreprocessor.from_array(arr), threshold=0).area == 0

    def test_bbox_encloses_all_members(self):
        rng = np.random.default_rng(7)
        arr = rng.integers(0, 256, (40, 50, 3), dtype=np.uint8)
        mask = segment(ImagePreprocessor.from_array(arr))
        ys, xs = np.nonzero(mask.membership)
        min_x, min_y, max_x, max_y = mask.bbox
        assert xs.min() == min_x and xs.max() == max_x
        assert ys.min() == min_y and ys.max() == max_y

    def test_dimensions_copied(self, disc_image):
        mask = RegionSegmenter().segment(disc_image)
        assert (mask.width, mask.height) == (101, 101)
        assert mask.membership.shape == (101, 101)

    @pytest.mark.parametrize("threshold", [-1, 256])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(ValueError):
            RegionSegmenter(threshold)
