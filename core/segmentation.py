"""Lesion region segmentation by luminance thresholding.

Assumes the lesion is darker than the surrounding skin. Light lesions on
dark skin are not isolated by this segmenter.
"""

import numpy as np

from core.utils import ImageBuffer, LesionMask

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

DEFAULT_THRESHOLD = 128


def luminance(image: ImageBuffer) -> np.ndarray:
    """Integer luminance per pixel, shape (height, width), rounded half-up."""
    gray = image.rgb.astype(np.float64) @ LUMA_WEIGHTS
    return np.floor(gray + 0.5).astype(np.int32)


class RegionSegmenter:
    """Marks pixels darker than a luminance threshold as lesion."""

    def __init__(self, threshold: int = DEFAULT_THRESHOLD):
        if not 0 <= threshold <= 255:
            raise ValueError(f"Threshold must be in [0, 255], got {threshold}")
        self.threshold = threshold

    def segment(self, image: ImageBuffer) -> LesionMask:
        """Build the lesion mask and its tight bounding box.

        An image with no pixel below the threshold yields an empty mask with
        ``bbox=None``; that is not an error.
        """
        membership = luminance(image) < self.threshold
        membership.setflags(write=False)

        ys, xs = np.nonzero(membership)
        bbox = None
        if xs.size:
            bbox = (int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max()))

        return LesionMask(
            width=image.width,
            height=image.height,
            membership=membership,
            bbox=bbox,
        )


def segment(image: ImageBuffer, threshold: int = DEFAULT_THRESHOLD) -> LesionMask:
    """Segment ``image`` with a one-off RegionSegmenter."""
    return RegionSegmenter(threshold).segment(image)
