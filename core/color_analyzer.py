"""Color variation and dominant colors inside a lesion mask."""

import numpy as np

from core.utils import (
    ColorDescriptor,
    DominantColor,
    ImageBuffer,
    LesionMask,
    MalformedImage,
    round_half_up,
)

BUCKET_WIDTH = 32
MAX_DOMINANT_COLORS = 3


class ColorAnalyzer:
    """Summarizes the colors of lesion pixels.

    Dominant colors come from a coarse histogram: each channel is snapped
    down to a multiple of ``bucket_width`` and the most frequent buckets win.
    """

    def __init__(self, bucket_width: int = BUCKET_WIDTH, max_colors: int = MAX_DOMINANT_COLORS):
        self.bucket_width = bucket_width
        self.max_colors = max_colors

    def analyze_color(self, image: ImageBuffer, mask: LesionMask) -> ColorDescriptor:
        if (mask.width, mask.height) != (image.width, image.height):
            raise MalformedImage(
                f"Mask {mask.width}x{mask.height} does not match image "
                f"{image.width}x{image.height}"
            )

        pixels = image.rgb[np.asarray(mask.membership, dtype=bool)]
        if pixels.shape[0] == 0:
            return ColorDescriptor()

        return ColorDescriptor(
            color_variation=self._color_variation(pixels),
            dominant_colors=self._dominant_colors(pixels),
        )

    @staticmethod
    def _color_variation(pixels: np.ndarray) -> float:
        """RMS distance from the mean color, scaled to [0, 1]."""
        values = pixels.astype(np.float64)
        deviations = values - values.mean(axis=0)
        variance = float((deviations ** 2).sum(axis=1).mean())
        return min(1.0, float(np.sqrt(variance)) / 255.0)

    def _dominant_colors(self, pixels: np.ndarray) -> tuple:
        quantized = (pixels // self.bucket_width) * self.bucket_width
        buckets, first_seen, counts = np.unique(
            quantized, axis=0, return_index=True, return_counts=True
        )
        # Most frequent first; ties go to the bucket seen first in row-major order
        order = np.lexsort((first_seen, -counts))[: self.max_colors]

        total = pixels.shape[0]
        return tuple(
            DominantColor(
                rgb=tuple(int(c) for c in buckets[i]),
                percentage=round_half_up(100.0 * counts[i] / total),
            )
            for i in order
        )


def analyze_color(image: ImageBuffer, mask: LesionMask) -> ColorDescriptor:
    return ColorAnalyzer().analyze_color(image, mask)
