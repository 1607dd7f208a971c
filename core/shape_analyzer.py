"""Morphology of a lesion mask: size, circularity, asymmetry, and border."""

import math

import numpy as np

from core.utils import LesionMask, MorphologyDescriptor, ShapeLabel

DEFAULT_PIXELS_PER_MM = 10.0

ROUND_ASPECT_RANGE = (0.8, 1.2)
ROUND_MIN_CIRCULARITY = 0.7
IRREGULAR_ASPECT_MAX = 1.5
IRREGULAR_ASPECT_MIN = 0.67


def boundary_cells(membership: np.ndarray) -> np.ndarray:
    """Members with at least one 4-neighbour outside the lesion.

    Neighbours beyond the image edge do not count as outside, so a lesion
    touching the frame is not bounded by it.
    """
    padded = np.pad(membership, 1, mode="constant", constant_values=True)
    interior = (
        padded[:-2, 1:-1]     # up
        & padded[2:, 1:-1]    # down
        & padded[1:-1, :-2]   # left
        & padded[1:-1, 2:]    # right
    )
    return membership & ~interior


def classify_shape(aspect_ratio: float, circularity: float) -> ShapeLabel:
    low, high = ROUND_ASPECT_RANGE
    if low <= aspect_ratio <= high and circularity > ROUND_MIN_CIRCULARITY:
        return ShapeLabel.ROUND
    if aspect_ratio > IRREGULAR_ASPECT_MAX or aspect_ratio < IRREGULAR_ASPECT_MIN:
        return ShapeLabel.IRREGULAR
    return ShapeLabel.OVAL


def _clamp_unit(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


class ShapeAnalyzer:
    """Computes a MorphologyDescriptor from a LesionMask.

    The perimeter is the number of boundary cells, an approximation of the
    true contour length. Pixel measurements are converted to millimetres
    with a fixed ``pixels_per_mm``; nothing is calibrated.
    """

    def __init__(self, pixels_per_mm: float = DEFAULT_PIXELS_PER_MM):
        if pixels_per_mm <= 0:
            raise ValueError(f"pixels_per_mm must be positive, got {pixels_per_mm}")
        self.pixels_per_mm = pixels_per_mm

    def analyze_shape(self, mask: LesionMask) -> MorphologyDescriptor:
        area = mask.area
        if area == 0 or mask.bbox is None:
            return MorphologyDescriptor()

        membership = np.asarray(mask.membership, dtype=bool)
        min_x, min_y, max_x, max_y = mask.bbox
        width = max_x - min_x
        height = max_y - min_y
        aspect_ratio = height / width if width > 0 else 1.0

        diameter = 2.0 * math.sqrt(area / math.pi)

        boundary = boundary_cells(membership)
        perimeter = int(np.count_nonzero(boundary))
        circularity = 0.0
        if perimeter > 0:
            circularity = min(1.0, 4.0 * math.pi * area / (perimeter * perimeter))

        ys, xs = np.nonzero(membership)

        # Left/right balance about the bbox vertical midline
        midline = (min_x + max_x) / 2.0
        left = int(np.count_nonzero(xs < midline))
        right = area - left
        asymmetry = abs(left - right) / (left + right)

        border_irregularity = 0.0
        avg_radius = diameter / 2.0
        if perimeter > 0 and avg_radius > 0:
            cy, cx = ys.mean(), xs.mean()
            by, bx = np.nonzero(boundary)
            distances = np.hypot(bx - cx, by - cy)
            deviation = float(np.abs(distances - avg_radius).sum())
            border_irregularity = deviation / (perimeter * avg_radius)

        return MorphologyDescriptor(
            area_px=area,
            perimeter_px=perimeter,
            diameter_px=diameter,
            width_px=width,
            height_px=height,
            aspect_ratio=aspect_ratio,
            circularity=_clamp_unit(circularity),
            asymmetry_score=_clamp_unit(asymmetry),
            border_irregularity=_clamp_unit(border_irregularity),
            shape_label=classify_shape(aspect_ratio, circularity),
            width_mm=width / self.pixels_per_mm,
            height_mm=height / self.pixels_per_mm,
            diameter_mm=diameter / self.pixels_per_mm,
        )


def analyze_shape(mask: LesionMask, pixels_per_mm: float = DEFAULT_PIXELS_PER_MM) -> MorphologyDescriptor:
    return ShapeAnalyzer(pixels_per_mm).analyze_shape(mask)
