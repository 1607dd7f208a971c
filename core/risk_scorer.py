"""Cancer-risk heuristic combining the top classifier label with lesion descriptors."""

from typing import Optional

from core.lexicon import Lexicon, count_matches, load_lexicon
from core.utils import (
    ClassifierPrediction,
    ColorDescriptor,
    MorphologyDescriptor,
    RiskAssessment,
    RiskPatterns,
    round_half_up,
)

# Never report zero or certain risk
MIN_PERCENTAGE = 5
MAX_PERCENTAGE = 95

ASYMMETRY_THRESHOLD = 0.6
BORDER_THRESHOLD = 0.55
COLOR_THRESHOLD = 0.65
DIAMETER_THRESHOLD = 0.5
CONCERNING_DIAMETER_MM = 6.0


class RiskScorer:
    """Scores cancer risk from the top prediction and flags ABCDE patterns.

    The percentage depends only on the top label and its confidence:

    * a cancer keyword scales confidence to 0..100,
    * a skin keyword maps it to 10..40,
    * anything else maps it to 5..20,

    and the result is clamped to [5, 95]. Pattern flags come from the shape
    and color descriptors. ``evolving`` is always False because one image
    cannot show change over time.
    """

    def __init__(self, lexicon: Optional[Lexicon] = None):
        self.lexicon = lexicon or load_lexicon()

    def score_risk(
        self,
        top: ClassifierPrediction,
        shape: MorphologyDescriptor,
        color: ColorDescriptor,
    ) -> RiskAssessment:
        if top is None:
            raise ValueError("A top prediction is required to score risk")

        confidence = top.confidence
        if count_matches(top.label, self.lexicon.cancer_keywords):
            percentage = round_half_up(confidence * 100)
        elif count_matches(top.label, self.lexicon.skin_keywords):
            percentage = round_half_up(confidence * 30 + 10)
        else:
            percentage = round_half_up(confidence * 15 + 5)
        percentage = max(MIN_PERCENTAGE, min(MAX_PERCENTAGE, percentage))

        return RiskAssessment(
            cancer_percentage=percentage,
            confidence=confidence,
            patterns=self.detect_patterns(shape, color),
        )

    @staticmethod
    def detect_patterns(shape: MorphologyDescriptor, color: ColorDescriptor) -> RiskPatterns:
        diameter_score = min(1.0, shape.diameter_mm / CONCERNING_DIAMETER_MM)
        return RiskPatterns(
            asymmetry=shape.asymmetry_score > ASYMMETRY_THRESHOLD,
            border=shape.border_irregularity > BORDER_THRESHOLD,
            color=color.color_variation > COLOR_THRESHOLD,
            diameter=diameter_score > DIAMETER_THRESHOLD,
            evolving=False,
        )


def score_risk(
    top: ClassifierPrediction,
    shape: MorphologyDescriptor,
    color: ColorDescriptor,
) -> RiskAssessment:
    return RiskScorer().score_risk(top, shape, color)
