"""Skin-condition distribution from classifier labels via the keyword lexicon."""

from typing import Dict, Optional, Sequence

from core.lexicon import Lexicon, count_matches, load_lexicon
from core.utils import (
    ClassifierPrediction,
    Condition,
    ConditionAssessment,
    round_half_up,
)

MAX_PREDICTIONS = 3
HAS_CONDITION_MIN_SHARE = 30


class ConditionScorer:
    """Turns up to three ranked predictions into a six-way distribution.

    Each prediction votes with ``confidence * (K - rank) / K``. A label that
    contains keywords of a condition adds that weight scaled by the fraction
    of the condition's keywords it contains. A label that matches no
    condition at all sends a small vote to the fallback condition (Normal
    Skin). Shares are rounded to integers and the rounding residue goes to
    the winner so they always total 100.
    """

    def __init__(self, lexicon: Optional[Lexicon] = None, max_predictions: int = MAX_PREDICTIONS):
        self.lexicon = lexicon or load_lexicon()
        self.max_predictions = max_predictions

    def raw_scores(self, predictions: Sequence[ClassifierPrediction]) -> Dict[Condition, float]:
        k = self.max_predictions
        scores = {rule.condition: 0.0 for rule in self.lexicon.rules}

        for index, prediction in enumerate(predictions[:k]):
            weight = prediction.confidence * (k - index) / k
            matched = False
            for rule in self.lexicon.rules:
                hits = count_matches(prediction.label, rule.keywords)
                if hits:
                    matched = True
                    scores[rule.condition] += weight * (hits / len(rule.keywords)) * 100 * rule.weight
            if not matched:
                scores[self.lexicon.fallback_condition] += weight * self.lexicon.fallback_weight

        return scores

    def score_condition(self, predictions: Sequence[ClassifierPrediction]) -> ConditionAssessment:
        scores = self.raw_scores(predictions)
        total = sum(scores.values())

        if total > 0:
            shares = {c: round_half_up(s / total * 100) for c, s in scores.items()}
            primary = max(shares, key=shares.get)  # first in rule order on ties
        else:
            shares = {c: 100 // len(scores) for c in scores}
            primary = self.lexicon.fallback_condition

        shares[primary] += 100 - sum(shares.values())

        confidence = round_half_up(predictions[0].confidence * 100) if predictions else 0

        return ConditionAssessment(
            primary_condition=primary,
            confidence=confidence,
            all_conditions=shares,
            has_condition=(
                primary != Condition.NORMAL_SKIN
                and shares[primary] > HAS_CONDITION_MIN_SHARE
            ),
        )


def score_condition(predictions: Sequence[ClassifierPrediction]) -> ConditionAssessment:
    return ConditionScorer().score_condition(predictions)
