"""Plain-language guidance derived from an analysis result."""

from dataclasses import dataclass
from typing import List

from core.utils import (
    Condition,
    RiskLevel,
    SkinAnalysisResult,
    risk_level_from_percentage,
)

CONDITION_MESSAGE_KEYS = {
    Condition.BACTERIAL_INFECTION: "recommend.condition_bacterial",
    Condition.FUNGAL_INFECTION: "recommend.condition_fungal",
    Condition.VIRAL_INFECTION: "recommend.condition_viral",
    Condition.ECZEMA: "recommend.condition_eczema",
    Condition.PSORIASIS: "recommend.condition_psoriasis",
}


@dataclass
class Recommendation:
    """A single piece of advice shown next to an analysis."""
    key: str
    text: str
    urgent: bool = False


def build_recommendations(result: SkinAnalysisResult) -> List[Recommendation]:
    """Advice for the risk level, flagged patterns, and detected condition."""
    from i18n import t

    recommendations = []

    level = risk_level_from_percentage(result.risk.cancer_percentage)
    key = f"recommend.risk_{level.value}"
    recommendations.append(Recommendation(key=key, text=t(key), urgent=level == RiskLevel.HIGH))

    patterns = result.risk.patterns
    for name in ("asymmetry", "border", "color", "diameter"):
        if getattr(patterns, name):
            key = f"recommend.pattern_{name}"
            recommendations.append(Recommendation(key=key, text=t(key)))

    condition = result.condition
    if condition.has_condition and condition.primary_condition in CONDITION_MESSAGE_KEYS:
        key = CONDITION_MESSAGE_KEYS[condition.primary_condition]
        recommendations.append(Recommendation(key=key, text=t(key)))

    return recommendations
