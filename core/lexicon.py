"""Keyword rule table that maps free-form classifier labels to skin findings.

The table is plain JSON so it can be tuned without touching scoring code.
The bundled default lives in core/data/lexicon.json.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Tuple

from core.utils import Condition

DEFAULT_LEXICON_PATH = Path(__file__).parent / "data" / "lexicon.json"


@dataclass(frozen=True)
class ConditionRule:
    condition: Condition
    keywords: Tuple[str, ...]
    weight: float = 1.0


@dataclass(frozen=True)
class Lexicon:
    cancer_keywords: Tuple[str, ...]
    skin_keywords: Tuple[str, ...]
    rules: Tuple[ConditionRule, ...]
    fallback_condition: Condition = Condition.NORMAL_SKIN
    fallback_weight: float = 10.0

    def rule_for(self, condition: Condition) -> ConditionRule:
        for rule in self.rules:
            if rule.condition == condition:
                return rule
        raise KeyError(condition)


def count_matches(label: str, keywords: Iterable[str]) -> int:
    """Number of keywords occurring in ``label`` (case-insensitive substring)."""
    text = label.lower()
    return sum(1 for keyword in keywords if keyword in text)


def _keywords(values, where: str) -> Tuple[str, ...]:
    if not isinstance(values, list) or not values:
        raise ValueError(f"{where} must be a non-empty list of keywords")
    return tuple(str(v).lower() for v in values)


def parse_lexicon(data: dict) -> Lexicon:
    """Build a Lexicon from its JSON form, checking every condition appears once."""
    try:
        risk = data["risk"]
        raw_rules = data["conditions"]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Lexicon is missing section {e}") from e

    rules = []
    for entry in raw_rules:
        try:
            condition = Condition.from_key(entry["condition"])
            weight = float(entry.get("weight", 1.0))
            raw_keywords = entry.get("keywords")
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed lexicon condition entry {entry!r}") from e
        if weight < 0:
            raise ValueError(f"Weight for {condition.value} must not be negative")
        rules.append(ConditionRule(
            condition=condition,
            keywords=_keywords(raw_keywords, f"keywords for {condition.value}"),
            weight=weight,
        ))

    seen = [rule.condition for rule in rules]
    if sorted(seen, key=lambda c: c.value) != sorted(Condition, key=lambda c: c.value):
        raise ValueError("Lexicon must define each skin condition exactly once")

    # Keep the declaration order of the Condition enum; argmax ties resolve by it
    order = list(Condition)
    rules.sort(key=lambda rule: order.index(rule.condition))

    try:
        fallback = data.get("fallback", {})
        cancer_keywords = risk.get("cancer_keywords")
        skin_keywords = risk.get("skin_keywords")
        fallback_condition = Condition.from_key(fallback.get("condition", Condition.NORMAL_SKIN.value))
        fallback_weight = float(fallback.get("weight", 10.0))
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Malformed lexicon risk or fallback section: {e}") from e

    return Lexicon(
        cancer_keywords=_keywords(cancer_keywords, "risk.cancer_keywords"),
        skin_keywords=_keywords(skin_keywords, "risk.skin_keywords"),
        rules=tuple(rules),
        fallback_condition=fallback_condition,
        fallback_weight=fallback_weight,
    )


def load_lexicon(path: Optional[str] = None) -> Lexicon:
    """Load the rule table from ``path``, or the bundled default."""
    if path is None:
        return _default_lexicon()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ValueError(f"Cannot read lexicon {path}: {e}") from e
    return parse_lexicon(data)


@lru_cache(maxsize=1)
def _default_lexicon() -> Lexicon:
    with open(DEFAULT_LEXICON_PATH, "r", encoding="utf-8") as f:
        return parse_lexicon(json.load(f))
