"""Tests for core.lexicon module."""

import json

import pytest

from core.lexicon import count_matches, load_lexicon, parse_lexicon
from core.utils import Condition


def minimal_table():
    return {
        "risk": {"cancer_keywords": ["cancer"], "skin_keywords": ["skin"]},
        "conditions": [
            {"condition": c.value, "keywords": [c.name.lower()]} for c in Condition
        ],
    }


class TestDefaultLexicon:
    def test_loads(self):
        lexicon = load_lexicon()
        assert "melanoma" in lexicon.cancer_keywords
        assert "rash" in lexicon.skin_keywords
        assert [r.condition for r in lexicon.rules] == list(Condition)

    def test_condition_keywords(self):
        lexicon = load_lexicon()
        assert "ringworm" in lexicon.rule_for(Condition.FUNGAL_INFECTION).keywords
        assert "rash" in lexicon.rule_for(Condition.ECZEMA).keywords
        assert lexicon.rule_for(Condition.PSORIASIS).weight == 1.0

    def test_fallback(self):
        lexicon = load_lexicon()
        assert lexicon.fallback_condition == Condition.NORMAL_SKIN
        assert lexicon.fallback_weight == 10.0

    def test_cached(self):
        assert load_lexicon() is load_lexicon()


class TestCountMatches:
    def test_substring_case_insensitive(self):
        assert count_matches("Malignant Melanoma", ("malignant", "melanoma", "tumor")) == 2

    def test_no_match(self):
        assert count_matches("golden retriever", ("skin", "mole")) == 0

    def test_substring_inside_word(self):
        # "mole" is contained in "molecule"; matching is by substring
        assert count_matches("molecule", ("mole",)) == 1


class TestParseLexicon:
    def test_minimal_table(self):
        lexicon = parse_lexicon(minimal_table())
        assert lexicon.rule_for(Condition.ECZEMA).keywords == ("eczema",)
        assert lexicon.fallback_condition == Condition.NORMAL_SKIN

    def test_keywords_lowercased(self):
        table = minimal_table()
        table["risk"]["cancer_keywords"] = ["CANCER"]
        assert parse_lexicon(table).cancer_keywords == ("cancer",)

    def test_missing_condition(self):
        table = minimal_table()
        table["conditions"].pop()
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_duplicate_condition(self):
        table = minimal_table()
        table["conditions"][0] = dict(table["conditions"][1])
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_empty_keywords(self):
        table = minimal_table()
        table["conditions"][0]["keywords"] = []
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_missing_risk_section(self):
        table = minimal_table()
        del table["risk"]
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_rules_follow_condition_order(self):
        table = minimal_table()
        table["conditions"].reverse()
        lexicon = parse_lexicon(table)
        assert [r.condition for r in lexicon.rules] == list(Condition)

    def test_load_from_path(self, tmp_dir):
        path = tmp_dir / "lexicon.json"
        path.write_text(json.dumps(minimal_table()), encoding="utf-8")
        lexicon = load_lexicon(str(path))
        assert lexicon.skin_keywords == ("skin",)

    def test_missing_file(self, tmp_dir):
        with pytest.raises(ValueError):
            load_lexicon(str(tmp_dir / "missing.json"))

    def test_invalid_json(self, tmp_dir):
        path = tmp_dir / "lexicon.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_lexicon(str(path))

    def test_entry_without_condition(self):
        table = minimal_table()
        table["conditions"][0] = {"keywords": ["x"]}
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_entry_not_an_object(self):
        table = minimal_table()
        table["conditions"][0] = "eczema"
        with pytest.raises(ValueError):
            parse_lexicon(table)

    def test_risk_section_not_an_object(self):
        table = minimal_table()
        table["risk"] = ["cancer"]
        with pytest.raises(ValueError):
            parse_lexicon(table)
