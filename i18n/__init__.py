"""Internationalization system for LesionScan.

Message catalogues live beside this module as <lang>.json files.
Usage: from i18n import t; t("key", name=value)
"""

import json
import os
from collections import OrderedDict
from pathlib import Path
from typing import Optional

LANGUAGES = OrderedDict([
    ("en", {"name": "English", "native_name": "English"}),
    ("es", {"name": "Spanish", "native_name": "Español"}),
])

LANGUAGE_ENV_VAR = "LESIONSCAN_LANG"

_translations: dict = {}
_fallback: dict = {}
_current_lang: str = "en"


def _get_i18n_dir() -> Path:
    """Get the directory containing translation JSON files."""
    return Path(__file__).parent


def _load_json(lang_code: str) -> dict:
    """Load a translation JSON file."""
    path = _get_i18n_dir() / f"{lang_code}.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def init(lang: Optional[str] = None):
    """Initialize the translation system.

    The language is taken from ``lang``, then the LESIONSCAN_LANG
    environment variable, then English.
    """
    global _translations, _fallback, _current_lang
    _current_lang = lang or os.environ.get(LANGUAGE_ENV_VAR, "en")
    if _current_lang not in LANGUAGES:
        _current_lang = "en"

    _fallback = _load_json("en")
    if _current_lang != "en":
        _translations = _load_json(_current_lang)
    else:
        _translations = _fallback


def t(key: str, **kwargs) -> str:
    """Translate a key with optional format arguments.

    Falls back: current language -> English -> raw key.
    """
    if not _fallback:
        init()
    text = _translations.get(key) or _fallback.get(key) or key
    if kwargs:
        try:
            return text.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            return text
    return text


def get_current_language() -> str:
    """Get the current language code."""
    return _current_lang
