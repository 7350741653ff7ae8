"""Message strings for keysmith's own output."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

SUPPORTED_LANGS = ("en",)

_current_strings: dict[str, Any] = {}
_current_lang: str = "en"


def init_lang(lang: str = "en") -> None:
    """Select the output language. Unknown languages fall back to English."""
    global _current_strings, _current_lang
    if lang not in SUPPORTED_LANGS:
        logger.warning("Unsupported language %s, using en", lang)
        lang = "en"
    _current_lang = lang

    from . import strings_en

    _current_strings = strings_en.STRINGS


def get_lang() -> str:
    """Return current language code."""
    return _current_lang


def t(key: str, /, **kwargs: Any) -> Any:
    """Look up a message by key, with optional format arguments.

    The lookup key is positional-only so messages may use a {key} field.

    String values are filled via str.format(**kwargs); callables are called
    with **kwargs (used for pluralization).
    """
    if not _current_strings:
        init_lang(_current_lang)
    val = _current_strings[key]
    if callable(val):
        return val(**kwargs)
    if isinstance(val, str) and kwargs:
        return val.format(**kwargs)
    return val
