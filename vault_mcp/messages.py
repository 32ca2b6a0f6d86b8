"""
Localized message lookup.

Messages live in vault_mcp/locales/<lang>.json as nested objects and are
addressed by dotted keys ("notices.serverStarted"). Lookup falls back from
the active language to English and finally to the key itself.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).parent / "locales"
SUPPORTED_LANGUAGES = ("en", "zh")
FALLBACK_LANGUAGE = "en"

Lookup = Callable[..., str]


def _load_locale(language: str) -> Dict[str, Any]:
    path = LOCALES_DIR / f"{language}.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load translations for {language}: {e}")
        return {}


def _find(catalog: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    if not catalog:
        return None
    current: Any = catalog
    for part in key.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return None
    return current if isinstance(current, str) else None


class MessageCatalog:
    """Callable `lookup(key, params)` over the bundled locale files."""

    def __init__(self, language: Optional[str] = None):
        language = (language or os.getenv("VAULT_MCP_LANGUAGE") or FALLBACK_LANGUAGE).lower()
        self.language = language if language in SUPPORTED_LANGUAGES else FALLBACK_LANGUAGE

        self._catalogs: Dict[str, Dict[str, Any]] = {
            FALLBACK_LANGUAGE: _load_locale(FALLBACK_LANGUAGE)
        }
        if self.language != FALLBACK_LANGUAGE:
            self._catalogs[self.language] = _load_locale(self.language)

    def lookup(self, key: str, params: Optional[Mapping[str, Any]] = None) -> str:
        text = _find(self._catalogs.get(self.language), key)
        if text is None and self.language != FALLBACK_LANGUAGE:
            text = _find(self._catalogs.get(FALLBACK_LANGUAGE), key)
        if text is None:
            text = key

        for name, value in (params or {}).items():
            text = text.replace(f"{{{name}}}", str(value))
        return text

    __call__ = lookup


def identity_lookup(key: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Lookup that returns the key with params appended; handy in tests."""
    if not params:
        return key
    rendered = ", ".join(f"{k}={v}" for k, v in params.items())
    return f"{key} ({rendered})"
