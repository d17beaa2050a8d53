"""
Message catalog lookup.
Messages live in app/locales/<locale>.json, addressed by dotted keys.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"
DEFAULT_LOCALE = "pt_BR"


@lru_cache
def load_catalog(locale: str = DEFAULT_LOCALE) -> Dict[str, Any]:
    with open(LOCALES_DIR / f"{locale}.json", encoding="utf-8") as fh:
        return json.load(fh)


def localize(key: str, **params: Any) -> str:
    """Resolve `key` in the catalog and interpolate `{name}` placeholders.

    Unknown keys resolve to the key itself so a missing translation never
    hides the underlying error.
    """
    node: Any = load_catalog()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return key
        node = node[part]

    if not isinstance(node, str):
        return key

    if params:
        try:
            return node.format(**params)
        except (KeyError, IndexError):
            return node
    return node
