# music/cache_utils.py
"""
Utilities for generating cache-safe keys
----------------------------------------

* Memcached / Redis reject long keys and control characters
* readable slug + MD5 digest keeps keys short and collision free
"""
from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Final, Mapping

_INVALID: Final = re.compile(r"[^A-Za-z0-9_.-]")


def safe_key(namespace: str, raw: str, *, max_slug: int = 60) -> str:
    """
    >>> safe_key("itunes", "Beyoncé CRAZY IN LOVE")[:28]
    'itunes:Beyonc__CRAZY_IN_LOVE'
    """
    slug = _INVALID.sub("_", raw)[:max_slug]
    digest = hashlib.md5(raw.encode("utf-8"), usedforsecurity=False).hexdigest()[:10]
    return f"{namespace}:{slug}:{digest}"


def params_key(namespace: str, params: Mapping[str, Any]) -> str:
    """Cache key for an ``(operation, parameters)`` pair, order independent."""
    raw = json.dumps(params, sort_keys=True, default=str, ensure_ascii=False)
    return safe_key(namespace, raw)
