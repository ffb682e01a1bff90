from __future__ import annotations

from typing import Any, Iterable, List, Tuple

SENSITIVE_KEYS = {
    "password",
    "passwd",
    "pass",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
}

MASK = "********"


def mask_value(key: str, value: Any, extra: Iterable[str] = ()) -> Any:
    k = key.lower()
    if value is not None and (k in SENSITIVE_KEYS or k in {e.lower() for e in extra}):
        return MASK
    return value


def mask_pairs(pairs: List[Tuple[str, str]], extra: Iterable[str] = ()) -> List[Tuple[str, Any]]:
    extra = tuple(extra)
    return [(k, mask_value(k, v, extra)) for k, v in pairs]

