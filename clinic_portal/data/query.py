"""
Query string construction for backend list and search endpoints.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote

# Characters encodeURIComponent leaves alone besides alphanumerics and -_.~
_UNRESERVED = "!*'()"

Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _stringify(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _encode(text: str) -> str:
    return quote(text, safe=_UNRESERVED)


def build_query(params: Optional[Params]) -> str:
    """
    Build a URL query string from filter parameters.

    Entries whose value is None or an empty string are dropped. Input order
    is preserved and no leading ``?`` is emitted.

    Args:
        params: Mapping or sequence of (name, value) pairs

    Returns:
        Encoded query string, possibly empty
    """
    if not params:
        return ""

    items = params.items() if isinstance(params, Mapping) else params
    parts = []
    for name, value in items:
        if value is None or value == "":
            continue
        parts.append(f"{_encode(str(name))}={_encode(_stringify(value))}")
    return "&".join(parts)


def with_query(path: str, params: Optional[Params]) -> str:
    """Append ``?<query>`` to a path when there is anything to append."""
    query = build_query(params)
    if not query:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"
