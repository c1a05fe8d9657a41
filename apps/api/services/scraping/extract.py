"""Best-effort field extraction and value coercion for raw scraper items.

Upstream actors rename fields freely, so every canonical field is described by
an ordered list of candidate paths. A candidate is either a plain key
(``"playCount"``) or a dot-delimited path into nested objects
(``"videoMeta.coverUrl"``). Supporting a new upstream variant means appending a
candidate, not writing new branches.

Everything in this module is total: absent paths and unparseable values come
back as ``None`` instead of raising.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

T = TypeVar("T")

MILLISECONDS_THRESHOLD = 1_000_000_000_000
_COUNT_SUFFIXES = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}
_COUNT_PATTERN = re.compile(r"^([0-9]+(?:\.[0-9]+)?)\s*([kmb])?$", re.IGNORECASE)


def resolve_path(item: Any, path: str) -> Any:
    """Resolve a dotted path against nested mappings, returning None when absent."""
    current = item
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def extract(item: Any, candidates: Iterable[str]) -> Any:
    """Return the first candidate path whose value is not None."""
    for candidate in candidates:
        value = resolve_path(item, candidate)
        if value is not None:
            return value
    return None


def extract_parsed(item: Any, candidates: Iterable[str], parser: Callable[[Any], Optional[T]]) -> Optional[T]:
    """Return the first candidate value that ``parser`` accepts."""
    for candidate in candidates:
        value = resolve_path(item, candidate)
        if value is None:
            continue
        parsed = parser(value)
        if parsed is not None:
            return parsed
    return None


def extract_first_list_item(item: Any, candidates: Iterable[str]) -> Any:
    """Return the first element of the first non-empty list among the candidates."""
    for candidate in candidates:
        value = resolve_path(item, candidate)
        if isinstance(value, (list, tuple)):
            for element in value:
                if element is not None:
                    return element
    return None


def clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def to_count(value: Any) -> Optional[int]:
    """Coerce a counter-like value to a non-negative int.

    Accepts ints, finite floats and strings such as ``"1,234"`` or ``"12.5K"``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return max(int(round(value)), 0)
    if isinstance(value, str):
        text = value.strip().replace(",", "").replace("_", "")
        match = _COUNT_PATTERN.match(text)
        if not match:
            return None
        number = float(match.group(1))
        suffix = (match.group(2) or "").lower()
        if suffix:
            number *= _COUNT_SUFFIXES[suffix]
        return max(int(round(number)), 0)
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings or Unix seconds/milliseconds into an aware UTC datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if re.fullmatch(r"[0-9]+(?:\.[0-9]+)?", text):
            return parse_timestamp(float(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        if value <= 0:
            return None
        seconds = value / 1000 if value > MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def parse_duration(value: Any) -> Optional[int]:
    """Parse seconds, ``"SS"``, ``"MM:SS"`` or ``"HH:MM:SS"`` into whole seconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        if value <= 0:
            return None
        return int(round(value))
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    parts = text.split(":")
    if len(parts) > 3:
        return None
    try:
        numbers = [float(part) for part in parts]
    except ValueError:
        return None
    if any(number < 0 for number in numbers):
        return None
    total = 0.0
    for number in numbers:
        total = total * 60 + number
    return int(round(total)) if total > 0 else None


def absolutize_url(value: Any, origin: str) -> Optional[str]:
    """Return an absolute http(s) URL, prefixing platform-relative values with ``origin``."""
    text = clean_text(value)
    if not text:
        return None
    if text.startswith("http://") or text.startswith("https://"):
        return text
    if text.startswith("//"):
        return f"https:{text}"
    return f"{origin.rstrip('/')}/{text.lstrip('/')}"


def compute_engagement_rate(views: int, likes: int, comments: int, shares: int) -> float:
    """(likes + comments + shares) / base * 100, rounded to 2 places.

    ``base`` is the view count, or ``max(likes + comments, 1)`` when views are missing.
    """
    views = max(int(views or 0), 0)
    likes = max(int(likes or 0), 0)
    comments = max(int(comments or 0), 0)
    shares = max(int(shares or 0), 0)
    engagement_base = views if views > 0 else max(likes + comments, 1)
    return round((likes + comments + shares) / engagement_base * 100, 2)
