"""Utility helpers for parsing loosely formatted form values."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable


YEAR_RE = re.compile(r"^\d{4}$")


def _split_tokens(raw: object) -> list[Any]:
    """Return the raw tokens of a JSON array or comma separated string."""

    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                # Treat a broken array as a bracketed comma list.
                text = text.strip("[]")
            else:
                return decoded if isinstance(decoded, list) else []
        return [part.strip().strip("\"'") for part in text.split(",")]
    if isinstance(raw, Iterable) and not isinstance(raw, (bytes, dict)):
        return list(raw)
    return [raw]


def _coerce_genre_id(token: object) -> int | None:
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token
    if isinstance(token, float):
        return int(token) if token.is_integer() else None
    if isinstance(token, str):
        text = token.strip()
        if text.isascii() and text.lstrip("-").isdigit():
            try:
                return int(text)
            except ValueError:
                return None
    return None


def parse_genre_ids(raw: object) -> list[int]:
    """Parse genre identifiers from a JSON array or comma separated integers.

    Tokens that are not integers are dropped. The first occurrence of a
    duplicate wins so the original ordering is preserved.
    """

    result: list[int] = []
    for token in _split_tokens(raw):
        genre_id = _coerce_genre_id(token)
        if genre_id is None or genre_id < 0 or genre_id in result:
            continue
        result.append(genre_id)
    return result


def parse_tags(raw: object) -> list[str]:
    """Parse free-form tags from a comma separated string or JSON array."""

    result: list[str] = []
    seen: set[str] = set()
    for token in _split_tokens(raw):
        if not isinstance(token, (str, int, float)) or isinstance(token, bool):
            continue
        tag = str(token).strip()
        if not tag:
            continue
        key = tag.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return result


def extract_year(value: str | None) -> str:
    """Return the four digit year prefix of an ISO date, or an empty string."""

    if not isinstance(value, str):
        return ""
    prefix = value.strip()[:4]
    return prefix if YEAR_RE.match(prefix) else ""


def coerce_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return None
    return None


def coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            return None
    return None


def coerce_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None
