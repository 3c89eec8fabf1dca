# rentradar/domain/parsing.py
from __future__ import annotations

import re
import unicodedata
from typing import Any

# a run of digits that may carry thousands separators: 2.500.000 / 2,500,000
_GROUP_RE = re.compile(r"\d[\d.,]*\d|\d")
_DECIMAL_TAIL_RE = re.compile(r"^(.*\d[.,]\d{3})[.,]\d{1,2}$")
_FIRST_NUMBER_RE = re.compile(r"\d+(?:[.,]\d+)?")
_FIRST_INT_RE = re.compile(r"\d+")

MAX_NUMBER_DIGITS = 10


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    try:
        return float(x)
    except Exception:
        return None


def coerce_amount(x: Any) -> int | None:
    """
    Money-like text -> int.

    Separators are stripped inside each digit group ("$2.500.000" -> 2500000). When
    several groups are present the first one with at most MAX_NUMBER_DIGITS digits
    wins, so two adjacent prices never fuse into one huge integer.
    """
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return int(x) if x >= 0 else None

    for group in _GROUP_RE.findall(str(x)):
        m = _DECIMAL_TAIL_RE.match(group)
        if m:
            group = m.group(1)
        digits = re.sub(r"\D", "", group)
        if digits and len(digits) <= MAX_NUMBER_DIGITS:
            return int(digits)
    return None


def first_number(x: Any) -> float | None:
    """First numeric run, decimal comma or point allowed ("80,5 m²" -> 80.5)."""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return float(x)
    m = _FIRST_NUMBER_RE.search(str(x))
    if not m:
        return None
    return float(m.group(0).replace(",", "."))


def first_int(x: Any) -> int | None:
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return int(x)
    m = _FIRST_INT_RE.search(str(x))
    return int(m.group(0)) if m else None


def clean_text(x: Any) -> str | None:
    if x is None:
        return None
    s = re.sub(r"\s+", " ", str(x)).strip()
    return s or None


def fold(s: str | None) -> str:
    """Lower-case, accent-free form used for every fuzzy text comparison."""
    if not s:
        return ""
    decomposed = unicodedata.normalize("NFD", s)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return re.sub(r"\s+", " ", stripped).strip().lower()


def slugify(s: str | None) -> str:
    return re.sub(r"[^a-z0-9]+", "-", fold(s)).strip("-")


def get_first(payload: dict[str, Any], *keys: str) -> Any:
    """Return first non-empty key from payload. Keys may be dot paths."""
    for k in keys:
        v = get_nested(payload, k) if "." in k else payload.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        if isinstance(v, (list, dict)) and not v:
            continue
        return v
    return None


def get_nested(payload: dict[str, Any], path: str) -> Any:
    """Tiny dot-path getter: 'location.lat' or 'offers.price'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur
