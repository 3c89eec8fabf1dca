# rentradar/domain/policies.py
from __future__ import annotations

import re

from ..config import settings
from .errors import ValidationError
from .types import Property

_WORDISH_RE = re.compile(r"[^\w]+", re.UNICODE)


def validation_errors(p: Property) -> list[str]:
    """
    Reasons a property is not worth showing. Empty list == keep.
    Reasons are short snake_case tags so they can double as drop-reason keys.
    """
    reasons: list[str] = []

    if not p.id or not p.source:
        reasons.append("missing_identity")

    title_core = _WORDISH_RE.sub("", p.title or "")
    if len(title_core) < int(settings.QUALITY_MIN_TITLE_LEN):
        reasons.append("title_too_short")

    if p.price <= 0:
        reasons.append("non_positive_price")

    has_location = bool((p.location.address or "").strip() or (p.location.neighborhood or "").strip())
    if not has_location and p.area <= 0 and p.rooms <= 0:
        reasons.append("no_location_or_size")

    if p.area > float(settings.QUALITY_MAX_AREA_M2):
        reasons.append("implausible_area")

    if p.rooms > int(settings.QUALITY_MAX_ROOMS):
        reasons.append("implausible_rooms")

    return reasons


def is_valid(p: Property) -> bool:
    return not validation_errors(p)


def ensure_valid(p: Property) -> Property:
    reasons = validation_errors(p)
    if reasons:
        raise ValidationError(reasons)
    return p
