"""
Shared payload parsing helpers for evidence normalisers.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional


class EvidenceParseError(ValueError):
    """Raised when a provider payload (or one record in it) cannot be parsed."""


@dataclass(frozen=True)
class ParseIssue:
    """
    A payload or record that was skipped because it could not be parsed.

    Collected on the evidence set so a fallback reached because of it
    can be flagged rather than passed off as an ordinary default.
    """
    provider_name: str
    reason: str
    record_index: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "provider_name": self.provider_name,
            "reason": self.reason,
            "record_index": self.record_index,
        }


_EPOCH_MS = re.compile(r"^\d{13}$")
_COMPACT_DATE = re.compile(r"^\d{8}$")


def parse_evidence_date(value: Any) -> Optional[date]:
    """
    Parse a provider date value.

    Accepts ISO dates/timestamps, compact YYYYMMDD strings and epoch
    milliseconds (as int or 13-digit string).

    Returns:
        The date, or None when the value is empty

    Raises:
        EvidenceParseError: If a non-empty value is not a recognised date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise EvidenceParseError(f"Unrecognised date value: {value!r}")
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)

    text = str(value).strip()
    if not text:
        return None
    if _EPOCH_MS.match(text):
        return _from_epoch_ms(int(text))
    if _COMPACT_DATE.match(text):
        try:
            return datetime.strptime(text, "%Y%m%d").date()
        except ValueError as e:
            raise EvidenceParseError(f"Invalid compact date: {text}") from e
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError as e:
        raise EvidenceParseError(f"Unrecognised date value: {text}") from e


def _from_epoch_ms(value: float) -> date:
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError) as e:
        raise EvidenceParseError(f"Invalid epoch timestamp: {value}") from e


def to_int(value: Any) -> Optional[int]:
    """Lenient int conversion; empty, zero, non-finite or non-numeric values become None."""
    result = to_float(value)
    if result is None:
        return None
    return int(result) or None


def to_float(value: Any) -> Optional[float]:
    """Lenient float conversion; empty, non-finite or non-numeric values become None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def clean_text(value: Any) -> Optional[str]:
    """Strip and collapse whitespace; empty strings become None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def first_present(data: dict, *keys: str) -> Any:
    """First non-empty value among keys (also tries each key lowercased)."""
    for key in keys:
        for candidate in (key, key.lower()):
            value = data.get(candidate)
            if value not in (None, ""):
                return value
    return None
