"""
Permit Normalisers - Provider Payloads to One Permit Model

All provider-specific permit interpretation happens here. Downstream code
(classifier, field rules) never branches on which provider a permit came
from; the provider name is carried for provenance only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Final, Optional

from .parsing import (
    EvidenceParseError,
    ParseIssue,
    clean_text,
    first_present,
    parse_evidence_date,
    to_float,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermitRecord:
    """A building permit normalised from any permit provider."""
    provider_name: str
    permit_number: Optional[str] = None
    permit_type: Optional[str] = None
    work_class: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    date_issued: Optional[date] = None
    date_finaled: Optional[date] = None
    approval_date: Optional[date] = None
    valuation: Optional[float] = None
    jurisdiction: Optional[str] = None

    @property
    def observed_date(self) -> Optional[date]:
        """Most authoritative date: finaled, then approval, then issued."""
        return self.date_finaled or self.approval_date or self.date_issued

    @property
    def is_finaled(self) -> bool:
        return self.date_finaled is not None

    @property
    def search_text(self) -> str:
        """Lowercased description, type and work class for pattern matching."""
        parts = (self.description, self.permit_type, self.work_class)
        return " ".join(p for p in parts if p).lower()

    @property
    def reference(self) -> str:
        return self.permit_number or "unnumbered"

    def to_dict(self) -> dict:
        return {
            "provider_name": self.provider_name,
            "permit_number": self.permit_number,
            "permit_type": self.permit_type,
            "work_class": self.work_class,
            "description": self.description,
            "status": self.status,
            "date_issued": self.date_issued.isoformat() if self.date_issued else None,
            "date_finaled": self.date_finaled.isoformat() if self.date_finaled else None,
            "approval_date": self.approval_date.isoformat() if self.approval_date else None,
            "valuation": self.valuation,
            "jurisdiction": self.jurisdiction,
        }


# =============================================================================
# Provider Normalisers
# =============================================================================

MIAMI_DADE_TYPE_MAP: Final[dict[str, str]] = {
    "MECH": "Mechanical",
    "BLDG": "Building",
    "ELEC": "Electrical",
    "PLUM": "Plumbing",
    "ROOF": "Roofing",
    "DEMO": "Demolition",
    "FIRE": "Fire",
}

MIAMI_DADE_DESCRIPTION_FIELDS: Final[tuple[str, ...]] = tuple(
    f"DESC{i}" for i in range(1, 11)
)


def normalize_shovels_permit(raw: dict) -> PermitRecord:
    """Normalise one Shovels permit record."""
    return PermitRecord(
        provider_name="shovels",
        permit_number=clean_text(raw.get("number") or raw.get("permit_number") or raw.get("id")),
        permit_type=clean_text(raw.get("type") or raw.get("permit_type")),
        work_class=clean_text(raw.get("work_type") or raw.get("work_class")),
        description=clean_text(raw.get("description")),
        status=clean_text(raw.get("status")),
        date_issued=parse_evidence_date(raw.get("issue_date") or raw.get("date_issued")),
        date_finaled=parse_evidence_date(raw.get("final_date") or raw.get("date_finaled")),
        approval_date=None,
        valuation=to_float(raw.get("job_value")),
        jurisdiction=clean_text(raw.get("jurisdiction")),
    )


def normalize_miami_dade_permit(raw: dict) -> PermitRecord:
    """
    Normalise one Miami-Dade ArcGIS permit record.

    Description is spread over DESC1..DESC10; finalisation comes from the
    last inspection or building completion date; issue dates arrive as
    epoch milliseconds.
    """
    description = " ".join(
        str(part).strip()
        for part in (first_present(raw, f) for f in MIAMI_DADE_DESCRIPTION_FIELDS)
        if part
    )
    raw_type = first_present(raw, "TYPE")
    permit_type = MIAMI_DADE_TYPE_MAP.get(str(raw_type).upper(), raw_type) if raw_type else None

    return PermitRecord(
        provider_name="miami_dade",
        permit_number=clean_text(first_present(raw, "PROCNUM", "ID")),
        permit_type=clean_text(permit_type),
        work_class=clean_text(first_present(raw, "WORKCLASS")),
        description=clean_text(description),
        status=clean_text(first_present(raw, "STATDESC", "STATUS")),
        date_issued=parse_evidence_date(first_present(raw, "ISSUDATE")),
        date_finaled=parse_evidence_date(first_present(raw, "LSTINSDT", "BLDCMPDT")),
        approval_date=parse_evidence_date(first_present(raw, "LSTAPPRDT")),
        valuation=to_float(first_present(raw, "PROJVAL")),
        jurisdiction="Miami-Dade County",
    )


PERMIT_NORMALIZERS: Final[dict[str, Callable[[dict], PermitRecord]]] = {
    "shovels": normalize_shovels_permit,
    "miami_dade": normalize_miami_dade_permit,
}


def _permit_rows(provider_name: str, payload: Any) -> list:
    """Pull the list of raw permit records out of a provider payload."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise EvidenceParseError(
            f"{provider_name} payload must be an object, got {type(payload).__name__}"
        )

    if "permits" in payload:
        rows = payload["permits"]
    elif "features" in payload:
        # ArcGIS feature collection
        features = payload["features"]
        if not isinstance(features, list):
            raise EvidenceParseError(f"{provider_name} features must be a list")
        rows = [f.get("attributes", f) if isinstance(f, dict) else f for f in features]
    elif "items" in payload:
        rows = payload["items"]
    else:
        return []

    if rows is None:
        return []
    if not isinstance(rows, list):
        raise EvidenceParseError(f"{provider_name} permits must be a list")
    return rows


def extract_permits(
    provider_name: str,
    payload: Any,
) -> tuple[list[PermitRecord], list[ParseIssue]]:
    """
    Normalise every permit in a provider payload.

    Records that fail to parse are skipped and returned as ParseIssue
    entries; the rest of the payload is still used.

    Args:
        provider_name: Registered permit provider name
        payload: Raw snapshot payload

    Returns:
        Tuple of (permits, record-level parse issues)

    Raises:
        EvidenceParseError: If the payload as a whole is unreadable or no
            normaliser exists for the provider
    """
    normalizer = PERMIT_NORMALIZERS.get(provider_name)
    if normalizer is None:
        raise EvidenceParseError(f"No permit normaliser for provider: {provider_name}")

    permits: list[PermitRecord] = []
    issues: list[ParseIssue] = []
    for index, raw in enumerate(_permit_rows(provider_name, payload)):
        if not isinstance(raw, dict):
            issues.append(ParseIssue(provider_name, "permit record is not an object", index))
            continue
        try:
            permits.append(normalizer(raw))
        except EvidenceParseError as e:
            logger.warning("Skipping %s permit #%d: %s", provider_name, index, e)
            issues.append(ParseIssue(provider_name, str(e), index))

    return permits, issues
