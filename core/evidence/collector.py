"""
Evidence Collector

Turns a property's raw snapshots into one read-only EvidenceSet: the
latest snapshot per registered provider is normalised by evidence kind.
Unreadable payloads are recorded as parse issues, never dropped silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from core.models import EvidenceSnapshot, latest_by_provider
from .address import AddressProfile, normalize_smarty
from .assessor import AssessorProfile, normalize_attom
from .parsing import EvidenceParseError, ParseIssue
from .permits import PermitRecord, extract_permits
from .registry import EvidenceKind, get_provider


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceSet:
    """
    Normalised evidence for one property at the start of a run.

    Shared read-only by every field rule.
    """
    permits: tuple[PermitRecord, ...] = ()
    assessor: Optional[AssessorProfile] = None
    address: Optional[AddressProfile] = None
    parse_issues: tuple[ParseIssue, ...] = ()
    providers_used: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.permits and self.assessor is None and self.address is None

    @property
    def failed_providers(self) -> tuple[str, ...]:
        """Providers with at least one unreadable payload or record, in order."""
        seen: list[str] = []
        for issue in self.parse_issues:
            if issue.provider_name not in seen:
                seen.append(issue.provider_name)
        return tuple(seen)

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        """Best available coordinates: address standardizer, then assessor."""
        for source in (self.address, self.assessor):
            if source is not None and source.has_coordinates:
                return (source.latitude, source.longitude)
        return None

    @property
    def region_code(self) -> Optional[str]:
        return self.address.region_code if self.address else None


def collect_evidence(snapshots: Iterable[EvidenceSnapshot]) -> EvidenceSet:
    """
    Normalise a property's snapshots into an EvidenceSet.

    Only the latest snapshot per provider is read. When two providers of
    the same single-valued kind (assessor, address) are present, the one
    retrieved most recently wins. Permits from every permit provider are
    pooled.

    Args:
        snapshots: All snapshots stored for the property

    Returns:
        EvidenceSet (possibly empty)
    """
    latest = latest_by_provider(list(snapshots))

    permits: list[PermitRecord] = []
    issues: list[ParseIssue] = []
    used: list[str] = []
    assessor: Optional[AssessorProfile] = None
    address: Optional[AddressProfile] = None
    assessor_at = address_at = None

    # Deterministic order regardless of how the store returned rows
    for name in sorted(latest):
        snapshot = latest[name]
        registration = get_provider(name)
        if registration is None:
            logger.debug("Ignoring snapshot from unregistered provider: %s", name)
            continue

        try:
            if registration.evidence_kind is EvidenceKind.PERMITS:
                records, record_issues = extract_permits(name, snapshot.payload)
                permits.extend(records)
                issues.extend(record_issues)
            elif registration.evidence_kind is EvidenceKind.ASSESSOR:
                profile = normalize_attom(name, snapshot.payload)
                if assessor_at is None or snapshot.retrieved_at_utc > assessor_at:
                    assessor, assessor_at = profile, snapshot.retrieved_at_utc
            elif registration.evidence_kind is EvidenceKind.ADDRESS:
                profile = normalize_smarty(name, snapshot.payload)
                if address_at is None or snapshot.retrieved_at_utc > address_at:
                    address, address_at = profile, snapshot.retrieved_at_utc
        except EvidenceParseError as e:
            logger.warning("Unreadable %s snapshot: %s", name, e)
            issues.append(ParseIssue(name, str(e)))
            continue

        used.append(name)

    return EvidenceSet(
        permits=tuple(permits),
        assessor=assessor,
        address=address,
        parse_issues=tuple(issues),
        providers_used=tuple(used),
    )
