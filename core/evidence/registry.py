"""
Provider Registry - Evidence Provider Registration

Every provider whose snapshots the engine reads must be registered here.
The registration declares which kind of evidence the provider's payload
carries; the collector uses that to pick a normaliser. Snapshots from
unregistered providers are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping, Optional


class EvidenceKind(Enum):
    """Kind of evidence a provider payload carries."""
    PERMITS = "permits"
    ASSESSOR = "assessor"
    ADDRESS = "address"


@dataclass(frozen=True)
class ProviderRegistration:
    """Immutable provider registration record."""

    provider_name: str
    display_name: str
    evidence_kind: EvidenceKind
    jurisdiction: Optional[str] = None
    active: bool = True

    def __post_init__(self) -> None:
        if not self.provider_name:
            raise ValueError("provider_name is required")
        if not re.match(r"^[a-z0-9_]+$", self.provider_name):
            raise ValueError(
                f"provider_name must be lowercase alphanumeric with underscores: {self.provider_name}"
            )


# =============================================================================
# Provider Registry
# =============================================================================

_PROVIDER_REGISTRY: dict[str, ProviderRegistration] = {}


def register_provider(registration: ProviderRegistration) -> None:
    """
    Register an evidence provider.

    Raises:
        ValueError: If the provider is already registered
    """
    if registration.provider_name in _PROVIDER_REGISTRY:
        raise ValueError(f"Provider already registered: {registration.provider_name}")
    _PROVIDER_REGISTRY[registration.provider_name] = registration


def get_provider(provider_name: str) -> Optional[ProviderRegistration]:
    """Get a registered, active provider by name (case-insensitive)."""
    registration = _PROVIDER_REGISTRY.get(provider_name.lower().strip())
    if registration is None or not registration.active:
        return None
    return registration


def providers_for_kind(kind: EvidenceKind) -> list[ProviderRegistration]:
    """All active providers carrying the given evidence kind."""
    return [
        p for p in _PROVIDER_REGISTRY.values()
        if p.evidence_kind is kind and p.active
    ]


# Read-only view for inspection
PROVIDER_REGISTRY: Final[Mapping[str, ProviderRegistration]] = MappingProxyType(_PROVIDER_REGISTRY)


# =============================================================================
# Default Registrations
# =============================================================================

register_provider(
    ProviderRegistration(
        provider_name="shovels",
        display_name="Shovels Permit Search",
        evidence_kind=EvidenceKind.PERMITS,
    )
)

register_provider(
    ProviderRegistration(
        provider_name="miami_dade",
        display_name="Miami-Dade County Building Permits",
        evidence_kind=EvidenceKind.PERMITS,
        jurisdiction="Miami-Dade County",
    )
)

register_provider(
    ProviderRegistration(
        provider_name="attom",
        display_name="ATTOM Property Detail",
        evidence_kind=EvidenceKind.ASSESSOR,
    )
)

register_provider(
    ProviderRegistration(
        provider_name="smarty",
        display_name="Smarty Address Standardizer",
        evidence_kind=EvidenceKind.ADDRESS,
    )
)
