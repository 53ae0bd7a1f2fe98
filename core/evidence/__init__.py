"""
Evidence Extraction

Provider payload normalisers, the permit relevance classifier and the
material/type inferencers. Everything here is pure: it reads snapshots
and returns immutable evidence.
"""

from .registry import (
    EvidenceKind,
    ProviderRegistration,
    PROVIDER_REGISTRY,
    get_provider,
    providers_for_kind,
    register_provider,
)
from .parsing import EvidenceParseError, ParseIssue, parse_evidence_date
from .permits import (
    PermitRecord,
    extract_permits,
    normalize_miami_dade_permit,
    normalize_shovels_permit,
)
from .assessor import AssessorProfile, normalize_attom
from .address import AddressProfile, normalize_smarty
from .classifier import (
    InstallKind,
    SystemPermit,
    classify_install,
    is_excluded,
    is_system_permit,
    matches_system,
    relevant_permits,
)
from .inference import (
    default_hvac_present,
    default_subtype,
    infer_presence,
    infer_subtype,
)
from .collector import EvidenceSet, collect_evidence

__all__ = [
    # Registry
    "EvidenceKind",
    "ProviderRegistration",
    "PROVIDER_REGISTRY",
    "get_provider",
    "providers_for_kind",
    "register_provider",
    # Parsing
    "EvidenceParseError",
    "ParseIssue",
    "parse_evidence_date",
    # Normalisers
    "PermitRecord",
    "extract_permits",
    "normalize_miami_dade_permit",
    "normalize_shovels_permit",
    "AssessorProfile",
    "normalize_attom",
    "AddressProfile",
    "normalize_smarty",
    # Classifier
    "InstallKind",
    "SystemPermit",
    "classify_install",
    "is_excluded",
    "is_system_permit",
    "matches_system",
    "relevant_permits",
    # Inference
    "default_hvac_present",
    "default_subtype",
    "infer_presence",
    "infer_subtype",
    # Collector
    "EvidenceSet",
    "collect_evidence",
]
