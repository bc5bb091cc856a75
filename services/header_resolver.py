"""
Header Resolver - map raw sheet headers onto the canonical contact schema.

A sheet is either in the current 42-column format or in the legacy CRM
export format (detected by marker headers that only exist in the old
export). Each non-blank raw header gets exactly one mapping entry:

- DIRECT:   header writes one canonical field
- SPLIT:    "full name" header split into firstname + lastname
- FALLBACK: alias that only fills a field still empty
- COPY:     header writes a field and seeds empty sibling fields
- META:     not part of the 42-field record, kept in ``_meta``

Resolution is pure: same header list in, same mapping out.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Set, Tuple

from schemas.contact_schema import COLUMNS

logger = logging.getLogger(__name__)


class MappingKind(str, Enum):
    """How a raw header feeds the canonical record."""
    DIRECT = "direct"
    SPLIT = "split"
    FALLBACK = "fallback"
    COPY = "copy"
    META = "meta"


@dataclass(frozen=True)
class HeaderMapping:
    """Mapping entry for one raw header."""
    kind: MappingKind
    field: str = ""
    targets: Tuple[str, ...] = ()  # split targets or copy siblings

    @classmethod
    def direct(cls, field_key: str) -> "HeaderMapping":
        return cls(MappingKind.DIRECT, field_key)

    @classmethod
    def split(cls, first_key: str, second_key: str) -> "HeaderMapping":
        return cls(MappingKind.SPLIT, targets=(first_key, second_key))

    @classmethod
    def fallback(cls, field_key: str) -> "HeaderMapping":
        return cls(MappingKind.FALLBACK, field_key)

    @classmethod
    def copy(cls, field_key: str, *siblings: str) -> "HeaderMapping":
        return cls(MappingKind.COPY, field_key, tuple(siblings))

    @classmethod
    def meta(cls, field_key: str) -> "HeaderMapping":
        return cls(MappingKind.META, field_key)

    @property
    def populates(self) -> Tuple[str, ...]:
        """Canonical keys this entry can write."""
        if self.kind == MappingKind.META:
            return ()
        if self.kind == MappingKind.SPLIT:
            return self.targets
        return (self.field,) + self.targets

    def to_dict(self) -> Dict:
        if self.kind == MappingKind.SPLIT:
            return {"splitTo": list(self.targets)}
        if self.kind == MappingKind.FALLBACK:
            return {"field": self.field, "fallback": True}
        if self.kind == MappingKind.COPY:
            return {"field": self.field, "copyTo": list(self.targets)}
        if self.kind == MappingKind.META:
            return {"field": self.field, "meta": True}
        return {"field": self.field}


@dataclass
class HeaderResolution:
    """Result of resolving one header row."""
    legacy: bool
    mappings: Dict[str, HeaderMapping] = field(default_factory=dict)

    def get(self, header: str):
        return self.mappings.get(header)

    def to_dict(self) -> Dict:
        return {
            "format": "legacy" if self.legacy else "current",
            "mapping": {h: m.to_dict() for h, m in self.mappings.items()},
        }


# =============================================================================
# HEADER TABLES
# =============================================================================

# Current format: exact label -> key
CURRENT_HEADER_MAP: Dict[str, str] = {col.label: col.key for col in COLUMNS}
_CURRENT_HEADER_MAP_LOWER: Dict[str, str] = {
    col.label.lower(): col.key for col in COLUMNS
}

# Legacy CRM export headers
LEGACY_HEADER_MAP: Dict[str, HeaderMapping] = {
    "$": HeaderMapping.meta("id_asal"),
    "Legal Name (1) *": HeaderMapping.split("firstname", "lastname"),
    "Contact No. (14)": HeaderMapping.copy("contact_phone", "phonenumber"),
    "Street +": HeaderMapping.direct("address"),
    "City": HeaderMapping.direct("city"),
    "State (17)": HeaderMapping.direct("state"),
    "Postcode": HeaderMapping.direct("zip"),
    "Tags (21)": HeaderMapping.meta("tags"),
    "Myinvois Action (22)": HeaderMapping.meta("myinvois_action"),
    "Status": HeaderMapping.direct("client_type"),
    "Last_Updated": HeaderMapping.meta("last_updated"),
    "Poskod": HeaderMapping.fallback("zip"),
    "Alamat": HeaderMapping.fallback("address"),
    "Negeri": HeaderMapping.fallback("state"),
    "Name (Company Name)": HeaderMapping.direct("company_name"),
    "Name (Company)": HeaderMapping.direct("company_name"),
}

# Headers that only exist in the legacy export
LEGACY_MARKERS: List[str] = [
    "$",
    "Legal Name (1) *",
    "Contact No. (14)",
    "Street +",
    "State (17)",
    "Tags (21)",
    "Myinvois Action (22)",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# =============================================================================
# RESOLUTION
# =============================================================================

def _clean(header) -> str:
    return str(header or "").strip()


def metadata_key(header: str) -> str:
    """Field key for an unrecognized header: lowercase, non-alphanumerics to '_'."""
    return _NON_ALNUM.sub("_", _clean(header).lower())


def is_legacy_format(headers: Iterable) -> bool:
    """True if any legacy-only marker header is present."""
    header_set = {_clean(h) for h in headers}
    return any(marker in header_set for marker in LEGACY_MARKERS)


def _match_current(header: str):
    key = CURRENT_HEADER_MAP.get(header)
    if key:
        return HeaderMapping.direct(key)
    key = _CURRENT_HEADER_MAP_LOWER.get(header.lower())
    if key:
        return HeaderMapping.direct(key)
    return None


def resolve_header(header: str, legacy: bool) -> HeaderMapping:
    """
    Resolve one trimmed, non-blank header.

    Legacy sheets check the legacy table first so split/copy enrichment is
    not lost to a coincidental label match ("City", "Status"). Current
    sheets prefer canonical labels and only then fall back to legacy
    aliases (mixed sheets).
    """
    if legacy and header in LEGACY_HEADER_MAP:
        return LEGACY_HEADER_MAP[header]

    mapping = _match_current(header)
    if mapping:
        return mapping

    if header in LEGACY_HEADER_MAP:
        return LEGACY_HEADER_MAP[header]

    return HeaderMapping.meta(metadata_key(header))


def resolve_headers(headers: List) -> HeaderResolution:
    """
    Build the mapping for a sheet's header row.

    Blank headers are skipped. Duplicate headers resolve to the same entry
    (the raw string is the key, last occurrence wins).
    """
    legacy = is_legacy_format(headers)
    resolution = HeaderResolution(legacy=legacy)

    for raw in headers:
        header = _clean(raw)
        if not header:
            continue
        resolution.mappings[header] = resolve_header(header, legacy)

    logger.debug(
        f"Resolved {len(resolution.mappings)} headers "
        f"(format={'legacy' if legacy else 'current'})"
    )
    return resolution


def detect_columns(headers: List) -> Set[str]:
    """Canonical keys the sheet can populate directly from its headers."""
    resolution = resolve_headers(headers)
    detected: Set[str] = set()
    for mapping in resolution.mappings.values():
        detected.update(mapping.populates)
    return detected
