"""
Evidence Contracts
==================

Read-only evidence entries as delivered by the upstream log store, and the
timeline entries derived from them.

CONSTRAINTS:
- Evidence entries are never modified by the engine
- Timeline entries are recomputed fresh on every call, never mutated
- Metadata is untrusted JSON: decoding never raises
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from .base import (
    Severity, EVIDENCE_TYPES, PHOTO_TYPES, CHAT_TYPE, ensure_utc, iso_millis,
)


# Metadata keys written by the upstream application
META_SEVERITY = "severity"
META_PARENT_ID = "parentLogId"
META_PHOTO_COUNT = "photoCount"
META_DOCUMENT_COUNT = "documentCount"


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))


def _positive_count(value: Any) -> Optional[str]:
    """
    Render a positive count, or None for anything else.

    Numeric strings ("3") count: upstream metadata is loosely typed JSON.
    """
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        return value.strip() if number > 0 else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


@dataclass(frozen=True)
class EvidenceEntry:
    """
    One logged artifact of a case, as stored upstream.

    `type` is kept as a raw string: non-evidence tags (chat turns,
    attached photos) travel through the same list and are filtered
    by the engine, not by the store.
    """
    id: int
    created_at: datetime
    type: str
    content: str
    file_url: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None
    is_ai: bool = False
    title: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'created_at', ensure_utc(self.created_at))

    @property
    def is_evidence(self) -> bool:
        return self.type in EVIDENCE_TYPES

    @property
    def is_chat(self) -> bool:
        return self.type == CHAT_TYPE

    @property
    def is_photo(self) -> bool:
        return self.type in PHOTO_TYPES

    @property
    def day(self) -> str:
        """Day-granularity UTC date string (YYYY-MM-DD)."""
        return self.created_at.date().isoformat()

    def meta(self, key: str) -> Any:
        """Read a metadata value. Non-mapping metadata reads as empty."""
        if not isinstance(self.metadata, Mapping):
            return None
        return self.metadata.get(key)

    def severity_override(self) -> Optional[Severity]:
        """Explicit severity from metadata, if present and valid."""
        return Severity.parse(self.meta(META_SEVERITY))

    def attachment_markers(self) -> Tuple[str, ...]:
        """Linkage markers: parent entry, photo count, document count."""
        markers = []
        parent_id = self.meta(META_PARENT_ID)
        if parent_id:
            markers.append(f"parent:{parent_id}")
        photos = _positive_count(self.meta(META_PHOTO_COUNT))
        if photos is not None:
            markers.append(f"photos:{photos}")
        documents = _positive_count(self.meta(META_DOCUMENT_COUNT))
        if documents is not None:
            markers.append(f"docs:{documents}")
        return tuple(markers)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'created_at': iso_millis(self.created_at),
            'type': self.type,
            'content': self.content,
            'file_url': self.file_url,
            'metadata': dict(self.metadata) if isinstance(self.metadata, Mapping) else None,
            'is_ai': self.is_ai,
            'title': self.title,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'EvidenceEntry':
        """
        Reconstruct from a store row.

        Accepts both snake_case and the upstream camelCase column names.
        """
        created = data.get('created_at', data.get('createdAt'))
        return cls(
            id=int(data['id']),
            created_at=_parse_datetime(created),
            type=str(data['type']),
            content=data.get('content') or "",
            file_url=data.get('file_url', data.get('fileUrl')),
            metadata=data.get('metadata'),
            is_ai=bool(data.get('is_ai', data.get('isAi', False))),
            title=data.get('title'),
        )


@dataclass(frozen=True)
class TimelineEntry:
    """
    Derived, engine-owned view of one evidence entry.

    INVARIANT: exactly one severity per entry.
    """
    id: int
    date: str
    type: str
    severity: Severity
    description: str
    attachments: Tuple[str, ...] = field(default_factory=tuple)
    has_file: bool = False

    @property
    def sort_key(self) -> Tuple[str, int]:
        """Deterministic ordering: date ascending, then id ascending."""
        return (self.date, self.id)

    @staticmethod
    def from_evidence(entry: EvidenceEntry, severity: Severity) -> 'TimelineEntry':
        return TimelineEntry(
            id=entry.id,
            date=entry.day,
            type=entry.type,
            severity=severity,
            description=entry.content,
            attachments=entry.attachment_markers(),
            has_file=bool(entry.file_url),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'type': self.type,
            'severity': self.severity.value,
            'description': self.description,
            'attachments': list(self.attachments),
            'has_file': self.has_file,
        }


# =============================================================================
# CASE CONTEXT (read-only prompt inputs)
# =============================================================================

@dataclass(frozen=True)
class CaseProfile:
    """Profile of the person the case belongs to. Every field is optional."""
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    unit_number: Optional[str] = None
    rental_agency: Optional[str] = None
    property_manager_name: Optional[str] = None
    property_manager_phone: Optional[str] = None
    property_manager_email: Optional[str] = None
    lease_start_date: Optional[str] = None
    monthly_rent: Optional[str] = None
    emergency_contact: Optional[str] = None
    has_lease_document: bool = False


@dataclass(frozen=True)
class CaseSummary:
    """The tracked case itself."""
    title: str
    description: str
    status: str = "open"
    created_at: Optional[datetime] = None
