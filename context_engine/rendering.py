"""
Canonical Prompt Rendering
==========================

Pure functions turning ordered entries into prompt text.

INVARIANT: same entries → same text, byte for byte.
An empty section renders a fixed sentinel, never an empty string:
the model must not receive an ambiguous blank section.

LINE FORMAT:
    [date] [ID:id][ [CRITICAL]| [IMPORTANT]] TYPE: description[ (markers)]
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .contracts.base import Severity
from .contracts.evidence import CaseProfile, CaseSummary, EvidenceEntry, TimelineEntry
from .assembly import assemble_context
from .config import ContextConfig
from .severity import SeverityClassifier


NO_EVIDENCE_SENTINEL = "No evidence logs recorded."
NO_PHOTOS_SENTINEL = "No photos documented."
NO_PROFILE_SENTINEL = "No profile information available."


def render_entry(entry: TimelineEntry) -> str:
    attach = f" ({', '.join(entry.attachments)})" if entry.attachments else ""
    return (
        f"[{entry.date}] [ID:{entry.id}]{entry.severity.prompt_tag} "
        f"{entry.type.upper()}: {entry.description}{attach}"
    )


def render_timeline(entries: Iterable[TimelineEntry]) -> str:
    """Render an included set (or any ordered entries) to prompt text."""
    lines = [render_entry(e) for e in entries]
    if not lines:
        return NO_EVIDENCE_SENTINEL
    return "\n".join(lines)


# =============================================================================
# COMPACT ROWS (case review prompt)
# =============================================================================

@dataclass(frozen=True)
class TimelineRow:
    """Compact evidence row without attachment markers."""
    id: int
    date: str
    type: str
    content: str
    severity: Severity

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'type': self.type,
            'content': self.content,
            'id': self.id,
            'severity': self.severity.value,
        }


@dataclass(frozen=True)
class PhotoRow:
    id: int
    date: str
    description: str
    file_url: Optional[str]
    severity: Severity

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'description': self.description,
            'file_url': self.file_url,
            'id': self.id,
            'severity': self.severity.value,
        }


def render_evidence_timeline(entries: Iterable[TimelineEntry]) -> List[TimelineRow]:
    return [
        TimelineRow(id=e.id, date=e.date, type=e.type, content=e.description, severity=e.severity)
        for e in entries
    ]


def render_timeline_rows(rows: Sequence[TimelineRow]) -> str:
    if not rows:
        return NO_EVIDENCE_SENTINEL
    return "\n".join(
        f"[{r.date}] [ID:{r.id}]{r.severity.prompt_tag} {r.type.upper()}: {r.content}"
        for r in rows
    )


def build_photo_list(
    entries: Iterable[EvidenceEntry],
    classifier: Optional[SeverityClassifier] = None
) -> List[PhotoRow]:
    """Photo entries, including photos attached to other entry types."""
    classifier = classifier or SeverityClassifier()
    return [
        PhotoRow(
            id=e.id,
            date=e.day,
            description=e.content,
            file_url=e.file_url,
            severity=classifier.classify(e),
        )
        for e in entries if e.is_photo
    ]


def render_photo_list(photos: Sequence[PhotoRow]) -> str:
    if not photos:
        return NO_PHOTOS_SENTINEL
    return "\n".join(
        f"[{p.date}] [ID:{p.id}]{p.severity.prompt_tag} {p.description}"
        for p in photos
    )


# =============================================================================
# CASE CONTEXT
# =============================================================================

_PROFILE_LABELS = (
    ('full_name', "Tenant Name"),
    ('phone', "Phone"),
    ('email', "Email"),
    ('address', "Property Address"),
    ('unit_number', "Unit"),
    ('rental_agency', "Property Management Company"),
    ('property_manager_name', "Property Manager"),
    ('property_manager_phone', "Property Manager Phone"),
    ('property_manager_email', "Property Manager Email"),
    ('lease_start_date', "Lease Start Date"),
    ('monthly_rent', "Monthly Rent"),
    ('emergency_contact', "Emergency Contact"),
)


def render_profile(profile: Optional[CaseProfile]) -> str:
    """`Label: value` lines for populated fields only. May be empty."""
    if profile is None:
        return ""
    lines = []
    for attr, label in _PROFILE_LABELS:
        value = getattr(profile, attr)
        if value:
            lines.append(f"{label}: {value}")
    if profile.has_lease_document:
        lines.append("Lease Document: Available for reference")
    return "\n".join(lines)


def render_case_summary(summary: CaseSummary) -> str:
    return (
        f"Current Issue: {summary.title}\n"
        f"Description: {summary.description}\n"
        f"Status: {summary.status}"
    )


def render_context(
    entries: Sequence[EvidenceEntry],
    now: datetime,
    config: Optional[ContextConfig] = None,
    include_backfill: bool = False
) -> str:
    """Partition, assemble and render in one call."""
    config = config or ContextConfig()
    partitions = config.partitioner().partition(entries, now)
    return render_timeline(assemble_context(partitions, include_backfill))
