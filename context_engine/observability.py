"""
Observability & Audit

RESPONSIBILITY: Record context, escalation, cache and provider decisions
OUTPUTS: Append-only AuditEntry stream

WHAT THIS MODULE MUST NOT DO:
=============================
- Modify engine behavior
- Make decisions based on recorded data
- Raise into the code path that records an entry
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import hashlib

from .contracts.base import Error


class AuditEventType(Enum):
    """Explicit audit event types."""
    CONTEXT = "context"
    ESCALATION = "escalation"
    CACHE = "cache"
    PROVIDER = "provider"
    ERROR = "error"


@dataclass(frozen=True)
class AuditEntry:
    """Immutable audit log entry."""
    entry_id: str
    sequence: int
    event_type: AuditEventType
    timestamp: datetime
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def get(self, key: str) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditTrail:
    """
    Append-only collector.

    Entries are never modified or removed. Entry ids are derived from
    (sequence, action, entity) so identical runs produce identical ids.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self._clock = clock
        self._entries: List[AuditEntry] = []

    def record(
        self,
        event_type: AuditEventType,
        action: str,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None
    ) -> AuditEntry:
        sequence = len(self._entries)
        seed = f"{sequence}|{action}|{entity_id or ''}"
        entry = AuditEntry(
            entry_id=f"audit_{hashlib.sha256(seed.encode()).hexdigest()[:12]}",
            sequence=sequence,
            event_type=event_type,
            timestamp=self._clock(),
            action=action,
            entity_id=entity_id,
            metadata=tuple(sorted((k, str(v)) for k, v in (metadata or {}).items())),
        )
        self._entries.append(entry)
        return entry

    def record_error(self, error: Error, entity_id: Optional[str] = None) -> AuditEntry:
        metadata: Dict[str, object] = {'code': error.code.name, 'message': error.message}
        metadata.update(dict(error.context))
        return self.record(AuditEventType.ERROR, error.code.name.lower(), entity_id, metadata)

    def entries(self, event_type: Optional[AuditEventType] = None) -> List[AuditEntry]:
        if event_type is None:
            return list(self._entries)
        return [e for e in self._entries if e.event_type == event_type]

    def actions(self, event_type: Optional[AuditEventType] = None) -> List[str]:
        return [e.action for e in self.entries(event_type)]

    @property
    def entry_count(self) -> int:
        return len(self._entries)
