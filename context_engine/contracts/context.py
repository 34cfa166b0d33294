"""
Context Contracts

Partition sets, included sets and cache records.

WHY SEPARATE FROM evidence.py:
These are the engine's OUTPUT shapes. Evidence contracts describe
what the upstream store delivers; these describe what the engine
hands to prompt building and to the cache store.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple
import json

from .evidence import TimelineEntry


class ContextPass(Enum):
    """Escalation tier of an included set."""
    PASS_1 = "pass_1"   # critical + recent
    PASS_2 = "pass_2"   # critical + recent + backfill

    @property
    def includes_backfill(self) -> bool:
        return self is ContextPass.PASS_2

    @property
    def mode_label(self) -> str:
        if self is ContextPass.PASS_2:
            return "PASS 2 (older routine history included)"
        return "PASS 1 (critical + recent only)"


@dataclass(frozen=True)
class PartitionSets:
    """
    Result of partitioning a case timeline.

    INVARIANT: critical, recent and backfill are disjoint.
    `older_routine_count` is the backfill candidate count before
    truncation, so critical + recent + older_routine_count equals
    the number of evidence entries.
    """
    critical: Tuple[TimelineEntry, ...] = field(default_factory=tuple)
    recent: Tuple[TimelineEntry, ...] = field(default_factory=tuple)
    backfill: Tuple[TimelineEntry, ...] = field(default_factory=tuple)
    older_routine_count: int = 0

    @property
    def truncated_count(self) -> int:
        """Older routine entries dropped by the backfill cap."""
        return self.older_routine_count - len(self.backfill)

    @property
    def evidence_count(self) -> int:
        return len(self.critical) + len(self.recent) + self.older_routine_count


@dataclass(frozen=True)
class IncludedSet:
    """
    Ordered entries handed to the prompt renderer.

    INVARIANT: entries sorted by (date asc, id asc), no duplicate ids.
    """
    context_pass: ContextPass
    entries: Tuple[TimelineEntry, ...] = field(default_factory=tuple)

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(e.id for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass(frozen=True)
class CacheRecord:
    """
    Cached derived analysis, valid only while its fingerprint matches.

    Stored as a JSON string in the setting store. Never time-expired.
    """
    fingerprint: str
    result: Any

    def to_json(self) -> str:
        return json.dumps(
            {'fingerprint': self.fingerprint, 'result': self.result},
            sort_keys=True
        )

    @staticmethod
    def from_json(raw: Optional[str]) -> Optional[CacheRecord]:
        """
        Decode a stored record.

        Malformed JSON, a wrong shape or an empty result decode to None
        (a cache miss), never to an exception.
        """
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        fingerprint = data.get('fingerprint')
        result = data.get('result')
        if not isinstance(fingerprint, str) or not fingerprint or result is None:
            return None
        return CacheRecord(fingerprint=fingerprint, result=result)
