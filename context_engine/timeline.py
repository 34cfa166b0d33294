"""
Timeline Partitioning
=====================

Splits a case's evidence into critical, recent and backfill buckets.

GUARANTEES:
- `now` is always an explicit parameter: no wall-clock reads
- Buckets are disjoint and cover every evidence entry exactly once
  (backfill candidates counted before truncation)
- Truncation drops the OLDEST routine material first

WHY TAIL PREFERENCE:
When history must be cut, entries closer to `now` are kept.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .contracts.base import ensure_utc
from .contracts.evidence import EvidenceEntry, TimelineEntry
from .contracts.context import PartitionSets
from .severity import SeverityClassifier


RECENT_WINDOW_DAYS = 14
MAX_BACKFILL = 50


def evidence_only(entries: Iterable[EvidenceEntry]) -> List[EvidenceEntry]:
    """Drop chat turns and every other non-evidence type. Order preserved."""
    return [e for e in entries if e.is_evidence]


def build_timeline(
    entries: Iterable[EvidenceEntry],
    classifier: Optional[SeverityClassifier] = None
) -> List[TimelineEntry]:
    """Map evidence entries to timeline entries in upstream order."""
    classifier = classifier or SeverityClassifier()
    return [
        TimelineEntry.from_evidence(e, classifier.classify(e))
        for e in evidence_only(entries)
    ]


def partition_timeline(
    entries: Iterable[EvidenceEntry],
    now: datetime,
    recent_window_days: int = RECENT_WINDOW_DAYS,
    max_backfill: int = MAX_BACKFILL,
    classifier: Optional[SeverityClassifier] = None
) -> PartitionSets:
    """
    Partition evidence relative to `now`.

    Args:
        entries: Full upstream list, ordered by (created_at, id)
        now: Reference time (injected, never read from a clock here)
        recent_window_days: Routine entries at most this old are "recent"
        max_backfill: Cap on older routine entries kept for pass 2

    Returns:
        PartitionSets with each bucket in upstream order
    """
    classifier = classifier or SeverityClassifier()
    cutoff = ensure_utc(now) - timedelta(days=recent_window_days)

    critical: List[TimelineEntry] = []
    recent: List[TimelineEntry] = []
    older_routine: List[TimelineEntry] = []

    for entry in evidence_only(entries):
        severity = classifier.classify(entry)
        item = TimelineEntry.from_evidence(entry, severity)

        if severity.is_high_priority:
            critical.append(item)
        elif entry.created_at >= cutoff:
            recent.append(item)
        else:
            older_routine.append(item)

    # Tail slice: most recent candidates survive the cap
    backfill = older_routine[-max_backfill:] if max_backfill > 0 else []

    return PartitionSets(
        critical=tuple(critical),
        recent=tuple(recent),
        backfill=tuple(backfill),
        older_routine_count=len(older_routine),
    )


class TimelinePartitioner:
    """Partitioner bound to a classifier and window/cap settings."""

    def __init__(
        self,
        classifier: Optional[SeverityClassifier] = None,
        recent_window_days: int = RECENT_WINDOW_DAYS,
        max_backfill: int = MAX_BACKFILL
    ):
        self._classifier = classifier or SeverityClassifier()
        self._recent_window_days = recent_window_days
        self._max_backfill = max_backfill

    @property
    def classifier(self) -> SeverityClassifier:
        return self._classifier

    @property
    def recent_window_days(self) -> int:
        return self._recent_window_days

    @property
    def max_backfill(self) -> int:
        return self._max_backfill

    def partition(self, entries: Iterable[EvidenceEntry], now: datetime) -> PartitionSets:
        return partition_timeline(
            entries,
            now,
            recent_window_days=self._recent_window_days,
            max_backfill=self._max_backfill,
            classifier=self._classifier,
        )
