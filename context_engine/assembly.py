"""
Context Assembly

Composes the included set for one escalation tier.

INVARIANT: identical partitions → identical included set, sorted by
(date asc, id asc). Identical evidence must render to byte-identical
prompt text, so this ordering is a correctness property.

Pass 1 is the default request. Pass 2 is an explicit escalation and is
only assembled on demand.
"""

from __future__ import annotations
from typing import Dict, Iterable

from .contracts.evidence import TimelineEntry
from .contracts.context import ContextPass, IncludedSet, PartitionSets


def _ordered_unique(entries: Iterable[TimelineEntry]) -> tuple:
    by_id: Dict[int, TimelineEntry] = {}
    for entry in entries:
        by_id.setdefault(entry.id, entry)
    return tuple(sorted(by_id.values(), key=lambda e: e.sort_key))


def assemble_context(
    partitions: PartitionSets,
    include_backfill: bool = False
) -> IncludedSet:
    """Included set for pass 1 (default) or pass 2 (`include_backfill`)."""
    context_pass = ContextPass.PASS_2 if include_backfill else ContextPass.PASS_1
    return assemble_pass(partitions, context_pass)


def assemble_pass(partitions: PartitionSets, context_pass: ContextPass) -> IncludedSet:
    selected = list(partitions.critical) + list(partitions.recent)
    if context_pass.includes_backfill:
        selected.extend(partitions.backfill)
    return IncludedSet(context_pass=context_pass, entries=_ordered_unique(selected))
