"""
Severity Classification

Assigns exactly one Severity to each evidence entry.

RESOLUTION ORDER:
1. Explicit metadata override, if it is one of the three tiers
2. Per-type default from the (injectable) defaults table
3. Fallback tier

An unrecognized override is ignored, never an error.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping, Optional

from .contracts.base import Severity, EvidenceType
from .contracts.evidence import EvidenceEntry


DEFAULT_SEVERITY_TABLE: Mapping[str, Severity] = MappingProxyType({
    EvidenceType.CALL.value: Severity.ROUTINE,
    EvidenceType.TEXT.value: Severity.ROUTINE,
    EvidenceType.EMAIL.value: Severity.ROUTINE,
    EvidenceType.PHOTO.value: Severity.ROUTINE,
    EvidenceType.DOCUMENT.value: Severity.ROUTINE,
    EvidenceType.NOTE.value: Severity.ROUTINE,
    EvidenceType.SERVICE.value: Severity.IMPORTANT,
})


class SeverityClassifier:
    """
    Pure classifier over a static defaults table.

    The table is configuration: swap it to tune prioritization
    without touching the partitioning algorithm.
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, Severity]] = None,
        fallback: Severity = Severity.ROUTINE
    ):
        table = DEFAULT_SEVERITY_TABLE if defaults is None else defaults
        self._defaults = MappingProxyType({
            str(k): Severity.parse(v) or fallback for k, v in table.items()
        })
        self._fallback = fallback

    @property
    def defaults(self) -> Mapping[str, Severity]:
        return self._defaults

    def default_for(self, entry_type: str) -> Severity:
        return self._defaults.get(entry_type, self._fallback)

    def classify(self, entry: EvidenceEntry) -> Severity:
        override = entry.severity_override()
        if override is not None:
            return override
        return self.default_for(entry.type)

    __call__ = classify


_DEFAULT_CLASSIFIER = SeverityClassifier()


def classify_entry(
    entry: EvidenceEntry,
    defaults: Optional[Mapping[str, Severity]] = None
) -> Severity:
    """Classify one entry with the default table (or an explicit one)."""
    if defaults is None:
        return _DEFAULT_CLASSIFIER.classify(entry)
    return SeverityClassifier(defaults).classify(entry)
