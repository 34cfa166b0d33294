"""
Evidence Fingerprint

Deterministic content hash over the evidence-type entries of a case.

SENSITIVE TO: content, severity classification, timestamp, type,
addition or removal of an evidence entry.
INSENSITIVE TO: chat turns and every other non-evidence entry.
"""

from __future__ import annotations
from typing import Iterable, Optional
import hashlib

from .contracts.base import iso_millis
from .contracts.evidence import EvidenceEntry
from .severity import SeverityClassifier
from .timeline import evidence_only


FINGERPRINT_LENGTH = 16


def fingerprint_payload(
    entries: Iterable[EvidenceEntry],
    classifier: Optional[SeverityClassifier] = None
) -> str:
    """Canonical string the fingerprint is computed over."""
    classifier = classifier or SeverityClassifier()
    return "|".join(
        f"{e.id}:{e.type}:{classifier.classify(e).value}:{e.content}:{iso_millis(e.created_at)}"
        for e in evidence_only(entries)
    )


def compute_fingerprint(
    entries: Iterable[EvidenceEntry],
    classifier: Optional[SeverityClassifier] = None,
    length: int = FINGERPRINT_LENGTH
) -> str:
    payload = fingerprint_payload(entries, classifier)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:length]
