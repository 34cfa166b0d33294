"""
Content-Hash Analysis Cache
===========================

Gates an expensive whole-case analysis behind the evidence fingerprint.

GUARANTEES:
- Validity is fingerprint equality only; records never expire by time
- One record per case key, never shared across cases
- The cache is ADVISORY: store faults and malformed payloads degrade
  to "recompute", they never fail the analysis itself
- Concurrent misses for the same case both recompute; last write wins
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from .contracts.base import Error, ErrorCode
from .contracts.context import CacheRecord
from .contracts.evidence import EvidenceEntry
from .fingerprint import FINGERPRINT_LENGTH, compute_fingerprint
from .observability import AuditEventType, AuditTrail
from .severity import SeverityClassifier
from .storage import SettingStore


DEFAULT_KEY_PREFIX = "litigation_cache_"


class AnalysisCache:
    """Case-scoped cache records on top of a setting store."""

    def __init__(
        self,
        store: SettingStore,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        audit: Optional[AuditTrail] = None
    ):
        self._store = store
        self._key_prefix = key_prefix
        self._audit = audit

    def key_for(self, case_id: object) -> str:
        return f"{self._key_prefix}{case_id}"

    def _fault(self, code: ErrorCode, message: str, key: str):
        if self._audit is None:
            return
        error = Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc)
        ).with_context('key', key)
        self._audit.record_error(error, entity_id=key)

    def get_cached(self, case_id: object) -> Optional[CacheRecord]:
        """Stored record for the case, or None (absent, unreadable, malformed)."""
        key = self.key_for(case_id)
        try:
            raw = self._store.get_setting(key)
        except Exception as e:
            self._fault(ErrorCode.CACHE_READ_FAILED, str(e), key)
            return None
        if raw is None:
            return None
        record = CacheRecord.from_json(raw)
        if record is None:
            self._fault(ErrorCode.CACHE_PAYLOAD_MALFORMED, "Unreadable cache payload", key)
        return record

    def put_cached(self, case_id: object, fingerprint: str, result: Any) -> bool:
        """Overwrite the case record. Returns False if the store failed."""
        key = self.key_for(case_id)
        try:
            self._store.set_setting(key, CacheRecord(fingerprint, result).to_json())
        except Exception as e:
            self._fault(ErrorCode.CACHE_WRITE_FAILED, str(e), key)
            return False
        return True


@dataclass(frozen=True)
class CachedAnalysis:
    """Outcome of a cache-gated analysis."""
    result: Any
    fingerprint: str
    cached: bool


def cached_analysis(
    cache: AnalysisCache,
    case_id: object,
    entries: Iterable[EvidenceEntry],
    compute: Callable[[], Any],
    classifier: Optional[SeverityClassifier] = None,
    fingerprint_length: int = FINGERPRINT_LENGTH,
    accept: Optional[Callable[[Any], bool]] = None,
    audit: Optional[AuditTrail] = None
) -> CachedAnalysis:
    """
    Reuse the cached result on exact fingerprint match, else recompute.

    Args:
        compute: The expensive analysis. Its exceptions propagate.
        accept: Optional check on a cached result; rejected results
            count as a miss (e.g. a payload from an older schema)

    A miss always ends with an unconditional overwrite of the record.
    """
    fingerprint = compute_fingerprint(entries, classifier, fingerprint_length)
    key = cache.key_for(case_id)

    record = cache.get_cached(case_id)
    if record is not None and record.fingerprint == fingerprint:
        if accept is None or accept(record.result):
            if audit is not None:
                audit.record(AuditEventType.CACHE, "hit", key, {'fingerprint': fingerprint})
            return CachedAnalysis(result=record.result, fingerprint=fingerprint, cached=True)

    if audit is not None:
        audit.record(AuditEventType.CACHE, "miss", key, {
            'fingerprint': fingerprint,
            'stale': record.fingerprint if record is not None else "",
        })

    result = compute()
    cache.put_cached(case_id, fingerprint, result)
    return CachedAnalysis(result=result, fingerprint=fingerprint, cached=False)
