"""
Fingerprint & Analysis Cache Tests
==================================

INVARIANTS TESTED:
1. Fingerprint changes with content, severity, timestamp, add/remove
2. Chat turns never change the fingerprint
3. Unchanged evidence → expensive computation runs once
4. Store faults and malformed payloads degrade to recompute
"""

from datetime import timedelta
import json

import pytest

from context_engine.cache import AnalysisCache, cached_analysis
from context_engine.contracts import CacheRecord, ErrorCode
from context_engine.fingerprint import compute_fingerprint, fingerprint_payload
from context_engine.observability import AuditEventType, AuditTrail
from context_engine.severity import SeverityClassifier
from context_engine.storage import InMemorySettingStore

from factories import NOW, make_entry, make_log


def base_log():
    return make_log((1, 30, "note"), (2, 10, "service"), (3, 2, "photo"))


class TestFingerprint:

    def test_stable_and_fixed_length(self):
        first = compute_fingerprint(base_log())
        assert first == compute_fingerprint(base_log())
        assert len(first) == 16
        int(first, 16)

    def test_payload_format(self):
        entry = make_entry(7, days_ago=0, entry_type="call", content="Called office")
        assert fingerprint_payload([entry]) == (
            "7:call:routine:Called office:2026-03-01T12:00:00.000Z"
        )

    def test_content_change(self):
        log = base_log()
        changed = list(log)
        changed[0] = make_entry(1, 30, "note", content="edited")
        assert compute_fingerprint(log) != compute_fingerprint(changed)

    def test_severity_change(self):
        log = base_log()
        changed = list(log)
        changed[0] = make_entry(1, 30, "note", severity="critical")
        assert compute_fingerprint(log) != compute_fingerprint(changed)

    def test_severity_table_change(self):
        log = base_log()
        reclassified = SeverityClassifier({"photo": "critical"})
        assert compute_fingerprint(log) != compute_fingerprint(log, reclassified)

    def test_timestamp_change(self):
        log = base_log()
        changed = list(log)
        changed[0] = make_entry(1, 30, "note", now=NOW + timedelta(milliseconds=1))
        assert compute_fingerprint(log) != compute_fingerprint(changed)

    def test_add_and_remove(self):
        log = base_log()
        added = log + [make_entry(4, 0, "email")]
        assert compute_fingerprint(log) != compute_fingerprint(added)
        assert compute_fingerprint(log) != compute_fingerprint(log[1:])

    def test_chat_ignored(self):
        log = base_log()
        with_chat = log + [make_entry(99, 0, "chat"), make_entry(100, 0, "chat_photo")]
        assert compute_fingerprint(log) == compute_fingerprint(with_chat)

    def test_empty_log(self):
        assert compute_fingerprint([]) == compute_fingerprint([make_entry(1, 0, "chat")])


class FailingStore(InMemorySettingStore):

    def __init__(self, fail_reads=False, fail_writes=False):
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def get_setting(self, key):
        if self.fail_reads:
            raise ConnectionError("settings table unavailable")
        return super().get_setting(key)

    def set_setting(self, key, value):
        if self.fail_writes:
            raise ConnectionError("settings table read-only")
        super().set_setting(key, value)


class Counter:

    def __init__(self, result=None):
        self.calls = 0
        self.result = result or {"score": 7}

    def __call__(self):
        self.calls += 1
        return dict(self.result, run=self.calls)


class TestCachedAnalysis:

    @pytest.fixture
    def store(self):
        return InMemorySettingStore()

    def test_computes_once_for_unchanged_evidence(self, store):
        cache = AnalysisCache(store)
        compute = Counter()
        first = cached_analysis(cache, 42, base_log(), compute)
        second = cached_analysis(cache, 42, base_log(), compute)
        assert compute.calls == 1
        assert first.cached is False and second.cached is True
        assert second.result == {"score": 7, "run": 1}

    def test_recomputes_after_change(self, store):
        cache = AnalysisCache(store)
        compute = Counter()
        cached_analysis(cache, 42, base_log(), compute)
        changed = base_log() + [make_entry(4, 0, "note")]
        outcome = cached_analysis(cache, 42, changed, compute)
        assert compute.calls == 2
        assert outcome.cached is False
        assert cache.get_cached(42).fingerprint == compute_fingerprint(changed)

    def test_chat_does_not_invalidate(self, store):
        cache = AnalysisCache(store)
        compute = Counter()
        cached_analysis(cache, 42, base_log(), compute)
        cached_analysis(cache, 42, base_log() + [make_entry(9, 0, "chat")], compute)
        assert compute.calls == 1

    def test_cases_are_isolated(self, store):
        cache = AnalysisCache(store)
        compute = Counter()
        cached_analysis(cache, 1, base_log(), compute)
        cached_analysis(cache, 2, base_log(), compute)
        assert compute.calls == 2
        assert sorted(store.keys()) == ["litigation_cache_1", "litigation_cache_2"]

    def test_malformed_payload_is_a_miss(self, store):
        audit = AuditTrail()
        cache = AnalysisCache(store, audit=audit)
        store.set_setting(cache.key_for(42), "{not json")
        compute = Counter()
        outcome = cached_analysis(cache, 42, base_log(), compute)
        assert outcome.cached is False
        assert compute.calls == 1
        errors = audit.entries(AuditEventType.ERROR)
        assert errors[0].get('code') == ErrorCode.CACHE_PAYLOAD_MALFORMED.name

    def test_read_fault_degrades_to_recompute(self):
        audit = AuditTrail()
        store = FailingStore(fail_reads=True)
        compute = Counter()
        cache = AnalysisCache(store, audit=audit)
        for _ in range(2):
            cached_analysis(cache, 42, base_log(), compute)
        assert compute.calls == 2
        assert audit.actions(AuditEventType.ERROR) == ["cache_read_failed"] * 2

    def test_write_fault_does_not_fail_analysis(self):
        store = FailingStore(fail_writes=True)
        cache = AnalysisCache(store)
        outcome = cached_analysis(cache, 42, base_log(), Counter())
        assert outcome.result == {"score": 7, "run": 1}
        assert cache.put_cached(42, "abc", {}) is False

    def test_compute_errors_propagate(self, store):
        cache = AnalysisCache(store)

        def boom():
            raise RuntimeError("model down")

        with pytest.raises(RuntimeError):
            cached_analysis(cache, 42, base_log(), boom)
        assert store.get_setting(cache.key_for(42)) is None

    def test_rejected_cached_result_is_a_miss(self, store):
        cache = AnalysisCache(store)
        compute = Counter()
        cached_analysis(cache, 42, base_log(), compute)
        outcome = cached_analysis(
            cache, 42, base_log(), compute, accept=lambda result: "verdict" in result
        )
        assert outcome.cached is False
        assert compute.calls == 2

    def test_audit_records_hit_and_miss(self, store):
        audit = AuditTrail(clock=lambda: NOW)
        cache = AnalysisCache(store)
        cached_analysis(cache, 42, base_log(), Counter(), audit=audit)
        cached_analysis(cache, 42, base_log(), Counter(), audit=audit)
        assert audit.actions(AuditEventType.CACHE) == ["miss", "hit"]
        assert audit.entries()[0].timestamp == NOW


class TestCacheRecord:

    @pytest.mark.parametrize("raw", [
        None, "", "null", "[]", "42", "{bad",
        json.dumps({"fingerprint": "abc"}),
        json.dumps({"fingerprint": "", "result": {}}),
        json.dumps({"fingerprint": 7, "result": {}}),
        json.dumps({"fingerprint": "abc", "result": None}),
    ])
    def test_malformed_decodes_to_none(self, raw):
        assert CacheRecord.from_json(raw) is None

    def test_json_boundary(self):
        record = CacheRecord("abc123", {"summary": "ok", "violations": []})
        assert CacheRecord.from_json(record.to_json()) == record


class TestSqliteBackedCache:

    def test_survives_new_store_instance(self, tmp_path):
        from context_engine.storage import SqliteSettingStore

        db = tmp_path / "settings.db"
        compute = Counter()
        cached_analysis(AnalysisCache(SqliteSettingStore(db)), 5, base_log(), compute)
        outcome = cached_analysis(AnalysisCache(SqliteSettingStore(db)), 5, base_log(), compute)
        assert outcome.cached is True
        assert compute.calls == 1
