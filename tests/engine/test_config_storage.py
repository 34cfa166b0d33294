"""
Configuration & Storage Tests
=============================

INVARIANTS TESTED:
1. Config is frozen, validated, and overridable from the environment
2. Evidence sources deliver entries ordered by (created_at, id)
3. Setting stores are last-write-wins
"""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from context_engine.config import ContextConfig
from context_engine.contracts import Severity
from context_engine.storage import (
    InMemoryEvidenceSource,
    InMemorySettingStore,
    SqliteEvidenceSource,
    SqliteSettingStore,
)

from factories import NOW, make_entry


class TestContextConfig:

    def test_defaults(self):
        config = ContextConfig()
        assert config.recent_window_days == 14
        assert config.max_backfill == 50
        assert config.cache_key_prefix == "litigation_cache_"
        assert config.fingerprint_length == 16
        assert config.severity_defaults["service"] == Severity.IMPORTANT

    def test_frozen(self):
        config = ContextConfig()
        with pytest.raises(FrozenInstanceError):
            config.max_backfill = 10

    @pytest.mark.parametrize("kwargs", [
        {'recent_window_days': -1},
        {'max_backfill': -5},
        {'fingerprint_length': 0},
        {'fingerprint_length': 65},
        {'chat_history_limit': -1},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            ContextConfig(**kwargs)

    def test_from_env(self):
        config = ContextConfig.from_env({
            "CASECTX_RECENT_WINDOW_DAYS": "30",
            "CASECTX_MAX_BACKFILL": "5",
            "CASECTX_CACHE_KEY_PREFIX": "analysis_",
            "UNRELATED": "x",
        })
        assert config.recent_window_days == 30
        assert config.max_backfill == 5
        assert config.cache_key_prefix == "analysis_"
        assert config.fingerprint_length == 16

    def test_from_env_rejects_garbage(self):
        with pytest.raises(ValueError):
            ContextConfig.from_env({"CASECTX_MAX_BACKFILL": "lots"})

    def test_factories_carry_settings(self):
        config = ContextConfig(
            recent_window_days=3,
            max_backfill=1,
            severity_defaults={"note": Severity.CRITICAL},
            escalation_phrases=("dig deeper",),
        )
        assert config.classifier().classify(make_entry(1)) == Severity.CRITICAL
        assert config.detector().needs_more_context("Please DIG DEEPER")
        partitioner = config.partitioner()
        assert partitioner.recent_window_days == 3
        assert partitioner.max_backfill == 1


class TestSettingStores:

    @pytest.fixture(params=["memory", "sqlite"])
    def store(self, request, tmp_path):
        if request.param == "memory":
            return InMemorySettingStore()
        return SqliteSettingStore(tmp_path / "nested" / "settings.db")

    def test_absent_is_none(self, store):
        assert store.get_setting("missing") is None

    def test_last_write_wins(self, store):
        store.set_setting("k", "one")
        store.set_setting("k", "two")
        assert store.get_setting("k") == "two"

    def test_delete(self, store):
        store.set_setting("k", "v")
        store.delete_setting("k")
        store.delete_setting("never-set")
        assert store.get_setting("k") is None


class TestEvidenceSources:

    @pytest.fixture(params=["memory", "sqlite"])
    def source(self, request, tmp_path):
        if request.param == "memory":
            return InMemoryEvidenceSource()
        return SqliteEvidenceSource(tmp_path / "evidence.db")

    def test_ordered_by_time_then_id(self, source):
        source.add_entry(1, make_entry(9, days_ago=1))
        source.add_entry(1, make_entry(3, days_ago=1))
        source.add_entry(1, make_entry(5, days_ago=4))
        assert [e.id for e in source.list_evidence(1)] == [5, 3, 9]

    def test_cases_are_separate(self, source):
        source.add_entry(1, make_entry(1))
        source.add_entry(2, make_entry(2))
        assert [e.id for e in source.list_evidence(2)] == [2]
        assert source.list_evidence(3) == []

    def test_fields_preserved(self, source):
        entry = make_entry(
            4, days_ago=2, entry_type="email", severity="critical",
            metadata={"photoCount": 2}, file_url="/api/evidence/x.pdf",
            title="Email to landlord",
        )
        source.add_entry(1, entry)
        loaded = source.list_evidence(1)[0]
        assert loaded.id == 4
        assert loaded.type == "email"
        assert loaded.title == "Email to landlord"
        assert loaded.file_url == "/api/evidence/x.pdf"
        assert loaded.severity_override() == Severity.CRITICAL
        assert loaded.meta("photoCount") == 2
        assert loaded.created_at == NOW - timedelta(days=2)
        assert loaded.is_ai is False

    def test_sqlite_millisecond_text_order(self, tmp_path):
        source = SqliteEvidenceSource(tmp_path / "evidence.db")
        source.add_entry(1, make_entry(2, now=NOW + timedelta(milliseconds=5)))
        source.add_entry(1, make_entry(1, now=NOW + timedelta(milliseconds=900)))
        assert [e.id for e in source.list_evidence(1)] == [2, 1]
