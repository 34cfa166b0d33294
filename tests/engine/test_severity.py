"""
Severity Classification Tests
=============================

INVARIANTS TESTED:
1. Valid metadata override wins over the type default
2. Unrecognized overrides fall back to the type default, never raise
3. The defaults table is injectable
"""

import pytest

from context_engine.contracts import Severity
from context_engine.severity import (
    DEFAULT_SEVERITY_TABLE,
    SeverityClassifier,
    classify_entry,
)

from factories import make_entry


class TestSeverityParse:

    @pytest.mark.parametrize("raw,expected", [
        ("critical", Severity.CRITICAL),
        ("important", Severity.IMPORTANT),
        ("routine", Severity.ROUTINE),
        ("CRITICAL", None),
        ("urgent", None),
        ("", None),
        (3, None),
        (None, None),
        (["critical"], None),
    ])
    def test_parse_is_total(self, raw, expected):
        assert Severity.parse(raw) == expected

    def test_ordering(self):
        assert Severity.CRITICAL.rank > Severity.IMPORTANT.rank > Severity.ROUTINE.rank

    def test_prompt_tags(self):
        assert Severity.CRITICAL.prompt_tag == " [CRITICAL]"
        assert Severity.IMPORTANT.prompt_tag == " [IMPORTANT]"
        assert Severity.ROUTINE.prompt_tag == ""


class TestSeverityClassifier:

    def test_type_defaults(self):
        assert classify_entry(make_entry(1, entry_type="service")) == Severity.IMPORTANT
        assert classify_entry(make_entry(2, entry_type="note")) == Severity.ROUTINE
        assert classify_entry(make_entry(3, entry_type="call")) == Severity.ROUTINE

    def test_override_wins(self):
        entry = make_entry(1, entry_type="note", severity="critical")
        assert classify_entry(entry) == Severity.CRITICAL

    def test_override_can_downgrade(self):
        entry = make_entry(1, entry_type="service", severity="routine")
        assert classify_entry(entry) == Severity.ROUTINE

    def test_invalid_override_ignored(self):
        entry = make_entry(1, entry_type="service", severity="apocalyptic")
        assert classify_entry(entry) == Severity.IMPORTANT

    def test_non_mapping_metadata_ignored(self):
        entry = make_entry(1, entry_type="email")
        entry = type(entry)(
            id=entry.id, created_at=entry.created_at, type=entry.type,
            content=entry.content, metadata=["severity", "critical"],
        )
        assert classify_entry(entry) == Severity.ROUTINE

    def test_unknown_type_gets_fallback(self):
        classifier = SeverityClassifier(fallback=Severity.IMPORTANT)
        assert classifier.classify(make_entry(1, entry_type="fax")) == Severity.IMPORTANT

    def test_injected_table(self):
        table = dict(DEFAULT_SEVERITY_TABLE, photo=Severity.CRITICAL)
        classifier = SeverityClassifier(table)
        assert classifier.classify(make_entry(1, entry_type="photo")) == Severity.CRITICAL
        assert classify_entry(make_entry(1, entry_type="photo"), table) == Severity.CRITICAL
        # default table untouched
        assert classify_entry(make_entry(1, entry_type="photo")) == Severity.ROUTINE

    def test_table_accepts_string_values(self):
        classifier = SeverityClassifier({"note": "critical"})
        assert classifier.classify(make_entry(1, entry_type="note")) == Severity.CRITICAL

    def test_defaults_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SEVERITY_TABLE["note"] = Severity.CRITICAL
