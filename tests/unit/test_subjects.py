"""Unit tests: subjects.py (subject_matches, is_excluded)."""

from __future__ import annotations

import pytest

from logrouter.subjects import ADAPTER_PATTERNS, LOGGER_LOG, is_excluded, subject_matches


@pytest.mark.unit
class TestSubjectMatches:
    def test_exact_match(self) -> None:
        assert subject_matches("logger.set", "logger.set") is True
        assert subject_matches("logger.set", "logger.del") is False

    def test_single_token_wildcard(self) -> None:
        assert subject_matches("logger.*", "logger.set") is True
        assert subject_matches("logger.*", "logger") is False
        assert subject_matches("logger.*", "logger.a.b") is False

    def test_wildcard_does_not_match_empty_token(self) -> None:
        assert subject_matches("a.*", "a.") is False

    def test_tail_wildcard_needs_at_least_one_token(self) -> None:
        assert subject_matches("service.>", "service.create") is True
        assert subject_matches("service.>", "service.create.aws.error") is True
        assert subject_matches("service.>", "service") is False

    def test_catch_all(self) -> None:
        assert subject_matches(">", "anything") is True
        assert subject_matches(">", "anything.at.all") is True

    def test_adapter_patterns_cover_depths_one_to_four(self) -> None:
        def covered(subject: str) -> bool:
            return any(subject_matches(p, subject) for p in ADAPTER_PATTERNS)

        assert covered("ping")
        assert covered("logger.set")
        assert covered("service.create.aws")
        assert covered("service.create.aws.error")
        assert not covered("a.b.c.d.e")

    def test_each_subject_matches_exactly_one_adapter_pattern(self) -> None:
        matches = [p for p in ADAPTER_PATTERNS if subject_matches(p, "service.create.aws")]
        assert matches == ["*.*.*"]


@pytest.mark.unit
class TestIsExcluded:
    def test_logger_log_is_excluded(self) -> None:
        assert is_excluded(LOGGER_LOG) is True

    def test_reply_inboxes_are_excluded(self) -> None:
        assert is_excluded("_INBOX.abc123") is True

    def test_other_control_subjects_are_not_excluded(self) -> None:
        assert is_excluded("logger.set") is False
        assert is_excluded("datacenter.set") is False
