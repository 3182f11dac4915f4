"""Tests for path segment sanitization."""

from __future__ import annotations

import pytest

from sshsk.paths import sanitize_path_component


class TestSanitizePathComponent:
    """Unsafe characters, trimming, and the empty fallback."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("hostname", "hostname"),
            ("my hostname", "my_hostname"),
            ("host/name:with*chars", "host_name_with_chars"),
            ("._host._", "host"),
            ("._hostname._", "hostname"),
            ("", "unknown"),
            ("/*?<>|", "unknown"),
            ("host\nname\ttest", "host_name_test"),
            ('a\\b"c\rd', "a_b_c_d"),
            ("--alice", "alice"),
            ("alice-laptop", "alice-laptop"),
        ],
    )
    def test_examples(self, raw: str, expected: str) -> None:
        assert sanitize_path_component(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["", "my hostname", "._host._", "-_-.x.-_-", "a/b/c", "...", "C:\\Users\\bob", "_ _"],
    )
    def test_idempotent(self, raw: str) -> None:
        once = sanitize_path_component(raw)
        assert sanitize_path_component(once) == once

    def test_result_never_contains_separator(self) -> None:
        assert "/" not in sanitize_path_component("team/devops/prod")

    def test_none_is_treated_as_empty(self) -> None:
        assert sanitize_path_component(None) == "unknown"  # type: ignore[arg-type]
