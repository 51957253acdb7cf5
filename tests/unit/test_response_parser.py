"""Unit tests for model output parsing."""

import pytest

from triagebot.services.response_parser import parse_labels, parse_text


def test_parse_text_trims():
    assert parse_text("\n  A summary.\n\n") == "A summary."


def test_parse_text_empty():
    assert parse_text("   ") == ""
    assert parse_text(None) == ""


@pytest.mark.parametrize("output,expected", [
    ("bug, docs", ["bug", "docs"]),
    (" Bug ,FRONTEND,", ["bug", "frontend"]),
    ("bug, , ,docs,", ["bug", "docs"]),
    ("docs, bug, docs, Bug", ["docs", "bug"]),
    ("bugfix", ["bugfix"]),
    ("", []),
    (" , ,", []),
])
def test_parse_labels(output, expected):
    assert parse_labels(output) == expected


def test_parse_labels_keeps_unknown_tokens():
    assert parse_labels("enhancement, performance") == ["enhancement", "performance"]
