"""Tests for README summary extraction."""

from repolens.analyzers.readme import TRUNCATION_MARKER, readme_summary


def test_crlf_is_normalized(tmp_path):
    (tmp_path / "README.md").write_bytes(b"# Title\r\n\r\nBody text.\r\n")
    assert readme_summary(tmp_path) == "# Title\n\nBody text."


def test_truncates_long_readme(tmp_path):
    (tmp_path / "README.md").write_text("x" * 2000)
    summary = readme_summary(tmp_path)
    assert summary == "x" * 1500 + TRUNCATION_MARKER


def test_custom_limit(tmp_path):
    (tmp_path / "README.txt").write_text("abcdef")
    assert readme_summary(tmp_path, max_chars=3) == "abc" + TRUNCATION_MARKER
    assert readme_summary(tmp_path, max_chars=6) == "abcdef"


def test_missing_or_empty(tmp_path):
    assert readme_summary(tmp_path) is None
    (tmp_path / "README.md").write_text("")
    assert readme_summary(tmp_path) is None
