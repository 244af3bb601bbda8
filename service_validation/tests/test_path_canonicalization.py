"""
Tests for file path confinement.
"""

import os

import pytest

from service_validation.app.security.paths import (
    canonicalize_within,
    contains_traversal,
    ensure_real_path_within,
    is_within,
)
from shared.errors import SecurityError


@pytest.fixture
def base(tmp_path):
    conf = tmp_path / "conf"
    conf.mkdir()
    return conf


TRAVERSAL_CORPUS = [
    "../etc/passwd",
    "../../../../etc/shadow",
    "keys/../../etc/passwd",
    "..",
    "..\\..\\windows\\win.ini",
    "keys\\..\\..\\secret",
    "%2e%2e/etc/passwd",
    "%2E%2E%2Fetc%2Fpasswd",
    "..%2fetc%2fpasswd",
    "..%5c..%5csecret",
    "%252e%252e/etc/passwd",
    "%252e%252e%252fetc",
    "%25252e%25252e/etc",
    "%2525252e%2525252e/etc",
    "%c0%ae%c0%ae/etc/passwd",
    "%C0%AE%C0%AE%C0%AFetc",
    "%c0%2e%c0%2e/etc",
    "%uff0e%uff0e/etc",
    "．．/etc/passwd",
    "/etc/passwd",
    "/tmp",
]


class TestCanonicalizeWithin:
    """Test cases for canonicalize_within."""

    @pytest.mark.parametrize("raw", TRAVERSAL_CORPUS)
    def test_traversal_corpus_is_rejected(self, base, raw):
        with pytest.raises(SecurityError) as exc_info:
            canonicalize_within(raw, base)
        assert exc_info.value.code == "SECURITY_ERROR"

    @pytest.mark.parametrize("raw", ["keys\x00.json", "keys%00.json", "keys%2500.json"])
    def test_nul_bytes_are_rejected(self, base, raw):
        with pytest.raises(SecurityError):
            canonicalize_within(raw, base)

    def test_message_names_base_directory(self, base):
        with pytest.raises(SecurityError) as exc_info:
            canonicalize_within("../x", base)
        assert exc_info.value.message == f"File path must be within allowed directory: {base}"

    def test_relative_path_resolves_against_base(self, base):
        assert canonicalize_within("jwks.json", base) == base / "jwks.json"
        assert canonicalize_within("keys/./jwks.json", base) == base / "keys" / "jwks.json"

    def test_absolute_path_inside_base(self, base):
        inside = str(base / "keys" / "jwks.json")
        assert canonicalize_within(inside, base) == base / "keys" / "jwks.json"

    def test_dots_inside_file_names_are_allowed(self, base):
        assert canonicalize_within("my..keys.json", base) == base / "my..keys.json"

    def test_sibling_with_common_prefix_is_rejected(self, base, tmp_path):
        sibling = tmp_path / "conf-evil" / "jwks.json"
        with pytest.raises(SecurityError):
            canonicalize_within(str(sibling), base)

    def test_does_not_touch_filesystem(self, tmp_path):
        """Test the routine works on paths that do not exist."""
        missing_base = tmp_path / "does" / "not" / "exist"
        assert canonicalize_within("jwks.json", missing_base) == missing_base / "jwks.json"
        assert not missing_base.exists()


class TestSymlinks:
    """Test cases for ensure_real_path_within."""

    def test_symlink_escaping_base_is_rejected(self, base, tmp_path):
        outside = tmp_path / "outside.json"
        outside.write_text("{}")
        link = base / "link.json"
        os.symlink(outside, link)

        candidate = canonicalize_within("link.json", base)
        with pytest.raises(SecurityError):
            ensure_real_path_within(candidate, base)

    def test_symlink_inside_base_is_allowed(self, base):
        target = base / "real.json"
        target.write_text("{}")
        os.symlink(target, base / "alias.json")

        resolved = ensure_real_path_within(base / "alias.json", base)
        assert resolved == target


def test_contains_traversal_plain_names():
    assert not contains_traversal("jwks.json")
    assert not contains_traversal("keys/jwks%20v2.json")
    assert contains_traversal("a/%2e%2e/b")


def test_is_within():
    assert is_within("/opt/conf/jwks.json", "/opt/conf")
    assert is_within("/opt/conf", "/opt/conf")
    assert not is_within("/opt/conf-other/jwks.json", "/opt/conf")
    assert not is_within("relative/path", "/opt/conf")
