"""Path Sandbox tests: containment, system denylist and sensitive names.

Tests cover:
    - Relative and absolute paths inside the working directory pass
    - `..` escapes and absolute paths elsewhere are rejected, whatever the root
    - Denylisted system roots are rejected on whole components only
    - Sensitive file names (.env, keys, credentials) are rejected
    - Windows semantics through ntpath (drives, case-insensitive denylist)
"""

import ntpath
import os
import posixpath

import pytest

from agentweb.core.path_sandbox import relative_display, resolve_path, validate_path

ROOT = "/home/user/project"


def _check(path, root=ROOT):
    return validate_path(path, root, posixpath)


def test_relative_path_inside_root_is_valid():
    assert _check("src/main.py").valid is True


def test_absolute_path_inside_root_is_valid():
    assert _check("/home/user/project/docs/readme.md").valid is True


def test_root_itself_is_valid():
    assert _check(".").valid is True


def test_parent_escape_is_rejected():
    result = _check("../../etc/passwd")
    assert result.valid is False
    assert "outside the working directory" in result.error


def test_dotdot_inside_root_that_stays_inside_is_valid():
    assert _check("src/../tests/test_a.py").valid is True


def test_sibling_with_common_prefix_is_rejected():
    assert _check("/home/user/project-other/file.txt").valid is False


def test_absolute_path_outside_root_is_rejected():
    assert _check("/tmp/elsewhere.txt").valid is False


def test_denylist_applies_when_root_is_inside_system_path():
    result = _check("/etc/app/config.yaml", root="/etc/app")
    assert result.valid is False
    assert "protected system path /etc" in result.error


def test_denylist_matches_whole_components():
    assert _check("/etcetera/notes.txt", root="/etcetera").valid is True


@pytest.mark.parametrize("name", [
    ".env", "server.key", "cert.pem", "store.p12", "id.pfx",
    "passwords.txt", "my_secret.json", "aws_credentials", "private_rsa_key",
])
def test_sensitive_names_are_rejected(name):
    result = _check(f"config/{name}")
    assert result.valid is False
    assert "sensitive" in result.error


def test_ordinary_names_pass_sensitive_check():
    assert _check("config/settings.toml").valid is True


def test_resolve_joins_relative_paths():
    assert resolve_path("a/../b.txt", ROOT, posixpath) == "/home/user/project/b.txt"
    assert resolve_path("/abs/x", ROOT, posixpath) == "/abs/x"


def test_windows_other_drive_is_rejected():
    assert validate_path("D:\\data\\x.txt", "C:\\work", ntpath).valid is False


def test_windows_inside_root_is_valid():
    assert validate_path("src\\app.py", "C:\\work", ntpath).valid is True


def test_windows_denylist_is_case_insensitive():
    result = validate_path("c:\\windows\\system32\\x.dll", "C:\\Windows", ntpath)
    assert result.valid is False
    assert "protected system path" in result.error


def test_relative_display(tmp_path):
    inside = str(tmp_path / "a" / "b.txt")
    assert relative_display(inside, str(tmp_path)) == os.path.join("a", "b.txt")
    assert relative_display("/somewhere/else", str(tmp_path)) == "/somewhere/else"
