import pytest
from pathlib import Path

from backend.paths import (
    base_name,
    clean_relative_path,
    get_file_type,
    is_allowed_upload,
    is_system_artifact,
    normalize_relative_path,
    resolve_in_root,
)
from shared.errors import PathTraversal, ValidationFailed


@pytest.mark.parametrize("raw, expected", [
    ("index.html", "index.html"),
    ("src/app.js", "src/app.js"),
    ("src\\components\\Button.jsx", "src/components/Button.jsx"),
    ("./src//./app.js", "src/app.js"),
    ("assets/", "assets"),
    ("  css/style.css  ", "css/style.css"),
])
def test_clean_relative_path(raw, expected):
    assert clean_relative_path(raw) == expected


@pytest.mark.parametrize("raw", [
    "../../etc/passwd",
    "src/../../secret.txt",
    "src/../app.js",
    "..\\..\\windows\\system32",
    "/etc/passwd",
    "\\server\\share\\file.txt",
    "C:\\Windows\\win.ini",
    "c:/temp/file.txt",
    "C:",
    "file\x00.txt",
])
def test_clean_relative_path_rejects_escapes(raw):
    with pytest.raises(PathTraversal):
        clean_relative_path(raw)


def test_clean_relative_path_allows_colon_after_drive_letter():
    # Only a drive letter followed by a separator is absolute
    assert clean_relative_path("c:notes.txt") == "c:notes.txt"
    assert clean_relative_path("docs/a:b.txt") == "docs/a:b.txt"


@pytest.mark.parametrize("raw", ["", ".", "./", " "])
def test_clean_relative_path_rejects_empty(raw):
    with pytest.raises(ValidationFailed):
        clean_relative_path(raw)


def test_clean_relative_path_rejects_long_component():
    with pytest.raises(ValidationFailed):
        clean_relative_path("src/" + "a" * 256 + ".js")


def test_clean_relative_path_status_codes():
    with pytest.raises(PathTraversal) as exc_info:
        clean_relative_path("../x")
    assert exc_info.value.status_code == 400


def test_normalize_prefers_declared_path():
    assert normalize_relative_path("app.js", "src/app.js") == "src/app.js"
    assert normalize_relative_path("C:\\fakepath\\app.js") == "app.js"
    assert normalize_relative_path("nested/dir/app.js") == "app.js"


def test_base_name():
    assert base_name("a/b/c.txt") == "c.txt"
    assert base_name("a\\b\\c.txt") == "c.txt"
    assert base_name("plain") == "plain"


def test_resolve_in_root_stays_inside(tmp_path):
    target = resolve_in_root(tmp_path, "src/app.js")
    assert target == tmp_path.resolve() / "src" / "app.js"


def test_resolve_in_root_rejects_escape(tmp_path):
    with pytest.raises(PathTraversal):
        resolve_in_root(tmp_path / "project", "../outside.txt")


def test_resolve_in_root_rejects_symlink_escape(tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    root = tmp_path / "project"
    root.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)
    with pytest.raises(PathTraversal):
        resolve_in_root(root, "link/secret.txt")


@pytest.mark.parametrize("filename, expected", [
    ("index.html", ".html"),
    ("src/App.JSX", ".jsx"),
    ("package-lock.json", ".json"),
    ("yarn.lock", ".lock"),
    (".npmrc", ".npmrc"),
    ("Dockerfile", ".dockerfile"),
    ("Makefile", ".makefile"),
    ("README", ".readme"),
    ("LICENSE", ".license"),
    (".gitignore", ".gitignore"),
    (".env", ".env"),
    ("CHANGES", "unknown"),
    ("", "unknown"),
])
def test_get_file_type(filename, expected):
    assert get_file_type(filename) == expected


@pytest.mark.parametrize("path, expected", [
    ("__MACOSX/._index.html", True),
    ("site/__MACOSX/style.css", True),
    (".DS_Store", True),
    ("assets/.DS_Store", True),
    ("Thumbs.db", True),
    ("desktop.ini", True),
    ("src/._app.js", True),
    ("src/app.js", False),
    (".gitignore", False),
])
def test_is_system_artifact(path, expected):
    assert is_system_artifact(path) is expected


def test_is_allowed_upload():
    assert is_allowed_upload("index.html")
    assert is_allowed_upload("logo.PNG")
    assert is_allowed_upload("Dockerfile")
    assert not is_allowed_upload("setup.exe")
    assert not is_allowed_upload("payload.dll")
