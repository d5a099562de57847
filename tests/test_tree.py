from datetime import datetime

from backend.tree import build_structure_index, build_tree
from shared.models import FileRecord


def _record(relative_path, size=1):
    return FileRecord(
        filename=relative_path.rsplit("/", 1)[-1],
        filepath=f"/srv/{relative_path}",
        relative_path=relative_path,
        size=size,
    )


def _flatten(nodes):
    for node in nodes:
        yield node
        if node["type"] == "folder":
            yield from _flatten(node["children"])


def test_build_tree_mirrors_directory(tmp_path):
    (tmp_path / "src" / "components").mkdir(parents=True)
    (tmp_path / "index.html").write_text("<html></html>")
    (tmp_path / "src" / "app.js").write_text("app")
    (tmp_path / "src" / "components" / "Button.jsx").write_text("button")

    tree = build_tree(tmp_path)
    by_path = {node["relativePath"]: node for node in _flatten(tree)}

    assert set(by_path) == {"index.html", "src", "src/app.js", "src/components", "src/components/Button.jsx"}
    assert by_path["src"]["type"] == "folder"
    assert by_path["src"]["name"] == "src"
    assert by_path["src/components/Button.jsx"]["type"] == "file"
    assert by_path["src/components/Button.jsx"]["size"] == len("button")
    datetime.fromisoformat(by_path["index.html"]["modified"])


def test_build_tree_empty_directory(tmp_path):
    (tmp_path / "empty").mkdir()
    tree = build_tree(tmp_path)
    assert tree == [{"type": "folder", "name": "empty", "relativePath": "empty", "children": []}]


def test_tree_paths_match_uploaded_paths(tmp_path):
    uploaded = ["index.html", "css/style.css", "js/lib/app.js"]
    for relative_path in uploaded:
        target = tmp_path / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("x")

    files = {node["relativePath"] for node in _flatten(build_tree(tmp_path)) if node["type"] == "file"}
    assert files == set(uploaded)


def test_structure_index():
    structure = build_structure_index([
        _record("index.html"),
        _record("css/style.css"),
        _record("js/lib/app.js"),
        _record("js/lib/util.js"),
    ])
    assert structure == {
        "": ["index.html"],
        "css": ["style.css"],
        "js": [],
        "js/lib": ["app.js", "util.js"],
    }


def test_structure_index_empty():
    assert build_structure_index([]) == {}
