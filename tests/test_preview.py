import pytest

from backend.preview import (
    content_type_for,
    framing_headers,
    is_text_content,
    resolve_reference,
    rewrite_css,
    rewrite_html,
)

PID = "0123456789abcdef0123456789abcdef"
PREFIX = f"/api/projects/{PID}/preview"


def test_rewrites_relative_href_and_src():
    html = '<link rel="stylesheet" href="style.css"><script src="js/app.js"></script>'
    result = rewrite_html(html, PID, "")
    assert f'href="{PREFIX}/style.css"' in result
    assert f'src="{PREFIX}/js/app.js"' in result


def test_resolves_against_file_directory():
    html = '<img src="../img/logo.png"><a href="about.html">About</a>'
    result = rewrite_html(html, PID, "pages")
    assert f'src="{PREFIX}/img/logo.png"' in result
    assert f'href="{PREFIX}/pages/about.html"' in result


def test_root_relative_reference():
    result = rewrite_html('<link href="/css/main.css">', PID, "pages/deep")
    assert f'href="{PREFIX}/css/main.css"' in result


def test_parent_references_are_clamped_to_project_root():
    result = rewrite_html('<img src="../../../../secret.png">', PID, "a")
    assert f'src="{PREFIX}/secret.png"' in result


def test_preserves_quote_style():
    result = rewrite_html("<script src='app.js'></script>", PID, "")
    assert f"src='{PREFIX}/app.js'" in result


def test_preserves_query_and_fragment():
    result = rewrite_html('<script src="app.js?v=3#main"></script>', PID, "")
    assert f'src="{PREFIX}/app.js?v=3#main"' in result


def test_encodes_path_segments():
    result = rewrite_html('<img src="images/my photo.png">', PID, "")
    assert f'src="{PREFIX}/images/my%20photo.png"' in result
    # Already-encoded references are not double-encoded
    result = rewrite_html('<img src="images/my%20photo.png">', PID, "")
    assert f'src="{PREFIX}/images/my%20photo.png"' in result


@pytest.mark.parametrize("reference", [
    "https://cdn.example.com/lib.js",
    "http://example.com/",
    "//cdn.example.com/lib.js",
    "data:image/png;base64,iVBORw0KGgo=",
    "mailto:someone@example.com",
    "javascript:void(0)",
    "#section",
    "",
    "{{ asset_url }}",
    "${base}/app.js",
])
def test_leaves_external_and_special_references_alone(reference):
    html = f'<a href="{reference}">x</a>'
    assert rewrite_html(html, PID, "") == html


def test_rewriting_is_idempotent():
    html = (
        '<link href="css/style.css"><script src="app.js"></script>'
        '<div style="background: url(\'img/bg.png\')"></div>'
    )
    once = rewrite_html(html, PID, "")
    assert rewrite_html(once, PID, "") == once


def test_data_attributes_are_rewritten():
    result = rewrite_html('<img data-src="lazy.png">', PID, "")
    assert f'data-src="{PREFIX}/lazy.png"' in result


def test_inline_style_urls_in_html():
    result = rewrite_html('<div style="background: url(\'img/bg.png\')"></div>', PID, "")
    assert f"url('{PREFIX}/img/bg.png')" in result


def test_rewrite_css_urls():
    css = (
        "@font-face { src: url(../fonts/a.woff2); }\n"
        "body { background: url(\"../img/bg.png\"); }\n"
        ".logo { background-image: url('logo.svg'); }\n"
        ".remote { background: url(https://example.com/x.png); }\n"
        ".inline { background: url(data:image/png;base64,AAAA); }\n"
    )
    result = rewrite_css(css, PID, "css")
    assert f"url({PREFIX}/fonts/a.woff2)" in result
    assert f'url("{PREFIX}/img/bg.png")' in result
    assert f"url('{PREFIX}/css/logo.svg')" in result
    assert "url(https://example.com/x.png)" in result
    assert "url(data:image/png;base64,AAAA)" in result
    assert rewrite_css(result, PID, "css") == result


def test_resolve_reference():
    assert resolve_reference("img/a.png", "pages") == "pages/img/a.png"
    assert resolve_reference("./a.png", "") == "a.png"
    assert resolve_reference("..", "") is None
    assert resolve_reference(f"{PREFIX}/a.png", "") is None
    assert resolve_reference("/api/projects", "") is None


def test_link_to_bare_mount_point_is_left_alone():
    html = '<a href="/api/projects">All projects</a>'
    assert rewrite_html(html, PID, "") == html


@pytest.mark.parametrize("path, expected", [
    ("index.html", "text/html"),
    ("page.HTM", "text/html"),
    ("style.css", "text/css"),
    ("app.js", "application/javascript"),
    ("data.json", "application/json"),
    ("logo.svg", "image/svg+xml"),
    ("photo.jpeg", "image/jpeg"),
    ("font.woff2", "font/woff2"),
    ("README", "text/plain"),
    ("notes.md", "text/plain"),
])
def test_content_type_for(path, expected):
    assert content_type_for(path) == expected


def test_is_text_content():
    assert is_text_content("text/html")
    assert is_text_content("application/javascript")
    assert not is_text_content("image/png")


def test_framing_headers():
    headers = framing_headers(["http://localhost:3000"])
    assert headers["X-Frame-Options"] == "ALLOWALL"
    assert headers["Content-Security-Policy"] == "frame-ancestors 'self' http://localhost:3000"
