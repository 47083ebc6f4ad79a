import pytest

from content import Kind, classify, is_editable, render_for_view, render_markdown
from errors import OperationNotSupportedForKind


@pytest.mark.parametrize("name, kind", [
    ("a.txt", Kind.PLAIN_TEXT),
    ("a.TXT", Kind.PLAIN_TEXT),
    ("a.md", Kind.MARKDOWN),
    ("a.jpeg", Kind.IMAGE),
    ("a.jpg", Kind.IMAGE),
    ("a.gif", Kind.IMAGE),
    ("a.PNG", Kind.IMAGE),
    ("a.tif", Kind.IMAGE),
    ("a.exe", Kind.UNSUPPORTED),
    ("noext", Kind.UNSUPPORTED),
])
def test_classify(name, kind):
    assert classify(name) is kind


def test_only_text_kinds_are_editable():
    assert is_editable(Kind.PLAIN_TEXT)
    assert is_editable(Kind.MARKDOWN)
    assert not is_editable(Kind.IMAGE)
    assert not is_editable(Kind.UNSUPPORTED)


def test_plain_text_passes_through():
    raw = b"Ruby is simple in appearance\n<b>not html</b>"
    rendered = render_for_view(Kind.PLAIN_TEXT, raw, "about.txt")
    assert rendered.mimetype == "text/plain"
    assert rendered.body == raw


def test_markdown_becomes_html():
    rendered = render_for_view(Kind.MARKDOWN, b"# Hi", "about.md")
    assert rendered.mimetype == "text/html"
    assert "<h1>Hi</h1>" in rendered.body


def test_image_mimetype_from_extension():
    raw = b"\x89PNG\r\n\x1a\n"
    rendered = render_for_view(Kind.IMAGE, raw, "cat.png")
    assert rendered.mimetype == "image/png"
    assert rendered.body == raw
    assert render_for_view(Kind.IMAGE, raw, "scan.tif").mimetype == "image/tiff"


def test_unsupported_cannot_be_rendered():
    with pytest.raises(OperationNotSupportedForKind):
        render_for_view(Kind.UNSUPPORTED, b"MZ", "tool.exe")


def test_external_links_open_in_new_tab():
    html = render_markdown("see https://example.com")
    assert 'href="https://example.com" target="_blank" rel="noopener noreferrer"' in html
