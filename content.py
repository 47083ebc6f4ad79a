import enum
import mimetypes
import re
from typing import NamedTuple

import markdown

from errors import OperationNotSupportedForKind
from naming import extension_of

mimetypes.add_type("image/tiff", ".tif")


class Kind(enum.Enum):
    PLAIN_TEXT = "text"
    MARKDOWN = "markdown"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


_KIND_BY_EXTENSION = {
    ".txt": Kind.PLAIN_TEXT,
    ".md": Kind.MARKDOWN,
    ".jpeg": Kind.IMAGE,
    ".jpg": Kind.IMAGE,
    ".gif": Kind.IMAGE,
    ".png": Kind.IMAGE,
    ".tif": Kind.IMAGE,
}

EDITABLE_KINDS = frozenset({Kind.PLAIN_TEXT, Kind.MARKDOWN})


class Rendered(NamedTuple):
    mimetype: str
    body: bytes | str


def classify(name: str) -> Kind:
    return _KIND_BY_EXTENSION.get(extension_of(name), Kind.UNSUPPORTED)


def is_editable(kind: Kind) -> bool:
    return kind in EDITABLE_KINDS


def require_editable(name: str, kind: Kind, action: str) -> None:
    if not is_editable(kind):
        raise OperationNotSupportedForKind(name=name, action=action)


def auto_link_urls(text: str) -> str:
    return re.sub(
        r'(?<!\]\()(?<!\()(?<!<)(https?://[^\s<>\)\]]+)',
        lambda m: f'[{m.group(1)}]({m.group(1)})',
        text,
    )


def render_markdown(text: str) -> str:
    text = auto_link_urls(text)
    html = markdown.markdown(text, extensions=["fenced_code", "tables", "sane_lists"])
    return re.sub(
        r'<a href="(https?://[^"]+)"',
        r'<a href="\1" target="_blank" rel="noopener noreferrer"',
        html,
    )


def render_for_view(kind: Kind, raw: bytes, name: str = "") -> Rendered:
    """
    Pick the response body and mimetype for a stored document.

    Text and images pass through byte for byte. Markdown is decoded as UTF-8
    (undecodable bytes replaced) and converted to HTML.
    """
    if kind is Kind.PLAIN_TEXT:
        return Rendered("text/plain", raw)
    if kind is Kind.MARKDOWN:
        return Rendered("text/html", render_markdown(raw.decode("utf-8", errors="replace")))
    if kind is Kind.IMAGE:
        mime, _ = mimetypes.guess_type(name)
        return Rendered(mime or "application/octet-stream", raw)
    raise OperationNotSupportedForKind(name=name, action="displayed")
