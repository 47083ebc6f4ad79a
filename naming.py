from pathlib import PurePosixPath
from typing import Iterable

from errors import AlreadyExists, EmptyName, InvalidName, UnsupportedType

DOCUMENT_EXTENSIONS = (".txt", ".md")
IMAGE_EXTENSIONS = (".jpeg", ".jpg", ".gif", ".png", ".tif")
COPY_SUFFIX = "_copy"


def sanitize_user_supplied_name(raw: str | None) -> str:
    return (raw or "").strip().replace(" ", "_")


def split_name(name: str) -> tuple[str, str]:
    """``"notes.tar.md"`` -> ``("notes.tar", ".md")``. No extension -> ``(name, "")``."""
    p = PurePosixPath(name)
    return name[: len(name) - len(p.suffix)], p.suffix


def extension_of(name: str) -> str:
    return split_name(name)[1].lower()


def _validate(candidate: str | None, existing: Iterable[str], allowed: tuple) -> str:
    name = sanitize_user_supplied_name(candidate)
    if not name:
        raise EmptyName()
    if "/" in name or "\\" in name or name.startswith("."):
        raise InvalidName(name=name)
    if extension_of(name) not in allowed:
        raise UnsupportedType(name=name, allowed=", ".join(allowed))
    if name in set(existing):
        raise AlreadyExists(name=name)
    return name


def validate_name_for_creation(candidate: str | None, existing_names: Iterable[str]) -> str:
    """
    Canonicalise a user-supplied document name.

    Checks run in a fixed order so the first failing rule is the one reported:
    empty, then path characters, then extension, then collision.
    """
    return _validate(candidate, existing_names, DOCUMENT_EXTENSIONS)


def validate_name_for_upload(candidate: str | None, existing_names: Iterable[str]) -> str:
    return _validate(candidate, existing_names, IMAGE_EXTENSIONS)


def next_duplicate_name(original_name: str, existing_names: Iterable[str]) -> str:
    existing = set(existing_names)
    base, ext = split_name(original_name)
    while True:
        base += COPY_SUFFIX
        candidate = base + ext
        if candidate not in existing:
            return candidate
