"""
Flat-directory document store.

One file per document directly under ``root``. Names are validated by
:mod:`naming` before anything is created or renamed, so no two documents
can share a name. Content writes go through a temp file and ``os.replace``
so a reader never sees a half-written document.
"""

import logging
import os
import tempfile
from pathlib import Path

from content import Kind, classify, require_editable
from errors import NotFound
from naming import (
    next_duplicate_name,
    sanitize_user_supplied_name,
    validate_name_for_creation,
    validate_name_for_upload,
)

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".tmp"


class DocumentStore:

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path | None:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return None
        candidate = self.root / name
        try:
            candidate.resolve().relative_to(self.root.resolve())
        except (ValueError, OSError):
            return None
        return candidate

    def _existing_path(self, name: str) -> Path:
        fpath = self._path(name)
        if fpath is None or not fpath.is_file():
            raise NotFound(name=name)
        return fpath

    def list(self) -> list[str]:
        names = []
        for entry in sorted(os.scandir(self.root), key=lambda e: e.name):
            if entry.name.startswith(".") or entry.name.endswith(_TEMP_SUFFIX):
                continue
            if entry.is_file(follow_symlinks=False):
                names.append(entry.name)
        return names

    def exists(self, name: str) -> bool:
        fpath = self._path(name)
        return fpath is not None and fpath.is_file()

    def read(self, name: str) -> tuple[Kind, bytes]:
        fpath = self._existing_path(name)
        return classify(name), fpath.read_bytes()

    def _create(self, name: str, content: bytes) -> None:
        # "xb" refuses to clobber a file that appeared after validation
        with open(self.root / name, "xb") as f:
            f.write(content)

    def create(self, name: str, content: bytes = b"") -> str:
        canonical = validate_name_for_creation(name, self.list())
        self._create(canonical, content)
        logger.info("created %s (%d bytes)", canonical, len(content))
        return canonical

    def upload(self, name: str, content: bytes) -> str:
        canonical = validate_name_for_upload(name, self.list())
        self._create(canonical, content)
        logger.info("uploaded %s (%d bytes)", canonical, len(content))
        return canonical

    def write(self, name: str, content: bytes) -> None:
        fpath = self._existing_path(name)
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self.root, prefix=".", suffix=_TEMP_SUFFIX, delete=False
            ) as f:
                f.write(content)
                temp_path = Path(f.name)
            os.replace(temp_path, fpath)
        except Exception:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise
        logger.info("wrote %s (%d bytes)", name, len(content))

    def rename(self, old_name: str, new_name: str) -> str:
        """
        Move ``old_name`` to ``new_name`` leaving the bytes untouched.

        Returns the canonical new name. When it equals ``old_name`` nothing
        happens. Validation runs before the move, so a rejected name leaves
        the store exactly as it was.
        """
        fpath = self._existing_path(old_name)
        if new_name == old_name or sanitize_user_supplied_name(new_name) == old_name:
            return old_name
        others = [n for n in self.list() if n != old_name]
        canonical = validate_name_for_creation(new_name, others)
        fpath.rename(self.root / canonical)
        logger.info("renamed %s -> %s", old_name, canonical)
        return canonical

    def delete(self, name: str) -> None:
        self._existing_path(name).unlink()
        logger.info("deleted %s", name)

    def duplicate(self, name: str) -> str:
        kind, content = self.read(name)
        require_editable(name, kind, "duplicated")
        copy_name = next_duplicate_name(name, self.list())
        self._create(copy_name, content)
        logger.info("duplicated %s -> %s", name, copy_name)
        return copy_name

    def edit(self, old_name: str, new_name: str | None = None, new_content: bytes | None = None) -> str:
        """
        Rename and/or replace content in one step and describe what changed.

        A rename that fails validation aborts the whole edit: the content is
        not written and the naming error propagates.
        """
        kind, current = self.read(old_name)
        require_editable(old_name, kind, "edited")

        name = old_name
        actions = []
        if new_name is not None:
            name = self.rename(old_name, new_name)
            if name != old_name:
                actions.append(f"has been renamed to {name}")
        if new_content is not None and new_content != current:
            self.write(name, new_content)
            actions.append("has been updated")

        if not actions:
            return f"No changes were made to {old_name}."
        return f"{old_name} {' and '.join(actions)}."
