"""
Credential ledger: usernames mapped to bcrypt hashes in a YAML file.

The whole mapping is rewritten on every change. There is no locking here;
callers that share a ledger between threads serialise access themselves.
"""

import logging
import os
import tempfile
from pathlib import Path

import bcrypt
import yaml

from errors import AlreadyExists, EmptyName, EmptyPassword, InvalidCredentials

logger = logging.getLogger(__name__)

# 12 rounds is bcrypt's usual default; tests turn it down
BCRYPT_ROUNDS = 12


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("stored hash is not a valid bcrypt hash")
        return False


class Ledger:

    def __init__(self, path: Path | str, rounds: int = BCRYPT_ROUNDS):
        self.path = Path(path)
        self.rounds = rounds
        if not self.path.is_file():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._save({})
            logger.info("created empty ledger at %s", self.path)

    def _load(self) -> dict[str, str]:
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return {str(k): str(v) for k, v in (data or {}).items()}

    def _save(self, users: dict[str, str]) -> None:
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w", dir=self.path.parent, suffix=".tmp", delete=False, encoding="utf-8"
            ) as f:
                yaml.safe_dump(users, f, default_flow_style=False, allow_unicode=True)
                temp_path = Path(f.name)
            os.replace(temp_path, self.path)
        except Exception:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise

    def exists(self, username: str | None) -> bool:
        return bool(username) and username in self._load()

    def usernames(self) -> list[str]:
        return sorted(self._load())

    def verify(self, username: str, password: str) -> bool:
        hashed = self._load().get(username or "")
        if hashed is None:
            return False
        return verify_password(password or "", hashed)

    def authenticate(self, username: str, password: str) -> str:
        """Return the username when the password matches, else raise InvalidCredentials."""
        if not self.verify(username, password):
            logger.info("failed sign-in for %r", username)
            raise InvalidCredentials()
        return username

    def register(self, username: str, password: str) -> None:
        username = (username or "").strip()
        if not username:
            raise EmptyName()
        if not (password or "").strip():
            raise EmptyPassword()
        users = self._load()
        if username in users:
            raise AlreadyExists(name=username)
        users[username] = hash_password(password, self.rounds)
        self._save(users)
        logger.info("registered user %s", username)

    def unregister(self, username: str) -> None:
        users = self._load()
        if users.pop(username, None) is not None:
            self._save(users)
            logger.info("removed user %s", username)
