"""
Secret storage for values that survive restarts.

The platform keychain is out of scope; this module defines the contract and
ships an in-memory store and a JSON file store for development and tests.
"""

import json
from enum import StrEnum
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


class KeychainIdentifier(StrEnum):
    """Names of the persisted values."""

    EMAIL = "email"
    DISPLAY_NAME = "displayName"
    AVATAR_URL = "avatarURL"
    LOCKED = "locked"


@runtime_checkable
class SecretStore(Protocol):
    """Opaque key-value store. Each call reports success instead of raising."""

    def save(self, identifier: KeychainIdentifier, value: str) -> bool: ...

    def retrieve(self, identifier: KeychainIdentifier) -> str | None: ...

    def delete(self, identifier: KeychainIdentifier) -> bool: ...


class InMemorySecretStore:
    """Process-local secret store."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def save(self, identifier: KeychainIdentifier, value: str) -> bool:
        self._values[identifier] = value
        return True

    def retrieve(self, identifier: KeychainIdentifier) -> str | None:
        return self._values.get(identifier)

    def delete(self, identifier: KeychainIdentifier) -> bool:
        return self._values.pop(identifier, None) is not None


class JsonFileSecretStore:
    """
    Secret store backed by a pretty-printed JSON file.

    Not encrypted. Meant for development, where being able to read the file
    matters more than protecting it.
    """

    def __init__(self, path: str | Path) -> None:
        """
        Args:
            path: JSON file location. Created on first save.
        """
        self._path = Path(path)

    def save(self, identifier: KeychainIdentifier, value: str) -> bool:
        values = self._load()
        if values is None:
            return False
        values[identifier] = value
        return self._write(values)

    def retrieve(self, identifier: KeychainIdentifier) -> str | None:
        values = self._load()
        if values is None:
            return None
        value = values.get(identifier)
        return value if isinstance(value, str) else None

    def delete(self, identifier: KeychainIdentifier) -> bool:
        values = self._load()
        if values is None or identifier not in values:
            return False
        del values[identifier]
        return self._write(values)

    def _load(self) -> dict[str, str] | None:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to read secret store", error_type=type(e).__name__)
            return None
        if not isinstance(data, dict):
            logger.warning("Secret store is not a JSON object")
            return None
        return data

    def _write(self, values: dict[str, str]) -> bool:
        try:
            with self._path.open("w", encoding="utf-8") as f:
                json.dump(values, f, indent=2, sort_keys=True)
        except OSError as e:
            logger.warning("Failed to write secret store", error_type=type(e).__name__)
            return False
        return True
