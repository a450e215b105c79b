"""Local key-value storage backends for persisted dashboard state."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, Optional


class PersistenceError(Exception):
    """Raised when persisted state cannot be read or written."""
    pass


class KeyValueStorage(ABC):
    """String-valued key-value store, the shape of a browser's localStorage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            PersistenceError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            PersistenceError: If the backing store cannot be written
        """
        pass


class JsonFileStorage(KeyValueStorage):
    """
    Storage backed by a single JSON object file on disk.

    Every ``set`` rewrites the whole file through a temp file and
    ``os.replace`` so a crash mid-write never leaves a truncated file.
    """

    def __init__(self, path: str):
        self.path = path

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except PersistenceError as e:
            logging.warning(f"Discarding unreadable storage file: {e}")
            data = {}
        data[key] = value

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            os.unlink(tmp_path)
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        logging.debug(f"Wrote key '{key}' to {self.path} ({len(value)} chars)")


class MemoryStorage(KeyValueStorage):
    """In-memory storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
