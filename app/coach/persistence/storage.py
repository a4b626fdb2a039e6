"""
Purpose: Durable blob storage behind the history store.
One named text blob per key; writes replace the whole blob.

JsonFileStorage keeps each key in <directory>/<key>.json and replaces it
atomically. InMemoryStorage is the in-process variant for tests and
ephemeral runs.
"""

from __future__ import annotations
import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


class JsonFileStorage:
    def __init__(self, directory: str) -> None:
        self.directory = directory

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, text: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.directory, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path_for(key))
        except BaseException:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d bytes to %s", len(text), self.path_for(key))


class InMemoryStorage:
    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, text: str) -> None:
        self._blobs[key] = text
