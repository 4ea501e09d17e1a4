"""
File-backed gift store.

Each collection lives in its own pretty-printed JSON array under the data
directory (gifts.json, penalties.json, users.json, agencies.json). Every
mutation reads the whole file, changes it in memory and writes the whole
file back.

Writers to the same file are serialized twice over: a thread lock for
requests inside this process and a FileLock on "<file>.lock" for other
processes pointed at the same directory. New content is written to a
temporary file and swapped in with os.replace, so a failed write leaves the
previous file intact.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import filelock

from bgts import config
from bgts.errors import StorageError
from bgts.store import COLLECTIONS, GiftStore

logger = logging.getLogger(__name__)


class JsonFileGiftStore(GiftStore):

    backend = "json"

    def __init__(
        self,
        data_dir: str | Path,
        reference_prefix: str | None = None,
        lock_timeout: float | None = None,
    ):
        super().__init__(reference_prefix)
        self.data_dir = Path(data_dir)
        self.lock_timeout = config.FILE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self._locks = {name: threading.Lock() for name in COLLECTIONS}
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception("Could not create data directory %s", self.data_dir)
            raise StorageError("Storage is unavailable") from None

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _read(self, collection: str) -> list[dict]:
        return self._load(self.path_for(collection))

    @contextmanager
    def _mutate(self, collection: str) -> Iterator[list[dict]]:
        path = self.path_for(collection)
        lock = filelock.FileLock(str(path) + ".lock", timeout=self.lock_timeout)

        with self._locks[collection]:
            try:
                lock.acquire()
            except filelock.Timeout:
                logger.error("Failed to acquire lock for %s", path)
                raise StorageError("Storage is busy, please try again") from None

            try:
                records = self._load(path)
                yield records
                self._write(path, records)
            finally:
                lock.release()

    def _load(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.exception("Failed to read %s", path)
            raise StorageError("Stored records could not be read") from None

        if not isinstance(data, list):
            logger.error("Expected a JSON array in %s, found %s", path, type(data).__name__)
            raise StorageError("Stored records could not be read")
        return data

    def _write(self, path: Path, records: list[dict]) -> None:
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to write %s", path)
            tmp.unlink(missing_ok=True)
            raise StorageError("Stored records could not be written") from None
