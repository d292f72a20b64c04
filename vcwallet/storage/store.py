import json
import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from vcwallet.exceptions import StorageError
from vcwallet.logging import get_logger
from vcwallet.models import StoredCredentialModel
from vcwallet.utils import parse_datetime_utc

logger = get_logger(__name__)


def _created_at_key(record: StoredCredentialModel) -> datetime:
    try:
        return parse_datetime_utc(record.createdAt)
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)


class CredentialStore:
    """Flat-file repository of issued credential records.

    Records live in an in-memory map keyed by record id that mirrors a JSON array
    on disk. Every mutation rewrites the whole file (temp file + atomic rename)
    before returning; if the rewrite fails the in-memory change is rolled back
    and `StorageError` is raised.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._records: Dict[str, StoredCredentialModel] = {}
        self._lock = threading.RLock()

    def load(self) -> int:
        """Loads records from disk, replacing anything held in memory.

        A missing file means an empty wallet. An unreadable or corrupt file is
        logged and the store starts empty.

        Returns:
            The number of records loaded.
        """
        with self._lock:
            self._records = {}
            if not self.path.exists():
                logger.info(f"No existing credentials file at {self.path}, starting fresh")
                return 0
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    raw_records = json.load(f)
                if not isinstance(raw_records, list):
                    raise ValueError("credentials file does not contain a JSON array")
                records = [StoredCredentialModel.model_validate(item) for item in raw_records]
            except (OSError, json.JSONDecodeError, ValidationError, ValueError) as e:
                logger.error(f"Failed to load credentials from {self.path}: {e}")
                return 0
            self._records = {record.id: record for record in records}
            logger.info(f"Loaded {len(self._records)} credentials from {self.path}")
            return len(self._records)

    def _write(self) -> None:
        data = [record.to_json_dict() for record in self._records.values()]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save credentials to {self.path}: {e}")

    def save(self, record: StoredCredentialModel) -> StoredCredentialModel:
        with self._lock:
            previous = self._records.get(record.id)
            self._records[record.id] = record
            try:
                self._write()
            except StorageError:
                if previous is None:
                    del self._records[record.id]
                else:
                    self._records[record.id] = previous
                raise
        logger.debug(f"Saved credential record {record.id}")
        return record

    def find_all(self) -> List[StoredCredentialModel]:
        """All records, newest first."""
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=_created_at_key, reverse=True)

    def find_by_id(self, record_id: str) -> Optional[StoredCredentialModel]:
        with self._lock:
            return self._records.get(record_id)

    def delete(self, record_id: str) -> bool:
        with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                return False
            try:
                self._write()
            except StorageError:
                self._records[record_id] = record
                raise
        logger.debug(f"Deleted credential record {record_id}")
        return True

    def exists(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._records

    def count(self) -> int:
        with self._lock:
            return len(self._records)
