"""JSON state file holding the last known record for each managed path."""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from ..domains.models import SecretRecord

logger = logging.getLogger(__name__)


class StateFile:
    """
    Persists SecretRecords keyed by path.

    An unreadable or corrupt file is logged and treated as empty on load;
    write failures propagate.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, SecretRecord]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r') as f:
                raw = json.load(f)
            return {path: SecretRecord.from_dict(data) for path, data in raw.get("records", {}).items()}
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError) as e:
            logger.error(f"Failed to read state file {self.path}, treating it as empty: {e}")
            return {}

    def _save(self, records: Dict[str, SecretRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"records": {path: record.to_dict() for path, record in sorted(records.items())}}
        with open(self.path, 'w') as f:
            json.dump(payload, f, indent=2)

    def get_record(self, path: str) -> Optional[SecretRecord]:
        return self._load().get(path)

    def put_record(self, record: SecretRecord) -> None:
        records = self._load()
        records[record.path] = record
        self._save(records)
        logger.debug(f"Saved state for {record.path!r}")

    def remove_record(self, path: str) -> None:
        records = self._load()
        if records.pop(path, None) is None:
            logger.debug(f"No state for {path!r}, nothing to remove")
            return
        self._save(records)

    def all_records(self) -> Dict[str, SecretRecord]:
        return self._load()
