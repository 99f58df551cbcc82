"""
JSON file storage for the tracked resource list.

Snapshots are stored base64 encoded; the file is rewritten atomically on
every save so a crash never leaves a half-written list behind.
"""

import base64
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import structlog
from pydantic import ValidationError

from watcher.exceptions import PersistenceError
from watcher.models import ResourceRecord

logger = structlog.get_logger(__name__)

FORMAT_VERSION = 1


class ResourceStore:
    """
    File-backed persistence for resource records.
    """

    def __init__(self, state_file: Union[str, Path]):
        """
        Initialize the store.

        Args:
            state_file: Path to the JSON document
        """
        self.state_file = Path(state_file)
        self.logger = logger.bind(component="resource_store", state_file=str(self.state_file))

    def load(self) -> List[ResourceRecord]:
        """
        Load all records.

        Returns:
            List of records, empty if the file is missing or unreadable
        """
        if not self.state_file.exists():
            return []

        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                document = json.load(f)
            records = [self._from_document(item) for item in document.get("resources", [])]
        except (OSError, ValueError, TypeError, AttributeError, ValidationError) as e:
            self.logger.warning("Could not load tracked resources", error=str(e))
            return []

        self.logger.debug("Loaded tracked resources", count=len(records))
        return records

    def save(self, records: Sequence[ResourceRecord]) -> None:
        """
        Write all records.

        Raises:
            PersistenceError: if the file cannot be written
        """
        document = {
            "version": FORMAT_VERSION,
            "resources": [self._to_document(record) for record in records],
        }

        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.state_file.parent), prefix=".resources-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_path, self.state_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Unable to save tracked resources: {e}") from e

        self.logger.debug("Saved tracked resources", count=len(records))

    def _to_document(self, record: ResourceRecord) -> Dict[str, Any]:
        doc = record.model_dump(mode="json", exclude={"snapshot"})
        doc["snapshot"] = (
            base64.b64encode(record.snapshot).decode("ascii")
            if record.snapshot is not None else None
        )
        return doc

    def _from_document(self, doc: Dict[str, Any]) -> ResourceRecord:
        data = dict(doc)
        snapshot = data.pop("snapshot", None)
        if snapshot is not None:
            data["snapshot"] = base64.b64decode(snapshot)
        return ResourceRecord.model_validate(data)
