"""
Local disk persistence for the patient/event snapshot.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError

from echomed.core.errors import PersistenceError
from echomed.models import Patient, TimelineEvent
from echomed.models.base import CamelModel, Timestamp, utcnow

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class Snapshot(CamelModel):
    version: int = SNAPSHOT_VERSION
    saved_at: Optional[Timestamp] = None
    patients: List[Patient] = []
    events: List[TimelineEvent] = []


class JsonSnapshotStore:
    """Whole-store JSON snapshot plus the read-only legacy history file."""

    def __init__(self, data_dir: Path, snapshot_file: str, legacy_file: str):
        self.data_dir = Path(data_dir)
        self.snapshot_path = self.data_dir / snapshot_file
        self.legacy_path = self.data_dir / legacy_file

    def load_all(self) -> Snapshot:
        """Load the saved snapshot. A missing file is an empty store."""
        if not self.snapshot_path.exists():
            return Snapshot()
        try:
            return Snapshot.model_validate_json(self.snapshot_path.read_bytes())
        except (OSError, ValidationError) as e:
            raise PersistenceError(f"Could not read {self.snapshot_path}: {e}") from e

    def set_aside(self) -> Path:
        """Move an unreadable snapshot out of the way so the next save cannot overwrite it."""
        stamp = utcnow().strftime("%Y%m%dT%H%M%S%fZ")
        target = self.snapshot_path.with_name(f"{self.snapshot_path.name}.corrupt-{stamp}")
        try:
            os.replace(self.snapshot_path, target)
        except OSError as e:
            raise PersistenceError(f"Could not move {self.snapshot_path} aside: {e}") from e
        logger.warning("Moved unreadable snapshot %s to %s", self.snapshot_path, target)
        return target

    def save_all(self, patients: List[Patient], events: List[TimelineEvent]) -> Path:
        """Write the full snapshot. The previous file is replaced only once the new one is complete."""
        snapshot = Snapshot(saved_at=utcnow(), patients=patients, events=events)
        payload = snapshot.model_dump_json(by_alias=True, indent=2)
        tmp_path = self.snapshot_path.with_suffix(self.snapshot_path.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.snapshot_path)
        except OSError as e:
            raise PersistenceError(f"Could not write {self.snapshot_path}: {e}") from e
        logger.debug("Saved %d patients and %d events to %s", len(patients), len(events), self.snapshot_path)
        return self.snapshot_path

    def load_legacy_history(self) -> List[Any]:
        """Rows of the flat consultation history, or [] when there is none."""
        if not self.legacy_path.exists():
            return []
        try:
            data = json.loads(self.legacy_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {self.legacy_path}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceError(f"{self.legacy_path} does not hold a list of consultations")
        return data
