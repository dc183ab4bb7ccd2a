"""
File-based checkpoints: one JSON array of serialized entities per category and stage.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from cms_migrator.exceptions import RecordValidationError, SnapshotError
from cms_migrator.models.entities import ENTITY_TYPES, Category, Entity
from cms_migrator.utils.path import create_dir

log = logging.getLogger(__name__)


class Stage(str, Enum):
    INDEX = "index"
    DETAILS = "details"
    DOWNLOADS = "downloads"
    CREATE = "create"
    REVERT = "revert"


SNAPSHOT_FILES = {
    Stage.INDEX: "01-index.json",
    Stage.DETAILS: "02-details.json",
    Stage.DOWNLOADS: "03-downloads.json",
    Stage.CREATE: "04-created.json",
    Stage.REVERT: "02-reverted.json",
}

PIPELINE_STAGES = (Stage.INDEX, Stage.DETAILS, Stage.DOWNLOADS, Stage.CREATE)
REVERT_STAGES = (Stage.INDEX, Stage.REVERT)


@dataclass
class RejectedRecord:
    index: int
    message: str


@dataclass
class Snapshot:
    """Entities read from one snapshot file, plus the records that failed validation."""

    stage: Optional[Stage]
    entities: list[Entity] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)


class SnapshotStore:
    """Reads and writes the stage snapshots of one category."""

    def __init__(self, root: Path, category: Category):
        self.category = category
        self.directory = root / category.value
        self.entity_type = ENTITY_TYPES[category]
        self.stages = REVERT_STAGES if category is Category.DASHBOARD else PIPELINE_STAGES

    def path_for(self, stage: Stage) -> Path:
        return self.directory / SNAPSHOT_FILES[stage]

    def exists(self, stage: Stage) -> bool:
        return self.path_for(stage).is_file()

    def previous_stage(self, stage: Stage) -> Optional[Stage]:
        if stage not in self.stages:
            raise SnapshotError(
                f"Stage '{stage.value}' does not apply to {self.category.value}."
            )
        position = self.stages.index(stage)
        return self.stages[position - 1] if position > 0 else None

    def read(self, stage: Stage) -> Snapshot:
        """
        Loads a snapshot, rebuilding every record into its entity type.

        A record that fails validation is skipped and reported in
        ``Snapshot.rejected`` with its position in the file; the others load.
        """
        path = self.path_for(stage)
        if not path.is_file():
            raise SnapshotError(f"Snapshot not found at '{path}'.")

        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise SnapshotError(f"Could not read snapshot '{path}': {e}") from e

        if not isinstance(records, list):
            raise SnapshotError(f"Snapshot '{path}' must contain a JSON array.")

        snapshot = Snapshot(stage=stage)
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                snapshot.rejected.append(
                    RejectedRecord(index, "Record is not a JSON object.")
                )
                continue
            try:
                snapshot.entities.append(self.entity_type.from_dict(record))
            except RecordValidationError as e:
                snapshot.rejected.append(RejectedRecord(index, str(e)))

        for rejected in snapshot.rejected:
            log.warning(
                f"[yellow]Rejected record #{rejected.index} in {path.name}: "
                f"{rejected.message}[/yellow]"
            )
        log.debug(f"Loaded {len(snapshot.entities)} records from '{path}'.")
        return snapshot

    def write(self, stage: Stage, entities: Sequence[Entity]) -> Path:
        """Writes the snapshot atomically through a temporary file in the same directory."""
        path = self.path_for(stage)
        create_dir(self.directory)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        payload = [entity.to_dict() for entity in entities]
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError) as e:
            tmp_path.unlink(missing_ok=True)
            raise SnapshotError(f"Could not write snapshot '{path}': {e}") from e
        return path

    def load_input(self, stage: Stage, fresh: bool = False) -> Snapshot:
        """
        Picks the input of a stage: its own snapshot when one exists (resuming
        an interrupted run) unless ``fresh`` is set, otherwise the snapshot of
        the stage before it. The first stage starts empty.
        """
        if not fresh and self.exists(stage):
            log.info(f"Resuming {stage.value} from '{self.path_for(stage)}'.")
            return self.read(stage)

        previous = self.previous_stage(stage)
        if previous is None:
            return Snapshot(stage=None)
        if not self.exists(previous):
            raise SnapshotError(
                f"No {previous.value} snapshot for {self.category.value}. "
                f"Run the '{previous.value}' stage first."
            )
        return self.read(previous)

    def latest(self) -> Optional[Snapshot]:
        """The most advanced snapshot on disk, or None when nothing was written yet."""
        for stage in reversed(self.stages):
            if self.exists(stage):
                return self.read(stage)
        return None
