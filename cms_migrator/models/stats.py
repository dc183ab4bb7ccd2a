"""
Counters for a migration run, kept per download worker and merged at the end.
"""

import time
from dataclasses import dataclass, field, fields


@dataclass
class MigrationStats:
    """Tracks what a run did to files and entities."""

    files_downloaded: int = 0
    files_skipped_exists: int = 0
    files_unavailable: int = 0
    files_failed: int = 0
    bytes_downloaded: int = 0

    entities_processed: int = 0
    entities_skipped: int = 0
    entities_failed: int = 0
    records_rejected: int = 0

    dry_run: bool = False
    started_at: float = field(default_factory=time.monotonic, repr=False)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    @property
    def average_speed_bps(self) -> float:
        elapsed = self.elapsed
        return self.bytes_downloaded / elapsed if elapsed > 0 else 0.0

    @property
    def files_total(self) -> int:
        return (
            self.files_downloaded
            + self.files_skipped_exists
            + self.files_unavailable
            + self.files_failed
        )

    def merge(self, other: "MigrationStats") -> None:
        """Adds the counters of another instance (e.g. a finished worker) to this one."""
        for f in fields(self):
            if f.type in (int, "int"):
                setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
