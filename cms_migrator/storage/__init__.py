"""
Storage Layer.

This package handles all data persistence: the INI configuration file and
the per-stage snapshot files a migration resumes from.
"""

from .config_manager import ConfigManager
from .snapshot import Snapshot, SnapshotStore, Stage

__all__ = ["ConfigManager", "Snapshot", "SnapshotStore", "Stage"]
