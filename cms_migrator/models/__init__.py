"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: content entities and their field values,
the migration lifecycle, configuration, and run statistics.
"""

from .config import MigrationConfig
from .entities import ENTITY_TYPES, Category, Entity
from .state import Lifecycle, State
from .stats import MigrationStats

__all__ = [
    "ENTITY_TYPES",
    "Category",
    "Entity",
    "Lifecycle",
    "MigrationConfig",
    "MigrationStats",
    "State",
]
