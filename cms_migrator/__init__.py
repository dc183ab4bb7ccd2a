"""Migrates CMS content records between two instances through a resumable pipeline."""

__version__ = "1.0.0"
