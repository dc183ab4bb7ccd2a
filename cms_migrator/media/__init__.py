"""
Media Layer.

This package is responsible for fetching the files referenced by entity
records and writing them to the local asset tree.
"""

from .downloader import Downloader, DownloadOutcome

__all__ = ["Downloader", "DownloadOutcome"]
