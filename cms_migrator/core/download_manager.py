"""
Downloads every file an entity collection references with a fixed pool of workers.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.markup import escape

from cms_migrator.cli.progress_manager import ProgressManager
from cms_migrator.exceptions import ConfigurationError
from cms_migrator.media.downloader import Downloader, DownloadOutcome
from cms_migrator.models.entities import Entity
from cms_migrator.models.stats import MigrationStats

log = logging.getLogger(__name__)

MIN_WORKERS = 1
MAX_WORKERS = 5

ON_DISK = frozenset({DownloadOutcome.DOWNLOADED, DownloadOutcome.SKIPPED_EXISTS})


@dataclass
class EntityDownloadResult:
    index: int
    label: str
    outcomes: list[DownloadOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return DownloadOutcome.FAILED not in self.outcomes

    @property
    def complete(self) -> bool:
        """Every file of the entity is on disk."""
        return all(o in ON_DISK for o in self.outcomes)


class DownloadManager:
    """
    Runs ``workers`` independent download workers over an entity list.

    Worker *k* owns the indices k, k+N, k+2N, ... so no two workers ever
    touch the same entity. Each worker opens its own HTTP session and keeps
    its own statistics; results are merged by original index once every
    worker has finished.
    """

    def __init__(
        self,
        workers: int = 3,
        http_timeout: float = 60.0,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        progress_manager: Optional[ProgressManager] = None,
    ):
        if not MIN_WORKERS <= workers <= MAX_WORKERS:
            raise ConfigurationError(
                f"Download workers must be between {MIN_WORKERS} and {MAX_WORKERS}, got {workers}."
            )
        self.workers = workers
        self.http_timeout = http_timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.progress_manager = progress_manager
        self.stats = MigrationStats()
        self.results: list[EntityDownloadResult] = []

    async def download_all(
        self,
        entities: Sequence[Entity],
        directory_for: Callable[[Entity], Path],
    ) -> bool:
        """
        Downloads the files of every entity. Returns True only when every
        file ended up on disk.

        Files the server reports as gone are cleared and counted as
        unavailable rather than failed; the entity can still be created
        without them. One failure never stops the batch.
        """
        self.results = []
        if not entities:
            return True

        worker_count = min(self.workers, len(entities))
        total_files = sum(len(entity.downloadables()) for entity in entities)
        if self.progress_manager:
            self.progress_manager.start_task("Downloading files", total_files)

        worker_outputs = await asyncio.gather(
            *(
                self._run_worker(k, worker_count, entities, directory_for)
                for k in range(worker_count)
            )
        )

        merged: dict[int, EntityDownloadResult] = {}
        for worker_results, worker_stats in worker_outputs:
            merged.update(worker_results)
            self.stats.merge(worker_stats)
        self.results = [merged[index] for index in sorted(merged)]

        if self.progress_manager:
            self.progress_manager.finish_task()

        failed = [r for r in self.results if not r.success]
        for result in failed:
            log.error(f"[red]✗ Some files of '{escape(result.label)}' failed to download.[/red]")
        return all(result.complete for result in self.results)

    async def _run_worker(
        self,
        start: int,
        step: int,
        entities: Sequence[Entity],
        directory_for: Callable[[Entity], Path],
    ) -> tuple[dict[int, EntityDownloadResult], MigrationStats]:
        stats = MigrationStats()
        results: dict[int, EntityDownloadResult] = {}
        on_file_done = self.progress_manager.advance if self.progress_manager else None

        async with Downloader(
            timeout=self.http_timeout,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            stats=stats,
            on_file_done=on_file_done,
        ) as downloader:
            for index in range(start, len(entities), step):
                entity = entities[index]
                result = EntityDownloadResult(index=index, label=entity.label)
                directory = directory_for(entity)
                for file in entity.downloadables():
                    log.debug(f"[worker {start}] {entity.label}: {file.remote_path}")
                    result.outcomes.append(await downloader.download(file, directory))
                results[index] = result

        log.debug(f"Download worker {start} finished {len(results)} entities.")
        return results, stats
