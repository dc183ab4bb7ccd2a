"""
Runs the migration of one content category: index, details, downloads, create.

Every stage reads the snapshot it resumes from (or the previous stage's),
processes the entities one at a time in snapshot order and writes its own
snapshot. Failures of one entity are recorded on that entity and never stop
the batch.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError
from rich.markup import escape

from cms_migrator.cli.progress_manager import ProgressManager
from cms_migrator.core.download_manager import DownloadManager
from cms_migrator.core.session import MigrationSession
from cms_migrator.exceptions import MigratorError
from cms_migrator.models.entities import Entity
from cms_migrator.models.state import State
from cms_migrator.storage.snapshot import PIPELINE_STAGES, Stage
from cms_migrator.strategies.base import CategoryStrategy

log = logging.getLogger(__name__)


def skip_reason(entity: Entity) -> Optional[str]:
    """Why the downloads and create stages leave an entity alone, if they do."""
    if entity.active is False:
        return "inactive"
    if entity.state is State.CREATED:
        return "already created"
    return None


class MigrationPipeline:
    def __init__(
        self,
        session: MigrationSession,
        strategy: CategoryStrategy,
        progress_manager: Optional[ProgressManager] = None,
        download_base_delay: float = 1.5,
    ):
        self.session = session
        self.strategy = strategy
        self.progress_manager = progress_manager
        self.download_base_delay = download_base_delay
        self._resumed = False

    @property
    def store(self):
        return self.session.store

    @property
    def config(self):
        return self.session.config

    @property
    def stats(self):
        return self.session.stats

    async def run(
        self, stages: Sequence[Stage] = PIPELINE_STAGES, fresh: bool = False
    ) -> dict[Stage, list[Entity]]:
        """Runs the requested stages in pipeline order and returns each stage's output."""
        results: dict[Stage, list[Entity]] = {}
        for stage in PIPELINE_STAGES:
            if stage in stages:
                results[stage] = await self.run_stage(stage, fresh=fresh)
        return results

    async def run_stage(self, stage: Stage, fresh: bool = False) -> list[Entity]:
        log.info(
            f"[bold cyan]Stage '{stage.value}' for {self.session.category.value}[/bold cyan]"
        )
        handlers = {
            Stage.INDEX: self.index_stage,
            Stage.DETAILS: self.details_stage,
            Stage.DOWNLOADS: self.downloads_stage,
            Stage.CREATE: self.create_stage,
        }
        if stage not in handlers:
            raise MigratorError(f"'{stage.value}' is not a pipeline stage.")
        return await handlers[stage](fresh)

    def load(self, stage: Stage, fresh: bool = False) -> list[Entity]:
        """
        Loads a stage's input. Records that fail validation are counted and
        dropped. Entities left in Error by an earlier run are put back where
        they failed, once per pipeline run, so this run retries them.
        """
        snapshot = self.store.load_input(stage, fresh=fresh)
        self.stats.records_rejected += len(snapshot.rejected)

        if not self._resumed:
            for entity in snapshot.entities:
                if entity.lifecycle.resume(entity):
                    log.info(
                        f"Retrying '{escape(entity.label)}' from {entity.state.value}."
                    )
            self._resumed = True
        return snapshot.entities

    # Stages

    async def index_stage(self, fresh: bool = False) -> list[Entity]:
        source_url = self.session.require_url("source_url")
        entities = self.load(Stage.INDEX, fresh)
        known = {entity.href for entity in entities}

        await self.session.ensure_login(source_url)
        scraped = await self.strategy.scrape_index(source_url, self.config.max_index_pages)

        added = 0
        for entity in scraped:
            if entity.href in known:
                continue
            entity.lifecycle.advance(entity, State.INDEX)
            entities.append(entity)
            known.add(entity.href)
            added += 1

        log.info(f"[green]✓ {added} new, {len(entities)} total in the index.[/green]")
        self._write(Stage.INDEX, entities)
        return entities

    async def details_stage(self, fresh: bool = False) -> list[Entity]:
        entities = self.load(Stage.DETAILS, fresh)
        pending = [e for e in entities if e.state is State.INDEX]
        if pending:
            await self.session.ensure_login(self.session.require_url("source_url"))

        for position, entity in enumerate(pending, 1):
            log.info(f"[{position}/{len(pending)}] Scraping: {escape(entity.label)}")
            try:
                await self.strategy.scrape_details(entity)
                entity.lifecycle.advance(entity, State.DETAILS)
                self.stats.entities_processed += 1
            except (MigratorError, ValidationError) as e:
                self._fail(entity, e)
            self._write(Stage.DETAILS, entities)

        if not pending:
            self._write(Stage.DETAILS, entities)
        return entities

    async def downloads_stage(self, fresh: bool = False) -> list[Entity]:
        entities = self.load(Stage.DOWNLOADS, fresh)
        eligible = []
        for entity in entities:
            reason = skip_reason(entity)
            if reason:
                log.info(f"[dim]Skipping '{escape(entity.label)}' ({reason}).[/dim]")
                self.stats.entities_skipped += 1
            elif entity.state is State.DETAILS:
                eligible.append(entity)

        manager = DownloadManager(
            workers=self.config.workers,
            http_timeout=self.config.http_timeout,
            base_delay=self.download_base_delay,
            progress_manager=self.progress_manager,
        )
        complete = await manager.download_all(eligible, self.strategy.download_directory)
        self.stats.merge(manager.stats)
        if manager.stats.files_failed:
            log.warning(
                "[yellow]⚠ Some files failed to download; their records keep the "
                "previous paths. Re-run the downloads stage to retry.[/yellow]"
            )
        elif not complete:
            log.info(
                f"{manager.stats.files_unavailable} file(s) no longer exist on the "
                "source and were removed from their records."
            )

        self._write(Stage.DOWNLOADS, entities)
        return entities

    async def create_stage(self, fresh: bool = False) -> list[Entity]:
        entities = self.load(Stage.CREATE, fresh)
        pending = []
        for entity in entities:
            reason = skip_reason(entity)
            if reason is None and entity.state is not State.DETAILS:
                reason = f"not ready, state {entity.state.value}"
            if reason:
                log.info(f"[dim]Skipping '{escape(entity.label)}' ({reason}).[/dim]")
                self.stats.entities_skipped += 1
            else:
                pending.append(entity)

        if pending:
            destination_url = self.session.require_url("destination_url")
            await self.session.ensure_login(destination_url)

        for position, entity in enumerate(pending, 1):
            log.info(f"[{position}/{len(pending)}] {escape(entity.label)}")
            try:
                await self.strategy.open_index(destination_url)
                created_href = await self.strategy.create(entity)
            except (MigratorError, ValidationError) as e:
                self._fail(entity, e)
            else:
                if created_href is not None:
                    entity.created_href = created_href
                    entity.lifecycle.advance(entity, State.CREATED)
                    self.stats.entities_processed += 1
                    log.info(f"[green]✓ Created: {escape(created_href)}[/green]")
            if not self.config.dry_run:
                self._write(Stage.CREATE, entities)

        if not pending and not self.config.dry_run:
            self._write(Stage.CREATE, entities)
        return entities

    # Helpers

    def _fail(self, entity: Entity, error: Exception) -> None:
        message = str(error)
        log.error(f"[red]✗ '{escape(entity.label)}' failed: {escape(message)}[/red]")
        entity.lifecycle.fail(entity, message)
        self.stats.entities_failed += 1

    def _write(self, stage: Stage, entities: list[Entity]) -> Path:
        return self.store.write(stage, entities)
