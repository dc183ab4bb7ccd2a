"""
Reverts pending dashboard items on the destination back to their live version.

Dashboard items walk their own lifecycle (Uninitialized, Index, Reverted)
and have their own two snapshots, index and revert.
"""

import logging
from typing import Optional

from rich.markup import escape

from cms_migrator.core.session import MigrationSession
from cms_migrator.exceptions import MigratorError
from cms_migrator.models.entities import Category, DashboardItem
from cms_migrator.models.state import State
from cms_migrator.storage.snapshot import Stage
from cms_migrator.strategies.dashboard import DashboardStrategy

log = logging.getLogger(__name__)


class RevertRunner:
    def __init__(self, session: MigrationSession, strategy: Optional[DashboardStrategy] = None):
        if session.category is not Category.DASHBOARD:
            raise MigratorError("Reverting needs a session opened for the dashboard.")
        self.session = session
        self.strategy = strategy or DashboardStrategy(session.driver)

    async def run(self, dashboard_url: Optional[str] = None, fresh: bool = False) -> list[DashboardItem]:
        """Lists the pending items, then reverts each one not reverted yet."""
        destination_url = self.session.require_url("destination_url")
        await self.session.ensure_login(destination_url)
        await self.index(dashboard_url or destination_url, fresh)
        return await self.revert_all(fresh)

    async def index(self, dashboard_url: str, fresh: bool = False) -> list[DashboardItem]:
        store = self.session.store
        items = store.load_input(Stage.INDEX, fresh=fresh).entities
        known = {item.href for item in items}
        for item in await self.strategy.scrape_index(dashboard_url):
            if item.href in known:
                continue
            item.lifecycle.advance(item, State.INDEX)
            items.append(item)
            known.add(item.href)
        store.write(Stage.INDEX, items)
        return items

    async def revert_all(self, fresh: bool = False) -> list[DashboardItem]:
        store = self.session.store
        snapshot = store.load_input(Stage.REVERT, fresh=fresh)
        self.session.stats.records_rejected += len(snapshot.rejected)
        items = snapshot.entities

        for item in items:
            item.lifecycle.resume(item)
            if item.state is not State.INDEX:
                self.session.stats.entities_skipped += 1
                continue
            try:
                clicked = await self.strategy.revert(item)
                if clicked == 0:
                    raise MigratorError("No revert button found on the item page.")
                item.lifecycle.advance(item, State.REVERTED)
                self.session.stats.entities_processed += 1
                log.info(f"[green]✓ Reverted '{escape(item.label)}' ({clicked} section(s)).[/green]")
            except MigratorError as e:
                log.error(f"[red]✗ Could not revert '{escape(item.label)}': {escape(str(e))}[/red]")
                item.lifecycle.fail(item, str(e))
                self.session.stats.entities_failed += 1
            store.write(Stage.REVERT, items)

        if not items:
            store.write(Stage.REVERT, items)
        return items
