"""
Dashboard of pending changes on the destination, used to revert items to their live version.
"""

import logging

from pydantic import ValidationError
from rich.markup import escape

from cms_migrator.browser.driver import PageDriver, TableSpec
from cms_migrator.models.entities import Category, DashboardItem

log = logging.getLogger(__name__)

# An item page shows one revert button per changed section.
REVERT_BUTTONS = tuple(f"a#_ctrl0_ctl19_ctl{n:02d}_btnRevert" for n in range(6))


class DashboardStrategy:
    category = Category.DASHBOARD
    entity_type = DashboardItem
    table = TableSpec(
        row_selector=".grid-list tbody tr:not(:first-child)",
        columns={"href": "td:nth-child(1) > a", "title": "td:nth-child(2)"},
    )

    def __init__(self, driver: PageDriver):
        self.driver = driver

    async def scrape_index(self, dashboard_url: str) -> list[DashboardItem]:
        await self.driver.navigate(dashboard_url)
        items = []
        for row in await self.driver.extract_rows(self.table):
            if not row.get("href"):
                continue
            try:
                items.append(DashboardItem(href=row.get("href"), title=(row.get("title") or "").strip() or None))
            except ValidationError as e:
                log.warning(f"[yellow]Skipping dashboard row {row}: {e}[/yellow]")
        log.info(f"Found {len(items)} pending item(s) on the dashboard.")
        return items

    async def revert(self, item: DashboardItem) -> int:
        """Clicks every revert button on the item page; returns how many were found."""
        log.info(f"Reverting: {escape(item.label)}")
        await self.driver.navigate(item.href)
        clicked = 0
        for selector in REVERT_BUTTONS:
            if await self.driver.click(selector):
                clicked += 1
        await self.driver.wait_until_stable()
        return clicked
