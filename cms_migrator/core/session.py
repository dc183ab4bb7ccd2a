"""
The context a migration run works in: one page driver, the snapshot store
of the category being migrated and the run statistics.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

from cms_migrator.browser.driver import DriverSettings, PageDriver
from cms_migrator.browser.playwright_driver import PlaywrightPageDriver
from cms_migrator.exceptions import ConfigurationError, MigratorError
from cms_migrator.models.config import MigrationConfig
from cms_migrator.models.entities import Category
from cms_migrator.models.stats import MigrationStats
from cms_migrator.storage.snapshot import SnapshotStore

log = logging.getLogger(__name__)

LOGIN_PATH = "/admin/login.aspx"


def driver_settings(config: MigrationConfig) -> DriverSettings:
    return DriverSettings(
        navigation_attempts=config.navigation_attempts,
        navigation_timeout=config.navigation_timeout,
        poll_interval=config.stable_poll_interval,
        required_stable_reads=config.stable_required_reads,
        stable_timeout=config.stable_timeout,
        create_max_attempts=config.create_max_attempts,
    )


class MigrationSession:
    """
    Opened once per run and passed down to the pipeline.

    When no driver is supplied a Playwright page is launched on entry and
    closed on exit; a supplied driver is left open for its owner. Download
    workers do not share this session; each opens its own HTTP session.
    """

    def __init__(
        self,
        config: MigrationConfig,
        category: Category,
        driver: Optional[PageDriver] = None,
    ):
        self.config = config
        self.category = category
        self.store = SnapshotStore(Path(config.snapshot_dir), category)
        self.stats = MigrationStats(dry_run=config.dry_run)
        self._driver = driver
        self._owns_driver = driver is None
        self._logged_in: set[str] = set()

    @property
    def driver(self) -> PageDriver:
        if self._driver is None:
            raise MigratorError("The migration session is not open.")
        return self._driver

    @property
    def download_root(self) -> Path:
        return Path(self.config.download_dir)

    async def __aenter__(self) -> "MigrationSession":
        if self._driver is None:
            log.debug("Launching browser...")
            self._driver = await PlaywrightPageDriver(
                driver_settings(self.config), headless=self.config.headless
            ).open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_driver and self._driver is not None:
            await self._driver.close()
            self._driver = None
        self._logged_in.clear()

    def require_url(self, name: str) -> str:
        url = getattr(self.config, name)
        if not url:
            raise ConfigurationError(
                f"'{name}' is not set. Add it to the configuration file or pass it "
                "on the command line."
            )
        return url

    async def ensure_login(self, site_url: str) -> None:
        """Signs in to a site once per session; a no-op without credentials."""
        login_url = urljoin(site_url, LOGIN_PATH)
        if login_url in self._logged_in:
            return
        if not self.config.has_credentials():
            log.debug(f"No credentials configured, not signing in to {site_url}.")
            return
        log.info(f"Signing in to [cyan]{site_url}[/cyan]...")
        await self.driver.login(login_url, self.config.username, self.config.password)
        self._logged_in.add(login_url)
