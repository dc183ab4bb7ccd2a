"""
Page driver backed by a headless Chromium page from Playwright.
"""

import functools
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from cms_migrator.browser.driver import (
    Banner,
    DriverSettings,
    FormSpec,
    PageDriver,
    TableSpec,
)
from cms_migrator.exceptions import NavigationError, PageError
from cms_migrator.models.values import SelectOption

log = logging.getLogger(__name__)

_EXTRACT_ROWS_JS = """
(rows, columns) => rows.map((row) => {
    const record = {};
    for (const [name, selector] of Object.entries(columns)) {
        const cell = row.querySelector(selector);
        if (!cell) {
            record[name] = null;
        } else if (cell.tagName === 'A') {
            record[name] = cell.href;
        } else {
            record[name] = (cell.textContent || '').trim();
        }
    }
    return record;
})
"""

_READ_SELECT_JS = """
(select) => select.selectedIndex < 0 ? null : {
    value: select.value,
    text: select.options[select.selectedIndex].innerText.trim(),
}
"""

# Rich text bodies live in Telerik RadEditor widgets, reachable through $find.
_READ_EDITOR_JS = """
(id) => {
    const editor = window.$find ? window.$find(id) : null;
    return editor ? editor.get_html() : null;
}
"""

_WRITE_EDITOR_JS = """
([id, html]) => {
    const editor = window.$find ? window.$find(id) : null;
    if (!editor) return false;
    editor.set_html(html);
    return true;
}
"""


def page_errors(method):
    """Re-raises browser faults of a page primitive as PageError."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except PlaywrightError as e:
            selector = next((a for a in args if isinstance(a, str)), "")
            raise PageError(f"{method.__name__}({selector!r}) failed: {e.message}") from e

    return wrapper


class PlaywrightPageDriver(PageDriver):
    def __init__(self, settings: Optional[DriverSettings] = None, headless: bool = True):
        super().__init__(settings)
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def open(self) -> "PlaywrightPageDriver":
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context()
        self._page = await self._context.new_page()
        log.debug(f"Browser started (headless={self.headless}).")
        return self

    async def close(self) -> None:
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self._context = None
        self._page = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise NavigationError("The browser session is not open.")
        return self._page

    @property
    def current_url(self) -> str:
        return self.page.url

    async def _goto(self, url: str, timeout: float) -> None:
        try:
            await self.page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
        except PlaywrightError as e:
            raise NavigationError(f"{url}: {e.message}") from e

    async def content_size(self) -> int:
        try:
            return len(await self.page.content())
        except PlaywrightError:
            # The document is being replaced mid-navigation.
            return 0

    @page_errors
    async def extract_rows(self, spec: TableSpec) -> list[dict[str, Optional[str]]]:
        return await self.page.eval_on_selector_all(
            spec.row_selector, _EXTRACT_ROWS_JS, spec.columns
        )

    @page_errors
    async def read_field(self, selector: str) -> Optional[str]:
        element = await self.page.query_selector(selector)
        if element is None:
            return None
        return await element.input_value()

    @page_errors
    async def write_field(self, selector: str, value: str) -> bool:
        element = await self.page.query_selector(selector)
        if element is None:
            return False
        await element.fill(value)
        await element.dispatch_event("change")
        await element.evaluate("(el) => el.blur()")
        return True

    @page_errors
    async def select_option(self, selector: str, text: str) -> bool:
        element = await self.page.query_selector(selector)
        if element is None:
            return False
        try:
            await element.select_option(label=text)
        except PlaywrightError as e:
            log.debug(f"Option '{text}' not available in {selector}: {e.message}")
            return False
        return True

    @page_errors
    async def read_select(self, selector: str) -> Optional[SelectOption]:
        element = await self.page.query_selector(selector)
        if element is None:
            return None
        selected = await element.evaluate(_READ_SELECT_JS)
        return SelectOption(**selected) if selected else None

    @page_errors
    async def read_checkbox(self, selector: str) -> Optional[bool]:
        element = await self.page.query_selector(selector)
        if element is None:
            return None
        return await element.is_checked()

    @page_errors
    async def set_checkbox(self, selector: str, checked: bool) -> bool:
        element = await self.page.query_selector(selector)
        if element is None:
            return False
        await element.set_checked(checked)
        return True

    @page_errors
    async def click(self, selector: str) -> bool:
        element = await self.page.query_selector(selector)
        if element is None:
            return False
        await element.click()
        return True

    @page_errors
    async def click_text(self, selector: str, text: str) -> bool:
        locator = self.page.locator(selector).filter(has_text=text).first
        if await locator.count() == 0:
            return False
        await locator.click()
        return True

    @page_errors
    async def read_attribute(self, selector: str, name: str) -> Optional[str]:
        element = await self.page.query_selector(selector)
        if element is None:
            return None
        return await element.get_attribute(name)

    @page_errors
    async def read_rich_text(self, editor_id: str) -> Optional[str]:
        return await self.page.evaluate(_READ_EDITOR_JS, editor_id)

    @page_errors
    async def write_rich_text(self, editor_id: str, html: str) -> bool:
        return bool(await self.page.evaluate(_WRITE_EDITOR_JS, [editor_id, html]))

    @page_errors
    async def read_banner(self, form: FormSpec) -> Optional[Banner]:
        try:
            element = await self.page.wait_for_selector(
                form.banner_selector, timeout=self.settings.stable_timeout * 1000
            )
        except PlaywrightError:
            return None
        if element is None:
            return None
        classes = (await element.get_attribute("class")) or ""
        content = await element.query_selector(".message-content")
        message = (await content.inner_text()).strip() if content else ""
        return Banner(success=form.success_class in classes.split(), message=message)

    async def login(self, url: str, username: str, password: str) -> None:
        await self.navigate(url)
        try:
            await self.page.wait_for_selector(
                "#txtUserName", timeout=self.settings.navigation_timeout * 1000
            )
            await self.page.fill("#txtUserName", username)
            await self.page.fill("#txtPassword", password)
            await self.page.click("#btnSubmit")
            await self.page.wait_for_load_state(
                "networkidle", timeout=self.settings.navigation_timeout * 1000
            )
        except PlaywrightError as e:
            raise NavigationError(f"Login at {url} failed: {e.message}") from e
        await self.wait_until_stable()
        log.info("[green]✓ Logged in.[/green]")
