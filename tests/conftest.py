"""Shared fixtures: an in-memory page driver and a local file server."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from cms_migrator.browser.driver import (
    Banner,
    DriverSettings,
    FormSpec,
    PageDriver,
    TableSpec,
)
from cms_migrator.exceptions import NavigationError
from cms_migrator.models.values import SelectOption

FAST_SETTINGS = DriverSettings(
    navigation_attempts=3,
    navigation_timeout=5.0,
    poll_interval=1.0,
    required_stable_reads=2,
    stable_timeout=10.0,
    create_max_attempts=4,
    settle_delay=0.0,
)


class FakePageDriver(PageDriver):
    """
    A page driver over plain dictionaries. Every primitive call is recorded
    in ``calls`` so tests can assert what did or did not reach the page.
    """

    def __init__(self, settings: Optional[DriverSettings] = None):
        super().__init__(settings or FAST_SETTINGS)
        self.fields: dict[str, str] = {}
        self.selects: dict[str, SelectOption] = {}
        self.checkboxes: dict[str, bool] = {}
        self.attributes: dict[tuple[str, str], str] = {}
        self.rich_text: dict[str, str] = {}
        self.tables: dict[str, list[dict[str, Optional[str]]]] = {}
        self.clickable: Optional[set[str]] = None
        self.on_click: dict[str, Callable[[], None]] = {}
        self.sizes: list[int] = []
        self.default_size = 1000
        self.navigation_failures = 0
        self.banner: Optional[Banner] = Banner(success=True, message="Saved.")
        self.url = "about:blank"
        self.closed = False

        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.written: dict[str, Any] = {}
        self.clicks: list[str] = []
        self.sleeps: list[float] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    async def _goto(self, url: str, timeout: float) -> None:
        self._record("goto", url, timeout)
        if self.navigation_failures > 0:
            self.navigation_failures -= 1
            raise NavigationError(f"Timed out after {timeout}s.")
        self.url = url

    async def content_size(self) -> int:
        return self.sizes.pop(0) if self.sizes else self.default_size

    async def extract_rows(self, spec: TableSpec) -> list[dict[str, Optional[str]]]:
        self._record("extract_rows", spec.row_selector)
        return [dict(row) for row in self.tables.get(spec.row_selector, [])]

    async def read_field(self, selector: str) -> Optional[str]:
        self._record("read_field", selector)
        return self.fields.get(selector)

    async def write_field(self, selector: str, value: str) -> bool:
        self._record("write_field", selector, value)
        self.written[selector] = value
        return True

    async def select_option(self, selector: str, text: str) -> bool:
        self._record("select_option", selector, text)
        self.written[selector] = text
        return True

    async def read_select(self, selector: str) -> Optional[SelectOption]:
        self._record("read_select", selector)
        return self.selects.get(selector)

    async def read_checkbox(self, selector: str) -> Optional[bool]:
        self._record("read_checkbox", selector)
        return self.checkboxes.get(selector)

    async def set_checkbox(self, selector: str, checked: bool) -> bool:
        self._record("set_checkbox", selector, checked)
        self.written[selector] = checked
        return True

    async def click(self, selector: str) -> bool:
        self._record("click", selector)
        if self.clickable is not None and selector not in self.clickable:
            return False
        self.clicks.append(selector)
        if selector in self.on_click:
            self.on_click[selector]()
        return True

    async def click_text(self, selector: str, text: str) -> bool:
        self._record("click_text", selector, text)
        return True

    async def read_attribute(self, selector: str, name: str) -> Optional[str]:
        self._record("read_attribute", selector, name)
        return self.attributes.get((selector, name))

    async def read_rich_text(self, editor_id: str) -> Optional[str]:
        self._record("read_rich_text", editor_id)
        return self.rich_text.get(editor_id)

    async def write_rich_text(self, editor_id: str, html: str) -> bool:
        self._record("write_rich_text", editor_id, html)
        self.written[editor_id] = html
        return True

    async def read_banner(self, form: FormSpec) -> Optional[Banner]:
        self._record("read_banner", form.banner_selector)
        return self.banner

    @property
    def current_url(self) -> str:
        return self.url

    async def login(self, url: str, username: str, password: str) -> None:
        self._record("login", url, username)

    async def close(self) -> None:
        self.closed = True

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def touched(self, value: str) -> bool:
        """True when ``value`` appeared in the arguments of any recorded call."""
        return any(value in str(arg) for _, args in self.calls for arg in args)


@pytest.fixture()
def fake_driver() -> FakePageDriver:
    return FakePageDriver()


@pytest.fixture()
async def file_server():
    """
    Serves ``/files/<name>``: names starting with ``missing`` answer 404,
    ``forbidden`` 403 and ``broken`` 500; anything else returns a small body.
    """
    hits: dict[str, int] = {}

    async def serve(request: web.Request) -> web.StreamResponse:
        name = request.match_info["name"]
        hits[name] = hits.get(name, 0) + 1
        if name.startswith("missing"):
            raise web.HTTPNotFound()
        if name.startswith("forbidden"):
            raise web.HTTPForbidden()
        if name.startswith("broken"):
            raise web.HTTPInternalServerError()
        return web.Response(body=f"content of {name}".encode())

    application = web.Application()
    application.router.add_get("/files/{name}", serve)
    server = TestServer(application)
    await server.start_server()
    server.hits = hits
    try:
        yield server
    finally:
        await server.close()
