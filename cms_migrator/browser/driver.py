"""
The contract between the pipeline and a live browser page.

Concrete drivers implement the primitives (reading and writing controls,
loading a URL, measuring the rendered page). The composed operations the
pipeline relies on, such as bounded navigation retries, the page-stability
wait and the blank-form wait, are built here on top of those primitives so
every driver shares the same timeouts and attempt bounds.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from rich.markup import escape

from cms_migrator.exceptions import (
    BlankFormTimeoutError,
    CreationError,
    NavigationError,
)
from cms_migrator.models.values import SelectOption

log = logging.getLogger(__name__)

DEFAULT_BANNER_SELECTOR = "#_ctrl0_ctl19_ucMessages_UserMessage"


@dataclass(frozen=True)
class TableSpec:
    """
    Describes a listing table: which rows to read and, per output key, the
    cell selector relative to the row. Anchor cells yield their href, other
    cells their trimmed text.
    """

    row_selector: str
    columns: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FormSpec:
    """Selectors of a 'create new' form on the destination system."""

    create_new_selector: str
    key_fields: tuple[str, ...]
    save_selector: str
    banner_selector: str = DEFAULT_BANNER_SELECTOR
    success_class: str = "message-success"


@dataclass(frozen=True)
class Banner:
    success: bool
    message: str


@dataclass(frozen=True)
class DriverSettings:
    navigation_attempts: int = 3
    navigation_timeout: float = 30.0
    poll_interval: float = 1.0
    required_stable_reads: int = 3
    stable_timeout: float = 30.0
    create_max_attempts: int = 10
    settle_delay: float = 2.0


class PageDriver(ABC):
    """A single live page session. Not safe for concurrent use."""

    def __init__(self, settings: Optional[DriverSettings] = None):
        self.settings = settings or DriverSettings()

    # Primitives

    @abstractmethod
    async def _goto(self, url: str, timeout: float) -> None:
        """Loads ``url`` within ``timeout`` seconds; raises NavigationError on failure."""

    @abstractmethod
    async def content_size(self) -> int:
        """Size of the currently rendered document."""

    @abstractmethod
    async def extract_rows(self, spec: TableSpec) -> list[dict[str, Optional[str]]]:
        ...

    @abstractmethod
    async def read_field(self, selector: str) -> Optional[str]:
        """Value of an input, or None when the element does not exist."""

    @abstractmethod
    async def write_field(self, selector: str, value: str) -> bool:
        ...

    @abstractmethod
    async def select_option(self, selector: str, text: str) -> bool:
        """Selects the option whose visible text equals ``text``."""

    @abstractmethod
    async def read_select(self, selector: str) -> Optional[SelectOption]:
        ...

    @abstractmethod
    async def read_checkbox(self, selector: str) -> Optional[bool]:
        ...

    @abstractmethod
    async def set_checkbox(self, selector: str, checked: bool) -> bool:
        ...

    @abstractmethod
    async def click(self, selector: str) -> bool:
        ...

    @abstractmethod
    async def click_text(self, selector: str, text: str) -> bool:
        """Clicks the first element matching ``selector`` whose text is ``text``."""

    @abstractmethod
    async def read_attribute(self, selector: str, name: str) -> Optional[str]:
        ...

    @abstractmethod
    async def read_rich_text(self, editor_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def write_rich_text(self, editor_id: str, html: str) -> bool:
        ...

    @abstractmethod
    async def read_banner(self, form: FormSpec) -> Optional[Banner]:
        ...

    @property
    @abstractmethod
    def current_url(self) -> str:
        ...

    @abstractmethod
    async def login(self, url: str, username: str, password: str) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    # Composed operations

    async def navigate(self, url: str) -> None:
        """
        Loads a page and waits for it to settle. Each retry gets a longer
        timeout; after the last attempt a NavigationError is raised.
        """
        attempts = self.settings.navigation_attempts
        last_error: NavigationError | None = None
        for attempt in range(1, attempts + 1):
            timeout = self.settings.navigation_timeout * attempt
            try:
                await self._goto(url, timeout)
            except NavigationError as e:
                last_error = e
                log.warning(
                    f"[yellow]Navigation attempt {attempt}/{attempts} to "
                    f"{escape(url)} failed: {escape(str(e))}[/yellow]"
                )
                continue
            await self.wait_until_stable()
            return
        raise NavigationError(f"Could not load {url} after {attempts} attempts: {last_error}")

    async def wait_until_stable(self, timeout: Optional[float] = None) -> bool:
        """
        Polls the rendered size until it stays unchanged for the required
        number of consecutive reads. Returns False once the budget is spent,
        in which case the caller treats the page as probably stable.
        """
        interval = self.settings.poll_interval
        budget = self.settings.stable_timeout if timeout is None else timeout
        max_polls = max(1, int(budget / interval)) if interval > 0 else 1

        last_size = -1
        stable_reads = 0
        for _ in range(max_polls):
            size = await self.content_size()
            if size > 0 and size == last_size:
                stable_reads += 1
                if stable_reads >= self.settings.required_stable_reads:
                    return True
            else:
                stable_reads = 0
            last_size = size
            await self.sleep(interval)

        log.debug(f"Page did not settle within {budget}s, continuing anyway.")
        return False

    async def create_new_and_await_empty_form(self, form: FormSpec) -> int:
        """
        Clicks 'create new' until the key fields read back empty.

        Returns the number of attempts it took. Raises BlankFormTimeoutError
        after ``create_max_attempts`` tries.
        """
        max_attempts = self.settings.create_max_attempts
        for attempt in range(1, max_attempts + 1):
            if not await self.click(form.create_new_selector):
                log.debug(f"'Create new' control not found (attempt {attempt}).")
            await self.sleep(self.settings.settle_delay)
            await self.wait_until_stable()
            if await self._form_is_empty(form):
                return attempt
        raise BlankFormTimeoutError(
            f"The create form was still not blank after {max_attempts} attempts."
        )

    async def _form_is_empty(self, form: FormSpec) -> bool:
        for selector in form.key_fields:
            value = await self.read_field(selector)
            if value is None or value.strip():
                return False
        return True

    async def submit_and_verify(self, form: FormSpec) -> str:
        """Saves the form and returns the new record's href, or raises CreationError."""
        if not await self.click(form.save_selector):
            raise CreationError("The save button could not be found.")
        await self.wait_until_stable()
        banner = await self.read_banner(form)
        if banner is None:
            raise CreationError("No confirmation message appeared after saving.")
        if not banner.success:
            raise CreationError(banner.message or "The destination rejected the record.")
        return self.current_url
