"""
The per-category strategy interface and the form helpers the strategies share.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Optional

from pydantic import ValidationError
from rich.markup import escape

from cms_migrator.browser.driver import FormSpec, PageDriver, TableSpec
from cms_migrator.exceptions import ConfigurationError, NavigationError
from cms_migrator.models.entities import Category, Entity
from cms_migrator.models.values import (
    Attachment,
    CMSDate,
    CMSFile,
    CMSTime,
    Multimedia,
)
from cms_migrator.utils.strings import build_seo_name, is_absolute_url, join_url

log = logging.getLogger(__name__)

MENU_LINK_SELECTOR = ".level3 > li > a"
NEXT_PAGE_SELECTOR = ".DataGridPager > td > span + a"
LISTING_ROWS_SELECTOR = ".grid-list tbody tr:not(:first-child):not(:last-child)"

TAGS_SELECTOR = "#_ctrl0_ctl19_TagSelection_txtTags"
ACTIVE_SELECTOR = "#_ctrl0_ctl19_chkActive"
EXCLUDE_SELECTOR = "#_ctrl0_ctl19_chkExclude"
NEW_WINDOW_SELECTOR = "#_ctrl0_ctl19_chkOpenLinkInNewWindow"
URL_OVERRIDE_SELECTOR = "#_ctrl0_ctl19_txtLinkToUrl"
BODY_EDITOR_ID = "_ctrl0_ctl19_RADeditor1"
SEO_NAME_SELECTOR = "#txtSeoName"
CREATE_NEW_SELECTOR = "#_ctrl0_ctl19_btnAddNew_submitButton"

ATTACHMENT_TABLE = TableSpec(
    row_selector="div#attachmentEdit table tbody tr",
    columns={
        "title": "td:nth-child(1)",
        "type": "td:nth-child(2)",
        "docType": "td:nth-child(3)",
        "path": "td:nth-child(4)",
    },
)


class CategoryStrategy(ABC):
    """
    Everything that differs between content categories: where the listing
    lives, how a record page is read and how the create form is filled.

    The pipeline owns the lifecycle; strategies only read and write pages
    and never change an entity's state.
    """

    category: ClassVar[Category]
    entity_type: ClassVar[type[Entity]]
    menu_name: ClassVar[str]
    asset_segment: ClassVar[str]
    table: ClassVar[TableSpec]
    form: ClassVar[FormSpec]

    def __init__(
        self,
        driver: PageDriver,
        files_base_url: Optional[str] = None,
        download_root: Path = Path("files"),
        dry_run: bool = False,
    ):
        self.driver = driver
        self.files_base_url = files_base_url
        self.download_root = download_root
        self.dry_run = dry_run

    # Listing

    async def open_index(self, site_url: str) -> None:
        await self.driver.navigate(site_url)
        if not await self.driver.click_text(MENU_LINK_SELECTOR, self.menu_name):
            raise NavigationError(f"Could not find the '{self.menu_name}' menu link.")
        await self.driver.wait_until_stable()

    async def scrape_index(self, site_url: str, max_pages: int = -1) -> list[Entity]:
        """Reads the listing table page by page; ``max_pages=-1`` reads them all."""
        await self.open_index(site_url)
        entities: list[Entity] = []
        page = 0
        while max_pages < 0 or page < max_pages:
            await self.driver.wait_until_stable()
            for row in await self.driver.extract_rows(self.table):
                try:
                    entities.append(self.entity_from_row(row))
                except (ValidationError, ValueError) as e:
                    log.warning(f"[yellow]Skipping listing row {row}: {e}[/yellow]")
            page += 1
            if not await self.driver.click(NEXT_PAGE_SELECTOR):
                break
        log.info(f"Found {len(entities)} {self.category.value} on {page} page(s).")
        return entities

    def entity_from_row(self, row: dict[str, Optional[str]]) -> Entity:
        data = {key: value.strip() for key, value in row.items() if value and value.strip()}
        if "href" not in data:
            raise ValueError("the row has no record link")
        return self.entity_type.model_validate(data)

    # Record pages

    @abstractmethod
    async def scrape_details(self, entity: Entity) -> None:
        """Loads the record page and fills every category field of ``entity``."""

    @abstractmethod
    async def fill_form(self, entity: Entity) -> None:
        """Writes ``entity`` into a blank create form."""

    async def create(self, entity: Entity) -> Optional[str]:
        """
        Creates the record on the destination and returns its new href.
        In dry-run mode the form is filled but never saved and None is returned.
        """
        log.info(f"Creating: {escape(entity.label)}")
        await self.driver.create_new_and_await_empty_form(self.form)
        await self.fill_form(entity)
        await self.driver.sleep(self.driver.settings.settle_delay)
        if self.dry_run:
            log.info(f"[magenta]Dry run, not saving '{escape(entity.label)}'.[/magenta]")
            return None
        return await self.driver.submit_and_verify(self.form)

    def download_directory(self, entity: Entity) -> Path:
        return self.download_root / self.asset_segment

    # Reading helpers

    def resolve_file(self, path: Optional[str]) -> Optional[CMSFile]:
        """Turns a document path from a form into a file reference on the source server."""
        if not path or not path.strip():
            return None
        path = path.strip()
        if is_absolute_url(path):
            return CMSFile(remote_path=path)
        if not self.files_base_url:
            raise ConfigurationError(
                f"'{path}' is a relative path. Set files_base_url so files can be "
                "downloaded from the source server."
            )
        return CMSFile(remote_path=join_url(self.files_base_url, path))

    def resolve_override(self, value: Optional[str]) -> CMSFile | str | None:
        """Absolute links stay plain links; relative ones are files to migrate."""
        if not value or not value.strip():
            return None
        value = value.strip()
        if is_absolute_url(value):
            return value
        return self.resolve_file(value)

    async def read_text(self, selector: str) -> Optional[str]:
        value = await self.driver.read_field(selector)
        if value is None or not value.strip():
            return None
        return value.strip()

    async def read_date(self, selector: str) -> Optional[CMSDate]:
        value = await self.read_text(selector)
        return CMSDate.parse(value) if value else None

    async def read_time(self, prefix: str) -> Optional[CMSTime]:
        hour = await self.read_text(f"#{prefix}ddlHour")
        minute = await self.read_text(f"#{prefix}ddlMinute")
        meridiem = await self.read_text(f"#{prefix}ddlAMPM")
        if not (hour and minute and meridiem):
            return None
        return CMSTime(hour=hour, minute=minute, meridiem=meridiem)

    async def read_tags(self) -> list[str]:
        value = await self.driver.read_field(TAGS_SELECTOR)
        return value.split() if value else []

    async def read_body(self) -> Optional[str]:
        return await self.driver.read_rich_text(BODY_EDITOR_ID)

    def assign(self, entity: Entity, **values: Any) -> None:
        """Sets the fields the page had a value for; the rest stay unset."""
        for name, value in values.items():
            if value is None or value == []:
                continue
            setattr(entity, name, value)

    async def read_flag(self, entity: Entity, field_name: str, selector: str) -> None:
        """Copies a checkbox onto ``entity`` when the checkbox exists."""
        checked = await self.driver.read_checkbox(selector)
        if checked is not None:
            setattr(entity, field_name, checked)

    async def read_attachments(self) -> list[Attachment]:
        attachments = []
        for row in await self.driver.extract_rows(ATTACHMENT_TABLE):
            file = self.resolve_file(row.get("path"))
            if file is None:
                continue
            attachments.append(
                Attachment(
                    title=row.get("title") or "",
                    type=row.get("type") or "Document",
                    doc_type=row.get("docType") or "File",
                    file=file,
                )
            )
        return attachments

    # Writing helpers

    async def write_text(self, selector: str, value: Any) -> None:
        if value is None or value == "":
            return
        if not await self.driver.write_field(selector, str(value)):
            log.warning(f"[yellow]Field {selector} not found on the create form.[/yellow]")

    async def write_select(self, selector: str, text: Optional[str]) -> None:
        if text and not await self.driver.select_option(selector, text):
            log.warning(f"[yellow]Option '{escape(text)}' not found in {selector}.[/yellow]")

    async def write_time(self, prefix: str, time: Optional[CMSTime]) -> None:
        time = time or CMSTime()
        parts = time.model_dump()
        await self.write_select(f"#{prefix}ddlHour", parts["hour"])
        await self.write_select(f"#{prefix}ddlMinute", parts["minute"])
        await self.write_select(f"#{prefix}ddlAMPM", parts["meridiem"])

    async def write_tags(self, tags: list[str]) -> None:
        if tags:
            await self.write_text(TAGS_SELECTOR, " ".join(tags))

    async def write_body(self, body: Optional[str]) -> None:
        if body:
            await self.driver.write_rich_text(BODY_EDITOR_ID, body)

    async def write_override(self, selector: str, override: CMSFile | str | None) -> None:
        if isinstance(override, CMSFile):
            if override.local_path:
                await self.write_text(selector, site_path(override.local_path))
        else:
            await self.write_text(selector, override)

    async def write_flags(self, entity: Entity, flags: dict[str, str]) -> None:
        for field_name, selector in flags.items():
            await self.driver.set_checkbox(selector, bool(getattr(entity, field_name)))

    async def write_seo_name(self, entity: Entity, date: Optional[CMSDate]) -> None:
        name = build_seo_name(entity.title or "", date.to_string() if date else None)
        await self.write_text(SEO_NAME_SELECTOR, name)

    async def add_attachments(self, attachments: list[Attachment]) -> None:
        for attachment in attachments:
            if not attachment.file.local_path:
                continue
            await self.driver.click("#attachmentEdit > div > h2 > div.actionContainer > a")
            await self.write_text("#attachmentTitle", attachment.title)
            await self.driver.click("#attachmentDocumentTypeOnline")
            await self.write_text("#attachmentPathOnline", site_path(attachment.file.local_path))
            await self.driver.click(
                "#attachmentEdit > div > div.child-form-container > div.form-button-panel "
                "> a.action-button.action-button--light-bg.action-button--standard"
            )

    async def add_multimedia(self, items: list[Multimedia]) -> None:
        for item in items:
            if not item.file.local_path:
                continue
            await self.driver.click("#multimediaEdit > div > h2 > div.actionContainer > a")
            await self.driver.click("#multimediaEdit #multimediaDocumentTypeExternal")
            await self.write_text("#mediaTitle", item.title)
            await self.write_text(
                "#multimediaEdit #multimediaExternal", site_path(item.file.local_path)
            )
            await self.driver.click(
                "#multimediaEdit > div > div.child-form-container > div.form-button-panel "
                "> a.action-button.action-button--light-bg"
            )


def site_path(path: str) -> str:
    """Destination forms expect site-rooted paths for uploaded files."""
    if path.startswith(("http://", "https://", "/")):
        return path
    return f"/{path}"
