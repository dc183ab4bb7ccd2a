"""
Download lists listing, detail page and create form.

A download list item points either at a document on the source server,
which is migrated, or at an online resource, which is linked as is.
"""

from pathlib import Path

from cms_migrator.browser.driver import FormSpec, TableSpec
from cms_migrator.models.entities import Category, DownloadList, Entity
from cms_migrator.strategies.base import (
    ACTIVE_SELECTOR,
    CREATE_NEW_SELECTOR,
    LISTING_ROWS_SELECTOR,
    CategoryStrategy,
)
from cms_migrator.utils.path import normalize_download_type
from cms_migrator.utils.strings import is_absolute_url, url_has_file_extension

TITLE_SELECTOR = "#_ctrl0_ctl19_txtReportTitle"
DATE_SELECTOR = "#txtReportDate"
TYPE_SELECTOR = "#_ctrl0_ctl19_ddlReportType"
DESCRIPTION_SELECTOR = "#_ctrl0_ctl19_txtReportDescription"
DOCUMENT_SELECTOR = "#_ctrl0_ctl19_ctl01_txtDocument"

# Older and newer CMS releases name the document controls differently;
# each list is tried in order.
ONLINE_RADIOS = ("#_ctrl0_ctl19_rbDownloadUrl", "#_ctrl0_ctl19_ctl01_FileTypeOnline")
FILE_RADIOS = ("#_ctrl0_ctl19_rbDownloadPath", "#_ctrl0_ctl19_ctl01_FileTypeFile")
ONLINE_INPUTS = ("#_ctrl0_ctl19_txtDownloadUrl", "#_ctrl0_ctl19_ctl01_TxtDocument", DOCUMENT_SELECTOR)
FILE_INPUTS = ("#_ctrl0_ctl19_ctl01_TxtDocument", DOCUMENT_SELECTOR, "#_ctrl0_ctl19_ctl01_Document")


class DownloadListStrategy(CategoryStrategy):
    category = Category.DOWNLOAD_LISTS
    entity_type = DownloadList
    menu_name = "Download List"
    asset_segment = "doc_downloads"
    table = TableSpec(
        row_selector=LISTING_ROWS_SELECTOR,
        columns={
            "href": "td:nth-child(1) > a",
            "date": "td:nth-child(2)",
            "title": "td:nth-child(3)",
        },
    )
    form = FormSpec(
        create_new_selector=CREATE_NEW_SELECTOR,
        key_fields=(TITLE_SELECTOR,),
        save_selector="#_ctrl0_ctl19_ctl00_btnSave",
    )

    async def scrape_details(self, dl: DownloadList) -> None:
        await self.driver.navigate(dl.href)

        list_category = await self.driver.read_select(TYPE_SELECTOR)
        self.assign(
            dl,
            date=await self.read_date(DATE_SELECTOR),
            list_category=list_category,
            download_type=list_category.text if list_category is not None else None,
            description=await self.read_text(DESCRIPTION_SELECTOR),
            tags=await self.read_tags(),
        )

        document = await self.read_text(DOCUMENT_SELECTOR)
        if document and is_absolute_url(document) and not url_has_file_extension(document):
            dl.online_url = document
        else:
            self.assign(dl, related_doc=self.resolve_file(document))

        await self.read_flag(dl, "active", ACTIVE_SELECTOR)

    async def fill_form(self, dl: DownloadList) -> None:
        await self.write_text(TITLE_SELECTOR, dl.title)
        if dl.list_category is not None:
            await self.write_select(TYPE_SELECTOR, dl.list_category.text)
        await self.write_text(DESCRIPTION_SELECTOR, dl.description)
        await self.write_tags(dl.tags)

        if dl.online_url:
            await self._first_click(ONLINE_RADIOS)
            await self._first_write(ONLINE_INPUTS, dl.online_url)
        elif dl.related_doc is not None and dl.related_doc.local_path:
            await self._first_click(FILE_RADIOS)
            await self._first_write(FILE_INPUTS, dl.related_doc.local_path)

        if dl.date is not None:
            await self.write_text(DATE_SELECTOR, dl.date.to_string())
        await self.write_flags(dl, {"active": ACTIVE_SELECTOR})

    def download_directory(self, entity: Entity) -> Path:
        download_type = getattr(entity, "download_type", None)
        return self.download_root / self.asset_segment / normalize_download_type(download_type)

    async def _first_click(self, selectors: tuple[str, ...]) -> bool:
        for selector in selectors:
            if await self.driver.click(selector):
                return True
        return False

    async def _first_write(self, selectors: tuple[str, ...], value: str) -> bool:
        for selector in selectors:
            if await self.driver.write_field(selector, value):
                return True
        return False
