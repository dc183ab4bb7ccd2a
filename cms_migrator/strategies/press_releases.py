"""
Press releases ("News") listing, detail page and create form.
"""

from cms_migrator.browser.driver import FormSpec, TableSpec
from cms_migrator.models.entities import Category, PressRelease
from cms_migrator.models.values import Multimedia
from cms_migrator.strategies.base import (
    ACTIVE_SELECTOR,
    CREATE_NEW_SELECTOR,
    EXCLUDE_SELECTOR,
    LISTING_ROWS_SELECTOR,
    NEW_WINDOW_SELECTOR,
    URL_OVERRIDE_SELECTOR,
    CategoryStrategy,
)

DATE_SELECTOR = "#txtPressReleaseDate"
TIME_PREFIX = "_ctrl0_ctl19_ctl03_"
CATEGORY_SELECTOR = "#_ctrl0_ctl19_ddlCategoryList"
RELATED_DOC_SELECTOR = "#_ctrl0_ctl19_ctl05_txtDocument"

MULTIMEDIA_TABLE = TableSpec(
    row_selector="div#multimediaEdit table tbody tr",
    columns={"title": "td:nth-child(1)", "type": "td:nth-child(2)", "path": "td:nth-child(3)"},
)


class PressReleaseStrategy(CategoryStrategy):
    category = Category.PRESS_RELEASES
    entity_type = PressRelease
    menu_name = "News (Press Releases)"
    asset_segment = "doc_news"
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
        key_fields=("#txtHeadline", "#txtSeoName"),
        save_selector="#_ctrl0_ctl19_ctl04_btnSave",
    )

    async def scrape_details(self, pr: PressRelease) -> None:
        await self.driver.navigate(pr.href)

        self.assign(
            pr,
            date=await self.read_date(DATE_SELECTOR),
            time=await self.read_time(TIME_PREFIX),
            news_category=await self.driver.read_select(CATEGORY_SELECTOR),
            body=await self.read_body(),
            tags=await self.read_tags(),
            related_doc=self.resolve_file(await self.driver.read_field(RELATED_DOC_SELECTOR)),
            attachments=await self.read_attachments(),
            multimedias=await self._read_multimedia(),
            url_override=self.resolve_override(await self.driver.read_field(URL_OVERRIDE_SELECTOR)),
        )

        await self.read_flag(pr, "open_in_new_window", NEW_WINDOW_SELECTOR)
        await self.read_flag(pr, "exclude", EXCLUDE_SELECTOR)
        await self.read_flag(pr, "active", ACTIVE_SELECTOR)

    async def _read_multimedia(self) -> list[Multimedia]:
        items = []
        for row in await self.driver.extract_rows(MULTIMEDIA_TABLE):
            file = self.resolve_file(row.get("path"))
            if file is not None:
                items.append(
                    Multimedia(title=row.get("title") or "", type=row.get("type") or "Image", file=file)
                )
        return items

    async def fill_form(self, pr: PressRelease) -> None:
        await self.write_text("#txtHeadline", pr.title)
        await self.write_tags(pr.tags)
        if pr.related_doc is not None:
            await self.write_text(RELATED_DOC_SELECTOR, pr.related_doc.local_path)
        await self.write_body(pr.body)
        await self.add_attachments(pr.attachments)
        await self.add_multimedia(pr.multimedias)
        await self.write_override(URL_OVERRIDE_SELECTOR, pr.url_override)
        if pr.news_category is not None:
            await self.write_select(CATEGORY_SELECTOR, pr.news_category.text)
        if pr.date is not None:
            await self.write_text(DATE_SELECTOR, pr.date.to_string())
        await self.write_time(TIME_PREFIX, pr.time)
        await self.write_flags(
            pr,
            {
                "open_in_new_window": NEW_WINDOW_SELECTOR,
                "exclude": EXCLUDE_SELECTOR,
                "active": ACTIVE_SELECTOR,
            },
        )
        await self.write_seo_name(pr, pr.date)
