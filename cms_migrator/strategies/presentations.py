"""
Presentations listing, detail page and create form.
"""

from cms_migrator.browser.driver import FormSpec, TableSpec
from cms_migrator.models.entities import Category, Presentation
from cms_migrator.strategies.base import (
    ACTIVE_SELECTOR,
    CREATE_NEW_SELECTOR,
    EXCLUDE_SELECTOR,
    LISTING_ROWS_SELECTOR,
    NEW_WINDOW_SELECTOR,
    URL_OVERRIDE_SELECTOR,
    CategoryStrategy,
)

DATE_SELECTOR = "#txtPresentationDate"
TIME_PREFIX = "_ctrl0_ctl19_ctl00_"

# Entity field -> document path input, in the order the page lists them.
DOCUMENT_FIELDS = {
    "related_doc": "#_ctrl0_ctl19_ctl02_txtDocument",
    "audio_file": "#_ctrl0_ctl19_ctl03_txtDocument",
    "video_file": "#_ctrl0_ctl19_ctl04_txtDocument",
    "related_file": "#_ctrl0_ctl19_ctl05_txtDocument",
}


class PresentationStrategy(CategoryStrategy):
    category = Category.PRESENTATIONS
    entity_type = Presentation
    menu_name = "Presentations"
    asset_segment = "doc_presentations"
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
        key_fields=("#txtTitle", "#txtSeoName"),
        save_selector="#_ctrl0_ctl19_ctl01_btnSave",
    )

    async def scrape_details(self, presentation: Presentation) -> None:
        await self.driver.navigate(presentation.href)

        self.assign(
            presentation,
            date=await self.read_date(DATE_SELECTOR),
            time=await self.read_time(TIME_PREFIX),
            body=await self.read_body(),
            tags=await self.read_tags(),
            url_override=self.resolve_override(await self.driver.read_field(URL_OVERRIDE_SELECTOR)),
        )
        for field_name, selector in DOCUMENT_FIELDS.items():
            self.assign(
                presentation,
                **{field_name: self.resolve_file(await self.driver.read_field(selector))},
            )

        await self.read_flag(presentation, "open_in_new_window", NEW_WINDOW_SELECTOR)
        await self.read_flag(presentation, "exclude", EXCLUDE_SELECTOR)
        await self.read_flag(presentation, "active", ACTIVE_SELECTOR)

    async def fill_form(self, presentation: Presentation) -> None:
        await self.write_text("#txtTitle", presentation.title)
        await self.write_tags(presentation.tags)
        for field_name, selector in DOCUMENT_FIELDS.items():
            file = getattr(presentation, field_name)
            if file is not None:
                await self.write_text(selector, file.local_path)
        await self.write_body(presentation.body)
        await self.write_override(URL_OVERRIDE_SELECTOR, presentation.url_override)
        if presentation.date is not None:
            await self.write_text(DATE_SELECTOR, presentation.date.to_string())
        await self.write_time(TIME_PREFIX, presentation.time)
        await self.write_flags(
            presentation,
            {
                "open_in_new_window": NEW_WINDOW_SELECTOR,
                "exclude": EXCLUDE_SELECTOR,
                "active": ACTIVE_SELECTOR,
            },
        )
        await self.write_seo_name(presentation, presentation.date)
