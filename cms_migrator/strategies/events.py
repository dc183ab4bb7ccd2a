"""
Events listing, detail page and create form.
"""

from cms_migrator.browser.driver import FormSpec, TableSpec
from cms_migrator.models.entities import Category, Event
from cms_migrator.models.values import SelectOption, Speaker
from cms_migrator.strategies.base import (
    ACTIVE_SELECTOR,
    CREATE_NEW_SELECTOR,
    EXCLUDE_SELECTOR,
    LISTING_ROWS_SELECTOR,
    NEW_WINDOW_SELECTOR,
    URL_OVERRIDE_SELECTOR,
    CategoryStrategy,
)

START_DATE_SELECTOR = "#txtEventStartDate"
END_DATE_SELECTOR = "#_ctrl0_ctl19_txtEventEndDate"
START_TIME_PREFIX = "_ctrl0_ctl19_ctl00_"
END_TIME_PREFIX = "_ctrl0_ctl19_ctl01_"
TIME_ZONE_SELECTOR = "#_ctrl0_ctl19_txtTimeZoneDisplayName"
LOCATION_SELECTOR = "#_ctrl0_ctl19_txtLocation"
WEBCAST_SELECTOR = "#_ctrl0_ctl19_chkIsWebcast"
RELATED_WEBCAST_SELECTOR = "#_ctrl0_ctl19_txtRelatedWebcast"
SPEAKER_APP = 'div[ng-app="SpeakerEditApp"]'

# Entity field -> drop-down holding it.
RELATED_SELECTS = {
    "related_release": "#_ctrl0_ctl19_ddlRelatedPressRelease",
    "related_financial": "#_ctrl0_ctl19_ddlRelatedFinancialReport",
    "financial_period_quarter": "#_ctrl0_ctl19_ddlRelatedReportQuarter",
    "financial_period_year": "#_ctrl0_ctl19_ddlRelatedReportYear",
    "related_presentation": "#_ctrl0_ctl19_lstRelatedPresentation",
}

SPEAKER_TABLE = TableSpec(
    row_selector=f"{SPEAKER_APP} table tbody tr",
    columns={"name": "td:nth-child(1)", "position": "td:nth-child(2)"},
)


class EventStrategy(CategoryStrategy):
    category = Category.EVENTS
    entity_type = Event
    menu_name = "Events"
    asset_segment = "doc_events"
    table = TableSpec(
        row_selector=LISTING_ROWS_SELECTOR,
        columns={
            "href": "td:nth-child(1) > a",
            "startDate": "td:nth-child(2)",
            "title": "td:nth-child(3)",
        },
    )
    form = FormSpec(
        create_new_selector=CREATE_NEW_SELECTOR,
        key_fields=("#txtTitle", "#txtSeoName"),
        save_selector="#_ctrl0_ctl19_ctl02_btnSave",
    )

    async def scrape_details(self, ev: Event) -> None:
        await self.driver.navigate(ev.href)

        self.assign(
            ev,
            start_date=await self.read_date(START_DATE_SELECTOR),
            end_date=await self.read_date(END_DATE_SELECTOR),
            start_time=await self.read_time(START_TIME_PREFIX),
            end_time=await self.read_time(END_TIME_PREFIX),
            time_zone=await self.read_text(TIME_ZONE_SELECTOR),
            tags=await self.read_tags(),
            location=await self.read_text(LOCATION_SELECTOR),
            body=await self.read_body(),
            url_override=self.resolve_override(await self.driver.read_field(URL_OVERRIDE_SELECTOR)),
            related_webcast=self.resolve_override(
                await self.driver.read_field(RELATED_WEBCAST_SELECTOR)
            ),
        )
        for field_name, selector in RELATED_SELECTS.items():
            self.assign(ev, **{field_name: _meaningful(await self.driver.read_select(selector))})
        self.assign(
            ev,
            speakers=[
                Speaker(name=row["name"], position=row.get("position") or None)
                for row in await self.driver.extract_rows(SPEAKER_TABLE)
                if row.get("name")
            ],
            attachments=await self.read_attachments(),
        )

        await self.read_flag(ev, "is_webcast", WEBCAST_SELECTOR)
        await self.read_flag(ev, "open_in_new_window", NEW_WINDOW_SELECTOR)
        await self.read_flag(ev, "exclude", EXCLUDE_SELECTOR)
        await self.read_flag(ev, "active", ACTIVE_SELECTOR)

    async def fill_form(self, ev: Event) -> None:
        await self.write_text("#txtTitle", ev.title)
        if ev.start_date is not None:
            await self.write_text(START_DATE_SELECTOR, ev.start_date.to_string())
        if ev.end_date is not None:
            await self.write_text(END_DATE_SELECTOR, ev.end_date.to_string())
        await self.write_time(START_TIME_PREFIX, ev.start_time)
        await self.write_time(END_TIME_PREFIX, ev.end_time)
        await self.write_text(TIME_ZONE_SELECTOR, ev.time_zone)
        await self.write_tags(ev.tags)
        await self.write_text(LOCATION_SELECTOR, ev.location)
        await self.write_body(ev.body)
        await self.write_override(URL_OVERRIDE_SELECTOR, ev.url_override)
        await self.write_override(RELATED_WEBCAST_SELECTOR, ev.related_webcast)
        for field_name, selector in RELATED_SELECTS.items():
            option = getattr(ev, field_name)
            if option is not None:
                await self.write_select(selector, option.text)
        await self._add_speakers(ev.speakers)
        await self.add_attachments(ev.attachments)
        await self.write_flags(
            ev,
            {
                "is_webcast": WEBCAST_SELECTOR,
                "open_in_new_window": NEW_WINDOW_SELECTOR,
                "exclude": EXCLUDE_SELECTOR,
                "active": ACTIVE_SELECTOR,
            },
        )
        await self.write_seo_name(ev, ev.start_date)

    async def _add_speakers(self, speakers: list[Speaker]) -> None:
        for speaker in speakers:
            await self.driver.click(f'{SPEAKER_APP} a[ng-click="addNewEntity()"]')
            await self.write_text('input[ng-model="edited.speakerName"]', speaker.name)
            await self.write_text('input[ng-model="edited.speakerPosition"]', speaker.position)
            await self.driver.click(
                f"{SPEAKER_APP} > div > div.child-form-container > div.form-button-panel "
                "> a.action-button.action-button--light-bg.action-button--standard"
            )


def _meaningful(option: SelectOption | None) -> SelectOption | None:
    """Drop-downs with nothing chosen report an empty placeholder option."""
    if option is None or not option.value or option.value in ("0", "-1"):
        return None
    return option
