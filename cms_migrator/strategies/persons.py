"""
Person list listing, detail page and create form.
"""

from typing import Optional

from cms_migrator.browser.driver import FormSpec, TableSpec
from cms_migrator.models.entities import Category, Entity, Person
from cms_migrator.models.values import SelectOption
from cms_migrator.strategies.base import (
    ACTIVE_SELECTOR,
    CREATE_NEW_SELECTOR,
    LISTING_ROWS_SELECTOR,
    CategoryStrategy,
)

DEPARTMENT_SELECTOR = "#_ctrl0_ctl19_ddlDepartment"
FIRST_NAME_SELECTOR = "#_ctrl0_ctl19_txtFirstName"
LAST_NAME_SELECTOR = "#_ctrl0_ctl19_txtLastName"
SUFFIX_SELECTOR = "#_ctrl0_ctl19_txtSuffix"
TITLE_SELECTOR = "#_ctrl0_ctl19_txtTitle"
DESCRIPTION_SELECTOR = "#_ctrl0_ctl19_txtDescription"
HIGHLIGHTS_SELECTOR = "#_ctrl0_ctl19_txtCareerHighlight"
PHOTO_SELECTOR = "#_ctrl0_ctl19_UCPhotoPath_imgImage"


def split_name(name: str) -> tuple[Optional[str], Optional[str]]:
    """Splits a listed full name in half by words: first half first name, rest last name."""
    words = name.split()
    if not words:
        return None, None
    middle = len(words) // 2 or 1
    first = " ".join(words[:middle])
    last = " ".join(words[middle:])
    return first, last or None


class PersonStrategy(CategoryStrategy):
    category = Category.PERSONS
    entity_type = Person
    menu_name = "Person List"
    asset_segment = "images/persons"
    table = TableSpec(
        row_selector=LISTING_ROWS_SELECTOR,
        columns={"href": "td:nth-child(1) > a", "name": "td:nth-child(2)"},
    )
    form = FormSpec(
        create_new_selector=CREATE_NEW_SELECTOR,
        key_fields=(TITLE_SELECTOR, DESCRIPTION_SELECTOR),
        save_selector="#_ctrl0_ctl19_ctl00_btnSave",
    )

    def entity_from_row(self, row: dict[str, Optional[str]]) -> Entity:
        if not row.get("href"):
            raise ValueError("the row has no record link")
        first_name, last_name = split_name(row.get("name") or "")
        return Person(href=row.get("href"), first_name=first_name, last_name=last_name)

    async def scrape_details(self, person: Person) -> None:
        await self.driver.navigate(person.href)

        department = await self.driver.read_select(DEPARTMENT_SELECTOR)
        if department is not None:
            # The create form matches departments by their visible name.
            person.department = SelectOption(value=department.text, text=department.text)
        self.assign(
            person,
            first_name=await self.read_text(FIRST_NAME_SELECTOR),
            last_name=await self.read_text(LAST_NAME_SELECTOR),
            suffix=await self.read_text(SUFFIX_SELECTOR),
            title=await self.read_text(TITLE_SELECTOR),
            body=await self.read_text(DESCRIPTION_SELECTOR),
            highlights=await self.read_text(HIGHLIGHTS_SELECTOR),
            tags=await self.read_tags(),
            related_image=self.resolve_file(
                await self.driver.read_attribute(PHOTO_SELECTOR, "src")
            ),
        )
        await self.read_flag(person, "active", ACTIVE_SELECTOR)

    async def fill_form(self, person: Person) -> None:
        await self.write_text(FIRST_NAME_SELECTOR, person.first_name)
        await self.write_text(LAST_NAME_SELECTOR, person.last_name)
        await self.write_text(SUFFIX_SELECTOR, person.suffix)
        await self.write_text(TITLE_SELECTOR, person.title)
        await self.write_tags(person.tags)
        await self.write_text(DESCRIPTION_SELECTOR, person.body)
        await self.write_text(HIGHLIGHTS_SELECTOR, person.highlights)
        if person.department is not None:
            await self.write_select(DEPARTMENT_SELECTOR, person.department.text)
        if person.related_image is not None:
            await self.write_text(PHOTO_SELECTOR, person.related_image.local_path)
        await self.write_flags(person, {"active": ACTIVE_SELECTOR})
