"""
Entity records, one model per content category.

An entity carries the data scraped for one record plus its lifecycle state.
Serialization keeps only the fields that were actually set, so a snapshot
written by one stage and read by the next reproduces the record exactly,
including the difference between an unset flag and one explicitly set to
its default value.
"""

from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from cms_migrator.exceptions import RecordValidationError
from cms_migrator.models.state import (
    REVERT_LIFECYCLE,
    STANDARD_LIFECYCLE,
    Lifecycle,
    State,
)
from cms_migrator.models.values import (
    Attachment,
    CMSDate,
    CMSFile,
    CMSTime,
    ExternalUrl,
    Multimedia,
    SelectOption,
    Speaker,
    UrlOverride,
)

MAX_TITLE_LENGTH = 501
MAX_PERSON_TITLE_LENGTH = 250
MAX_TIME_ZONE_LENGTH = 3


class Category(str, Enum):
    PRESS_RELEASES = "press-releases"
    EVENTS = "events"
    PRESENTATIONS = "presentations"
    DOWNLOAD_LISTS = "download-lists"
    PERSONS = "persons"
    DASHBOARD = "dashboard"


def _files(*candidates: Any) -> list[CMSFile]:
    """Keeps only the candidates that are file references still pointing somewhere."""
    return [c for c in candidates if isinstance(c, CMSFile) and c.is_available]


class Entity(BaseModel):
    """Fields and behavior shared by every content category."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    category: ClassVar[Category]
    lifecycle: ClassVar[Lifecycle] = STANDARD_LIFECYCLE

    href: Optional[str] = None
    title: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    active: bool = True
    state: State = State.UNINITIALIZED
    created_href: Optional[str] = None
    error_message: Optional[str] = None
    error_state: Optional[State] = None

    @field_validator("title")
    @classmethod
    def _check_title_length(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) >= MAX_TITLE_LENGTH:
            raise ValueError(f"Title cannot be {MAX_TITLE_LENGTH} characters or longer.")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _default_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return v.split()
        return [tag for tag in v if tag]

    @property
    def label(self) -> str:
        return self.title or self.href or "<untitled>"

    def downloadables(self) -> list[CMSFile]:
        """File references reachable from this record, in download order."""
        return []

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise RecordValidationError(f"Invalid {cls.__name__} record:\n{e}") from e


class PressRelease(Entity):
    category: ClassVar[Category] = Category.PRESS_RELEASES

    date: Optional[CMSDate] = None
    time: Optional[CMSTime] = None
    # Stored under "category"; the class attribute of that name is the content type.
    news_category: Optional[SelectOption] = Field(default=None, alias="category")
    body: Optional[str] = None
    related_doc: Optional[CMSFile] = None
    attachments: list[Attachment] = Field(default_factory=list)
    multimedias: list[Multimedia] = Field(default_factory=list)
    url_override: UrlOverride = None
    open_in_new_window: bool = False
    exclude: bool = False

    def downloadables(self) -> list[CMSFile]:
        return _files(
            self.url_override,
            *(a.file for a in self.attachments),
            *(m.file for m in self.multimedias),
            self.related_doc,
        )


class Event(Entity):
    category: ClassVar[Category] = Category.EVENTS

    start_date: Optional[CMSDate] = None
    end_date: Optional[CMSDate] = None
    start_time: Optional[CMSTime] = None
    end_time: Optional[CMSTime] = None
    time_zone: Optional[str] = None
    location: Optional[str] = None
    body: Optional[str] = None
    is_webcast: bool = False
    url_override: UrlOverride = None
    related_webcast: UrlOverride = None
    related_release: Optional[SelectOption] = None
    related_financial: Optional[SelectOption] = None
    financial_period_quarter: Optional[SelectOption] = None
    financial_period_year: Optional[SelectOption] = None
    related_presentation: Optional[SelectOption] = None
    speakers: list[Speaker] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    open_in_new_window: bool = False
    exclude: bool = False

    @field_validator("time_zone")
    @classmethod
    def _check_time_zone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        compact = v.replace(".", "").strip().upper()
        if len(compact) > MAX_TIME_ZONE_LENGTH:
            raise ValueError(
                f"Time zone '{v}' is too long, use an abbreviation of at most "
                f"{MAX_TIME_ZONE_LENGTH} letters."
            )
        return compact or None

    def downloadables(self) -> list[CMSFile]:
        return _files(
            self.url_override,
            self.related_webcast,
            *(a.file for a in self.attachments),
        )


class Presentation(Entity):
    category: ClassVar[Category] = Category.PRESENTATIONS

    date: Optional[CMSDate] = None
    time: Optional[CMSTime] = None
    body: Optional[str] = None
    related_doc: Optional[CMSFile] = None
    url_override: UrlOverride = None
    audio_file: Optional[CMSFile] = None
    video_file: Optional[CMSFile] = None
    related_file: Optional[CMSFile] = None
    open_in_new_window: bool = False
    exclude: bool = False

    def downloadables(self) -> list[CMSFile]:
        return _files(
            self.url_override,
            self.related_doc,
            self.audio_file,
            self.video_file,
            self.related_file,
        )


class DownloadList(Entity):
    """
    A download listing links either to a migrated file (``related_doc``) or
    to an online resource (``online_url``), never both.
    """

    category: ClassVar[Category] = Category.DOWNLOAD_LISTS

    date: Optional[CMSDate] = None
    list_category: Optional[SelectOption] = Field(default=None, alias="category")
    description: Optional[str] = None
    download_type: Optional[str] = None
    related_doc: Optional[CMSFile] = None
    online_url: Optional[ExternalUrl] = None

    @model_validator(mode="after")
    def _check_single_target(self) -> "DownloadList":
        if self.online_url and self.related_doc is not None and self.related_doc.is_available:
            raise ValueError("A download list item cannot have both a file and an online URL.")
        return self

    def downloadables(self) -> list[CMSFile]:
        return _files(self.related_doc)


class Person(Entity):
    category: ClassVar[Category] = Category.PERSONS

    department: Optional[SelectOption] = Field(default=None, alias="category")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    body: Optional[str] = None
    highlights: Optional[str] = None
    related_image: Optional[CMSFile] = None

    @field_validator("title")
    @classmethod
    def _check_title_length(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) >= MAX_PERSON_TITLE_LENGTH:
            raise ValueError(
                f"Title cannot be {MAX_PERSON_TITLE_LENGTH} characters or longer."
            )
        return v

    @property
    def label(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or super().label

    def downloadables(self) -> list[CMSFile]:
        return _files(self.related_image)


class DashboardItem(Entity):
    """A pending change listed on the destination dashboard, reverted to its live version."""

    category: ClassVar[Category] = Category.DASHBOARD
    lifecycle: ClassVar[Lifecycle] = REVERT_LIFECYCLE


ENTITY_TYPES: dict[Category, type[Entity]] = {
    cls.category: cls
    for cls in (PressRelease, Event, Presentation, DownloadList, Person, DashboardItem)
}
