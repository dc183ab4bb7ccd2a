"""
Validated value types shared by the entity records.

Every invariant is enforced when the value is constructed, so any instance
that exists is known to be well formed.
"""

import re
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    AfterValidator,
    BeforeValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_serializer,
    model_validator,
)

from cms_migrator.utils.path import normalize_local_path
from cms_migrator.utils.strings import (
    is_absolute_url,
    url_filename,
    url_has_file_extension,
)

MIN_YEAR = 1900
MAX_YEAR = 2100

_TIME_PATTERN = re.compile(
    r"^\s*(?P<hour>\d{1,2})\s*[:.]\s*(?P<minute>\d{2})\s*(?P<meridiem>[AaPp]\.?\s*[Mm]\.?)?\s*$"
)
_CLOCK_24_PATTERN = re.compile(r"^\s*(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*$")


class CMSDate(BaseModel):
    """A calendar date as the CMS stores it: range-checked, serialized as MM/DD/YYYY."""

    model_config = ConfigDict(frozen=True)

    month: int
    day: int
    year: int

    @model_validator(mode="before")
    @classmethod
    def _split_combined(cls, data: Any) -> Any:
        if isinstance(data, str):
            parts = [part.strip() for part in data.strip().split("/")]
            if len(parts) != 3 or not all(parts):
                raise ValueError(
                    f"'{data}' is not a valid date, expected the form mm/dd/yyyy."
                )
            return dict(zip(("month", "day", "year"), parts))
        return data

    @field_validator("month")
    @classmethod
    def _check_month(cls, v: int) -> int:
        if not 1 <= v <= 12:
            raise ValueError(f"{v} is not a valid month.")
        return v

    @field_validator("day")
    @classmethod
    def _check_day(cls, v: int) -> int:
        if not 1 <= v <= 31:
            raise ValueError(f"{v} is not a valid day.")
        return v

    @field_validator("year")
    @classmethod
    def _check_year(cls, v: int) -> int:
        if not MIN_YEAR <= v <= MAX_YEAR:
            raise ValueError(f"{v} is not a valid year.")
        return v

    @model_serializer
    def _serialize(self) -> str:
        return self.to_string()

    @classmethod
    def parse(cls, text: str) -> "CMSDate":
        return cls.model_validate(text)

    def to_string(self) -> str:
        return f"{self.month:02d}/{self.day:02d}/{self.year}"

    def __str__(self) -> str:
        return self.to_string()


class Meridiem(str, Enum):
    AM = "AM"
    PM = "PM"


class CMSTime(BaseModel):
    """A 12-hour clock time split into the three inputs the CMS form uses."""

    model_config = ConfigDict(frozen=True)

    hour: int = 12
    minute: int = 0
    meridiem: Meridiem = Meridiem.AM

    @model_validator(mode="before")
    @classmethod
    def _split_text(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, str):
            return data
        if info.context and info.context.get("clock") == 24:
            match = _CLOCK_24_PATTERN.match(data)
            if not match or int(match.group("hour")) > 23:
                raise ValueError(f"'{data}' is not a valid 24-hour time, expected the form hh:mm.")
            hour = int(match.group("hour"))
            return {
                "hour": hour % 12 or 12,
                "minute": match.group("minute") or 0,
                "meridiem": Meridiem.PM if hour >= 12 else Meridiem.AM,
            }
        match = _TIME_PATTERN.match(data)
        if not match:
            raise ValueError(f"'{data}' is not a valid time, expected the form h:mm AM.")
        return {
            "hour": match.group("hour"),
            "minute": match.group("minute"),
            "meridiem": match.group("meridiem") or Meridiem.AM,
        }

    @field_validator("hour")
    @classmethod
    def _check_hour(cls, v: int) -> int:
        if not 1 <= v <= 12:
            raise ValueError(f"{v} is not a valid hour.")
        return v

    @field_validator("minute")
    @classmethod
    def _check_minute(cls, v: int) -> int:
        if not 0 <= v <= 59:
            raise ValueError(f"{v} is not a valid minute.")
        return v

    @field_validator("meridiem", mode="before")
    @classmethod
    def _normalize_meridiem(cls, v: Any) -> Any:
        if isinstance(v, str):
            compact = re.sub(r"[.\s]", "", v).upper()
            if compact not in Meridiem.__members__:
                raise ValueError(f"{v} is not a valid meridiem.")
            return compact
        return v

    @model_serializer
    def _serialize(self) -> dict[str, str]:
        return {
            "hour": str(self.hour),
            "minute": f"{self.minute:02d}",
            "meridiem": self.meridiem.value,
        }

    @classmethod
    def parse(cls, text: str) -> "CMSTime":
        """Parses '3:05 PM', '3.05 p.m.' or '3:05' (AM is assumed)."""
        return cls.model_validate(text)

    @classmethod
    def from_24_hour(cls, text: str) -> "CMSTime":
        return cls.model_validate(text, context={"clock": 24})

    def __str__(self) -> str:
        return f"{self.hour}:{self.minute:02d} {self.meridiem.value}"


class SelectOption(BaseModel):
    """One option of a drop-down: the submitted value and its visible text."""

    model_config = ConfigDict(frozen=True)

    value: str
    text: str


class CMSFile(BaseModel):
    """
    A reference to a file on the source server.

    The filename is taken from ``custom_filename`` when given, otherwise from
    the last URL segment, which must then carry an extension. ``local_path``
    stays empty until the file is downloaded and is always stored with
    forward slashes. A reference whose file turned out to be gone is
    *cleared*: all three fields are unset and it serializes as ``{}``.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    # Declaration order matters: the filename validator reads the other two.
    remote_path: Optional[str] = Field(default=None, alias="remotePath")
    local_path: Optional[str] = Field(default=None, alias="localPath")
    custom_filename: Optional[str] = Field(
        default=None, alias="customFilename", validate_default=True
    )

    @field_validator("remote_path")
    @classmethod
    def _check_remote_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not is_absolute_url(v):
            raise ValueError(f"Remote path must be an absolute URL. Received '{v}'.")
        return v

    @field_validator("local_path")
    @classmethod
    def _normalize_local_path(cls, v: Optional[str]) -> Optional[str]:
        return normalize_local_path(v)

    @field_validator("custom_filename")
    @classmethod
    def _resolve_filename(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        remote = info.data.get("remote_path")
        if remote is None:
            if "remote_path" in info.data and (v or info.data.get("local_path")):
                raise ValueError("A file reference needs a remote path.")
            return v or None
        if v:
            return v
        if url_has_file_extension(remote):
            return url_filename(remote)
        raise ValueError(
            f"'{remote}' has no file extension and no custom filename was given."
        )

    @model_serializer
    def _serialize(self) -> dict[str, str]:
        data = {}
        if self.remote_path is not None:
            data["remotePath"] = self.remote_path
        if self.custom_filename is not None:
            data["customFilename"] = self.custom_filename
        if self.local_path is not None:
            data["localPath"] = self.local_path
        return data

    @property
    def is_available(self) -> bool:
        return self.remote_path is not None

    @property
    def filename(self) -> str:
        return self.custom_filename or url_filename(self.remote_path or "")

    def mark_unavailable(self) -> None:
        """Clears the reference after the remote server reported the file gone."""
        self.local_path = None
        self.remote_path = None
        self.custom_filename = None

    def __str__(self) -> str:
        return self.local_path or self.remote_path or "<unavailable>"


def _check_external_url(v: str) -> str:
    v = v.strip()
    if not is_absolute_url(v):
        raise ValueError(f"Link must be an absolute URL. Received '{v}'.")
    return v


ExternalUrl = Annotated[str, AfterValidator(_check_external_url)]

# A URL override either points at a file to migrate or is a plain link.
UrlOverride = Union[CMSFile, ExternalUrl, None]


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None

    @classmethod
    def lookup(cls, value: Any) -> Any:
        return cls(value) if isinstance(value, str) else value


class AttachmentType(_CaseInsensitiveEnum):
    DOCUMENT = "Document"
    PRESENTATION = "Presentation"
    VIDEO = "Video"
    AUDIO = "Audio"


class AttachmentDocType(_CaseInsensitiveEnum):
    FILE = "File"
    ONLINE = "Online"


class MultimediaType(_CaseInsensitiveEnum):
    IMAGE = "Image"
    VIDEO = "Video"


class Attachment(BaseModel):
    """A titled file listed under a record's attachments section."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    title: str
    type: Annotated[AttachmentType, BeforeValidator(AttachmentType.lookup)]
    doc_type: Annotated[
        AttachmentDocType, BeforeValidator(AttachmentDocType.lookup)
    ] = Field(default=AttachmentDocType.FILE, alias="docType")
    file: CMSFile


class Multimedia(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    title: str
    type: Annotated[MultimediaType, BeforeValidator(MultimediaType.lookup)]
    file: CMSFile


class Speaker(BaseModel):
    name: str
    position: Optional[str] = None
