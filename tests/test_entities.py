"""Tests for entity records and their snapshot serialization."""

import pytest

from cms_migrator.exceptions import RecordValidationError
from cms_migrator.models.entities import (
    DashboardItem,
    DownloadList,
    Event,
    Person,
    Presentation,
    PressRelease,
)
from cms_migrator.models.state import State
from cms_migrator.models.values import (
    Attachment,
    CMSDate,
    CMSFile,
    CMSTime,
    Multimedia,
    SelectOption,
    Speaker,
)


def pdf(name: str) -> CMSFile:
    return CMSFile(remote_path=f"https://files.example.com/docs/{name}.pdf")


SAMPLES = [
    PressRelease(
        href="https://cms.example.com/news/1",
        title="Q1 Results",
        tags=["earnings", "q1"],
        date=CMSDate(month=4, day=28, year=2022),
        time=CMSTime(hour=7, minute=0, meridiem="AM"),
        news_category=SelectOption(value="12", text="Financial"),
        body="<p>Revenue grew.</p>",
        related_doc=pdf("q1"),
        attachments=[Attachment(title="Deck", type="Presentation", file=pdf("deck"))],
        multimedias=[Multimedia(title="Chart", type="Image", file=pdf("chart"))],
        url_override="https://external.example.com/q1",
        open_in_new_window=True,
        state=State.DETAILS,
    ),
    Event(
        href="https://cms.example.com/events/2",
        title="Investor Day",
        start_date=CMSDate(month=9, day=14, year=2022),
        end_date=CMSDate(month=9, day=15, year=2022),
        start_time=CMSTime(hour=9, minute=30, meridiem="AM"),
        time_zone="e.s.t.",
        location="New York",
        is_webcast=True,
        related_webcast=pdf("webcast"),
        related_release=SelectOption(value="4411", text="Q2 Results"),
        speakers=[Speaker(name="Jane Doe", position="CFO"), Speaker(name="John Roe")],
        state=State.INDEX,
    ),
    Presentation(
        href="https://cms.example.com/presentations/3",
        title="Annual Meeting",
        date=CMSDate(month=5, day=2, year=2021),
        audio_file=CMSFile(remote_path="https://files.example.com/a/audio", custom_filename="audio.mp3"),
        url_override=pdf("override"),
        exclude=True,
    ),
    DownloadList(
        href="https://cms.example.com/downloads/4",
        title="10-K",
        list_category=SelectOption(value="3", text="SEC Filings"),
        download_type="SEC Filings",
        online_url="https://sec.example.gov/filing",
        active=False,
    ),
    Person(
        href="https://cms.example.com/persons/5",
        first_name="Ada",
        last_name="Lovelace",
        title="Chief Analyst",
        department=SelectOption(value="Board", text="Board"),
        related_image=CMSFile(remote_path="https://files.example.com/img/ada.jpg", local_path="files/images/persons/ada.jpg"),
    ),
    DashboardItem(href="https://cms.example.com/dashboard/6", title="Pending page", state=State.INDEX),
]


@pytest.mark.parametrize("entity", SAMPLES, ids=lambda e: type(e).__name__)
def test_round_trip_reproduces_set_fields(entity):
    data = entity.to_dict()
    restored = type(entity).from_dict(data)
    assert restored == entity
    assert restored.model_fields_set == entity.model_fields_set
    assert restored.to_dict() == data


def test_unset_fields_are_not_serialized():
    release = PressRelease(href="https://cms.example.com/news/9", title="Short")
    assert release.to_dict() == {"href": "https://cms.example.com/news/9", "title": "Short"}
    assert "active" not in PressRelease.from_dict(release.to_dict()).model_fields_set


def test_explicit_default_survives_round_trip():
    release = PressRelease(href="https://cms.example.com/news/9", active=True, exclude=False)
    data = release.to_dict()
    assert data["active"] is True
    assert data["exclude"] is False
    assert {"active", "exclude"} <= PressRelease.from_dict(data).model_fields_set


def test_inactive_flag_survives_round_trip():
    listing = DownloadList.from_dict(SAMPLES[3].to_dict())
    assert listing.active is False


def test_keys_are_camel_case():
    data = SAMPLES[1].to_dict()
    assert data["startDate"] == "09/14/2022"
    assert data["startTime"] == {"hour": "9", "minute": "30", "meridiem": "AM"}
    assert data["isWebcast"] is True
    assert data["timeZone"] == "EST"
    assert data["relatedWebcast"]["remotePath"] == "https://files.example.com/docs/webcast.pdf"


def test_category_fields_keep_their_stored_name():
    assert SAMPLES[0].to_dict()["category"] == {"value": "12", "text": "Financial"}
    assert SAMPLES[4].to_dict()["category"] == {"value": "Board", "text": "Board"}


def test_nested_values_are_rebuilt():
    restored = PressRelease.from_dict(SAMPLES[0].to_dict())
    assert isinstance(restored.date, CMSDate)
    assert isinstance(restored.time, CMSTime)
    assert isinstance(restored.related_doc, CMSFile)
    assert isinstance(restored.attachments[0].file, CMSFile)
    assert restored.url_override == "https://external.example.com/q1"

    presentation = Presentation.from_dict(SAMPLES[2].to_dict())
    assert isinstance(presentation.url_override, CMSFile)


def test_cleared_reference_round_trips():
    release = PressRelease(href="https://cms.example.com/news/1", related_doc=pdf("gone"))
    release.related_doc.mark_unavailable()
    restored = PressRelease.from_dict(release.to_dict())
    assert restored.related_doc is not None
    assert not restored.related_doc.is_available
    assert restored.downloadables() == []


def test_downloadables_order_and_filtering():
    release = SAMPLES[0]
    names = [file.filename for file in release.downloadables()]
    # The override is a plain link, not a file.
    assert names == ["deck.pdf", "chart.pdf", "q1.pdf"]

    presentation = SAMPLES[2]
    assert [f.filename for f in presentation.downloadables()] == ["override.pdf", "audio.mp3"]


def test_download_list_rejects_both_targets():
    with pytest.raises(ValueError, match="both a file and an online URL"):
        DownloadList(
            href="https://cms.example.com/downloads/4",
            related_doc=pdf("x"),
            online_url="https://example.com/page",
        )


def test_online_url_must_be_absolute():
    with pytest.raises(ValueError, match="absolute URL"):
        DownloadList(href="https://cms.example.com/downloads/4", online_url="/page")


def test_title_length_limits():
    with pytest.raises(ValueError):
        PressRelease(title="x" * 501)
    PressRelease(title="x" * 500)
    with pytest.raises(ValueError):
        Person(title="x" * 250)


def test_time_zone_is_an_abbreviation():
    assert Event(time_zone="p.s.t.").time_zone == "PST"
    with pytest.raises(ValueError, match="too long"):
        Event(time_zone="Eastern")


def test_tags_from_string():
    assert PressRelease(tags="a  b c").tags == ["a", "b", "c"]
    assert PressRelease(tags=None).tags == []


def test_person_label_is_the_name():
    assert SAMPLES[4].label == "Ada Lovelace"
    assert Person(href="https://cms.example.com/persons/7").label == "https://cms.example.com/persons/7"


def test_from_dict_wraps_validation_errors():
    with pytest.raises(RecordValidationError, match="Invalid Event record"):
        Event.from_dict({"href": "x", "startDate": "13/01/2022"})
