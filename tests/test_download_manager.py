"""Tests for the downloader and the worker pool, against a local HTTP server."""

from pathlib import Path

import pytest

from cms_migrator.core.download_manager import DownloadManager
from cms_migrator.exceptions import ConfigurationError
from cms_migrator.media.downloader import Downloader, DownloadOutcome, local_candidates
from cms_migrator.models.entities import PressRelease
from cms_migrator.models.values import Attachment, CMSFile


def remote(server, name: str) -> CMSFile:
    return CMSFile(remote_path=str(server.make_url(f"/files/{name}")))


def release_with(server, *names: str, href: str = "https://cms.example.com/news/1") -> PressRelease:
    return PressRelease(
        href=href,
        title=href.rsplit("/", 1)[-1],
        attachments=[
            Attachment(title=name, type="Document", file=remote(server, name)) for name in names
        ],
    )


async def test_one_missing_file_out_of_three(file_server, tmp_path):
    release = release_with(file_server, "first.pdf", "missing.pdf", "third_v1.2.pdf")
    manager = DownloadManager(workers=1, base_delay=0)

    success = await manager.download_all([release], lambda _: tmp_path / "doc_news")

    assert success is False
    first, missing, third = (a.file for a in release.attachments)

    assert missing.remote_path is None
    assert missing.local_path is None
    assert missing.custom_filename is None

    assert first.local_path == (tmp_path / "doc_news" / "first.pdf").as_posix()
    assert third.local_path == (tmp_path / "doc_news" / "third_v1-2.pdf").as_posix()
    for file in (first, third):
        with open(file.local_path, "rb") as f:
            assert f.read()

    assert manager.stats.files_downloaded == 2
    assert manager.stats.files_unavailable == 1
    assert manager.stats.files_failed == 0
    assert manager.results[0].success


async def test_forbidden_file_is_cleared_too(file_server, tmp_path):
    release = release_with(file_server, "forbidden.pdf")
    manager = DownloadManager(workers=1, base_delay=0)
    assert await manager.download_all([release], lambda _: tmp_path) is False
    assert not release.attachments[0].file.is_available
    assert manager.stats.files_failed == 0


async def test_server_error_is_retried_then_failed(file_server, tmp_path):
    release = release_with(file_server, "broken.pdf", "fine.pdf")
    file = release.attachments[0].file
    file.local_path = "files/old/broken.pdf"
    manager = DownloadManager(workers=1, max_attempts=3, base_delay=0)

    success = await manager.download_all([release], lambda _: tmp_path)

    assert success is False
    assert file_server.hits["broken.pdf"] == 3
    assert file.local_path == "files/old/broken.pdf"
    assert file.is_available
    assert release.attachments[1].file.local_path == (tmp_path / "fine.pdf").as_posix()
    assert manager.stats.files_failed == 1
    assert not manager.results[0].success


async def test_existing_files_are_skipped(file_server, tmp_path):
    (tmp_path / "kept.pdf").write_bytes(b"already here")
    release = release_with(file_server, "kept.pdf")
    release.attachments[0].file.local_path = (tmp_path / "kept.pdf").as_posix()
    manager = DownloadManager(workers=1, base_delay=0)

    assert await manager.download_all([release], lambda _: tmp_path) is True
    assert "kept.pdf" not in file_server.hits
    assert (tmp_path / "kept.pdf").read_bytes() == b"already here"
    assert release.attachments[0].file.local_path == (tmp_path / "kept.pdf").as_posix()
    assert manager.stats.files_skipped_exists == 1


async def test_a_file_left_by_another_remote_is_not_reused(file_server, tmp_path):
    (tmp_path / "kept.pdf").write_bytes(b"belongs to someone else")
    release = release_with(file_server, "kept.pdf")
    manager = DownloadManager(workers=1, base_delay=0)

    assert await manager.download_all([release], lambda _: tmp_path) is True

    file = release.attachments[0].file
    assert file_server.hits["kept.pdf"] == 1
    assert file.local_path != (tmp_path / "kept.pdf").as_posix()
    with open(file.local_path, "rb") as f:
        assert f.read() == b"content of kept.pdf"
    assert (tmp_path / "kept.pdf").read_bytes() == b"belongs to someone else"
    assert manager.stats.files_skipped_exists == 0


@pytest.mark.parametrize("workers", [1, 2])
async def test_same_filename_from_different_remotes(file_server, tmp_path, workers):
    entities = [
        release_with(file_server, f"report.pdf?rev={rev}", href=f"https://cms.example.com/news/{rev}")
        for rev in (1, 2)
    ]
    manager = DownloadManager(workers=workers, base_delay=0)

    assert await manager.download_all(entities, lambda _: tmp_path) is True

    paths = [e.attachments[0].file.local_path for e in entities]
    assert file_server.hits["report.pdf"] == 2
    assert len(set(paths)) == 2
    assert (tmp_path / "report.pdf").as_posix() in paths
    assert all(path.endswith(".pdf") for path in paths)
    assert manager.stats.files_downloaded == 2
    assert not list(tmp_path.glob("*.part"))


def test_local_candidates_depend_on_the_remote():
    first = CMSFile(remote_path="https://cms.example.com/a/report.pdf")
    second = CMSFile(remote_path="https://cms.example.com/b/report.pdf")
    plain, fallback = local_candidates(first, Path("files"))
    assert plain == Path("files/report.pdf")
    assert fallback.name.startswith("report-") and fallback.suffix == ".pdf"
    assert local_candidates(second, Path("files"))[0] == plain
    assert local_candidates(second, Path("files"))[1] != fallback
    assert local_candidates(first, Path("files")) == (plain, fallback)


async def test_workers_split_entities_and_results_keep_order(file_server, tmp_path):
    entities = [
        release_with(file_server, f"doc{i}.pdf", href=f"https://cms.example.com/news/{i}")
        for i in range(7)
    ]
    manager = DownloadManager(workers=3, base_delay=0)

    assert await manager.download_all(entities, lambda e: tmp_path / e.title) is True

    assert [r.index for r in manager.results] == list(range(7))
    assert [r.label for r in manager.results] == [str(i) for i in range(7)]
    assert manager.stats.files_downloaded == 7
    for i, entity in enumerate(entities):
        assert entity.attachments[0].file.local_path == (tmp_path / str(i) / f"doc{i}.pdf").as_posix()


async def test_worker_slices_are_disjoint(file_server, tmp_path, monkeypatch):
    seen: dict[int, list[int]] = {}
    original = DownloadManager._run_worker

    async def spy(self, start, step, entities, directory_for):
        seen[start] = list(range(start, len(entities), step))
        return await original(self, start, step, entities, directory_for)

    monkeypatch.setattr(DownloadManager, "_run_worker", spy)
    entities = [
        release_with(file_server, f"s{i}.pdf", href=f"https://cms.example.com/news/{i}")
        for i in range(5)
    ]
    await DownloadManager(workers=2, base_delay=0).download_all(entities, lambda _: tmp_path)

    assert seen == {0: [0, 2, 4], 1: [1, 3]}


async def test_no_entities():
    assert await DownloadManager().download_all([], lambda _: None) is True


@pytest.mark.parametrize("workers", [0, 6])
def test_worker_count_is_bounded(workers):
    with pytest.raises(ConfigurationError):
        DownloadManager(workers=workers)


async def test_downloader_outside_context_fails(tmp_path):
    downloader = Downloader(base_delay=0)
    file = CMSFile(remote_path="http://127.0.0.1:9/a.pdf")
    outcome = await downloader.download(file, tmp_path)
    assert outcome is DownloadOutcome.FAILED
    assert file.local_path is None
