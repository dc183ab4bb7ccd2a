"""
Handles the low-level downloading of file references over HTTP.

Each Downloader owns its own aiohttp session, so download workers never share
a connection pool.
"""

import asyncio
import logging
import os
import uuid
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import aiofiles
import aiohttp
from rich.markup import escape

from cms_migrator.exceptions import DownloadError, FileUnavailableError
from cms_migrator.models.stats import MigrationStats
from cms_migrator.models.values import CMSFile
from cms_migrator.utils.path import (
    create_dir,
    disambiguate_file_name,
    transform_file_name,
)

log = logging.getLogger(__name__)

UNAVAILABLE_STATUSES = frozenset({403, 404})


class DownloadOutcome(str, Enum):
    DOWNLOADED = "downloaded"
    SKIPPED_EXISTS = "skipped_exists"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


class Downloader:
    """A file downloader with retry logic for network errors and server faults."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        timeout: float = 60.0,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        stats: Optional[MigrationStats] = None,
        on_file_done: Optional[Callable[[DownloadOutcome], None]] = None,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.stats = stats if stats is not None else MigrationStats()
        self._on_file_done = on_file_done
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "Downloader":
        connector = aiohttp.TCPConnector(
            limit_per_host=2,
            ttl_dns_cache=600,
            enable_cleanup_closed=True,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout, sock_connect=15),
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def download(self, file: CMSFile, directory: Path) -> DownloadOutcome:
        """
        Downloads one file reference into ``directory`` and updates it in place.

        The local name is the transliterated filename. When another remote
        already holds that name, a digest of the remote URL is appended so
        two different files never share a ``local_path``. A file on disk is
        only reused when the reference itself recorded that path in an
        earlier run. A 404 or 403 clears the reference; any other failure
        restores the previous ``local_path`` and reports FAILED.
        """
        previous_local_path = file.local_path
        outcome = await self._download_into(file, directory, previous_local_path)
        if outcome is DownloadOutcome.FAILED:
            file.local_path = previous_local_path

        self._record(outcome)
        return outcome

    async def _download_into(
        self, file: CMSFile, directory: Path, previous_local_path: Optional[str]
    ) -> DownloadOutcome:
        candidates = local_candidates(file, directory)
        for candidate in candidates:
            if candidate.as_posix() == previous_local_path and await asyncio.to_thread(
                _has_content, candidate
            ):
                log.debug(f"Already downloaded, skipping: {candidate}")
                return DownloadOutcome.SKIPPED_EXISTS

        try:
            await asyncio.to_thread(create_dir, directory)
            destination = await asyncio.to_thread(_claim, candidates)
        except OSError as e:
            log.error(f"[red]✗ Cannot reserve a local name in {directory}: {e}[/red]")
            return DownloadOutcome.FAILED
        file.local_path = destination.as_posix()

        try:
            size = await self.fetch(file.remote_path, destination)
        except FileUnavailableError as e:
            await asyncio.to_thread(_release, destination)
            log.warning(f"[yellow]⚠ {escape(str(e))} Clearing the reference.[/yellow]")
            file.mark_unavailable()
            return DownloadOutcome.UNAVAILABLE
        except (DownloadError, OSError) as e:
            await asyncio.to_thread(_release, destination)
            log.error(f"[red]✗ Download failed for {escape(file.remote_path)}: {e}[/red]")
            return DownloadOutcome.FAILED

        self.stats.bytes_downloaded += size
        log.debug(f"Downloaded {destination} ({size} bytes)")
        return DownloadOutcome.DOWNLOADED

    async def fetch(self, url: str, destination: Path) -> int:
        """
        Streams ``url`` to ``destination`` and returns the number of bytes written.

        Network errors and 5xx responses are retried with exponential backoff.
        Raises FileUnavailableError on 404/403 and DownloadError otherwise.
        """
        if self._session is None:
            raise DownloadError("Downloader used outside of its context.", url=url)

        last_error: DownloadError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._fetch_once(url, destination)
            except FileUnavailableError:
                raise
            except DownloadError as e:
                if e.status is not None and e.status < 500:
                    raise
                last_error = e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = DownloadError(f"{url} could not be fetched: {e!r}", url=url)

            log.debug(
                f"Download attempt {attempt}/{self.max_attempts} for "
                f"'{os.path.basename(destination)}' failed: {last_error}."
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        raise last_error

    async def _fetch_once(self, url: str, destination: Path) -> int:
        tmp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.part")
        async with self._session.get(url, allow_redirects=True) as response:
            if response.status in UNAVAILABLE_STATUSES:
                raise FileUnavailableError(
                    f"{url} returned status code {response.status}.",
                    url=url,
                    status=response.status,
                )
            if response.status >= 400:
                raise DownloadError(
                    f"{url} returned status code {response.status}.",
                    url=url,
                    status=response.status,
                )

            bytes_written = 0
            try:
                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_written += len(chunk)
            except BaseException:
                await asyncio.to_thread(tmp_path.unlink, missing_ok=True)
                raise

        await asyncio.to_thread(os.replace, tmp_path, destination)
        return bytes_written

    def _record(self, outcome: DownloadOutcome) -> None:
        if outcome is DownloadOutcome.DOWNLOADED:
            self.stats.files_downloaded += 1
        elif outcome is DownloadOutcome.SKIPPED_EXISTS:
            self.stats.files_skipped_exists += 1
        elif outcome is DownloadOutcome.UNAVAILABLE:
            self.stats.files_unavailable += 1
        else:
            self.stats.files_failed += 1
        if self._on_file_done:
            self._on_file_done(outcome)


def _has_content(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def local_candidates(file: CMSFile, directory: Path) -> tuple[Path, Path]:
    """The plain local name of a reference, then its remote-specific fallback."""
    name = transform_file_name(file.filename)
    return directory / name, directory / disambiguate_file_name(name, file.remote_path or "")


def _claim(candidates: tuple[Path, Path]) -> Path:
    # Creating the plain name exclusively reserves it across workers; the
    # fallback is unique to its remote and is simply overwritten.
    plain, fallback = candidates
    try:
        with open(plain, "xb"):
            pass
    except FileExistsError:
        return fallback
    return plain


def _release(path: Path) -> None:
    if path.is_file() and path.stat().st_size == 0:
        path.unlink(missing_ok=True)
