"""HTTP implementation of the Downloader port."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncGenerator, Generator, Optional

import httpx
from tqdm import tqdm

from ..application.domain import Downloader, DownloadResult
from ..application.exceptions import DownloadError


class HttpDownloader(Downloader):
    """A downloader that fetches evergreen URLs via HTTP atomically."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = 65536,
        timeout: Optional[float] = None,
        show_progress: bool = True,
    ):
        """Initializes the downloader adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.show_progress = show_progress

    @staticmethod
    def _validate_url(url: str) -> httpx.URL:
        """Accept only absolute http(s) URLs."""
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise DownloadError(f"Malformed URL {url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise DownloadError(f"Not an HTTP(S) URL: {url!r}")
        return parsed

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_suffix(destination.suffix + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    async def _stream_chunks(
        self, response: httpx.Response, target_file: Path,
    ) -> AsyncGenerator[int, None]:
        """Produce byte chunks from a response and write them to a file."""
        with open(target_file, "wb") as f:
            async for chunk in response.aiter_bytes(self.chunk_size):
                await asyncio.to_thread(f.write, chunk)
                yield len(chunk)

    async def _consume_stream_with_progress(
        self,
        stream: AsyncGenerator[int, None],
        total_size: Optional[int],
        desc: str,
    ) -> int:
        """Consume the byte stream to update a TQDM progress bar."""

        with tqdm(
            total=total_size, unit="B", unit_scale=True, desc=desc,
            disable=not self.show_progress,
        ) as progress_bar:
            written = 0
            try:
                async for progress in stream:
                    written += progress
                    progress_bar.update(progress)
            finally:
                # Closes the target file before the '.part' cleanup runs.
                await stream.aclose()

        if total_size and written != total_size:
            raise DownloadError(f"Size mismatch: {written} != {total_size}")

        return written

    async def _stream_from_network(self, url: httpx.URL, target_file: Path) -> int:
        """Manage the network request and the streaming process."""
        async with self.client.stream(
            "GET", url, timeout=self.timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            # Content-Length counts encoded bytes; aiter_bytes yields decoded ones.
            if "Content-Encoding" in response.headers:
                length = None
            stream = self._stream_chunks(response, target_file)
            return await self._consume_stream_with_progress(
                stream, int(length) if length and length.isdigit() else None,
                target_file.name,
            )

    async def fetch(
        self, url: str, destination_dir: Path, file_name: str
    ) -> DownloadResult:
        """
        Download url to destination_dir/file_name, replacing any existing file.

        This is the public method that fulfills the Downloader port contract.
        Bytes are streamed into a '.part' file which is only renamed into
        place once the transfer completed.

        Args:
            url: An absolute http(s) URL.
            destination_dir: Created (with parents) if missing.
            file_name: Name of the file to write.

        Returns:
            A DownloadResult with the final path and the bytes written.

        Raises:
            DownloadError: On a malformed URL, a network failure, a non-success
                           HTTP status or a filesystem error.
        """

        parsed = self._validate_url(url)
        destination = Path(destination_dir) / file_name

        self.logger.info(f"Downloading {url} to {destination.name}...")
        try:
            with self._atomic_target(destination) as part_path:
                size = await self._stream_from_network(parsed, part_path)
                part_path.replace(destination)
        except httpx.HTTPStatusError as e:
            raise DownloadError(
                f"HTTP {e.response.status_code} fetching {url}"
            ) from e
        except httpx.HTTPError as e:
            raise DownloadError(
                f"{type(e).__name__} fetching {url}: {e}"
            ) from e
        except OSError as e:
            raise DownloadError(f"Could not write {destination}: {e}") from e

        self.logger.info(f"Finished downloading {destination.name} ({size} bytes)")
        return DownloadResult(local_path=destination, byte_size=size)
