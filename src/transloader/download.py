"""
Resumable downloads of source data files using HTTP byte ranges.

:func:`fetch` returns one of four result types so callers cannot mistake a
real failure for "no new data":

- :class:`FullData`: the whole file, from offset 0 (may include headers)
- :class:`PartialData`: only the bytes after the prior offset
- :class:`NoNewData`: the remote file has not grown
- :class:`Failed`: the server answered with an unexpected status
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .exceptions import DownloadError, HTTPStatusError
from .http import HTTPClient
from .timeutil import parse_last_modified

logger = logging.getLogger(__name__)

IDENTITY = {"Accept-Encoding": "identity"}


@dataclass(frozen=True)
class FullData:
    body: bytes
    content_length: int
    last_modified: Optional[datetime] = None

    is_full_file = True


@dataclass(frozen=True)
class PartialData:
    body: bytes
    content_length: int
    last_modified: Optional[datetime] = None

    is_full_file = False


@dataclass(frozen=True)
class NoNewData:
    content_length: int
    last_modified: Optional[datetime] = None

    body = None
    is_full_file = False


@dataclass(frozen=True)
class Failed:
    url: str
    status_code: Optional[int]
    reason: str

    body = None
    is_full_file = False

    def raise_error(self) -> None:
        raise DownloadError(self.reason, self.url, self.status_code)


DownloadResult = Union[FullData, PartialData, NoNewData, Failed]


def _full_download(http: HTTPClient, url: str) -> DownloadResult:
    logger.info(f"Downloading entire data file: {url}")
    try:
        response = http.get(url)
    except HTTPStatusError as e:
        return Failed(url, e.status_code, f"Error downloading data file: {e}")

    body = response.content
    return FullData(
        body=body,
        content_length=len(body),
        last_modified=parse_last_modified(response.headers.get("Last-Modified")),
    )


def fetch(http: HTTPClient, url: str, prior_offset: Optional[int]) -> DownloadResult:
    """
    Download ``url``, resuming from ``prior_offset`` bytes where possible.

    Without a prior offset the whole file is downloaded (compression allowed).
    Otherwise a HEAD request reads the remote ``Content-Length``:

    - shorter than the offset: the file was truncated or rotated, so it is
      downloaded again in full
    - equal to the offset: nothing to download
    - longer: only bytes ``[offset, end)`` are requested, with compression
      disabled so the range maps onto the stored bytes

    Connection failures raise :class:`TransloaderConnectionError`.
    """
    if prior_offset is None:
        return _full_download(http, url)

    try:
        # Compressed responses would report a length unrelated to the stored bytes
        probe = http.head(url, headers=IDENTITY)
    except HTTPStatusError as e:
        return Failed(url, e.status_code, f"Error probing data file: {e}")

    remote_length = int(probe.headers.get("Content-Length", 0))
    last_modified = parse_last_modified(probe.headers.get("Last-Modified"))

    if remote_length < prior_offset:
        logger.info(
            f"Remote data file length {remote_length} is shorter than expected "
            f"({prior_offset}); downloading again."
        )
        return _full_download(http, url)

    if remote_length == prior_offset:
        logger.info(f"No new data: {url}")
        return NoNewData(content_length=prior_offset, last_modified=last_modified)

    try:
        response = http.get(
            url,
            headers={**IDENTITY, "Range": f"bytes={prior_offset}-"},
        )
    except HTTPStatusError as e:
        logger.error(f"Error downloading partial data from {url}: {e}")
        return Failed(url, e.status_code, "Error downloading partial data")

    if response.status_code == 416:
        logger.info(f"No new data: {url}")
        return NoNewData(content_length=prior_offset, last_modified=last_modified)

    if response.status_code == 206:
        body = response.content
        logger.info(f"Downloaded {len(body)} bytes of partial data: {url}")
        return PartialData(
            body=body,
            content_length=prior_offset + len(body),
            last_modified=parse_last_modified(response.headers.get("Last-Modified"))
            or last_modified,
        )

    logger.error(
        f"Error downloading partial data from {url}: HTTP {response.status_code}"
    )
    return Failed(url, response.status_code, "Error downloading partial data")
