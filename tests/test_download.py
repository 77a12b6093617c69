"""
Tests for resumable downloads.
"""

import httpx
import pytest

from transloader import download
from transloader.exceptions import DownloadError
from transloader.http import HTTPClient

URL = "http://logger.example/data/file.dat"


class TestFetch:
    """Test the partial download protocol."""

    def test_full_download_without_offset(self, http, file_server):
        """Test that a missing offset downloads the whole file."""
        file_server.files[URL] = b"line 1\nline 2\n"

        result = download.fetch(http, URL, None)

        assert isinstance(result, download.FullData)
        assert result.body == b"line 1\nline 2\n"
        assert result.content_length == 14
        assert result.is_full_file
        assert file_server.requests_for("HEAD") == []

    def test_resume_requests_only_new_bytes(self, http, file_server):
        """Test that a grown file is resumed from the prior offset."""
        file_server.files[URL] = b"line 1\nline 2\nline 3\n"

        result = download.fetch(http, URL, 7)

        assert isinstance(result, download.PartialData)
        assert result.body == b"line 2\nline 3\n"
        assert result.content_length == 21
        assert not result.is_full_file

        get = file_server.requests_for("GET")[0]
        assert get.headers["Range"] == "bytes=7-"
        assert get.headers["Accept-Encoding"] == "identity"
        head = file_server.requests_for("HEAD")[0]
        assert head.headers["Accept-Encoding"] == "identity"

    def test_length_is_compared_uncompressed(self):
        """Test that a server offering gzip still reports the raw file length."""
        body = b"line 1\nline 2\nline 3\n"

        def compressing(request):
            if request.method == "HEAD":
                if "gzip" in request.headers.get("Accept-Encoding", ""):
                    return httpx.Response(200, headers={"Content-Length": "5"})
                return httpx.Response(200, headers={"Content-Length": str(len(body))})
            start = int(request.headers["Range"].split("=")[1].rstrip("-"))
            return httpx.Response(206, content=body[start:])

        with HTTPClient(transport=httpx.MockTransport(compressing)) as client:
            result = download.fetch(client, URL, 7)

        assert isinstance(result, download.PartialData)
        assert result.body == b"line 2\nline 3\n"

    def test_resumed_bytes_concatenate_to_remote_file(self, http, file_server):
        """Test that stored bytes plus the partial body equal the remote file."""
        original = b"a,b\n1,2\n"
        file_server.files[URL] = original
        first = download.fetch(http, URL, None)

        file_server.files[URL] = original + b"3,4\n5,6\n"
        second = download.fetch(http, URL, first.content_length)

        assert first.body + second.body == file_server.files[URL]
        assert second.content_length == len(file_server.files[URL])

    def test_unchanged_file_is_no_new_data(self, http, file_server):
        """Test that an equal remote length skips the GET."""
        file_server.files[URL] = b"line 1\n"

        result = download.fetch(http, URL, 7)

        assert isinstance(result, download.NoNewData)
        assert result.content_length == 7
        assert result.body is None
        assert file_server.requests_for("GET") == []

    def test_truncated_file_is_downloaded_again(self, http, file_server):
        """Test that a remote file shorter than the offset triggers a full download."""
        file_server.files[URL] = b"new\n"

        result = download.fetch(http, URL, 100)

        assert isinstance(result, download.FullData)
        assert result.body == b"new\n"
        assert "Range" not in file_server.requests_for("GET")[0].headers

    def test_range_not_satisfiable_is_no_new_data(self, http, file_server):
        """Test that a 416 answer is treated as no new data."""
        file_server.files[URL] = b"line 1\nline 2\n"
        file_server.overrides[("GET", URL)] = 416

        result = download.fetch(http, URL, 7)

        assert isinstance(result, download.NoNewData)
        assert result.content_length == 7

    def test_server_error_on_range_request_fails(self, http, file_server):
        """Test that an unexpected status on the range GET is a failure."""
        file_server.files[URL] = b"line 1\nline 2\n"
        file_server.overrides[("GET", URL)] = 503

        result = download.fetch(http, URL, 7)

        assert isinstance(result, download.Failed)
        assert result.status_code == 503
        with pytest.raises(DownloadError, match="Error downloading partial data"):
            result.raise_error()

    def test_ignored_range_is_a_failure(self, http, file_server):
        """Test that a 200 answer to a range request is not mistaken for new data."""
        file_server.files[URL] = b"line 1\nline 2\n"

        def no_ranges(request):
            if request.method == "HEAD":
                return httpx.Response(200, headers={"Content-Length": "14"})
            return httpx.Response(200, content=b"line 1\nline 2\n")

        with HTTPClient(transport=httpx.MockTransport(no_ranges)) as client:
            result = download.fetch(client, URL, 7)

        assert isinstance(result, download.Failed)
        assert result.status_code == 200

    def test_missing_file_fails(self, http, file_server):
        """Test that a 404 on a full download is reported as a failure."""
        result = download.fetch(http, URL, None)

        assert isinstance(result, download.Failed)
        assert result.status_code == 404
        with pytest.raises(DownloadError, match="Not Found"):
            result.raise_error()

    def test_missing_file_on_probe_fails(self, http, file_server):
        """Test that a 404 on the HEAD probe is reported as a failure."""
        result = download.fetch(http, URL, 7)

        assert isinstance(result, download.Failed)
        assert result.status_code == 404
