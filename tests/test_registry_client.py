"""Tests for the remote package fetcher."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pkgloader.exceptions import FetchError, FetchTimeout
from pkgloader.registry import RemotePackageFetcher, package_file_name
from pkgloader.versioning import PackageVersion


def _response(status_code=200, chunks=(b"PK", b"data")):
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = list(chunks)
    return response


class TestPackageUrl:
    """Test download URL and file name construction."""

    def test_default_host(self):
        fetcher = RemotePackageFetcher()
        assert fetcher.package_url("Acme.Core", "1.9.0") == (
            "https://www.nuget.org/api/v2/package/Acme.Core/1.9.0"
        )

    def test_custom_host(self):
        fetcher = RemotePackageFetcher(registry_host="packages.internal")
        assert fetcher.package_url("Acme.Core", "2.0") == (
            "https://packages.internal/api/v2/package/Acme.Core/2.0"
        )

    def test_file_name(self):
        assert package_file_name("Acme.Core", "1.9.0") == "Acme.Core.1.9.0.nupkg"


class TestFetch:
    """Test downloading archives."""

    @patch("pkgloader.common.http_client.requests.get")
    def test_saves_archive(self, mock_get, tmp_path):
        """The archive is streamed to {id}.{version}.nupkg under the destination."""
        mock_get.return_value = _response()
        fetcher = RemotePackageFetcher(timeout=5)

        path = fetcher.fetch("Acme.Core", PackageVersion("2.0"), tmp_path / "deps")

        assert path == tmp_path / "deps" / "Acme.Core.2.0.nupkg"
        assert path.read_bytes() == b"PKdata"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://www.nuget.org/api/v2/package/Acme.Core/2.0"
        assert kwargs["timeout"] == 5
        assert kwargs["stream"] is True
        mock_get.return_value.close.assert_called_once()

    @patch("pkgloader.common.http_client.requests.get")
    def test_http_error_status(self, mock_get, tmp_path):
        mock_get.return_value = _response(status_code=404)
        with pytest.raises(FetchError, match="HTTP 404") as excinfo:
            RemotePackageFetcher().fetch("Acme.Core", "9.9", tmp_path)
        assert excinfo.value.package_id == "Acme.Core"
        assert excinfo.value.version == "9.9"
        assert "Could not download package Acme.Core.9.9" in str(excinfo.value)
        assert not (tmp_path / "Acme.Core.9.9.nupkg").exists()

    @patch("pkgloader.common.http_client.requests.get")
    def test_timeout(self, mock_get, tmp_path):
        """A deadline overrun surfaces as FetchTimeout."""
        mock_get.side_effect = requests.Timeout("slow")
        with pytest.raises(FetchTimeout) as excinfo:
            RemotePackageFetcher(timeout=0.5).fetch("Acme.Core", "1.0", tmp_path)
        assert isinstance(excinfo.value, FetchError)
        assert "timed out after 0.5 seconds" in str(excinfo.value)

    @patch("pkgloader.common.http_client.requests.get")
    def test_connection_error(self, mock_get, tmp_path):
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(FetchError, match="connection error"):
            RemotePackageFetcher().fetch("Acme.Core", "1.0", tmp_path)

    @patch("pkgloader.common.http_client.requests.get")
    def test_interrupted_stream_removes_partial_file(self, mock_get, tmp_path):
        response = _response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("cut")
        mock_get.return_value = response
        with pytest.raises(FetchError):
            RemotePackageFetcher().fetch("Acme.Core", "1.0", tmp_path)
        assert not (tmp_path / "Acme.Core.1.0.nupkg").exists()

    @patch("pkgloader.common.http_client.requests.get")
    def test_error_status_keeps_existing_archive(self, mock_get, tmp_path):
        """A failed download leaves an archive from an earlier run untouched."""
        existing = tmp_path / "Acme.Core.1.0.nupkg"
        existing.write_bytes(b"PKearlier")
        mock_get.return_value = _response(status_code=503)
        with pytest.raises(FetchError, match="HTTP 503"):
            RemotePackageFetcher().fetch("Acme.Core", "1.0", tmp_path)
        assert existing.read_bytes() == b"PKearlier"

    @patch("pkgloader.common.http_client.requests.get")
    def test_connection_error_keeps_existing_archive(self, mock_get, tmp_path):
        existing = tmp_path / "Acme.Core.1.0.nupkg"
        existing.write_bytes(b"PKearlier")
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(FetchError):
            RemotePackageFetcher().fetch("Acme.Core", "1.0", tmp_path)
        assert existing.exists()
