from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from embviz.core.exceptions import DriveError
from embviz.io import drive as drive_module
from embviz.io.drive import DRIVE_SCOPES, DriveClient, DriveFile, load_credentials


class FakeDownloader:
    """Writes a fixed payload in two chunks, like MediaIoBaseDownload."""

    payload = [b"II*\x00", b"raster-bytes"]

    def __init__(self, fd, request, chunksize=None):
        self.fd = fd
        self.chunks = list(self.payload)

    def next_chunk(self):
        self.fd.write(self.chunks.pop(0))
        status = MagicMock()
        status.progress.return_value = 1.0 - len(self.chunks) / 2
        return status, not self.chunks


class FailingDownloader(FakeDownloader):
    """Writes the first chunk, then the API errors out."""

    def next_chunk(self):
        if len(self.chunks) < len(self.payload):
            raise _http_error(500)
        return super().next_chunk()


def _http_error(status=403):
    return HttpError(MagicMock(status=status, reason="Forbidden"), b"permission denied")


def test_list_files_follows_pagination(drive_service):
    files_api = drive_service.files.return_value
    files_api.list.return_value.execute.side_effect = [
        {"files": [{"id": "1", "name": "clusters_k3.tif", "mimeType": "image/tiff"}], "nextPageToken": "page-2"},
        {"files": [{"id": "2", "name": "clusters_k5.tif"}]},
    ]
    client = DriveClient(service=drive_service)

    files = client.list_files("folder123")

    assert files == [
        DriveFile("1", "clusters_k3.tif", "image/tiff"),
        DriveFile("2", "clusters_k5.tif", ""),
    ]
    calls = files_api.list.call_args_list
    assert len(calls) == 2
    assert calls[0].kwargs["pageToken"] is None
    assert calls[1].kwargs["pageToken"] == "page-2"
    assert calls[0].kwargs["q"] == "'folder123' in parents and trashed=false"


def test_ensure_folder_returns_existing(drive_service):
    files_api = drive_service.files.return_value
    files_api.list.return_value.execute.return_value = {"files": [{"id": "f1", "name": "exports"}]}
    client = DriveClient(service=drive_service)

    assert client.ensure_folder("exports") == "f1"
    files_api.create.assert_not_called()


def test_ensure_folder_creates_missing(drive_service):
    files_api = drive_service.files.return_value
    files_api.list.return_value.execute.return_value = {"files": []}
    files_api.create.return_value.execute.return_value = {"id": "new-folder"}
    client = DriveClient(service=drive_service)

    assert client.ensure_folder("exports") == "new-folder"
    body = files_api.create.call_args.kwargs["body"]
    assert body == {"name": "exports", "mimeType": "application/vnd.google-apps.folder"}


def test_download_writes_file(drive_service, tmp_path, monkeypatch):
    monkeypatch.setattr(drive_module, "MediaIoBaseDownload", FakeDownloader)
    client = DriveClient(service=drive_service)

    path = client.download(DriveFile("abc", "clusters_k3.tif"), tmp_path / "dl" / "clusters_k3.tif")

    assert path.read_bytes() == b"II*\x00raster-bytes"
    drive_service.files.return_value.get_media.assert_called_once_with(fileId="abc")
    assert list(path.parent.iterdir()) == [path]


def test_download_refuses_to_overwrite(drive_service, tmp_path):
    target = tmp_path / "clusters_k3.tif"
    target.write_bytes(b"old")
    client = DriveClient(service=drive_service)

    with pytest.raises(FileExistsError):
        client.download(DriveFile("abc", "clusters_k3.tif"), target, overwrite=False)
    assert target.read_bytes() == b"old"
    drive_service.files.return_value.get_media.assert_not_called()


def test_download_overwrites_by_default(drive_service, tmp_path, monkeypatch):
    monkeypatch.setattr(drive_module, "MediaIoBaseDownload", FakeDownloader)
    target = tmp_path / "clusters_k3.tif"
    target.write_bytes(b"old")
    client = DriveClient(service=drive_service)

    client.download(DriveFile("abc", "clusters_k3.tif"), target)
    assert target.read_bytes() == b"II*\x00raster-bytes"


def test_failed_download_leaves_no_partial_file(drive_service, tmp_path, monkeypatch):
    monkeypatch.setattr(drive_module, "MediaIoBaseDownload", FailingDownloader)
    client = DriveClient(service=drive_service)

    with pytest.raises(DriveError, match="Failed to download 'clusters_k3.tif'"):
        client.download(DriveFile("abc", "clusters_k3.tif"), tmp_path / "clusters_k3.tif")
    assert list(tmp_path.iterdir()) == []


def test_failed_download_keeps_previous_file(drive_service, tmp_path, monkeypatch):
    monkeypatch.setattr(drive_module, "MediaIoBaseDownload", FailingDownloader)
    target = tmp_path / "clusters_k3.tif"
    target.write_bytes(b"old")
    client = DriveClient(service=drive_service)

    with pytest.raises(DriveError):
        client.download(DriveFile("abc", "clusters_k3.tif"), target)
    assert target.read_bytes() == b"old"
    assert list(tmp_path.iterdir()) == [target]


def test_http_error_becomes_drive_error(drive_service):
    drive_service.files.return_value.list.return_value.execute.side_effect = _http_error()
    client = DriveClient(service=drive_service)

    with pytest.raises(DriveError, match="Failed to list Drive folder f1"):
        client.list_files("f1")


def test_load_credentials_default(monkeypatch):
    creds = object()
    fake_default = MagicMock(return_value=(creds, "project"))
    monkeypatch.setattr(drive_module.google.auth, "default", fake_default)

    assert load_credentials() is creds
    fake_default.assert_called_once_with(scopes=DRIVE_SCOPES)


def test_load_credentials_service_account(monkeypatch):
    fake_from_file = MagicMock()
    monkeypatch.setattr(drive_module.service_account.Credentials, "from_service_account_file", fake_from_file)

    load_credentials("sa.json")
    fake_from_file.assert_called_once_with("sa.json", scopes=DRIVE_SCOPES)
