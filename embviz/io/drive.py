"""
Google Drive access for Earth Engine export folders.

Wraps the Drive v3 REST API (google-api-python-client) with the handful of
operations the workflow needs: find or create the export folder, list its
files and download them to disk.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import google.auth
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from ..core.exceptions import DriveError

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    mime_type: str = ""


def load_credentials(credentials_file: Optional[Union[str, Path]] = None):
    """
    Credentials with Drive scope.

    A service-account key file is used when given; otherwise Application Default
    Credentials (``gcloud auth application-default login --scopes=...``).
    """
    if credentials_file:
        logger.info(f"Using service account credentials from {credentials_file}")
        return service_account.Credentials.from_service_account_file(
            str(credentials_file), scopes=DRIVE_SCOPES
        )
    credentials, _ = google.auth.default(scopes=DRIVE_SCOPES)
    return credentials


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """
    Minimal Drive v3 client.

    Parameters
    ----------
    credentials : google.auth.credentials.Credentials, optional
        Ignored when ``service`` is given; loaded with ``load_credentials`` otherwise.
    service : googleapiclient.discovery.Resource, optional
        Pre-built Drive resource (tests inject a mock here).
    chunk_size : int
        Download chunk size in bytes.
    """

    def __init__(self, credentials=None, service=None, chunk_size: int = 10 * 1024 * 1024):
        if service is None:
            if credentials is None:
                credentials = load_credentials()
            service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        self.service = service
        self.chunk_size = chunk_size

    def get_folder(self, name: str) -> Optional[str]:
        """Id of the first non-trashed folder called ``name``, or None."""
        query = f"mimeType='{FOLDER_MIME_TYPE}' and name='{_quote(name)}' and trashed=false"
        try:
            resp = self.service.files().list(q=query, fields="files(id, name)", pageSize=10).execute()
        except HttpError as e:
            raise DriveError(f"Failed to look up Drive folder '{name}': {e}") from e
        folders = resp.get("files", [])
        return folders[0]["id"] if folders else None

    def ensure_folder(self, name: str) -> str:
        """Return the id of folder ``name``, creating it when missing."""
        folder_id = self.get_folder(name)
        if folder_id is not None:
            return folder_id
        try:
            created = (
                self.service.files()
                .create(body={"name": name, "mimeType": FOLDER_MIME_TYPE}, fields="id")
                .execute()
            )
        except HttpError as e:
            raise DriveError(f"Failed to create Drive folder '{name}': {e}") from e
        logger.info(f"Created Drive folder '{name}'")
        return created["id"]

    def list_files(self, folder_id: str) -> List[DriveFile]:
        """All non-trashed files directly inside ``folder_id``, following pagination."""
        query = f"'{_quote(folder_id)}' in parents and trashed=false"
        files: List[DriveFile] = []
        page_token = None
        while True:
            try:
                resp = (
                    self.service.files()
                    .list(
                        q=query,
                        fields="nextPageToken, files(id, name, mimeType)",
                        pageSize=100,
                        pageToken=page_token,
                    )
                    .execute()
                )
            except HttpError as e:
                raise DriveError(f"Failed to list Drive folder {folder_id}: {e}") from e
            for item in resp.get("files", []):
                files.append(DriveFile(item["id"], item["name"], item.get("mimeType", "")))
            page_token = resp.get("nextPageToken")
            if not page_token:
                break
        logger.debug(f"Drive folder {folder_id}: {len(files)} file(s)")
        return files

    def download(self, file: DriveFile, path: Union[str, Path], overwrite: bool = True) -> Path:
        """
        Download ``file`` to ``path``.

        Raises
        ------
        FileExistsError
            If ``path`` exists and ``overwrite`` is False.
        DriveError
            If the Drive API request fails.
        """
        dst = Path(path)
        if dst.exists() and not overwrite:
            raise FileExistsError(f"{dst} already exists; pass overwrite=True to replace it")
        dst.parent.mkdir(parents=True, exist_ok=True)

        # chunks go straight to disk; dst only appears once the transfer is complete
        partial = dst.with_name(dst.name + ".part")
        try:
            with open(partial, "wb") as fh:
                request = self.service.files().get_media(fileId=file.id)
                downloader = MediaIoBaseDownload(fh, request, chunksize=self.chunk_size)
                done = False
                while not done:
                    status, done = downloader.next_chunk()
                    if status is not None:
                        logger.debug(f"{file.name}: {int(status.progress() * 100)}%")
        except HttpError as e:
            partial.unlink(missing_ok=True)
            raise DriveError(f"Failed to download '{file.name}': {e}") from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        partial.replace(dst)
        logger.info(f"Downloaded {file.name} -> {dst}")
        return dst


__all__ = ["DRIVE_SCOPES", "DriveFile", "DriveClient", "load_credentials"]
