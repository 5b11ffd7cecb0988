"""Google Drive folder access for the PMO project folders."""

from __future__ import annotations

import io
import logging
from typing import Iterator, Optional

from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from .errors import ExternalServiceError
from .google_auth import SERVICE_ERRORS
from .models import AttachmentRecord, FolderAccess

logger = logging.getLogger(__name__)

FILE_FIELDS = "id,name,size"


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveFile:
    """A file inside a PMO folder."""

    def __init__(self, file_id: str, name: str, size: int) -> None:
        self.file_id = file_id
        self.name = name
        self.size = size

    @classmethod
    def from_api(cls, raw: dict) -> "DriveFile":
        return cls(raw["id"], raw.get("name", ""), int(raw.get("size") or 0))


class DriveFolder:
    """Folder handle exposing the lookups the file writer needs."""

    def __init__(self, service, folder_id: str, name: str) -> None:
        self._service = service
        self.folder_id = folder_id
        self.name = name

    def files_by_name(self, name: str) -> Iterator[DriveFile]:
        query = (
            f"'{_escape_query(self.folder_id)}' in parents and "
            f"name = '{_escape_query(name)}' and trashed = false"
        )
        params = {
            "q": query,
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "supportsAllDrives": True,
            "includeItemsFromAllDrives": True,
        }
        while True:
            try:
                payload = self._service.files().list(**params).execute()
            except SERVICE_ERRORS as exc:
                raise ExternalServiceError(f"Could not list files named {name}: {exc}") from exc
            for raw in payload.get("files", []):
                yield DriveFile.from_api(raw)
            token = payload.get("nextPageToken")
            if not token:
                return
            params["pageToken"] = token

    def create_file(self, record: AttachmentRecord, name: Optional[str] = None) -> DriveFile:
        """Upload the record's bytes, stored as ``name`` when given."""
        file_name = name or record.name
        media = MediaIoBaseUpload(io.BytesIO(record.content), mimetype=record.mime_type, resumable=False)
        try:
            raw = (
                self._service.files()
                .create(
                    body={"name": file_name, "parents": [self.folder_id]},
                    media_body=media,
                    fields=FILE_FIELDS,
                    supportsAllDrives=True,
                )
                .execute()
            )
        except SERVICE_ERRORS as exc:
            raise ExternalServiceError(f"Could not upload {file_name}: {exc}") from exc
        return DriveFile.from_api(raw)


class DriveFolderStore:
    """Thin wrapper around the Drive v3 files resource."""

    def __init__(self, service) -> None:
        self.service = service

    @classmethod
    def from_credentials(cls, credentials) -> "DriveFolderStore":
        return cls(build("drive", "v3", credentials=credentials, cache_discovery=False))

    def get_folder_by_id(self, folder_id: str) -> DriveFolder:
        try:
            raw = (
                self.service.files()
                .get(fileId=folder_id, fields="id,name,mimeType,trashed", supportsAllDrives=True)
                .execute()
            )
        except SERVICE_ERRORS as exc:
            raise ExternalServiceError(str(exc)) from exc
        if raw.get("mimeType") != "application/vnd.google-apps.folder":
            raise ExternalServiceError(f"{folder_id} is not a folder")
        if raw.get("trashed"):
            raise ExternalServiceError(f"folder {folder_id} is in the trash")
        return DriveFolder(self.service, raw["id"], raw.get("name"))


def open_folder(store: DriveFolderStore, folder_id: str) -> FolderAccess:
    """Open a folder and prove it is readable; failures come back as values."""
    try:
        folder = store.get_folder_by_id(folder_id)
        if not folder.name:
            raise ExternalServiceError("folder name is not readable")
    except ExternalServiceError as exc:
        logger.error("Cannot access folder %s: %s", folder_id, exc)
        return FolderAccess(success=False, error=f"Cannot access folder (ID: {folder_id}): {exc}")

    logger.info("Using PMO folder %s (%s)", folder.name, folder_id)
    return FolderAccess(success=True, folder=folder, name=folder.name)
