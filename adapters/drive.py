from __future__ import annotations

from datetime import UTC, datetime
import logging
import mimetypes
from pathlib import Path
from typing import Any
from uuid import uuid4

from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload

from .base import AdapterError
from .google_auth import GoogleOAuthConfig, build_credentials

logger = logging.getLogger(__name__)

SERVICE = "drive"
SCOPES = ["https://www.googleapis.com/auth/drive.file"]
FOLDER_MIME = "application/vnd.google-apps.folder"


def folder_name_for(video_title: str, today: datetime | None = None) -> str:
    day = (today or datetime.now(UTC)).date().isoformat()
    return f"{day} - {video_title[:50]}"


def guess_mime_type(path: Path) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"


class DriveFileStorage:
    def __init__(
        self,
        oauth: GoogleOAuthConfig,
        defaults: dict[str, Any] | None = None,
        client: Any | None = None,
    ) -> None:
        self.oauth = oauth
        self.defaults = defaults or {}
        self._client = client
        self._root_folder_id: str | None = None

    def _drive(self) -> Any:
        if self._client is None:
            credentials = build_credentials(self.oauth, SCOPES, SERVICE)
            self._client = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return self._client

    def create_folder(self, name: str, parent_id: str | None = None) -> str:
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME}
        if parent_id:
            metadata["parents"] = [parent_id]
        try:
            response = self._drive().files().create(body=metadata, fields="id").execute()
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"folder creation failed: {exc}") from exc
        return response["id"]

    def upload_file(self, file_path: Path, file_name: str, parent_id: str | None = None) -> str:
        metadata: dict[str, Any] = {"name": file_name}
        if parent_id:
            metadata["parents"] = [parent_id]
        try:
            response = (
                self._drive()
                .files()
                .create(
                    body=metadata,
                    media_body=MediaFileUpload(str(file_path), mimetype=guess_mime_type(Path(file_path)), resumable=True),
                    fields="id",
                )
                .execute()
            )
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"file upload failed: {exc}") from exc
        return response["id"]

    def _parent_folder(self) -> str | None:
        prefix = self.defaults.get("folderPrefix")
        if not prefix:
            return None
        if self._root_folder_id is None:
            self._root_folder_id = self._find_folder(prefix) or self.create_folder(prefix)
        return self._root_folder_id

    def _find_folder(self, name: str) -> str | None:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        query = f"name = '{escaped}' and mimeType = '{FOLDER_MIME}' and trashed = false"
        try:
            response = self._drive().files().list(q=query, fields="files(id)", pageSize=1).execute()
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"folder lookup failed: {exc}") from exc
        files = response.get("files") or []
        return files[0]["id"] if files else None

    def organize_video_files(self, video_id: int, video_title: str) -> str:
        folder_id = self.create_folder(folder_name_for(video_title), self._parent_folder())
        logger.info("Created drive folder %s for video %s", folder_id, video_id)
        return folder_id

    def upload_video_assets(
        self,
        folder_id: str,
        video_path: Path | None = None,
        thumbnail_path: Path | None = None,
    ) -> dict[str, str]:
        result: dict[str, str] = {}
        tag = uuid4().hex[:8]
        if video_path:
            result["video_file_id"] = self.upload_file(video_path, f"video_{tag}.mp4", folder_id)
        if thumbnail_path:
            result["thumbnail_file_id"] = self.upload_file(thumbnail_path, f"thumbnail_{tag}.jpg", folder_id)
        return result

    def check_health(self) -> bool:
        try:
            response = self._drive().about().get(fields="user").execute()
            return bool(response.get("user"))
        except Exception:
            return False
