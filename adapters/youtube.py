from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload

from .base import AdapterError, UploadMetadata
from .google_auth import GoogleOAuthConfig, build_credentials

logger = logging.getLogger(__name__)

SERVICE = "youtube"
SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]


class YouTubeVideoHost:
    def __init__(
        self,
        oauth: GoogleOAuthConfig,
        defaults: dict[str, Any] | None = None,
        client: Any | None = None,
    ) -> None:
        self.oauth = oauth
        self.defaults = defaults or {}
        self._client = client

    def _youtube(self) -> Any:
        if self._client is None:
            credentials = build_credentials(self.oauth, SCOPES, SERVICE)
            self._client = build("youtube", "v3", credentials=credentials, cache_discovery=False)
        return self._client

    def upload_video(self, video_path: Path, metadata: UploadMetadata) -> str:
        body = {
            "snippet": {
                "title": metadata.title[:100],
                "description": metadata.description[:5000],
                "tags": metadata.tags,
                "categoryId": self.defaults.get("defaultCategory", metadata.category_id),
                "defaultLanguage": "en",
                "defaultAudioLanguage": "en",
            },
            "status": {
                "privacyStatus": self.defaults.get("defaultPrivacy", metadata.privacy_status),
                "selfDeclaredMadeForKids": False,
            },
        }
        try:
            request = self._youtube().videos().insert(
                part=",".join(body.keys()),
                body=body,
                media_body=MediaFileUpload(str(video_path), chunksize=1024 * 1024, resumable=True),
            )
            response = None
            while response is None:
                status, response = request.next_chunk()
                if status is not None:
                    logger.info("YouTube upload %d%%", int(status.progress() * 100))
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"upload failed: {exc}") from exc

        video_id = response.get("id") if isinstance(response, dict) else None
        if not video_id:
            raise AdapterError(SERVICE, "upload response missing video id")
        return video_id

    def update_thumbnail(self, video_id: str, thumbnail_path: Path) -> None:
        try:
            self._youtube().thumbnails().set(
                videoId=video_id,
                media_body=MediaFileUpload(str(thumbnail_path)),
            ).execute()
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"thumbnail update failed: {exc}") from exc

    def get_video_stats(self, video_id: str) -> dict[str, int]:
        try:
            response = self._youtube().videos().list(part="statistics", id=video_id).execute()
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"stats lookup failed: {exc}") from exc
        items = response.get("items") or []
        stats = items[0].get("statistics", {}) if items else {}
        return {
            "views": int(stats.get("viewCount", 0)),
            "likes": int(stats.get("likeCount", 0)),
            "comments": int(stats.get("commentCount", 0)),
        }

    def check_health(self) -> bool:
        try:
            response = self._youtube().channels().list(part="snippet", mine=True).execute()
            return len(response.get("items") or []) > 0
        except Exception:
            return False
