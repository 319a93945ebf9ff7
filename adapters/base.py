from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol


class AdapterError(RuntimeError):
    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message


@dataclass(frozen=True)
class TopicDraft:
    title: str
    score: int
    description: str | None = None
    source: str | None = None
    category: str | None = None
    url: str | None = None
    keywords: list[str] = field(default_factory=list)

    def as_fields(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "source": self.source,
            "url": self.url,
            "score": self.score,
            "category": self.category,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class VoiceOptions:
    voice: str = "en-IN-Standard-A"
    language_code: str = "en-IN"
    gender: str = "NEUTRAL"
    speaking_rate: float = 1.0
    pitch: float = 0.0


@dataclass(frozen=True)
class UploadMetadata:
    title: str
    description: str
    tags: list[str] = field(default_factory=list)
    category_id: str = "25"
    privacy_status: str = "public"


class TextGenerator(Protocol):
    def analyze_trending_topics(self) -> list[TopicDraft]: ...

    def generate_script(self, topic: str, duration_s: int = 300) -> str: ...

    def generate_description(self, title: str, script: str) -> str: ...

    def check_health(self) -> bool: ...


class SpeechSynthesizer(Protocol):
    def synthesize(self, text: str, options: VoiceOptions | None = None) -> Path: ...

    def synthesize_script(self, script: str, options: VoiceOptions | None = None) -> Path: ...

    def check_health(self) -> bool: ...


class VideoHost(Protocol):
    def upload_video(self, video_path: Path, metadata: UploadMetadata) -> str: ...

    def update_thumbnail(self, video_id: str, thumbnail_path: Path) -> None: ...

    def get_video_stats(self, video_id: str) -> dict[str, int]: ...

    def check_health(self) -> bool: ...


class FileStorage(Protocol):
    def create_folder(self, name: str, parent_id: str | None = None) -> str: ...

    def upload_file(self, file_path: Path, file_name: str, parent_id: str | None = None) -> str: ...

    def organize_video_files(self, video_id: int, video_title: str) -> str: ...

    def upload_video_assets(
        self,
        folder_id: str,
        video_path: Path | None = None,
        thumbnail_path: Path | None = None,
    ) -> dict[str, str]: ...

    def check_health(self) -> bool: ...
