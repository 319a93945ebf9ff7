from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from adapters.base import FileStorage, SpeechSynthesizer, TextGenerator
from common.files import remove_files
from db.models import TrendingTopic, Video

from .media import MediaComposer, format_duration

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_SECONDS = 300


@dataclass(frozen=True)
class CreationResult:
    script: str
    description: str
    duration: str
    duration_seconds: float
    video_path: Path
    thumbnail_path: Path
    audio_path: Path
    drive_folder_id: str
    drive_video_file_id: str | None
    drive_thumbnail_file_id: str | None

    @property
    def temp_files(self) -> list[Path]:
        return [self.audio_path, self.video_path, self.thumbnail_path]


class VideoCreator:
    """Turns a trending topic into a narrated video stored on the drive.

    Steps run strictly in order and any failure propagates to the caller.
    Temp files created before the failing step are removed.
    """

    def __init__(
        self,
        text: TextGenerator,
        speech: SpeechSynthesizer,
        files: FileStorage,
        composer: MediaComposer | None = None,
        script_seconds: int = DEFAULT_SCRIPT_SECONDS,
    ) -> None:
        self.text = text
        self.speech = speech
        self.files = files
        self.composer = composer or MediaComposer()
        self.script_seconds = script_seconds

    def create_video(self, video: Video, topic: TrendingTopic) -> CreationResult:
        produced: list[Path] = []
        try:
            logger.info("Generating script for topic %r", topic.title)
            script = self.text.generate_script(topic.title, self.script_seconds)
            description = self.text.generate_description(video.title, script)

            logger.info("Synthesizing narration")
            audio_path = self.speech.synthesize_script(script)
            produced.append(audio_path)
            duration_seconds = self.composer.probe_duration(audio_path)

            logger.info("Composing video (%s)", format_duration(duration_seconds))
            video_path = self.composer.compose_video(audio_path, video.title, duration_seconds)
            produced.append(video_path)
            thumbnail_path = self.composer.render_thumbnail(video.title)
            produced.append(thumbnail_path)

            folder_id = self.files.organize_video_files(video.id, video.title)
            uploaded = self.files.upload_video_assets(folder_id, video_path, thumbnail_path)
        except Exception:
            remove_files(produced)
            raise

        logger.info("Stored assets in drive folder %s", folder_id)
        return CreationResult(
            script=script,
            description=description,
            duration=format_duration(duration_seconds),
            duration_seconds=duration_seconds,
            video_path=video_path,
            thumbnail_path=thumbnail_path,
            audio_path=audio_path,
            drive_folder_id=folder_id,
            drive_video_file_id=uploaded.get("video_file_id"),
            drive_thumbnail_file_id=uploaded.get("thumbnail_file_id"),
        )
