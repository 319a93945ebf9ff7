from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import os
from pathlib import Path
import shutil
import subprocess
from typing import Callable

from common.files import remove_files, temp_path

logger = logging.getLogger(__name__)

BANNER_TEXT = "Breaking News Update"
MAX_TEXT_CHARS = 100


class MediaError(RuntimeError):
    pass


def escape_drawtext(text: str) -> str:
    return " ".join(text.replace("\r", " ").replace("\n", " ").split())[:MAX_TEXT_CHARS]


def format_duration(seconds: float) -> str:
    total = int(math.floor(max(seconds, 0.0)))
    return f"{total // 60}:{total % 60:02d}"


def _binary(env_name: str, default: str) -> str:
    configured = os.getenv(env_name, "").strip()
    if configured:
        return configured
    return shutil.which(default) or default


def _timeout() -> float | None:
    raw = os.getenv("FFMPEG_TIMEOUT_S", "").strip()
    return float(raw) if raw else None


@dataclass(frozen=True)
class MediaConfig:
    ffmpeg_bin: str
    ffprobe_bin: str
    fontfile: str | None
    timeout_s: float | None


def load_media_config() -> MediaConfig:
    return MediaConfig(
        ffmpeg_bin=_binary("FFMPEG_BIN", "ffmpeg"),
        ffprobe_bin=_binary("FFPROBE_BIN", "ffprobe"),
        fontfile=os.getenv("FFMPEG_FONTFILE") or None,
        timeout_s=_timeout(),
    )


class MediaComposer:
    """Composes narration videos and thumbnails with the ffmpeg CLI."""

    def __init__(
        self,
        config: MediaConfig | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.config = config or load_media_config()
        self._run = runner

    def _font(self) -> str:
        return f":fontfile='{self.config.fontfile}'" if self.config.fontfile else ""

    def _text_file(self, text: str) -> Path:
        path = temp_path("text", ".txt")
        path.write_text(escape_drawtext(text), encoding="utf-8")
        return path

    def _ffmpeg(self, args: list[str]) -> None:
        cmd = [self.config.ffmpeg_bin, "-y", "-hide_banner", "-loglevel", "error", *args]
        try:
            self._run(cmd, check=True, capture_output=True, timeout=self.config.timeout_s)
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
            raise MediaError(f"ffmpeg exited with {exc.returncode}: {stderr[-500:]}") from exc
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise MediaError(f"ffmpeg failed to run: {exc}") from exc

    def probe_duration(self, audio_path: Path) -> float:
        cmd = [
            self.config.ffprobe_bin,
            "-v",
            "quiet",
            "-show_entries",
            "format=duration",
            "-of",
            "csv=p=0",
            str(audio_path),
        ]
        try:
            completed = self._run(cmd, check=True, capture_output=True, timeout=self.config.timeout_s)
            return float(completed.stdout.decode("utf-8").strip())
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError, ValueError) as exc:
            logger.warning("Could not probe duration of %s: %s", audio_path, exc)
            return 0.0

    def compose_video(self, audio_path: Path, title: str, duration_s: float = 0.0) -> Path:
        """Title and banner over a dark background; falls back to the simple layout."""
        try:
            return self._compose_rich(audio_path, title, duration_s)
        except MediaError as exc:
            logger.warning("Rich composition failed, falling back to simple layout: %s", exc)
        try:
            return self.compose_simple_video(audio_path, title, duration_s)
        except MediaError as exc:
            raise MediaError(f"Video creation failed: {exc}") from exc

    def _background(self, color: str, size: str, duration_s: float) -> str:
        source = f"color=c={color}:size={size}:rate=30"
        if duration_s > 0:
            source += f":duration={math.ceil(duration_s) + 1}"
        return source

    def _compose_rich(self, audio_path: Path, title: str, duration_s: float) -> Path:
        out_path = temp_path("video", ".mp4")
        title_file = self._text_file(title)
        font = self._font()
        graph = (
            f"[0:v]drawtext=textfile='{title_file}':expansion=none{font}:"
            "fontsize=60:fontcolor=white:x=(w-text_w)/2:y=h/4:"
            "box=1:boxcolor=black@0.5:boxborderw=10[title];"
            f"[title]drawtext=text='{BANNER_TEXT}'{font}:"
            "fontsize=40:fontcolor=orange:x=(w-text_w)/2:y=h/8[output]"
        )
        try:
            self._ffmpeg(
                [
                    "-f", "lavfi", "-i", self._background("0x1a1a2e", "1920x1080", duration_s),
                    "-i", str(audio_path),
                    "-filter_complex", graph,
                    "-map", "[output]", "-map", "1:a",
                    "-c:v", "libx264", "-pix_fmt", "yuv420p", "-c:a", "aac",
                    "-shortest", str(out_path),
                ]
            )
        finally:
            remove_files([title_file])
        return out_path

    def compose_simple_video(self, audio_path: Path, title: str, duration_s: float = 0.0) -> Path:
        out_path = temp_path("simple_video", ".mp4")
        title_file = self._text_file(title)
        graph = (
            f"[0:v]drawtext=textfile='{title_file}':expansion=none{self._font()}:"
            "fontsize=48:fontcolor=white:x=(w-text_w)/2:y=(h-text_h)/2[v]"
        )
        try:
            self._ffmpeg(
                [
                    "-f", "lavfi", "-i", self._background("blue", "1280x720", duration_s),
                    "-i", str(audio_path),
                    "-filter_complex", graph,
                    "-map", "[v]", "-map", "1:a",
                    "-c:v", "libx264", "-pix_fmt", "yuv420p", "-c:a", "aac",
                    "-shortest", str(out_path),
                ]
            )
        finally:
            remove_files([title_file])
        return out_path

    def render_thumbnail(self, title: str) -> Path:
        out_path = temp_path("thumbnail", ".jpg")
        title_file = self._text_file(title)
        graph = (
            f"[0:v]drawtext=textfile='{title_file}':expansion=none{self._font()}:"
            "fontsize=48:fontcolor=white:x=(w-text_w)/2:y=(h-text_h)/2:"
            "box=1:boxcolor=red@0.8:boxborderw=20[thumb]"
        )
        try:
            self._ffmpeg(
                [
                    "-f", "lavfi", "-i", "color=c=0x1a1a2e:size=1280x720:duration=1",
                    "-filter_complex", graph,
                    "-map", "[thumb]", "-frames:v", "1", str(out_path),
                ]
            )
        except MediaError as exc:
            raise MediaError(f"Thumbnail generation failed: {exc}") from exc
        finally:
            remove_files([title_file])
        return out_path
