from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import threading

from .base import (
    AdapterError,
    FileStorage,
    SpeechSynthesizer,
    TextGenerator,
    TopicDraft,
    UploadMetadata,
    VideoHost,
    VoiceOptions,
)

logger = logging.getLogger(__name__)

SERVICES = ("gemini", "tts", "youtube", "drive")


@dataclass(frozen=True)
class Adapters:
    text: TextGenerator
    speech: SpeechSynthesizer
    video_host: VideoHost
    files: FileStorage


def _service_config(storage, service: str) -> dict:
    if storage is None:
        return {}
    try:
        return storage.get_service_config(service)
    except Exception as exc:
        logger.warning("Could not load %s configuration, using environment defaults: %s", service, exc)
        return {}


def load_service_configs(storage=None) -> dict[str, dict]:
    return {service: _service_config(storage, service) for service in SERVICES}


def build_adapters(storage=None, configs: dict[str, dict] | None = None) -> Adapters:
    from .drive import DriveFileStorage
    from .gemini import GeminiTextGenerator, load_gemini_config
    from .google_auth import load_google_oauth_config
    from .tts import GoogleSpeechSynthesizer, load_tts_config
    from .youtube import YouTubeVideoHost

    configs = configs if configs is not None else load_service_configs(storage)
    return Adapters(
        text=GeminiTextGenerator(load_gemini_config(configs["gemini"])),
        speech=GoogleSpeechSynthesizer(load_tts_config(configs["tts"])),
        video_host=YouTubeVideoHost(load_google_oauth_config("youtube"), configs["youtube"]),
        files=DriveFileStorage(load_google_oauth_config("drive"), configs["drive"]),
    )


_lock = threading.Lock()
_cached: tuple[str, Adapters] | None = None


def get_adapters(storage=None) -> Adapters:
    """Shared adapters for the current ``api_configurations`` rows.

    The rows are read on every call; the adapters are rebuilt when they differ
    from the rows the cached set was built from. Environment variables are
    only re-read on a rebuild.
    """
    global _cached
    if storage is None:
        from db.storage import Storage

        storage = Storage()
    configs = load_service_configs(storage)
    fingerprint = json.dumps(configs, sort_keys=True, default=str)
    with _lock:
        if _cached is None or _cached[0] != fingerprint:
            if _cached is not None:
                logger.info("API configuration changed, rebuilding adapters")
            _cached = (fingerprint, build_adapters(configs=configs))
        return _cached[1]


def reset_adapters() -> None:
    global _cached
    with _lock:
        _cached = None


__all__ = [
    "AdapterError",
    "Adapters",
    "FileStorage",
    "SpeechSynthesizer",
    "TextGenerator",
    "TopicDraft",
    "UploadMetadata",
    "VideoHost",
    "VoiceOptions",
    "build_adapters",
    "get_adapters",
    "load_service_configs",
    "reset_adapters",
]
