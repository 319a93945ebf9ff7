from __future__ import annotations

from dataclasses import dataclass, replace
import json
import logging
import os
from pathlib import Path
import re
from typing import Any

from google.cloud import texttospeech
from google.oauth2 import service_account

from common.files import temp_path

from .base import AdapterError, VoiceOptions

logger = logging.getLogger(__name__)

SERVICE = "tts"

SCRIPT_VOICE = VoiceOptions(
    voice="en-IN-Standard-D",
    language_code="en-IN",
    speaking_rate=0.9,
    pitch=-2.0,
)

ABBREVIATIONS = {
    "AI": "Artificial Intelligence",
    "API": "Application Programming Interface",
    "CEO": "Chief Executive Officer",
    "CTO": "Chief Technology Officer",
    "VR": "Virtual Reality",
    "AR": "Augmented Reality",
    "IOT": "Internet of Things",
    "NASA": "National Aeronautics and Space Administration",
}

_BREAK = '<break time="500ms"/>'

# Google TTS rejects requests whose text or SSML input exceeds this many bytes.
MAX_INPUT_BYTES = 5000


@dataclass(frozen=True)
class TtsConfig:
    credentials_info: dict | None
    project_id: str | None
    default_voice: VoiceOptions
    script_voice: VoiceOptions


def _voice_from(overrides: dict[str, Any], base: VoiceOptions) -> VoiceOptions:
    return replace(
        base,
        voice=overrides.get("voice", base.voice),
        language_code=overrides.get("languageCode", base.language_code),
        gender=overrides.get("gender", base.gender),
        speaking_rate=float(overrides.get("speakingRate", base.speaking_rate)),
        pitch=float(overrides.get("pitch", base.pitch)),
    )


def load_tts_config(overrides: dict[str, Any] | None = None) -> TtsConfig:
    raw = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "").strip()
    credentials_info = json.loads(raw) if raw else None
    overrides = overrides or {}
    return TtsConfig(
        credentials_info=credentials_info,
        project_id=os.getenv("GOOGLE_PROJECT_ID") or None,
        default_voice=VoiceOptions(),
        script_voice=_voice_from(overrides, SCRIPT_VOICE),
    )


def _script_sentences(script: str) -> list[str]:
    cleaned = re.sub(r"[*_`#]", "", script)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    for short, long in ABBREVIATIONS.items():
        cleaned = re.sub(rf"\b{short}\b", long, cleaned)
    cleaned = cleaned.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return [sentence for sentence in re.split(r"(?<=[.!?]) ", cleaned) if sentence]


def _speak(sentences: list[str]) -> str:
    return "<speak>" + f" {_BREAK} ".join(sentences) + "</speak>"


def clean_script_for_tts(script: str) -> str:
    """Turn a generated script into SSML with short pauses between sentences."""
    return _speak(_script_sentences(script))


def _fit_sentence(sentence: str, limit: int) -> list[str]:
    if len(_speak([sentence]).encode()) <= limit:
        return [sentence]
    pieces: list[str] = []
    current = ""
    for word in sentence.split(" "):
        candidate = f"{current} {word}" if current else word
        if current and len(_speak([candidate]).encode()) > limit:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def split_script_ssml(script: str, limit: int = MAX_INPUT_BYTES) -> list[str]:
    """Build SSML documents for a script, each at most ``limit`` bytes.

    Documents break at sentence boundaries. A sentence that is too long on
    its own is split between words.
    """
    chunks: list[str] = []
    current: list[str] = []
    for sentence in _script_sentences(script):
        for piece in _fit_sentence(sentence, limit):
            if current and len(_speak(current + [piece]).encode()) > limit:
                chunks.append(_speak(current))
                current = []
            current.append(piece)
    if current:
        chunks.append(_speak(current))
    return chunks or [_speak([])]


class GoogleSpeechSynthesizer:
    def __init__(self, config: TtsConfig, client: Any | None = None) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            try:
                credentials = None
                if self.config.credentials_info:
                    credentials = service_account.Credentials.from_service_account_info(
                        self.config.credentials_info
                    )
                self._client = texttospeech.TextToSpeechClient(credentials=credentials)
            except Exception as exc:
                raise AdapterError(SERVICE, f"client init failed: {exc}") from exc
        return self._client

    def _request(self, synthesis_input: Any, options: VoiceOptions) -> bytes:
        voice =texttospeech.VoiceSelectionParams(
            language_code=options.language_code,
            name=options.voice,
            ssml_gender=texttospeech.SsmlVoiceGender[options.gender],
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
            speaking_rate=options.speaking_rate,
            pitch=options.pitch,
            volume_gain_db=0.0,
            sample_rate_hertz=24000,
        )
        try:
            response = self._get_client().synthesize_speech(
                input=synthesis_input, voice=voice, audio_config=audio_config
            )
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"speech synthesis failed: {exc}") from exc

        if not response.audio_content:
            raise AdapterError(SERVICE, "no audio content received")
        return response.audio_content

    def _write(self, audio: bytes) -> Path:
        out_path = temp_path("tts", ".mp3")
        out_path.write_bytes(audio)
        logger.info("Synthesized %d bytes of speech to %s", len(audio), out_path)
        return out_path

    def synthesize(self, text: str, options: VoiceOptions | None = None) -> Path:
        audio = self._request(
            texttospeech.SynthesisInput(text=text),
            options or self.config.default_voice,
        )
        return self._write(audio)

    def synthesize_script(self, script: str, options: VoiceOptions | None = None) -> Path:
        options = options or self.config.script_voice
        chunks = split_script_ssml(script)
        if len(chunks) > 1:
            logger.info("Script split into %d SSML requests", len(chunks))
        # MP3 responses carry no container header, so the streams join end to end.
        audio = b"".join(
            self._request(texttospeech.SynthesisInput(ssml=chunk), options) for chunk in chunks
        )
        return self._write(audio)

    def check_health(self) -> bool:
        try:
            response = self._get_client().list_voices(
                language_code=self.config.default_voice.language_code
            )
            return len(response.voices) > 0
        except Exception:
            return False
