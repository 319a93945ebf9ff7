from __future__ import annotations

import pytest

from adapters.base import AdapterError
from db.models import TrendingTopic, Video
from fakes import FakeFiles, FakeRunner, FakeSpeech, FakeText
from pipeline.creator import VideoCreator
from pipeline.media import MediaComposer, MediaConfig, MediaError


def _composer(runner: FakeRunner) -> MediaComposer:
    return MediaComposer(
        MediaConfig(ffmpeg_bin="ffmpeg", ffprobe_bin="ffprobe", fontfile=None, timeout_s=None),
        runner=runner,
    )


def _inputs():
    video = Video(id=7, title="Breaking: Rover finds water", status="processing")
    topic = TrendingTopic(id=3, title="Rover finds water", score=91, keywords=["mars"])
    return video, topic


def test_create_video_runs_all_steps() -> None:
    text, speech, files = FakeText(), FakeSpeech(), FakeFiles()
    creator = VideoCreator(text, speech, files, _composer(FakeRunner()))
    video, topic = _inputs()

    result = creator.create_video(video, topic)

    assert [call[0] for call in text.calls] == ["script", "description"]
    assert text.calls[0] == ("script", "Rover finds water", 300)
    assert speech.calls[0][0] == "synthesize_script"
    assert result.duration == "2:05"
    assert result.duration_seconds == pytest.approx(125.4)
    assert result.video_path.exists() and result.thumbnail_path.exists() and result.audio_path.exists()
    assert result.drive_folder_id == "folder-1"
    assert result.drive_video_file_id == "drive-video"
    assert result.drive_thumbnail_file_id == "drive-thumb"
    assert files.folders == [(7, "Breaking: Rover finds water")]


def test_duration_defaults_when_probe_fails() -> None:
    creator = VideoCreator(FakeText(), FakeSpeech(), FakeFiles(), _composer(FakeRunner(fail_on={"probe"})))
    result = creator.create_video(*_inputs())
    assert result.duration == "0:00"


def test_script_failure_propagates_before_synthesis() -> None:
    speech = FakeSpeech()
    creator = VideoCreator(FakeText(fail_script=True), speech, FakeFiles(), _composer(FakeRunner()))
    with pytest.raises(AdapterError):
        creator.create_video(*_inputs())
    assert speech.calls == []


def test_media_failure_removes_partial_files(media_temp_dir) -> None:
    runner = FakeRunner(fail_on={"video", "simple_video"})
    creator = VideoCreator(FakeText(), FakeSpeech(), FakeFiles(), _composer(runner))

    with pytest.raises(MediaError):
        creator.create_video(*_inputs())
    assert not list(media_temp_dir.glob("tts_*.mp3"))
