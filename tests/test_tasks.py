from __future__ import annotations

import os
import time

import pytest

from adapters.base import AdapterError
from db.storage import NotFoundError
from fakes import FakeRunner, FakeVideoHost, fake_adapters
from pipeline.media import MediaComposer, MediaConfig
from pipeline.tasks import create_video_for_topic, execute_job, fail_job


def _composer(runner: FakeRunner | None = None) -> MediaComposer:
    return MediaComposer(
        MediaConfig(ffmpeg_bin="ffmpeg", ffprobe_bin="ffprobe", fontfile=None, timeout_s=None),
        runner=runner or FakeRunner(),
    )


def _manual_video_job(storage, payload: dict | None = None):
    topic = storage.create_trending_topic(title="Rover finds water", score=91, keywords=["mars"])
    video = create_video_for_topic(storage, topic)
    job = storage.create_automation_job(
        type="video_creation",
        payload={"topicId": topic.id, "manual": True, **(payload or {})},
        video_id=video.id,
    )
    return topic, video, job


def test_news_analysis_saves_topics(storage) -> None:
    job = storage.create_automation_job(type="news_analysis", payload={"manual": True})

    result = execute_job(job.id, storage=storage, adapters=fake_adapters())

    assert result == {"topicsSaved": 2}
    row = storage.get_automation_job(job.id)
    assert row.status == "completed"
    assert row.started_at is not None and row.completed_at is not None
    assert [topic.title for topic in storage.get_trending_topics()] == [
        "Quantum chip sets record",
        "Monsoon arrives early",
    ]


def test_manual_video_creation_publishes(storage, media_temp_dir) -> None:
    topic, video, job = _manual_video_job(storage)
    host = FakeVideoHost()

    result = execute_job(job.id, storage=storage, adapters=fake_adapters(video_host=host), composer=_composer())

    assert result == {"videoId": video.id, "youtubeId": "yt-abc123"}
    stored = storage.get_video(video.id)
    assert stored.status == "published"
    assert stored.youtube_id == "yt-abc123"
    assert stored.published_at is not None
    assert stored.duration == "2:05"
    assert stored.drive_file_id == "drive-video"
    assert stored.script.startswith("Today we look at Rover finds water")
    assert storage.get_trending_topic(topic.id).used is True
    assert host.uploads[0][1].title == "Breaking: Rover finds water"
    assert host.uploads[0][1].tags == ["mars"]
    assert storage.get_automation_job(job.id).result == result
    leftovers = [p for p in media_temp_dir.iterdir() if p.suffix in {".mp3", ".mp4", ".jpg"}]
    assert leftovers == []


def test_scheduled_video_creation_picks_best_unused_topic(storage) -> None:
    storage.create_trending_topic(title="Low", score=40)
    best = storage.create_trending_topic(title="High", score=97)
    job = storage.create_automation_job(type="video_creation", payload={"scheduled": True})

    result = execute_job(job.id, storage=storage, adapters=fake_adapters(), composer=_composer())

    row = storage.get_automation_job(job.id)
    assert row.video_id == result["videoId"]
    video = storage.get_video(result["videoId"])
    assert video.title == "Breaking: High"
    assert video.trending_score == 97
    assert storage.get_trending_topic(best.id).used is True


def test_video_creation_without_topics_fails_job(storage) -> None:
    job = storage.create_automation_job(type="video_creation", payload={"scheduled": True})

    with pytest.raises(RuntimeError, match="No trending topics available"):
        execute_job(job.id, storage=storage, adapters=fake_adapters(), composer=_composer())

    row = storage.get_automation_job(job.id)
    assert row.status == "failed"
    assert row.error == "No trending topics available"
    assert storage.get_videos() == []


def test_publish_false_stops_at_completed(storage) -> None:
    _, video, job = _manual_video_job(storage, {"publish": False})
    host = FakeVideoHost()

    result = execute_job(job.id, storage=storage, adapters=fake_adapters(video_host=host), composer=_composer())

    assert result == {"videoId": video.id, "youtubeId": None}
    assert storage.get_video(video.id).status == "completed"
    assert host.uploads == []


def test_upload_failure_fails_video_and_job(storage) -> None:
    _, video, job = _manual_video_job(storage)
    adapters = fake_adapters(video_host=FakeVideoHost(fail_upload=True))

    with pytest.raises(AdapterError):
        execute_job(job.id, storage=storage, adapters=adapters, composer=_composer())

    assert storage.get_video(video.id).status == "failed"
    row = storage.get_automation_job(job.id)
    assert row.status == "failed"
    assert "upload failed" in row.error


def test_adapter_setup_failure_fails_pending_video(storage, monkeypatch) -> None:
    _, video, job = _manual_video_job(storage)

    def _broken_adapters():
        raise ValueError("bad GOOGLE_SERVICE_ACCOUNT_KEY json")

    monkeypatch.setattr("pipeline.tasks.get_adapters", _broken_adapters)

    with pytest.raises(ValueError, match="GOOGLE_SERVICE_ACCOUNT_KEY"):
        execute_job(job.id, storage=storage, composer=_composer())

    assert storage.get_automation_job(job.id).status == "failed"
    assert storage.get_video(video.id).status == "failed"
    assert storage.get_next_scheduled_video() is None
    assert storage.get_dashboard_stats()["queue_count"] == 0


def test_thumbnail_failure_is_not_fatal(storage) -> None:
    _, video, job = _manual_video_job(storage)
    adapters = fake_adapters(video_host=FakeVideoHost(fail_thumbnail=True))

    execute_job(job.id, storage=storage, adapters=adapters, composer=_composer())

    assert storage.get_video(video.id).status == "published"
    assert storage.get_automation_job(job.id).status == "completed"


def test_composition_fallback_still_publishes(storage) -> None:
    _, video, job = _manual_video_job(storage)
    composer = _composer(FakeRunner(fail_on={"video"}))

    execute_job(job.id, storage=storage, adapters=fake_adapters(), composer=composer)

    assert storage.get_video(video.id).status == "published"


def test_cleanup_job_reports_counts(storage, media_temp_dir, monkeypatch) -> None:
    monkeypatch.setenv("TEMP_RETENTION_HOURS", "24")
    media_temp_dir.mkdir(parents=True, exist_ok=True)
    stale = media_temp_dir / "video_old.mp4"
    stale.write_bytes(b"x")
    old = time.time() - 48 * 3600
    os.utime(stale, (old, old))
    (media_temp_dir / "video_new.mp4").write_bytes(b"x")
    job = storage.create_automation_job(type="cleanup", payload={"scheduled": True})

    result = execute_job(job.id, storage=storage)

    assert result == {"topicsDeleted": 0, "jobsDeleted": 0, "tempFilesDeleted": 1}
    assert not stale.exists()
    assert storage.get_automation_job(job.id).status == "completed"


def test_tts_test_job(storage) -> None:
    job = storage.create_automation_job(type="tts_test", payload={"text": "Namaste"})
    adapters = fake_adapters()

    result = execute_job(job.id, storage=storage, adapters=adapters)

    assert result["bytes"] == len(b"ID3-test")
    assert result["audioPath"].endswith(".mp3")
    text, options = adapters.speech.calls[0][1:]
    assert text == "Namaste"
    assert options.voice == "en-IN-Standard-A"


def test_unknown_job_id(storage) -> None:
    with pytest.raises(NotFoundError):
        execute_job(999, storage=storage, adapters=fake_adapters())


def test_fail_job_from_pending_and_terminal(storage) -> None:
    job = storage.create_automation_job(type="news_analysis")
    fail_job(storage, job.id, "enqueue failed: redis down")
    row = storage.get_automation_job(job.id)
    assert row.status == "failed"
    assert row.error == "enqueue failed: redis down"

    fail_job(storage, job.id, "second error")
    assert storage.get_automation_job(job.id).error == "enqueue failed: redis down"
