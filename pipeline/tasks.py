from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import logging
import os
from typing import Any

from rq.job import Job as RQJob

from adapters import Adapters, get_adapters
from adapters.base import UploadMetadata, VoiceOptions
from common.files import remove_files, sweep_temp_dir
from common.logging import JobContext
from db.models import AutomationJob, TrendingTopic, Video
from db.storage import JOB_TRANSITIONS, InvalidStatusTransition, NotFoundError, Storage

from .creator import VideoCreator
from .media import MediaComposer

logger = logging.getLogger(__name__)

DEFAULT_TTS_TEXT = "Hello, this is a test of the Indian English text-to-speech voice."
TTS_TEST_VOICE = VoiceOptions(voice="en-IN-Standard-A", language_code="en-IN")


@dataclass(frozen=True)
class RetentionConfig:
    topic_days: int = 7
    job_days: int = 30
    temp_hours: float = 24.0


def load_retention_config() -> RetentionConfig:
    return RetentionConfig(
        topic_days=int(os.getenv("TOPIC_RETENTION_DAYS", "7")),
        job_days=int(os.getenv("JOB_RETENTION_DAYS", "30")),
        temp_hours=float(os.getenv("TEMP_RETENTION_HOURS", "24")),
    )


def _utcnow() -> datetime:
    return datetime.now(UTC)


def video_title_for(topic: TrendingTopic) -> str:
    return f"Breaking: {topic.title}"


def create_video_for_topic(storage: Storage, topic: TrendingTopic) -> Video:
    """Create the pending Video row for a topic and mark the topic used."""
    video = storage.create_video(
        title=video_title_for(topic),
        trending_topic=topic.title,
        trending_score=topic.score,
        scheduled_at=_utcnow(),
    )
    storage.update_trending_topic(topic.id, used=True)
    return video


def fail_job(storage: Storage, job_id: int, error: str) -> None:
    """Move a job to failed from whatever non-terminal state it is in."""
    job = storage.get_automation_job(job_id)
    if job is None or not JOB_TRANSITIONS.get(job.status):
        return
    if job.status == "pending":
        storage.update_automation_job(job_id, status="running")
    storage.update_automation_job(job_id, status="failed", error=error)


def rq_on_failure(job: RQJob, connection, exc_type, exc_value, traceback) -> None:  # type: ignore[no-untyped-def]
    # Covers jobs killed by the RQ timeout before execute_job could record the error.
    job_id = job.args[0] if job.args else None
    if job_id is None:
        return
    fail_job(Storage(), int(job_id), str(exc_value) or exc_type.__name__)


def analyze_topics(storage: Storage, adapters: Adapters) -> list[TrendingTopic]:
    drafts = adapters.text.analyze_trending_topics()
    saved: list[TrendingTopic] = []
    for draft in drafts:
        try:
            saved.append(storage.create_trending_topic(**draft.as_fields(), analyzed_at=_utcnow()))
        except Exception as exc:
            logger.warning("Failed to save topic %r: %s", draft.title, exc)
    logger.info("News analysis saved %d of %d topics", len(saved), len(drafts))
    return saved


def run_news_analysis(job: AutomationJob, storage: Storage, adapters: Adapters) -> dict:
    saved = analyze_topics(storage, adapters)
    return {"topicsSaved": len(saved)}


def _resolve_video(job: AutomationJob, storage: Storage, context: JobContext) -> tuple[Video, TrendingTopic | None]:
    payload = job.payload or {}
    if job.video_id is not None:
        video = storage.get_video(job.video_id)
        if video is None:
            raise NotFoundError("Video", job.video_id)
        topic = None
        if payload.get("topicId") is not None:
            topic = storage.get_trending_topic(int(payload["topicId"]))
        return video, topic

    topics = storage.get_unused_trending_topics()
    if not topics:
        raise RuntimeError("No trending topics available")
    topic = topics[0]
    video = create_video_for_topic(storage, topic)
    storage.update_automation_job(job.id, video_id=video.id)
    context.set_video(video.id)
    return video, topic


def _fail_video(storage: Storage, video_id: int) -> None:
    try:
        storage.update_video(video_id, status="failed")
    except (InvalidStatusTransition, NotFoundError) as exc:
        logger.warning("Could not mark video %s failed: %s", video_id, exc)


def run_video_creation(
    job: AutomationJob,
    storage: Storage,
    adapters: Adapters,
    *,
    context: JobContext,
    composer: MediaComposer | None = None,
) -> dict:
    video, topic = _resolve_video(job, storage, context)
    if topic is None:
        # The topic may have been swept by cleanup since the video was queued.
        topic = TrendingTopic(
            title=video.trending_topic or video.title, score=video.trending_score or 0, keywords=[]
        )
    publish = (job.payload or {}).get("publish", True) is not False

    storage.update_video(video.id, status="processing")
    result = None
    try:
        creator = VideoCreator(adapters.text, adapters.speech, adapters.files, composer)
        result = creator.create_video(video, topic)
        storage.update_video(
            video.id,
            script=result.script,
            description=result.description,
            duration=result.duration,
            drive_file_id=result.drive_video_file_id,
            status="completed",
        )
        if not publish:
            logger.info("Publishing disabled for this run; video left completed")
            return {"videoId": video.id, "youtubeId": None}

        youtube_id = adapters.video_host.upload_video(
            result.video_path,
            UploadMetadata(
                title=video.title,
                description=result.description,
                tags=list(topic.keywords or []),
            ),
        )
        try:
            adapters.video_host.update_thumbnail(youtube_id, result.thumbnail_path)
        except Exception as exc:
            logger.warning("Thumbnail update failed for %s: %s", youtube_id, exc)

        storage.update_video(video.id, youtube_id=youtube_id, status="published", published_at=_utcnow())
        logger.info("Video published as %s", youtube_id)
        return {"videoId": video.id, "youtubeId": youtube_id}
    except Exception:
        _fail_video(storage, video.id)
        raise
    finally:
        if result is not None:
            remove_files(result.temp_files)


def run_cleanup(
    job: AutomationJob | None,
    storage: Storage,
    adapters: Adapters | None = None,
    *,
    retention: RetentionConfig | None = None,
) -> dict:
    retention = retention or load_retention_config()
    topics = storage.delete_old_trending_topics(retention.topic_days)
    jobs = storage.delete_old_automation_jobs(retention.job_days)
    temp_files = sweep_temp_dir(retention.temp_hours)
    logger.info("Cleanup removed %d topics, %d jobs, %d temp files", topics, jobs, temp_files)
    return {"topicsDeleted": topics, "jobsDeleted": jobs, "tempFilesDeleted": temp_files}


def run_tts_test(job: AutomationJob, storage: Storage, adapters: Adapters) -> dict:
    text = (job.payload or {}).get("text") or DEFAULT_TTS_TEXT
    audio_path = adapters.speech.synthesize(text, TTS_TEST_VOICE)
    return {"audioPath": str(audio_path), "bytes": audio_path.stat().st_size}


RUNNERS = {
    "news_analysis": run_news_analysis,
    "video_creation": run_video_creation,
    "cleanup": run_cleanup,
    "tts_test": run_tts_test,
}


def execute_job(
    job_id: int,
    storage: Storage | None = None,
    adapters: Adapters | None = None,
    composer: MediaComposer | None = None,
) -> dict:
    """RQ entry point: run one AutomationJob and record its outcome.

    Failures are written to the job row and re-raised so RQ marks the
    queue job failed as well.
    """
    storage = storage or Storage()
    job = storage.get_automation_job(job_id)
    if job is None:
        raise NotFoundError("AutomationJob", job_id)
    runner = RUNNERS.get(job.type)
    if runner is None:
        raise ValueError(f"Unknown job type: {job.type}")

    with JobContext(job_id=job.id, video_id=job.video_id) as context:
        job = storage.update_automation_job(job.id, status="running")
        logger.info("Running %s job", job.type)
        try:
            if adapters is None and job.type != "cleanup":
                adapters = get_adapters()
            kwargs: dict[str, Any] = {}
            if job.type == "video_creation":
                kwargs = {"context": context, "composer": composer}
            result = runner(job, storage, adapters, **kwargs)
        except Exception as exc:
            logger.exception("Job failed: %s", exc)
            storage.update_automation_job(job.id, status="failed", error=str(exc))
            if job.type == "video_creation":
                # The runner may have failed before reaching its own guard.
                video_id = storage.get_automation_job(job.id).video_id
                if video_id is not None:
                    _fail_video(storage, video_id)
            raise
        storage.update_automation_job(job.id, status="completed", result=result)
        logger.info("Job completed")
        return result
