from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from os import getenv
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from adapters import get_adapters
from api.schemas import (
    AutomationJobCreate,
    AutomationJobOut,
    CreateVideoRequest,
    DashboardStats,
    PipelineStatus,
    ScheduleCreate,
    ScheduleOut,
    SystemHealth,
    TrendingTopicOut,
    TtsTestRequest,
    VideoCreate,
    VideoOut,
)
from common.logging import setup_logging
from db.session import init_db
from db.storage import InvalidStatusTransition, NotFoundError, Storage
from pipeline.queue import submit_job
from pipeline.scheduler import DuplicateScheduleError, get_scheduler, load_scheduler_config
from pipeline.tasks import analyze_topics, create_video_for_topic

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    scheduler = get_scheduler() if load_scheduler_config().enabled else None
    if scheduler is not None:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()


app = FastAPI(title="AutoTube API", version="0.1.0", lifespan=lifespan)


def _cors_origins() -> list[str]:
    raw = getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": jsonable_encoder(error)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, str(exc))


@app.exception_handler(InvalidStatusTransition)
async def _invalid_transition(request: Request, exc: InvalidStatusTransition) -> JSONResponse:
    return _error(409, str(exc))


@app.exception_handler(DuplicateScheduleError)
async def _duplicate_schedule(request: Request, exc: DuplicateScheduleError) -> JSONResponse:
    return _error(409, str(exc))


@app.exception_handler(ValueError)
async def _bad_value(request: Request, exc: ValueError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def _validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, exc.errors())


@app.exception_handler(HTTPException)
async def _http(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, exc.detail)


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def _storage() -> Storage:
    return Storage()


def _dump(model, obj) -> dict:
    return jsonable_encoder(model.model_validate(obj))


def _dump_all(model, rows) -> List[dict]:
    return [_dump(model, row) for row in rows]


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/dashboard/stats")
def dashboard_stats() -> dict:
    return _dump(DashboardStats, _storage().get_dashboard_stats())


@app.get("/api/videos")
def list_videos() -> List[dict]:
    return _dump_all(VideoOut, _storage().get_videos())


@app.get("/api/videos/{video_id}")
def get_video(video_id: int) -> dict:
    video = _storage().get_video(video_id)
    if video is None:
        raise NotFoundError("Video", video_id)
    return _dump(VideoOut, video)


@app.post("/api/videos", status_code=201)
def create_video(req: VideoCreate) -> dict:
    video = _storage().create_video(**req.model_dump(exclude_none=True))
    return _dump(VideoOut, video)


@app.get("/api/trending-topics")
def list_trending_topics() -> List[dict]:
    return _dump_all(TrendingTopicOut, _storage().get_trending_topics())


@app.post("/api/trending-topics/analyze")
def analyze_trending_topics() -> dict:
    saved = analyze_topics(_storage(), get_adapters())
    return {"message": "Trending topics analyzed", "count": len(saved)}


@app.get("/api/automation-jobs")
def list_automation_jobs(
    status: Optional[str] = None,
    job_type: Optional[str] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=200),
) -> List[dict]:
    rows = _storage().get_automation_jobs(status=status, job_type=job_type, limit=limit)
    return _dump_all(AutomationJobOut, rows)


@app.post("/api/automation-jobs", status_code=201)
def create_automation_job(req: AutomationJobCreate) -> dict:
    job = _storage().create_automation_job(type=req.type, payload=req.payload, video_id=req.video_id)
    return _dump(AutomationJobOut, job)


@app.post("/api/manual/news-analysis")
def manual_news_analysis() -> dict:
    job = submit_job("news_analysis", {"manual": True}, storage=_storage())
    return {"message": "News analysis started", "jobId": job.id}


@app.post("/api/manual/create-video")
def manual_create_video(req: CreateVideoRequest) -> dict:
    storage = _storage()
    topic = storage.get_trending_topic(req.topic_id)
    if topic is None:
        raise NotFoundError("TrendingTopic", req.topic_id)
    video = create_video_for_topic(storage, topic)
    try:
        job = submit_job(
            "video_creation",
            {"topicId": topic.id, "manual": True, "publish": req.publish},
            video_id=video.id,
            storage=storage,
        )
    except Exception:
        storage.update_video(video.id, status="failed")
        raise
    return {"message": "Video creation started", "jobId": job.id, "videoId": video.id}


@app.post("/api/manual/test-tts")
def manual_test_tts(req: Optional[TtsTestRequest] = None) -> dict:
    payload = {"manual": True}
    if req is not None and req.text:
        payload["text"] = req.text
    job = submit_job("tts_test", payload, storage=_storage())
    return {"message": "TTS test started", "jobId": job.id}


def _vendor_health() -> dict[str, bool]:
    try:
        adapters = get_adapters()
    except Exception as exc:
        logger.warning("Adapters unavailable: %s", exc)
        return {"gemini": False, "youtube": False, "drive": False, "tts": False}
    return {
        "gemini": adapters.text.check_health(),
        "youtube": adapters.video_host.check_health(),
        "drive": adapters.files.check_health(),
        "tts": adapters.speech.check_health(),
    }


@app.get("/api/system/health")
def system_health() -> dict:
    health = {
        "database": _storage().check_health(),
        **_vendor_health(),
        "scheduler": get_scheduler().is_running(),
    }
    return _dump(SystemHealth, health)


@app.get("/api/pipeline/status")
def pipeline_status() -> dict:
    storage = _storage()
    scheduler = get_scheduler()
    status = {
        "current_jobs": storage.get_current_pipeline_jobs(),
        "next_scheduled": storage.get_next_scheduled_video(),
        "next_run": scheduler.next_run("dailyVideo"),
        "is_active": scheduler.is_running(),
    }
    return _dump(PipelineStatus, status)


@app.get("/api/schedules")
def list_schedules() -> List[dict]:
    return _dump_all(ScheduleOut, _storage().get_schedules())


@app.post("/api/schedules", status_code=201)
def create_schedule(req: ScheduleCreate) -> dict:
    schedule = get_scheduler().add_schedule(req.name, req.cron_expression, req.job_type, req.config)
    return _dump(ScheduleOut, schedule)


@app.delete("/api/schedules/{name}")
def delete_schedule(name: str) -> dict:
    if not get_scheduler().remove_schedule(name):
        raise NotFoundError("Schedule", name)
    return {"message": "Schedule removed", "name": name}
