from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

JobType = Literal["news_analysis", "video_creation", "cleanup", "tts_test"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class VideoOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    script: Optional[str] = None
    status: str
    youtube_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    drive_file_id: Optional[str] = None
    views: int = 0
    likes: int = 0
    duration: Optional[str] = None
    trending_topic: Optional[str] = None
    trending_score: Optional[int] = None
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None


class VideoCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    script: Optional[str] = None
    trending_topic: Optional[str] = None
    trending_score: Optional[int] = Field(default=None, ge=0, le=100)
    scheduled_at: Optional[datetime] = None


class TrendingTopicOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    source: Optional[str] = None
    url: Optional[str] = None
    score: int
    category: Optional[str] = None
    keywords: Optional[list[str]] = None
    analyzed_at: Optional[datetime] = None
    used: bool = False


class AutomationJobOut(CamelModel):
    id: int
    type: str
    status: str
    video_id: Optional[int] = None
    payload: Optional[dict[str, Any]] = None
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AutomationJobCreate(CamelModel):
    type: JobType
    payload: Optional[dict[str, Any]] = None
    video_id: Optional[int] = None


class ScheduleOut(CamelModel):
    id: int
    name: str
    cron_expression: str
    job_type: str
    is_active: bool
    config: Optional[dict[str, Any]] = None
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ScheduleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    cron_expression: str = Field(min_length=1)
    job_type: JobType
    config: Optional[dict[str, Any]] = None


class CreateVideoRequest(CamelModel):
    topic_id: int
    publish: bool = True


class TtsTestRequest(CamelModel):
    text: Optional[str] = Field(default=None, max_length=5000)


class DashboardStats(CamelModel):
    videos_created: int
    published_count: int
    total_views: int
    queue_count: int
    success_rate: int


class SystemHealth(CamelModel):
    database: bool
    gemini: bool
    youtube: bool
    drive: bool
    tts: bool
    scheduler: bool


class PipelineStatus(CamelModel):
    current_jobs: list[AutomationJobOut]
    next_scheduled: Optional[VideoOut] = None
    next_run: Optional[datetime] = None
    is_active: bool
