"""Persistence layer: CRUD accessors over the AutoTube tables.

Every public method opens its own short-lived session and commits before
returning, so writes are atomic per row only. Rows are returned detached
(the session factory is configured with ``expire_on_commit=False``).
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
import math
from typing import Any, Callable

from sqlalchemy import and_, delete, desc, func, select, text
from sqlalchemy.orm import Session

from .models import (
    ApiConfiguration,
    AutomationJob,
    Schedule,
    TrendingTopic,
    User,
    Video,
)
from .session import SessionLocal

JOB_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"running"},
    "running": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}

VIDEO_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "failed"},
    "processing": {"completed", "failed"},
    "completed": {"published", "failed"},
    "published": set(),
    "failed": set(),
}


class NotFoundError(LookupError):
    def __init__(self, entity: str, key: Any) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class InvalidStatusTransition(ValueError):
    def __init__(self, entity: str, current: str, new: str) -> None:
        super().__init__(f"{entity} status cannot move from '{current}' to '{new}'")
        self.entity = entity
        self.current = current
        self.new = new


def _utcnow() -> datetime:
    return datetime.now(UTC)


def check_transition(entity: str, transitions: dict[str, set[str]], current: str, new: str) -> None:
    if new == current:
        return
    if new not in transitions.get(current, set()):
        raise InvalidStatusTransition(entity, current, new)


def _apply(row, updates: dict[str, Any]) -> None:
    columns = set(row.__table__.columns.keys())
    for key, value in updates.items():
        if key not in columns or key == "id":
            raise ValueError(f"Unknown or read-only field for {row.__tablename__}: {key}")
        setattr(row, key, value)


class Storage:
    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def _session(self) -> Session:
        return self._session_factory()

    def _add(self, row):
        with self._session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return row

    def _all(self, stmt) -> list:
        with self._session() as session:
            return list(session.execute(stmt).scalars().all())

    def _first(self, stmt):
        with self._session() as session:
            return session.execute(stmt.limit(1)).scalars().first()

    # users

    def get_user(self, user_id: int) -> User | None:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return self._first(select(User).where(User.username == username))

    def create_user(self, *, username: str, password: str) -> User:
        return self._add(User(username=username, password=password))

    # videos

    def get_videos(self) -> list[Video]:
        return self._all(select(Video).order_by(desc(Video.created_at), desc(Video.id)))

    def get_video(self, video_id: int) -> Video | None:
        with self._session() as session:
            return session.get(Video, video_id)

    def create_video(self, **fields: Any) -> Video:
        fields.setdefault("status", "pending")
        return self._add(Video(**fields))

    def update_video(self, video_id: int, **updates: Any) -> Video:
        with self._session() as session:
            video = session.get(Video, video_id)
            if video is None:
                raise NotFoundError("Video", video_id)
            if "status" in updates:
                check_transition("Video", VIDEO_TRANSITIONS, video.status, updates["status"])
            _apply(video, updates)
            session.commit()
            session.refresh(video)
            return video

    def get_next_scheduled_video(self) -> Video | None:
        stmt = (
            select(Video)
            .where(and_(Video.status == "pending", Video.scheduled_at.is_not(None)))
            .order_by(Video.scheduled_at)
        )
        return self._first(stmt)

    # trending topics

    def get_trending_topics(self) -> list[TrendingTopic]:
        return self._all(select(TrendingTopic).order_by(desc(TrendingTopic.score), TrendingTopic.id))

    def get_trending_topic(self, topic_id: int) -> TrendingTopic | None:
        with self._session() as session:
            return session.get(TrendingTopic, topic_id)

    def create_trending_topic(self, **fields: Any) -> TrendingTopic:
        fields.setdefault("used", False)
        return self._add(TrendingTopic(**fields))

    def update_trending_topic(self, topic_id: int, **updates: Any) -> TrendingTopic:
        with self._session() as session:
            topic = session.get(TrendingTopic, topic_id)
            if topic is None:
                raise NotFoundError("TrendingTopic", topic_id)
            _apply(topic, updates)
            session.commit()
            session.refresh(topic)
            return topic

    def get_unused_trending_topics(self) -> list[TrendingTopic]:
        stmt = (
            select(TrendingTopic)
            .where(TrendingTopic.used.is_(False))
            .order_by(desc(TrendingTopic.score), TrendingTopic.id)
        )
        return self._all(stmt)

    def get_recent_trending_topics(self, hours: int) -> list[TrendingTopic]:
        cutoff = _utcnow() - timedelta(hours=hours)
        return self._all(select(TrendingTopic).where(TrendingTopic.analyzed_at >= cutoff))

    def delete_old_trending_topics(self, days: int) -> int:
        cutoff = _utcnow() - timedelta(days=days)
        with self._session() as session:
            result = session.execute(
                delete(TrendingTopic).where(TrendingTopic.analyzed_at < cutoff)
            )
            session.commit()
            return int(result.rowcount or 0)

    # automation jobs

    def get_automation_jobs(
        self,
        *,
        status: str | None = None,
        job_type: str | None = None,
        limit: int | None = None,
    ) -> list[AutomationJob]:
        stmt = select(AutomationJob)
        if status:
            stmt = stmt.where(AutomationJob.status == status)
        if job_type:
            stmt = stmt.where(AutomationJob.type == job_type)
        stmt = stmt.order_by(desc(AutomationJob.created_at), desc(AutomationJob.id))
        if limit:
            stmt = stmt.limit(limit)
        return self._all(stmt)

    def get_automation_job(self, job_id: int) -> AutomationJob | None:
        with self._session() as session:
            return session.get(AutomationJob, job_id)

    def create_automation_job(
        self,
        *,
        type: str,
        payload: dict | None = None,
        video_id: int | None = None,
    ) -> AutomationJob:
        return self._add(
            AutomationJob(type=type, status="pending", payload=payload or {}, video_id=video_id)
        )

    def update_automation_job(self, job_id: int, **updates: Any) -> AutomationJob:
        with self._session() as session:
            job = session.get(AutomationJob, job_id)
            if job is None:
                raise NotFoundError("AutomationJob", job_id)
            new_status = updates.get("status")
            if new_status is not None:
                check_transition("AutomationJob", JOB_TRANSITIONS, job.status, new_status)
                if new_status == "running" and job.started_at is None:
                    updates.setdefault("started_at", _utcnow())
                if new_status in {"completed", "failed"}:
                    updates.setdefault("completed_at", _utcnow())
            _apply(job, updates)
            session.commit()
            session.refresh(job)
            return job

    def get_running_automation_jobs(self, job_type: str | None = None) -> list[AutomationJob]:
        return self.get_automation_jobs(status="running", job_type=job_type)

    def get_current_pipeline_jobs(self) -> list[AutomationJob]:
        return self.get_automation_jobs(status="running")

    def delete_old_automation_jobs(self, days: int) -> int:
        cutoff = _utcnow() - timedelta(days=days)
        with self._session() as session:
            result = session.execute(
                delete(AutomationJob).where(
                    and_(AutomationJob.status == "completed", AutomationJob.created_at < cutoff)
                )
            )
            session.commit()
            return int(result.rowcount or 0)

    # api configurations

    def get_api_configuration(self, service: str) -> ApiConfiguration | None:
        return self._first(select(ApiConfiguration).where(ApiConfiguration.service == service))

    def create_api_configuration(
        self,
        *,
        service: str,
        api_key: str | None = None,
        config: dict | None = None,
        is_active: bool = True,
    ) -> ApiConfiguration:
        return self._add(
            ApiConfiguration(service=service, api_key=api_key, config=config or {}, is_active=is_active)
        )

    def update_api_configuration(self, service: str, **updates: Any) -> ApiConfiguration:
        with self._session() as session:
            row = session.execute(
                select(ApiConfiguration).where(ApiConfiguration.service == service)
            ).scalar_one_or_none()
            if row is None:
                raise NotFoundError("ApiConfiguration", service)
            _apply(row, updates)
            session.commit()
            session.refresh(row)
            return row

    def get_service_config(self, service: str) -> dict:
        row = self.get_api_configuration(service)
        if row is None or not row.is_active:
            return {}
        return dict(row.config or {})

    # schedules

    def get_schedules(self, *, active_only: bool = False) -> list[Schedule]:
        stmt = select(Schedule)
        if active_only:
            stmt = stmt.where(Schedule.is_active.is_(True))
        return self._all(stmt.order_by(Schedule.name))

    def get_schedule(self, name: str) -> Schedule | None:
        return self._first(select(Schedule).where(Schedule.name == name))

    def create_schedule(
        self,
        *,
        name: str,
        cron_expression: str,
        job_type: str,
        config: dict | None = None,
        is_active: bool = True,
    ) -> Schedule:
        return self._add(
            Schedule(
                name=name,
                cron_expression=cron_expression,
                job_type=job_type,
                config=config or {},
                is_active=is_active,
            )
        )

    def update_schedule(self, name: str, **updates: Any) -> Schedule:
        with self._session() as session:
            row = session.execute(select(Schedule).where(Schedule.name == name)).scalar_one_or_none()
            if row is None:
                raise NotFoundError("Schedule", name)
            _apply(row, updates)
            session.commit()
            session.refresh(row)
            return row

    def delete_schedule(self, name: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(Schedule).where(Schedule.name == name))
            session.commit()
            return bool(result.rowcount)

    # dashboard

    def get_dashboard_stats(self) -> dict[str, int]:
        with self._session() as session:
            total = session.execute(select(func.count()).select_from(Video)).scalar_one()
            published = session.execute(
                select(func.count()).select_from(Video).where(Video.status == "published")
            ).scalar_one()
            views = session.execute(
                select(func.coalesce(func.sum(Video.views), 0)).where(Video.status == "published")
            ).scalar_one()
            queued = session.execute(
                select(func.count()).select_from(Video).where(Video.status == "pending")
            ).scalar_one()
        return {
            "videos_created": int(total),
            "published_count": int(published),
            "total_views": int(views or 0),
            "queue_count": int(queued),
            "success_rate": success_rate(int(published), int(total)),
        }

    def check_health(self) -> bool:
        try:
            with self._session() as session:
                session.execute(text("select 1"))
            return True
        except Exception:
            return False


def success_rate(published: int, total: int) -> int:
    if total <= 0:
        return 0
    return math.floor(published * 100 / total + 0.5)
