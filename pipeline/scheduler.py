"""Cron-driven job submission.

``SchedulerService`` keeps a registry of named cron triggers on an
APScheduler ``BackgroundScheduler``. A trigger never runs pipeline work
itself: each fire submits an AutomationJob to the worker queue.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
import logging
import os
from typing import Any, Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from db.models import JOB_TYPES, Schedule
from db.storage import Storage

logger = logging.getLogger(__name__)

INITIAL_ANALYSIS_WINDOW_HOURS = 24


class DuplicateScheduleError(ValueError):
    pass


@dataclass(frozen=True)
class SchedulerConfig:
    enabled: bool
    timezone: str
    daily_video_cron: str
    news_analysis_cron: str
    cleanup_cron: str

    def builtin_triggers(self) -> dict[str, tuple[str, str]]:
        return {
            "dailyVideo": (self.daily_video_cron, "video_creation"),
            "newsAnalysis": (self.news_analysis_cron, "news_analysis"),
            "cleanup": (self.cleanup_cron, "cleanup"),
        }


def load_scheduler_config() -> SchedulerConfig:
    return SchedulerConfig(
        enabled=os.getenv("SCHEDULER_ENABLED", "1").lower() in {"1", "true", "yes"},
        timezone=os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata"),
        daily_video_cron=os.getenv("DAILY_VIDEO_CRON", "30 12 * * *"),
        news_analysis_cron=os.getenv("NEWS_ANALYSIS_CRON", "0 */4 * * *"),
        cleanup_cron=os.getenv("CLEANUP_CRON", "0 2 * * *"),
    )


def _as_utc(value: datetime | None) -> datetime | None:
    return value.astimezone(UTC) if value is not None else None


def _default_submit(job_type: str, payload: dict | None = None, video_id: int | None = None):
    from pipeline.queue import submit_job

    return submit_job(job_type, payload, video_id)


class SchedulerService:
    def __init__(
        self,
        storage: Storage | None = None,
        submit: Callable[..., Any] | None = None,
        config: SchedulerConfig | None = None,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self.storage = storage or Storage()
        self.config = config or load_scheduler_config()
        self._submit = submit or _default_submit
        self._scheduler = scheduler or BackgroundScheduler(timezone=self.config.timezone)
        self._triggers: dict[str, str] = {}
        self._persisted: set[str] = set()

    def _trigger(self, cron_expression: str) -> CronTrigger:
        try:
            return CronTrigger.from_crontab(cron_expression, timezone=self.config.timezone)
        except ValueError as exc:
            raise ValueError(f"Invalid cron expression '{cron_expression}': {exc}") from exc

    def _activate(self, name: str, cron_expression: str, job_type: str, config: dict | None = None) -> None:
        self._scheduler.add_job(
            self._fire,
            trigger=self._trigger(cron_expression),
            args=[name, job_type, dict(config or {})],
            id=name,
            name=name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._triggers[name] = job_type
        logger.info("Scheduled %s (%s) at '%s'", name, job_type, cron_expression)

    def _deactivate(self, name: str) -> bool:
        if name not in self._triggers:
            return False
        if self._scheduler.get_job(name) is not None:
            self._scheduler.remove_job(name)
        del self._triggers[name]
        return True

    def _fire(self, name: str, job_type: str, config: dict | None = None) -> None:
        now = datetime.now(UTC)
        payload = {**(config or {}), "scheduled": True, "trigger": name, "timestamp": now.isoformat()}
        try:
            job = self._submit(job_type, payload)
            logger.info("Trigger %s submitted %s job %s", name, job_type, getattr(job, "id", None))
        except Exception:
            logger.exception("Trigger %s failed to submit %s job", name, job_type)
            return
        if name not in self._persisted:
            return
        try:
            self.storage.update_schedule(name, last_run=now, next_run=self._upcoming(name, now))
        except Exception as exc:
            logger.warning("Could not record run of schedule %s: %s", name, exc)

    def _upcoming(self, name: str, now: datetime) -> datetime | None:
        # The job's own next_run_time may still point at the fire in progress.
        job = self._scheduler.get_job(name) if name in self._triggers else None
        if job is not None:
            trigger = job.trigger
        else:
            schedule = self.storage.get_schedule(name)
            if schedule is None:
                return None
            trigger = self._trigger(schedule.cron_expression)
        return _as_utc(trigger.get_next_fire_time(now, now))

    def _builtin_names(self) -> set[str]:
        return set(self.config.builtin_triggers())

    def start(self) -> None:
        if self.is_running():
            return
        self._scheduler.start()
        for name, (cron_expression, job_type) in self.config.builtin_triggers().items():
            self._activate(name, cron_expression, job_type)
        try:
            for schedule in self.storage.get_schedules(active_only=True):
                try:
                    self._activate(schedule.name, schedule.cron_expression, schedule.job_type, schedule.config)
                    self._persisted.add(schedule.name)
                except ValueError as exc:
                    logger.warning("Skipping schedule %s: %s", schedule.name, exc)
        except Exception:
            logger.exception("Could not load persisted schedules")
        logger.info("Scheduler started with %d triggers", len(self._triggers))
        self._initial_analysis()

    def _initial_analysis(self) -> None:
        try:
            recent = self.storage.get_recent_trending_topics(INITIAL_ANALYSIS_WINDOW_HOURS)
        except Exception:
            logger.exception("Could not check for recent topics")
            return
        if not recent:
            logger.info("No recent topics found, submitting initial analysis")
            self._fire("initialAnalysis", "news_analysis")

    def stop(self) -> None:
        for name in list(self._triggers):
            self._deactivate(name)
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def add_schedule(
        self,
        name: str,
        cron_expression: str,
        job_type: str,
        config: dict | None = None,
    ) -> Schedule:
        if job_type not in JOB_TYPES:
            raise ValueError(f"Unknown job type: {job_type}")
        trigger = self._trigger(cron_expression)
        if name in self._builtin_names() or self.storage.get_schedule(name) is not None:
            raise DuplicateScheduleError(f"Schedule already exists: {name}")
        schedule = self.storage.create_schedule(
            name=name,
            cron_expression=cron_expression,
            job_type=job_type,
            config=config or {},
        )
        self._persisted.add(name)
        if self.is_running():
            self._activate(name, cron_expression, job_type, config)
            schedule = self.storage.update_schedule(name, next_run=_as_utc(self.next_run(name)))
        else:
            schedule = self.storage.update_schedule(
                name, next_run=_as_utc(trigger.get_next_fire_time(None, datetime.now(UTC)))
            )
        return schedule

    def remove_schedule(self, name: str) -> bool:
        deactivated = self._deactivate(name)
        self._persisted.discard(name)
        deleted = self.storage.delete_schedule(name)
        return deactivated or deleted

    def is_running(self) -> bool:
        return bool(self._scheduler.running)

    def next_run(self, name: str) -> datetime | None:
        job = self._scheduler.get_job(name) if name in self._triggers else None
        return getattr(job, "next_run_time", None) if job is not None else None

    def job_status(self) -> dict[str, datetime | None]:
        return {name: self.next_run(name) for name in self._triggers}


@lru_cache(maxsize=1)
def get_scheduler() -> SchedulerService:
    return SchedulerService()
