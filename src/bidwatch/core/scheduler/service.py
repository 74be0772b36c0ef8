"""
APScheduler v4 integration for BidWatch.

Schedules come from the scheduler section of app.yaml. Each firing
takes the job's run lock, runs one collection and retries run-level
fetch failures with exponential backoff.
"""

from __future__ import annotations

import logging
import os
import socket
from typing import Any
from uuid import uuid4

from apscheduler import AsyncScheduler, ConflictPolicy
from apscheduler.datastores.sqlalchemy import SQLAlchemyDataStore
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import create_async_engine
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bidwatch.core.config.loader import load_app_config
from bidwatch.core.config.models import AppConfig, ScheduleConfig, ScheduleType
from bidwatch.core.errors import BidWatchError
from bidwatch.core.logging import get_logger
from bidwatch.core.orchestrator.runner import CollectionService
from bidwatch.core.portals.base import CollectionRun
from bidwatch.core.scheduler.locks import LockManager
from bidwatch.persistence.db import SessionFactory, dispose_engines, get_engine, get_session, sqlite_file

logger = get_logger("scheduler")


class TransientRunError(BidWatchError):
    """A scheduled run failed in a way worth retrying."""

    def __init__(self, run: CollectionRun):
        super().__init__(run.message)
        self.run = run


def find_schedule(config: AppConfig, schedule_name: str) -> ScheduleConfig | None:
    for schedule in config.scheduler.schedules:
        if schedule.name == schedule_name:
            return schedule
    return None


async def _collect_with_retry(
    service: CollectionService,
    schedule: ScheduleConfig,
    config: AppConfig,
) -> CollectionRun:
    policy = config.scheduler.retry
    params = {"days": schedule.lookback_days}

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(min=policy.min_wait_seconds, max=policy.max_wait_seconds),
            retry=retry_if_exception_type(TransientRunError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                run = await service.collect(schedule.portal, params)
                if run.retryable:
                    raise TransientRunError(run)
    except TransientRunError as e:
        logger.error(
            "Schedule %s gave up after %d attempts: %s",
            schedule.name,
            policy.max_attempts,
            e,
        )
        return e.run

    return run


async def execute_scheduled_collection(
    schedule_name: str,
    holder_id: str,
    config: AppConfig | None = None,
    session_factory: SessionFactory | None = None,
    service: CollectionService | None = None,
) -> dict[str, Any] | None:
    """Execute one firing of a scheduled collection.

    Returns:
        The run result dict, or None when the schedule is unknown,
        disabled, or its previous run still holds the lock
    """
    config = config or load_app_config()

    schedule = find_schedule(config, schedule_name)
    if schedule is None or not schedule.enabled:
        logger.warning("Schedule not found or disabled: %s", schedule_name)
        return None

    if session_factory is None:
        get_engine(config.database.url, echo=config.database.echo, pool_size=config.database.pool_size)
        session_factory = get_session

    lock_name = f"schedule:{schedule.name}"

    with session_factory() as session:
        lock_manager = LockManager(session)
        if not lock_manager.acquire(lock_name, holder_id, ttl_minutes=schedule.max_runtime_minutes):
            logger.info("Lock held, skipping run for %s", schedule_name)
            return None

    owns_service = service is None
    if service is None:
        service = CollectionService(config, session_factory=session_factory)

    try:
        run = await _collect_with_retry(service, schedule, config)
    except Exception:
        logger.exception("Scheduled collection failed: %s", schedule_name)
        raise
    finally:
        if owns_service:
            await service.close()
        with session_factory() as session:
            LockManager(session).release(lock_name, holder_id)

    return run.to_result()


def build_triggers(schedule: ScheduleConfig) -> list[CronTrigger]:
    """Convert a schedule to APScheduler triggers, one per time of day."""
    timezone = schedule.timezone

    if schedule.schedule_type == ScheduleType.CRON:
        if not schedule.cron_expression:
            raise ValueError(f"Missing cron expression for schedule {schedule.name}")
        return [CronTrigger.from_crontab(schedule.cron_expression, timezone=timezone)]

    day_of_week = schedule.day_of_week if schedule.schedule_type == ScheduleType.WEEKLY else None
    return [
        CronTrigger(
            hour=at.hour,
            minute=at.minute,
            day_of_week=day_of_week,
            timezone=timezone,
        )
        for at in schedule.times_of_day
    ]


def describe_schedule(schedule: ScheduleConfig) -> str:
    """Human-readable cadence for listings."""
    if schedule.schedule_type == ScheduleType.CRON:
        return f"cron {schedule.cron_expression}"

    times = ", ".join(at.strftime("%H:%M") for at in schedule.times_of_day)
    if schedule.schedule_type == ScheduleType.WEEKLY:
        return f"weekly on {schedule.day_of_week} at {times}"
    return f"daily at {times}"


class SchedulerService:
    """APScheduler v4 integration for BidWatch."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or load_app_config()
        self.db_url = self.config.scheduler.data_store_url
        self._scheduler: AsyncScheduler | None = None
        self._holder_id = f"{socket.gethostname()}-{os.getpid()}-{uuid4().hex[:8]}"

    @property
    def holder_id(self) -> str:
        return self._holder_id

    async def start(self) -> None:
        """Start scheduler in foreground mode (blocking)."""
        store_file = sqlite_file(self.db_url)
        if store_file is not None:
            store_file.parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self.db_url)
        data_store = SQLAlchemyDataStore(engine)

        try:
            async with AsyncScheduler(data_store) as scheduler:
                self._scheduler = scheduler
                count = await self._sync_schedules()
                logger.info("Scheduler started with %d trigger(s)", count)
                await scheduler.run_until_stopped()
        finally:
            self._scheduler = None
            await engine.dispose()
            dispose_engines()

    async def _sync_schedules(self) -> int:
        """Register every enabled schedule with APScheduler."""
        if self._scheduler is None:
            raise RuntimeError("Scheduler is not initialized")

        count = 0
        for schedule in self.config.scheduler.schedules:
            if not schedule.enabled:
                continue

            for index, trigger in enumerate(build_triggers(schedule)):
                await self._scheduler.add_schedule(
                    execute_scheduled_collection,
                    trigger,
                    id=f"{schedule.name}:{index}",
                    args=[schedule.name, self._holder_id],
                    conflict_policy=ConflictPolicy.replace,
                )
                count += 1

        return count

    async def trigger_now(self, schedule_name: str) -> dict[str, Any] | None:
        """Run a schedule immediately, honoring its lock."""
        return await execute_scheduled_collection(schedule_name, self._holder_id, self.config)
