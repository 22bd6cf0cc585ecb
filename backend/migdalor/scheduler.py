# Overview: Daily task scheduling; `schedule` jobs driven by one stoppable daemon thread.

"""
Daily task scheduler.

Each task fires once a day at a fixed local wall-clock time. Jobs are
registered on a per-scheduler `schedule.Scheduler` (never the module-level
default), so two apps in one process do not share jobs. A single daemon
thread sleeps until the next job is due, or until shutdown is requested, and
then runs whatever is pending.

Runs of one task never overlap. A run that raises is logged and the job
stays scheduled; every task recomputes its work from the database, so the
next day's run retries naturally.

DailySchedule.next_fire_time() is the clock-injected calculation used for
status reporting; tests drive it and ScheduledTask.run() with a manual clock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

import schedule

from migdalor.time_utils import local_now

logger = logging.getLogger(__name__)

# Upper bound on one sleep, so wall-clock jumps (DST, NTP) are noticed.
MAX_IDLE_SECONDS = 60.0


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Local wall-clock time, optionally in a fixed IANA zone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name

    def now(self) -> datetime:
        return local_now(self.tz_name)


@dataclass(frozen=True)
class DailySchedule:
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"Invalid daily time {self.hour:02d}:{self.minute:02d}")

    @property
    def at_time(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def next_fire_time(self, now: datetime) -> datetime:
        """Next instant strictly after now at hour:minute."""
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def __str__(self) -> str:
        return f"daily at {self.at_time}"


class ScheduledTask:
    """
    A named unit of daily work.

    run_once receives a should_stop callable so long runs can end early on
    shutdown.
    """

    def __init__(self, name: str, schedule: DailySchedule, run_once: Callable[[Callable[[], bool]], object]):
        self.name = name
        self.schedule = schedule
        self.run_once = run_once
        self._guard = threading.Lock()
        self.last_started_at: datetime | None = None
        self.last_finished_at: datetime | None = None
        self.last_error: str | None = None
        self.run_count = 0

    @property
    def is_running(self) -> bool:
        return self._guard.locked()

    def run(self, *, clock: Clock, should_stop: Callable[[], bool] = lambda: False) -> bool:
        """
        Execute one run. Returns False if a run of this task is already in
        progress (the call is skipped, not queued).
        """
        if not self._guard.acquire(blocking=False):
            logger.warning("Task %s is still running; skipping this fire", self.name)
            return False
        try:
            self.last_started_at = clock.now()
            logger.info("Task %s started", self.name)
            try:
                self.run_once(should_stop)
                self.last_error = None
            except Exception as exc:
                self.last_error = f"{type(exc).__name__}: {exc}"
                logger.exception("Task %s failed; it will run again at its next scheduled time", self.name)
            self.last_finished_at = clock.now()
            self.run_count += 1
            logger.info("Task %s finished", self.name)
            return True
        finally:
            self._guard.release()


class TaskScheduler:
    """Registers each ScheduledTask as a daily `schedule` job and runs them on one thread."""

    def __init__(self, clock: Optional[Clock] = None, tz_name: Optional[str] = None):
        self.clock = clock or SystemClock(tz_name)
        self.tz_name = tz_name
        self.jobs = schedule.Scheduler()
        self.tasks: dict[str, ScheduledTask] = {}
        self.stop_event = threading.Event()
        self.is_running = False
        self.scheduler_thread: threading.Thread | None = None

    def add_task(self, task: ScheduledTask) -> schedule.Job:
        if task.name in self.tasks:
            raise ValueError(f"Task {task.name!r} is already registered")
        self.tasks[task.name] = task
        if self.tz_name:
            job = self.jobs.every().day.at(task.schedule.at_time, self.tz_name)
        else:
            job = self.jobs.every().day.at(task.schedule.at_time)
        return job.do(self.run_task, task.name).tag(task.name)

    def run_task(self, name: str) -> bool:
        """Run one task now, sharing the scheduler's stop signal."""
        return self.tasks[name].run(clock=self.clock, should_stop=self.stop_event.is_set)

    def _run_scheduler(self) -> None:
        while not self.stop_event.is_set():
            idle = self.jobs.idle_seconds
            timeout = MAX_IDLE_SECONDS if idle is None else min(max(idle, 0.0), MAX_IDLE_SECONDS)
            if self.stop_event.wait(timeout):
                break
            self.jobs.run_pending()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Scheduler is already running")
            return
        logger.info("Starting scheduler with %s tasks", len(self.tasks))
        self.stop_event.clear()
        self.is_running = True
        self.scheduler_thread = threading.Thread(target=self._run_scheduler, name="migdalor-scheduler", daemon=True)
        self.scheduler_thread.start()

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the loop. An in-flight run gets up to timeout seconds to notice."""
        if not self.is_running:
            return
        logger.info("Stopping scheduler")
        self.stop_event.set()
        if self.scheduler_thread and self.scheduler_thread.is_alive():
            self.scheduler_thread.join(timeout=timeout)
        self.is_running = False

    def next_fire_times(self) -> dict[str, datetime]:
        now = self.clock.now()
        return {name: task.schedule.next_fire_time(now) for name, task in self.tasks.items()}

    def status(self) -> dict:
        next_fire = self.next_fire_times()
        return {
            "running": self.is_running,
            "tasks": {
                name: {
                    "schedule": str(task.schedule),
                    "next_run_at": next_fire[name].isoformat(),
                    "is_running": task.is_running,
                    "run_count": task.run_count,
                    "last_started_at": task.last_started_at.isoformat() if task.last_started_at else None,
                    "last_finished_at": task.last_finished_at.isoformat() if task.last_finished_at else None,
                    "last_error": task.last_error,
                }
                for name, task in self.tasks.items()
            },
        }
