"""Job scheduling for the monitor loops."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = structlog.get_logger(__name__)


def next_hour_boundary(now: Optional[datetime] = None) -> datetime:
    """First full wall-clock hour (UTC) strictly after ``now``."""
    now = now or datetime.now(timezone.utc)
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


class JobScheduler:
    """Runs each monitor cycle as its own APScheduler interval job."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.running = False
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def start(self):
        """Start the job scheduler. Must be called from within the event loop."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        self.running = True
        logger.info("Job scheduler started")

    def stop(self):
        """Stop the job scheduler."""
        if not self.running:
            return

        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Job scheduler stopped")

    def add_interval_job(
        self,
        job_id: str,
        func: Callable,
        seconds: float,
        first_run: Optional[datetime] = None,
        description: Optional[str] = None,
    ):
        """Add an interval job.

        The first run happens at ``first_run``, or immediately when omitted.
        A run that is still in progress when the next one is due delays that
        job only; overdue runs are coalesced.
        """
        if job_id in self.jobs:
            logger.warning("Job already exists, replacing", job_id=job_id)
            self.remove_job(job_id)

        first_run = first_run or datetime.now(timezone.utc)
        trigger = IntervalTrigger(seconds=seconds, start_date=first_run, timezone=timezone.utc)

        job = self.scheduler.add_job(
            func=func,
            trigger=trigger,
            id=job_id,
            name=description or job_id,
            next_run_time=first_run,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=max(1, int(seconds)),
        )

        self.jobs[job_id] = {
            "job": job,
            "seconds": seconds,
            "description": description,
            "added_at": datetime.now(timezone.utc),
        }

        logger.info("Added interval job",
                    job_id=job_id,
                    interval_seconds=seconds,
                    first_run=first_run.isoformat(),
                    description=description)

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job."""
        if job_id not in self.jobs:
            logger.warning("Job not found", job_id=job_id)
            return False

        self.scheduler.remove_job(job_id)
        del self.jobs[job_id]
        logger.info("Removed job", job_id=job_id)
        return True

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Get status information for a job."""
        if job_id not in self.jobs:
            return None

        job_info = self.jobs[job_id]
        scheduler_job = self.scheduler.get_job(job_id)
        if scheduler_job is None:
            return None

        next_run = getattr(scheduler_job, "next_run_time", None)
        return {
            "job_id": job_id,
            "name": scheduler_job.name,
            "interval_seconds": job_info["seconds"],
            "next_run": next_run.isoformat() if next_run else None,
            "added_at": job_info["added_at"].isoformat(),
            "description": job_info.get("description"),
        }

    def list_jobs(self) -> List[Dict[str, Any]]:
        """List all scheduled jobs."""
        job_statuses = []
        for job_id in self.jobs:
            status = self.get_job_status(job_id)
            if status:
                job_statuses.append(status)
        return job_statuses

    def _on_job_error(self, event: JobExecutionEvent):
        # The job stays scheduled; only this run is lost.
        logger.error("Job run failed",
                     job_id=event.job_id,
                     error=f"{type(event.exception).__name__}: {event.exception}")
