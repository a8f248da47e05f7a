"""Scheduler module for running the monitor loops."""

from .job_scheduler import JobScheduler, next_hour_boundary
from .task_coordinator import MonitorCoordinator

__all__ = ["JobScheduler", "MonitorCoordinator", "next_hour_boundary"]
