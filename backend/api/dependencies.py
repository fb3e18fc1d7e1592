from fastapi import Request

from core.errors import AppErrorException, internal_error
from engines.service import SchedulerService


def get_scheduler(request: Request) -> SchedulerService:
    """Dependency that yields the scheduler built at startup."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise AppErrorException(internal_error("Scheduler not initialized", origin="api").error)
    return scheduler
