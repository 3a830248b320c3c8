"""Background schedulers."""

from .system_scheduler import SystemScheduler

__all__ = ["SystemScheduler"]
