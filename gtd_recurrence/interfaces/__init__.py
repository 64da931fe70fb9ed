"""Abstract interfaces for the task store the engine is embedded in."""

from gtd_recurrence.interfaces.task_repository import ITaskRepository

__all__ = ["ITaskRepository"]
