"""
Task repository interface.

Defines the contract the recurrence engine needs from the task store.
Implementations must serialize concurrent updates of the same task, so that
two completions never both read the same anchor date.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from gtd_recurrence.models.task import Task, TaskCreate, TaskUpdate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def get(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """
        Get a task by ID.

        Args:
            user_id: Owner user ID
            task_id: Task ID

        Returns:
            Task if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """
        Create a new task.

        Args:
            user_id: Owner user ID
            task: Task creation data

        Returns:
            Created task with generated ID and timestamps
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, task_id: UUID, update: TaskUpdate) -> Task:
        """
        Update a task. Only fields set on ``update`` are written.

        Raises:
            NotFoundError: If task not found
        """
        pass
