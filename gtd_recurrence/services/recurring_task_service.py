"""
Recurring task service.

Completes repeating tasks and creates the next instance from their recurrence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from gtd_recurrence.core.config import get_settings
from gtd_recurrence.core.exceptions import NotFoundError
from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.interfaces.task_repository import ITaskRepository
from gtd_recurrence.models.enums import TaskStatus
from gtd_recurrence.models.task import ChecklistItem, Task, TaskCreate, TaskUpdate
from gtd_recurrence.services.occurrence_scheduler import OccurrenceScheduler
from gtd_recurrence.utils.datetime_utils import TaskDate, now_in_zone

logger = setup_logger(__name__)

_CLOSED_STATUSES = (TaskStatus.DONE, TaskStatus.ARCHIVED)


@dataclass
class CompletionResult:
    """Outcome of completing one task."""

    completed: Task
    next_task: Optional[Task] = None


class RecurringTaskService:
    """Service for completing tasks and rolling repeating ones forward."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        scheduler: Optional[OccurrenceScheduler] = None,
    ):
        self.task_repo = task_repo
        self.scheduler = scheduler or OccurrenceScheduler()

    async def complete_task(
        self,
        user_id: str,
        task_id: UUID,
        completed_at: Optional[datetime] = None,
    ) -> CompletionResult:
        """Mark a task done and, if it repeats, create its next instance.

        Completing a task that is already done changes nothing.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = await self.task_repo.get(user_id, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task.status == TaskStatus.DONE:
            logger.info("Task %s is already done; nothing to complete", task_id)
            return CompletionResult(completed=task)

        completed_at = completed_at or now_in_zone(get_settings().DEFAULT_TIMEZONE)
        next_data = self.create_next_recurring_task(task, completed_at, task.status)

        completed = await self.task_repo.update(
            user_id,
            task_id,
            TaskUpdate(
                status=TaskStatus.DONE,
                completed_at=completed_at,
                is_focused_today=False,
            ),
        )
        next_task = None
        if next_data is not None:
            next_task = await self.task_repo.create(user_id, next_data)
            logger.info(
                "Completed recurring task %s; next instance %s due %s",
                task_id,
                next_task.id,
                next_task.due_date,
            )
        return CompletionResult(completed=completed, next_task=next_task)

    async def complete_tasks(
        self,
        user_id: str,
        task_ids: Iterable[UUID],
        completed_at: Optional[datetime] = None,
    ) -> list[CompletionResult]:
        """Complete several tasks in order with one shared completion time."""
        completed_at = completed_at or now_in_zone(get_settings().DEFAULT_TIMEZONE)
        results = []
        for task_id in task_ids:
            results.append(await self.complete_task(user_id, task_id, completed_at))
        return results

    def create_next_recurring_task(
        self,
        task: Task,
        completed_at: TaskDate,
        previous_status: Optional[TaskStatus] = None,
    ) -> Optional[TaskCreate]:
        """Build the next instance of a repeating task.

        - The due date advances from the old due date (strict) or from the
          completion time (fluid); a strict task without a due date advances
          from the completion time.
        - Start and review dates advance the same way, when set.
        - Checklist items are reset, live attachments are copied with new ids.
        - A done/archived previous status becomes NEXT.

        Returns None when the task does not repeat.
        """
        recurrence = task.recurrence
        if recurrence is None:
            return None

        next_due = self._next_date(task.due_date, task, completed_at)
        if next_due is None:
            logger.warning(
                "Recurring task %s has no next occurrence (recurrence=%r); recurrence stops",
                task.id,
                recurrence.rrule,
            )
            return None

        status = previous_status or task.status
        if status in _CLOSED_STATUSES:
            status = TaskStatus.NEXT

        attachments = [
            attachment.model_copy(
                update={
                    "id": uuid4(),
                    "created_at": completed_at,
                    "updated_at": completed_at,
                    "deleted_at": None,
                }
            )
            for attachment in task.attachments
            if attachment.deleted_at is None
        ]

        return TaskCreate(
            title=task.title,
            status=status,
            start_time=self._next_date(task.start_time, task, completed_at) if task.start_time else None,
            due_date=next_due,
            review_at=self._next_date(task.review_at, task, completed_at) if task.review_at else None,
            recurrence=recurrence,
            tags=list(task.tags),
            contexts=list(task.contexts),
            checklist=[ChecklistItem(title=item.title) for item in task.checklist],
            description=task.description,
            attachments=attachments,
            location=task.location,
            project_id=task.project_id,
            is_focused_today=False,
            time_estimate=task.time_estimate,
        )

    def _next_date(
        self, current: Optional[TaskDate], task: Task, completed_at: TaskDate
    ) -> Optional[TaskDate]:
        """Advance one task date field, keeping date-only fields date-only."""
        result = self.scheduler.next_occurrence(current, task.recurrence, completed_at)
        if isinstance(result, datetime) and isinstance(current, date) and not isinstance(current, datetime):
            # fluid dates advance from the completion timestamp
            return result.date()
        return result
