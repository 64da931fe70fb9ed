"""
Unit tests for RecurringTaskService.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from gtd_recurrence.core.exceptions import NotFoundError
from gtd_recurrence.models.enums import RecurrenceRule, RecurrenceStrategy, RecurrenceWeekday, TaskStatus
from gtd_recurrence.models.recurrence import RecurrenceSpec
from gtd_recurrence.models.task import Attachment, ChecklistItem, Task, TaskUpdate
from gtd_recurrence.services.recurring_task_service import RecurringTaskService

UTC = timezone.utc
NOW = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)
COMPLETED_AT = datetime(2024, 1, 3, 18, 30, tzinfo=UTC)
WEEKLY_MWF = RecurrenceSpec(
    rule=RecurrenceRule.WEEKLY,
    by_day=[RecurrenceWeekday.MO, RecurrenceWeekday.WE, RecurrenceWeekday.FR],
)


def make_task(**overrides) -> Task:
    """Helper to create a Task for testing."""
    fields = {
        "id": uuid4(),
        "title": "Water the plants",
        "status": TaskStatus.NEXT,
        "due_date": date(2024, 1, 3),
        "recurrence": WEEKLY_MWF,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Task(**fields)


@pytest.fixture
def mock_task_repo():
    """Create mock task repository that echoes writes back as tasks."""
    repo = AsyncMock()
    repo.create.side_effect = lambda user_id, data: Task(
        id=uuid4(), created_at=NOW, updated_at=NOW, **data.model_dump()
    )
    return repo


@pytest.fixture
def service(mock_task_repo):
    return RecurringTaskService(task_repo=mock_task_repo)


def _stored(mock_task_repo, task: Task) -> None:
    mock_task_repo.get.return_value = task
    mock_task_repo.update.side_effect = lambda user_id, task_id, update: task.model_copy(
        update=update.model_dump(exclude_unset=True)
    )


class TestCompleteTask:
    """Tests for complete_task."""

    @pytest.mark.asyncio
    async def test_creates_next_instance(self, service, mock_task_repo):
        task = make_task(start_time=date(2024, 1, 1))
        _stored(mock_task_repo, task)

        result = await service.complete_task("test_user", task.id, COMPLETED_AT)

        update = mock_task_repo.update.call_args.args[2]
        assert update.status == TaskStatus.DONE
        assert update.completed_at == COMPLETED_AT
        assert update.is_focused_today is False
        assert result.completed.status == TaskStatus.DONE

        mock_task_repo.create.assert_awaited_once()
        next_data = mock_task_repo.create.call_args.args[1]
        assert next_data.due_date == date(2024, 1, 5)
        assert next_data.start_time == date(2024, 1, 3)
        assert next_data.status == TaskStatus.NEXT
        assert result.next_task is not None
        assert result.next_task.due_date == date(2024, 1, 5)
        assert result.next_task.recurrence == task.recurrence

    @pytest.mark.asyncio
    async def test_non_recurring_task_is_only_completed(self, service, mock_task_repo):
        task = make_task(recurrence=None)
        _stored(mock_task_repo, task)

        result = await service.complete_task("test_user", task.id, COMPLETED_AT)

        mock_task_repo.update.assert_awaited_once()
        mock_task_repo.create.assert_not_awaited()
        assert result.next_task is None

    @pytest.mark.asyncio
    async def test_already_done_is_a_no_op(self, service, mock_task_repo):
        task = make_task(status=TaskStatus.DONE)
        mock_task_repo.get.return_value = task

        result = await service.complete_task("test_user", task.id, COMPLETED_AT)

        assert result.completed is task
        assert result.next_task is None
        mock_task_repo.update.assert_not_awaited()
        mock_task_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_task(self, service, mock_task_repo):
        mock_task_repo.get.return_value = None

        with pytest.raises(NotFoundError):
            await service.complete_task("test_user", uuid4(), COMPLETED_AT)

    @pytest.mark.asyncio
    async def test_defaults_completion_time_to_now(self, service, mock_task_repo):
        task = make_task(recurrence=None)
        _stored(mock_task_repo, task)

        await service.complete_task("test_user", task.id)

        update = mock_task_repo.update.call_args.args[2]
        assert update.completed_at is not None
        assert update.completed_at.tzinfo is not None


class TestCompleteTasks:
    @pytest.mark.asyncio
    async def test_completes_each_task_in_order(self, service, mock_task_repo):
        recurring = make_task()
        plain = make_task(recurrence=None)
        mock_task_repo.get.side_effect = [recurring, plain]
        mock_task_repo.update.side_effect = lambda user_id, task_id, update: (
            recurring if task_id == recurring.id else plain
        ).model_copy(update=update.model_dump(exclude_unset=True))

        results = await service.complete_tasks("test_user", [recurring.id, plain.id], COMPLETED_AT)

        assert [r.completed.id for r in results] == [recurring.id, plain.id]
        assert results[0].next_task is not None
        assert results[1].next_task is None
        assert mock_task_repo.create.await_count == 1
        for call in mock_task_repo.update.call_args_list:
            assert call.args[2].completed_at == COMPLETED_AT


class TestCreateNextRecurringTask:
    """Tests for building the next instance."""

    def test_non_recurring(self, service):
        assert service.create_next_recurring_task(make_task(recurrence=None), COMPLETED_AT) is None

    def test_strict_advances_from_due_date(self, service):
        next_data = service.create_next_recurring_task(make_task(), datetime(2024, 2, 20, tzinfo=UTC))
        assert next_data.due_date == date(2024, 1, 5)

    def test_fluid_date_only_stays_date_only(self, service):
        spec = RecurrenceSpec(rule=RecurrenceRule.MONTHLY, strategy=RecurrenceStrategy.FLUID)
        task = make_task(due_date=date(2024, 1, 2), recurrence=spec)

        next_data = service.create_next_recurring_task(task, datetime(2024, 3, 15, 18, 0, tzinfo=UTC))

        assert next_data.due_date == date(2024, 4, 15)
        assert not isinstance(next_data.due_date, datetime)
        assert next_data.start_time is None
        assert next_data.review_at is None

    def test_fluid_datetime_takes_completion_time(self, service):
        spec = RecurrenceSpec(rule=RecurrenceRule.DAILY, strategy=RecurrenceStrategy.FLUID)
        task = make_task(due_date=datetime(2024, 1, 1, 9, 0, tzinfo=UTC), recurrence=spec)

        next_data = service.create_next_recurring_task(task, COMPLETED_AT)

        assert next_data.due_date == datetime(2024, 1, 4, 18, 30, tzinfo=UTC)

    def test_strict_without_due_date_uses_completion(self, service):
        spec = RecurrenceSpec(rule=RecurrenceRule.DAILY)
        next_data = service.create_next_recurring_task(make_task(due_date=None, recurrence=spec), COMPLETED_AT)
        assert next_data.due_date == datetime(2024, 1, 4, 18, 30, tzinfo=UTC)

    def test_review_date_advances(self, service):
        task = make_task(review_at=date(2024, 1, 1))
        next_data = service.create_next_recurring_task(task, COMPLETED_AT)
        assert next_data.review_at == date(2024, 1, 3)

    @pytest.mark.parametrize(
        "previous, expected",
        [
            (TaskStatus.DONE, TaskStatus.NEXT),
            (TaskStatus.ARCHIVED, TaskStatus.NEXT),
            (TaskStatus.WAITING, TaskStatus.WAITING),
            (TaskStatus.TODO, TaskStatus.TODO),
        ],
    )
    def test_status_carried_over(self, service, previous, expected):
        next_data = service.create_next_recurring_task(make_task(), COMPLETED_AT, previous)
        assert next_data.status == expected

    def test_checklist_reset(self, service):
        item = ChecklistItem(title="Fill can", is_completed=True)
        next_data = service.create_next_recurring_task(make_task(checklist=[item]), COMPLETED_AT)

        assert [i.title for i in next_data.checklist] == ["Fill can"]
        assert next_data.checklist[0].is_completed is False
        assert next_data.checklist[0].id != item.id

    def test_live_attachments_copied(self, service):
        live = Attachment(title="Guide", uri="https://example.com/guide", created_at=NOW, updated_at=NOW)
        deleted = Attachment(
            title="Old", uri="https://example.com/old", created_at=NOW, updated_at=NOW, deleted_at=NOW
        )
        task = make_task(attachments=[live, deleted])

        next_data = service.create_next_recurring_task(task, COMPLETED_AT)

        assert len(next_data.attachments) == 1
        copied = next_data.attachments[0]
        assert copied.title == "Guide"
        assert copied.id != live.id
        assert copied.created_at == COMPLETED_AT

    def test_copies_task_fields(self, service):
        project_id = uuid4()
        task = make_task(
            tags=["garden"],
            contexts=["@home"],
            description="Both balconies",
            location="Home",
            project_id=project_id,
            is_focused_today=True,
        )

        next_data = service.create_next_recurring_task(task, COMPLETED_AT)

        assert next_data.title == task.title
        assert next_data.tags == ["garden"]
        assert next_data.contexts == ["@home"]
        assert next_data.description == "Both balconies"
        assert next_data.location == "Home"
        assert next_data.project_id == project_id
        assert next_data.is_focused_today is False

    def test_no_next_occurrence(self, mock_task_repo):
        scheduler = MagicMock()
        scheduler.next_occurrence.return_value = None
        service = RecurringTaskService(task_repo=mock_task_repo, scheduler=scheduler)

        assert service.create_next_recurring_task(make_task(), COMPLETED_AT) is None


def test_persisted_recurrence_is_normalized_on_load():
    task = make_task(recurrence={"rule": "weekly", "byDay": ["FR", "MO"]})
    assert task.recurrence.rrule == "FREQ=WEEKLY;BYDAY=MO,FR"
    assert make_task(recurrence="not a rule").recurrence is None


class TestTaskUpdateRecurrence:
    """Recurrence written through an update is normalized like on create."""

    def test_disagreeing_fields_are_reconciled(self):
        update = TaskUpdate(
            recurrence=RecurrenceSpec(
                rule=RecurrenceRule.WEEKLY,
                by_day=[RecurrenceWeekday.MO],
                rrule="FREQ=WEEKLY;BYDAY=FR",
            )
        )
        assert update.recurrence.by_day == [RecurrenceWeekday.MO]
        assert update.recurrence.rrule == "FREQ=WEEKLY;BYDAY=MO"

    def test_bare_rule_name(self):
        update = TaskUpdate(recurrence="weekly")
        assert update.recurrence.rule == RecurrenceRule.WEEKLY
        assert update.recurrence.rrule == "FREQ=WEEKLY"

    def test_explicit_none_clears(self):
        update = TaskUpdate(recurrence=None)
        assert update.recurrence is None
        assert "recurrence" in update.model_dump(exclude_unset=True)

    def test_unset_recurrence_stays_unset(self):
        assert "recurrence" not in TaskUpdate(title="Renamed").model_dump(exclude_unset=True)
