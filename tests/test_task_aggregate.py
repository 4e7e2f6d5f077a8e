"""Task 聚合单元测试

测试内容：
1. 创建工厂与不变量
2. start / block / unblock / complete / cancel 流转与幂等
3. can_start 决策
4. 字段更新与只读投影（is_overdue / get_time_to_complete）
"""

from datetime import timedelta

import pytest
from growtask.exceptions import (
    InvalidArgumentError,
    InvalidStateTransitionError,
    TaskEngineError,
)
from growtask.models import (
    Task,
    TaskDependencyResult,
    TaskGatingResult,
    TaskPriority,
    TaskStatus,
    TaskType,
)

from conftest import BASE_TIME, SITE_ID, USER_ID


class TestTaskCreation:
    """创建工厂"""

    def test_create_seeds_pending(self, make_task):
        task = make_task("  Flip to flower  ")
        assert task.status == TaskStatus.PENDING
        assert task.title == "Flip to flower"
        assert task.site_id == SITE_ID
        assert task.created_by == USER_ID
        assert task.assigned_by == USER_ID
        assert task.created_at == BASE_TIME
        assert task.updated_at == BASE_TIME
        assert len(task.task_id) == 26  # ULID 长度

    def test_create_normalizes_type_and_priority(self, make_task):
        task = make_task(custom_task_type="  Trellis  ")
        assert task.task_type == TaskType.CUSTOM
        assert task.custom_task_type == "Trellis"
        assert task.priority == TaskPriority.NORMAL

    def test_custom_label_dropped_for_non_custom_type(self, make_task):
        task = make_task(task_type=TaskType.IRRIGATION, custom_task_type="Trellis")
        assert task.custom_task_type is None

    def test_requirements_deduplicated_and_blank_dropped(self, make_task):
        task = make_task(
            required_sop_ids=["sop-a", "sop-a", " ", ""],
            required_training_ids=["trn-1"],
        )
        assert task.required_sop_ids == frozenset({"sop-a"})
        assert task.required_training_ids == frozenset({"trn-1"})

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_rejected(self, clock, title):
        with pytest.raises(InvalidArgumentError):
            Task.create(SITE_ID, title, USER_ID, clock=clock)

    def test_blank_site_rejected(self, clock):
        with pytest.raises(InvalidArgumentError):
            Task.create("", "Water", USER_ID, clock=clock)

    def test_blank_creator_rejected(self, clock):
        with pytest.raises(InvalidArgumentError):
            Task.create(SITE_ID, "Water", " ", clock=clock)

    def test_collections_are_read_only_views(self, make_task):
        task = make_task()
        assert isinstance(task.state_history, tuple)
        assert isinstance(task.dependencies, tuple)
        assert isinstance(task.watchers, tuple)
        assert isinstance(task.time_entries, tuple)
        assert isinstance(task.required_sop_ids, frozenset)


class TestStart:
    """start 流转"""

    def test_start_from_pending(self, make_task, clock):
        task = make_task()
        clock.advance(minutes=5)
        task.start(USER_ID)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.started_at == BASE_TIME + timedelta(minutes=5)
        assert task.updated_at == task.started_at
        assert len(task.state_history) == 2

    def test_start_twice_is_idempotent(self, make_task, clock):
        task = make_task()
        task.start(USER_ID)
        started_at = task.started_at
        clock.advance(minutes=10)
        task.start(USER_ID)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.started_at == started_at
        assert len(task.state_history) == 2

    def test_start_blank_user_rejected(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().start("")

    def test_start_blocked_requires_unblock(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        with pytest.raises(InvalidStateTransitionError, match="must clear blocking reason"):
            task.start(USER_ID)

        task.unblock(USER_ID)
        task.start(USER_ID)
        assert task.status == TaskStatus.IN_PROGRESS

    def test_restart_keeps_first_started_at(self, make_task, clock):
        task = make_task()
        task.start(USER_ID)
        first = task.started_at
        task.block("pump failure", USER_ID)
        task.unblock(USER_ID)
        clock.advance(hours=1)
        task.start(USER_ID)
        assert task.started_at == first


class TestTerminalStates:
    """终态后不可再 start / block / complete"""

    @pytest.fixture
    def completed(self, make_task):
        task = make_task()
        task.start(USER_ID)
        task.complete(USER_ID)
        return task

    @pytest.fixture
    def cancelled(self, make_task):
        task = make_task()
        task.cancel("duplicate", USER_ID)
        return task

    @pytest.mark.parametrize("fixture_name", ["completed", "cancelled"])
    def test_start_rejected(self, request, fixture_name):
        task = request.getfixturevalue(fixture_name)
        with pytest.raises(InvalidStateTransitionError):
            task.start(USER_ID)

    @pytest.mark.parametrize("fixture_name", ["completed", "cancelled"])
    def test_block_rejected(self, request, fixture_name):
        task = request.getfixturevalue(fixture_name)
        with pytest.raises(InvalidStateTransitionError):
            task.block("late", USER_ID)

    def test_complete_cancelled_rejected(self, cancelled):
        with pytest.raises(InvalidStateTransitionError):
            cancelled.complete(USER_ID)

    def test_cancel_completed_rejected(self, completed):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            completed.cancel("too late", USER_ID)
        assert exc_info.value.current_status == TaskStatus.COMPLETED
        assert exc_info.value.operation == "cancel"

    def test_completed_and_cancelled_never_both_set(self, completed, cancelled):
        assert completed.completed_at is not None and completed.cancelled_at is None
        assert cancelled.cancelled_at is not None and cancelled.completed_at is None


class TestBlockUnblock:
    """block / unblock"""

    def test_block_sets_reason_and_history(self, make_task):
        task = make_task()
        task.block("  awaiting parts ", USER_ID)
        assert task.status == TaskStatus.BLOCKED
        assert task.blocking_reason == "awaiting parts"
        last = task.state_history[-1]
        assert (last.from_status, last.to_status) == (TaskStatus.PENDING, TaskStatus.BLOCKED)
        assert last.reason == "awaiting parts"

    def test_block_same_reason_is_idempotent(self, make_task, clock):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        updated_at = task.updated_at
        clock.advance(minutes=1)
        task.block("awaiting parts", USER_ID)
        assert len(task.state_history) == 2
        assert task.updated_at == updated_at

    def test_block_with_new_reason_updates_reason_only(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        task.block("awaiting inspection", USER_ID)
        assert task.blocking_reason == "awaiting inspection"
        assert len(task.state_history) == 2

    @pytest.mark.parametrize("reason", ["", "  "])
    def test_block_blank_reason_rejected(self, make_task, reason):
        with pytest.raises(InvalidArgumentError):
            make_task().block(reason, USER_ID)

    def test_block_blank_user_rejected(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().block("reason", "")

    def test_unblock_returns_to_pending(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        task.unblock(USER_ID)
        assert task.status == TaskStatus.PENDING
        assert task.blocking_reason is None
        assert task.state_history[-1].reason == "Task unblocked"

    def test_unblock_clears_stale_reason_without_history(self, make_task, clock):
        snapshot = make_task().to_snapshot().model_copy(
            update={"blocking_reason": "leftover"}
        )
        task = Task.from_snapshot(snapshot, clock=clock)
        assert task.status == TaskStatus.PENDING
        assert task.blocking_reason == "leftover"

        task.unblock(USER_ID)
        assert task.blocking_reason is None
        assert task.status == TaskStatus.PENDING
        assert len(task.state_history) == 1

    def test_unblock_when_not_blocked_is_noop(self, make_task):
        task = make_task()
        task.unblock(USER_ID)
        assert task.status == TaskStatus.PENDING
        assert len(task.state_history) == 1

    def test_unblock_blank_user_rejected(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().unblock(" ")

    def test_cancel_from_blocked_clears_reason(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        task.cancel(None, USER_ID)
        assert task.status == TaskStatus.CANCELLED
        assert task.blocking_reason is None


class TestCompleteCancel:
    """complete / cancel"""

    def test_complete_requires_in_progress(self, make_task):
        task = make_task()
        with pytest.raises(InvalidStateTransitionError):
            task.complete(USER_ID)

    def test_complete_from_blocked_rejected(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        with pytest.raises(InvalidStateTransitionError):
            task.complete(USER_ID)

    def test_complete_twice_is_idempotent(self, make_task, clock):
        task = make_task()
        task.start(USER_ID)
        clock.advance(hours=2)
        task.complete(USER_ID)
        completed_at = task.completed_at
        clock.advance(hours=1)
        task.complete(USER_ID)
        assert task.completed_at == completed_at
        assert len(task.state_history) == 3

    def test_cancel_defaults_reason(self, make_task):
        task = make_task()
        task.cancel("   ", USER_ID)
        assert task.cancellation_reason == "Cancelled"
        assert task.state_history[-1].reason == "Cancelled"

    def test_cancel_twice_is_idempotent(self, make_task, clock):
        task = make_task()
        task.cancel("room closed", USER_ID)
        cancelled_at = task.cancelled_at
        clock.advance(minutes=3)
        task.cancel("again", USER_ID)
        assert task.cancelled_at == cancelled_at
        assert task.cancellation_reason == "room closed"
        assert len(task.state_history) == 2


class TestCanStart:
    """can_start 决策"""

    def test_pending_with_clear_results(self, make_task):
        task = make_task()
        assert task.can_start(TaskGatingResult.not_gated(), TaskDependencyResult.satisfied())

    def test_blocked_with_clear_results(self, make_task):
        task = make_task()
        task.block("awaiting parts", USER_ID)
        assert task.can_start(TaskGatingResult.not_gated(), TaskDependencyResult.satisfied())

    def test_gated_cannot_start(self, make_task):
        task = make_task()
        gating = TaskGatingResult.gated(["sop-a"], [], ["Missing SOP acknowledgement"])
        assert not task.can_start(gating, TaskDependencyResult.satisfied())

    def test_unsatisfied_dependencies_cannot_start(self, make_task):
        task = make_task()
        deps = TaskDependencyResult.blocked(["t-2"], ["Task x must complete first"])
        assert not task.can_start(TaskGatingResult.not_gated(), deps)

    def test_in_progress_cannot_start(self, make_task):
        task = make_task()
        task.start(USER_ID)
        assert not task.can_start(
            TaskGatingResult.not_gated(), TaskDependencyResult.satisfied()
        )


class TestFieldUpdates:
    """字段更新"""

    def test_assign(self, make_task, clock):
        task = make_task()
        clock.advance(minutes=1)
        task.assign("user-02", "  Grower ", "lead-01")
        assert task.assigned_to_user_id == "user-02"
        assert task.assigned_to_role == "Grower"
        assert task.assigned_by == "lead-01"
        assert task.assigned_at == clock.now()
        assert task.updated_at == clock.now()

    def test_assign_requires_assigner(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().assign("user-02", None, "")

    def test_update_priority(self, make_task):
        task = make_task()
        task.update_priority(TaskPriority.CRITICAL, USER_ID)
        assert task.priority == TaskPriority.CRITICAL

    def test_update_priority_rejects_undefined(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().update_priority(TaskPriority.UNDEFINED, USER_ID)

    def test_update_due_date_before_creation_rejected(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().update_due_date(BASE_TIME - timedelta(seconds=1), USER_ID)

    @pytest.mark.parametrize("value", ["urgent", ""])
    def test_update_priority_rejects_unknown_value(self, make_task, value):
        task = make_task()
        with pytest.raises(InvalidArgumentError) as exc_info:
            task.update_priority(value, USER_ID)
        assert exc_info.value.argument == "priority"
        assert task.priority == TaskPriority.NORMAL

    def test_unknown_task_type_rejected(self, clock):
        with pytest.raises(InvalidArgumentError) as exc_info:
            Task.create(SITE_ID, "Water", USER_ID, task_type="gardening", clock=clock)
        assert isinstance(exc_info.value, TaskEngineError)
        assert exc_info.value.argument == "task_type"

    def test_naive_due_date_rejected(self, make_task):
        task = make_task()
        naive = (BASE_TIME + timedelta(days=1)).replace(tzinfo=None)
        with pytest.raises(InvalidArgumentError) as exc_info:
            task.update_due_date(naive, USER_ID)
        assert exc_info.value.argument == "due_date"
        assert task.due_date is None

    def test_naive_assigned_at_rejected(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().assign("user-02", None, USER_ID, BASE_TIME.replace(tzinfo=None))

    def test_update_due_date_and_clear(self, make_task):
        task = make_task()
        task.update_due_date(BASE_TIME + timedelta(days=1), USER_ID)
        assert task.due_date == BASE_TIME + timedelta(days=1)
        task.update_due_date(None, USER_ID)
        assert task.due_date is None

    def test_update_description_blank_clears(self, make_task):
        task = make_task(description="initial")
        task.update_description("   ", USER_ID)
        assert task.description is None

    def test_update_title_rejects_blank(self, make_task):
        with pytest.raises(InvalidArgumentError):
            make_task().update_title(" ", USER_ID)

    def test_set_related_entity(self, make_task):
        task = make_task()
        task.set_related_entity(" batch ", "batch-77")
        assert task.related_entity_type == "batch"
        assert task.related_entity_id == "batch-77"

    def test_set_custom_task_type_ignored_for_typed_task(self, make_task):
        task = make_task(task_type=TaskType.HARVEST)
        task.set_custom_task_type("Trim")
        assert task.custom_task_type is None

    def test_replace_requirements(self, make_task):
        task = make_task(required_sop_ids=["sop-a"])
        task.replace_requirements(["sop-b", "sop-b"], None)
        assert task.required_sop_ids == frozenset({"sop-b"})
        assert task.required_training_ids == frozenset()


class TestProjections:
    """is_overdue / get_time_to_complete"""

    def test_not_overdue_without_due_date(self, make_task, clock):
        task = make_task()
        clock.advance(days=30)
        assert task.is_overdue() is False

    def test_overdue_after_due_date(self, make_task, clock):
        task = make_task()
        task.update_due_date(BASE_TIME + timedelta(hours=1), USER_ID)
        assert task.is_overdue() is False
        clock.advance(hours=2)
        assert task.is_overdue() is True

    def test_terminal_task_never_overdue(self, make_task, clock):
        task = make_task()
        task.update_due_date(BASE_TIME + timedelta(hours=1), USER_ID)
        task.cancel(None, USER_ID)
        clock.advance(hours=2)
        assert task.is_overdue() is False

    def test_time_to_complete(self, make_task, clock):
        task = make_task()
        assert task.get_time_to_complete() is None
        task.start(USER_ID)
        clock.advance(hours=3)
        assert task.get_time_to_complete() is None
        task.complete(USER_ID)
        assert task.get_time_to_complete() == timedelta(hours=3)
