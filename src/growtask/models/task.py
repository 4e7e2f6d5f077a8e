"""Task 聚合根 -- 任务生命周期状态机

Task 是唯一对外暴露修改入口的组件：依赖边、状态历史、订阅者、工时记录、
合规要求集合都由它持有，外部只能拿到只读视图（tuple / frozenset）。

状态流转：
    pending -> in_progress / blocked / cancelled
    in_progress -> blocked / completed / cancelled
    blocked -> pending / in_progress / cancelled
    completed, cancelled 为终态

门控与依赖的评估需要外部加载的数据，因此 start() 只复核 blocking reason，
调用方应先通过 can_start() 做决策。
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from pydantic import AwareDatetime, BaseModel, Field

from ..clock import SYSTEM_CLOCK, Clock
from ..exceptions import InvalidArgumentError, InvalidStateTransitionError
from ..ids import new_id, optional_text, require_aware, require_id
from .dependency import TaskDependency
from .enums import (
    STARTABLE_STATES,
    TERMINAL_STATES,
    DependencyType,
    TaskPriority,
    TaskStatus,
    TaskType,
    normalize_priority,
    normalize_task_type,
    parse_enum,
    validate_transition,
)
from .evaluation import DependencyCandidate, check_dependencies, check_gating
from .history import TaskStateHistory
from .results import TaskDependencyResult, TaskGatingResult
from .time_entry import TaskTimeEntry
from .watcher import TaskWatcher

CREATED_REASON = "Task created."
UNBLOCKED_REASON = "Task unblocked"
DEFAULT_CANCEL_REASON = "Cancelled"


class TaskSnapshot(BaseModel):
    """Task 持久化快照 -- 存储层读写的完整聚合状态"""

    task_id: str
    site_id: str
    task_type: TaskType = TaskType.CUSTOM
    custom_task_type: str | None = None
    title: str
    description: str | None = None
    created_by: str
    assigned_by: str
    assigned_to_user_id: str | None = None
    assigned_to_role: str | None = None
    assigned_at: AwareDatetime | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.NORMAL
    created_at: AwareDatetime
    updated_at: AwareDatetime
    due_date: AwareDatetime | None = None
    started_at: AwareDatetime | None = None
    completed_at: AwareDatetime | None = None
    cancelled_at: AwareDatetime | None = None
    cancellation_reason: str | None = None
    blocking_reason: str | None = None
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    required_sop_ids: list[str] = Field(default_factory=list)
    required_training_ids: list[str] = Field(default_factory=list)
    dependencies: list[TaskDependency] = Field(default_factory=list)
    state_history: list[TaskStateHistory] = Field(default_factory=list)
    watchers: list[TaskWatcher] = Field(default_factory=list)
    time_entries: list[TaskTimeEntry] = Field(default_factory=list)
    version: int = Field(default=0, description="乐观并发令牌，由存储层维护")


class Task:
    """Task 聚合根"""

    def __init__(
        self,
        *,
        task_id: str,
        site_id: str,
        task_type: TaskType | str | None,
        custom_task_type: str | None,
        title: str,
        description: str | None,
        created_by: str,
        assigned_by: str,
        status: TaskStatus,
        priority: TaskPriority | str | None,
        created_at: datetime,
        updated_at: datetime,
        assigned_to_user_id: str | None = None,
        assigned_to_role: str | None = None,
        assigned_at: datetime | None = None,
        due_date: datetime | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        cancelled_at: datetime | None = None,
        cancellation_reason: str | None = None,
        blocking_reason: str | None = None,
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
        version: int = 0,
        clock: Clock | None = None,
    ) -> None:
        self._task_id = require_id(task_id, "task_id", "Task identifier")
        self._site_id = require_id(site_id, "site_id", "Site identifier")
        self._title = _require_title(title)
        self._created_by = require_id(created_by, "created_by", "Created by identifier")
        self._assigned_by = require_id(
            assigned_by, "assigned_by", "Assigned by identifier"
        )

        self._task_type = normalize_task_type(task_type)
        self._custom_task_type = (
            optional_text(custom_task_type)
            if self._task_type == TaskType.CUSTOM
            else None
        )
        self._description = optional_text(description)
        self._status = TaskStatus(status)
        self._priority = normalize_priority(priority)
        self._created_at = created_at
        self._updated_at = updated_at
        self._assigned_to_user_id = optional_text(assigned_to_user_id)
        self._assigned_to_role = optional_text(assigned_to_role)
        self._assigned_at = assigned_at
        self._due_date = due_date
        self._started_at = started_at
        self._completed_at = completed_at
        self._cancelled_at = cancelled_at
        self._cancellation_reason = optional_text(cancellation_reason)
        self._blocking_reason = optional_text(blocking_reason)
        self._related_entity_type = optional_text(related_entity_type)
        self._related_entity_id = optional_text(related_entity_id)
        self._version = version
        self._clock = clock or SYSTEM_CLOCK

        self._required_sop_ids: set[str] = set()
        self._required_training_ids: set[str] = set()
        self._state_history: list[TaskStateHistory] = []
        self._dependencies: list[TaskDependency] = []
        self._watchers: list[TaskWatcher] = []
        self._time_entries: list[TaskTimeEntry] = []

    # ------------------------------------------------------------------
    # 工厂
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        site_id: str,
        title: str,
        created_by: str,
        *,
        task_type: TaskType | str | None = None,
        custom_task_type: str | None = None,
        description: str | None = None,
        assigned_by: str | None = None,
        priority: TaskPriority | str | None = None,
        required_sop_ids: Iterable[str] | None = None,
        required_training_ids: Iterable[str] | None = None,
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
        task_id: str | None = None,
        clock: Clock | None = None,
    ) -> "Task":
        """创建新任务：status=pending，写入一条 pending->pending 的创建记录

        assigned_by 缺省时等于 created_by。
        """
        clock = clock or SYSTEM_CLOCK
        now = clock.now()
        task = cls(
            task_id=task_id or new_id(),
            site_id=site_id,
            task_type=task_type,
            custom_task_type=custom_task_type,
            title=title,
            description=description,
            created_by=created_by,
            assigned_by=assigned_by or created_by,
            status=TaskStatus.PENDING,
            priority=priority,
            created_at=now,
            updated_at=now,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            clock=clock,
        )
        task._replace_required_lists(required_sop_ids, required_training_ids)
        task._add_state_history(
            TaskStatus.PENDING,
            TaskStatus.PENDING,
            task._created_by,
            now,
            CREATED_REASON,
        )
        return task

    @classmethod
    def from_snapshot(cls, snapshot: TaskSnapshot, clock: Clock | None = None) -> "Task":
        """从持久化快照重建聚合

        状态历史按 changed_at 排序（同一时间戳保持原有顺序），不做去重。
        """
        task = cls(
            task_id=snapshot.task_id,
            site_id=snapshot.site_id,
            task_type=snapshot.task_type,
            custom_task_type=snapshot.custom_task_type,
            title=snapshot.title,
            description=snapshot.description,
            created_by=snapshot.created_by,
            assigned_by=snapshot.assigned_by,
            status=snapshot.status,
            priority=snapshot.priority,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
            assigned_to_user_id=snapshot.assigned_to_user_id,
            assigned_to_role=snapshot.assigned_to_role,
            assigned_at=snapshot.assigned_at,
            due_date=snapshot.due_date,
            started_at=snapshot.started_at,
            completed_at=snapshot.completed_at,
            cancelled_at=snapshot.cancelled_at,
            cancellation_reason=snapshot.cancellation_reason,
            blocking_reason=snapshot.blocking_reason,
            related_entity_type=snapshot.related_entity_type,
            related_entity_id=snapshot.related_entity_id,
            version=snapshot.version,
            clock=clock,
        )
        task._replace_required_lists(
            snapshot.required_sop_ids, snapshot.required_training_ids
        )
        task._state_history.extend(
            sorted(snapshot.state_history, key=lambda h: h.changed_at)
        )
        task._dependencies.extend(snapshot.dependencies)
        task._watchers.extend(snapshot.watchers)
        task._time_entries.extend(snapshot.time_entries)
        return task

    def to_snapshot(self) -> TaskSnapshot:
        """导出持久化快照（与聚合内部状态解耦的副本）"""
        return TaskSnapshot(
            task_id=self._task_id,
            site_id=self._site_id,
            task_type=self._task_type,
            custom_task_type=self._custom_task_type,
            title=self._title,
            description=self._description,
            created_by=self._created_by,
            assigned_by=self._assigned_by,
            assigned_to_user_id=self._assigned_to_user_id,
            assigned_to_role=self._assigned_to_role,
            assigned_at=self._assigned_at,
            status=self._status,
            priority=self._priority,
            created_at=self._created_at,
            updated_at=self._updated_at,
            due_date=self._due_date,
            started_at=self._started_at,
            completed_at=self._completed_at,
            cancelled_at=self._cancelled_at,
            cancellation_reason=self._cancellation_reason,
            blocking_reason=self._blocking_reason,
            related_entity_type=self._related_entity_type,
            related_entity_id=self._related_entity_id,
            required_sop_ids=sorted(self._required_sop_ids),
            required_training_ids=sorted(self._required_training_ids),
            dependencies=list(self._dependencies),
            state_history=list(self._state_history),
            watchers=list(self._watchers),
            time_entries=list(self._time_entries),
            version=self._version,
        )

    def mark_persisted(self, version: int) -> None:
        """存储层保存成功后回写新的并发令牌"""
        self._version = version

    # ------------------------------------------------------------------
    # 只读属性
    # ------------------------------------------------------------------

    @property
    def task_id(self) -> str:
        return self._task_id

    @property
    def site_id(self) -> str:
        return self._site_id

    @property
    def task_type(self) -> TaskType:
        return self._task_type

    @property
    def custom_task_type(self) -> str | None:
        return self._custom_task_type

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def created_by(self) -> str:
        return self._created_by

    @property
    def assigned_by(self) -> str:
        return self._assigned_by

    @property
    def assigned_to_user_id(self) -> str | None:
        return self._assigned_to_user_id

    @property
    def assigned_to_role(self) -> str | None:
        return self._assigned_to_role

    @property
    def assigned_at(self) -> datetime | None:
        return self._assigned_at

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def priority(self) -> TaskPriority:
        return self._priority

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def due_date(self) -> datetime | None:
        return self._due_date

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def completed_at(self) -> datetime | None:
        return self._completed_at

    @property
    def cancelled_at(self) -> datetime | None:
        return self._cancelled_at

    @property
    def cancellation_reason(self) -> str | None:
        return self._cancellation_reason

    @property
    def blocking_reason(self) -> str | None:
        return self._blocking_reason

    @property
    def related_entity_type(self) -> str | None:
        return self._related_entity_type

    @property
    def related_entity_id(self) -> str | None:
        return self._related_entity_id

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATES

    @property
    def required_sop_ids(self) -> frozenset[str]:
        return frozenset(self._required_sop_ids)

    @property
    def required_training_ids(self) -> frozenset[str]:
        return frozenset(self._required_training_ids)

    @property
    def state_history(self) -> tuple[TaskStateHistory, ...]:
        return tuple(self._state_history)

    @property
    def dependencies(self) -> tuple[TaskDependency, ...]:
        return tuple(self._dependencies)

    @property
    def watchers(self) -> tuple[TaskWatcher, ...]:
        return tuple(self._watchers)

    @property
    def time_entries(self) -> tuple[TaskTimeEntry, ...]:
        return tuple(self._time_entries)

    # ------------------------------------------------------------------
    # 评估
    # ------------------------------------------------------------------

    def check_gating(
        self,
        completed_sop_ids: Iterable[str] | None,
        completed_training_ids: Iterable[str] | None,
    ) -> TaskGatingResult:
        """对比合规要求与已完成集合，None 视为空集"""
        return check_gating(
            self._required_sop_ids,
            self._required_training_ids,
            completed_sop_ids,
            completed_training_ids,
        )

    def check_dependencies(
        self,
        candidates: Iterable[DependencyCandidate] | None,
    ) -> TaskDependencyResult:
        """评估依赖边

        Raises:
            DependencyIntegrityError: 被依赖任务未在 candidates 中提供
        """
        return check_dependencies(self._task_id, self._dependencies, candidates)

    def can_start(
        self,
        gating_result: TaskGatingResult,
        dependency_result: TaskDependencyResult,
    ) -> bool:
        if self._status not in STARTABLE_STATES:
            return False
        return not gating_result.is_gated and dependency_result.is_satisfied

    # ------------------------------------------------------------------
    # 状态流转
    # ------------------------------------------------------------------

    def start(self, user_id: str) -> None:
        """开始任务；已在进行中时为 no-op

        Raises:
            InvalidStateTransitionError: 终态，或 blocking reason 未清除
        """
        user_id = require_id(user_id, "user_id", "User identifier")

        if self.is_terminal:
            raise InvalidStateTransitionError(
                "Cannot start a completed or cancelled task.",
                self._status,
                "start",
            )

        if self._status == TaskStatus.IN_PROGRESS:
            return

        if self._blocking_reason:
            raise InvalidStateTransitionError(
                "Task is blocked; must clear blocking reason before starting.",
                self._status,
                "start",
            )

        now = self._clock.now()
        if self._started_at is None:
            self._started_at = now
        self._transition(TaskStatus.IN_PROGRESS, user_id, now, "start")

    def block(self, reason: str, user_id: str) -> None:
        """阻塞任务；已以相同原因阻塞时为 no-op

        已阻塞但原因不同时只更新原因（from == to，不写历史）。
        """
        user_id = require_id(user_id, "user_id", "User identifier")
        trimmed = optional_text(reason)
        if trimmed is None:
            raise InvalidArgumentError("Blocking reason is required.", "reason")

        if self.is_terminal:
            raise InvalidStateTransitionError(
                "Cannot block a completed or cancelled task.",
                self._status,
                "block",
            )

        if self._status == TaskStatus.BLOCKED and self._blocking_reason == trimmed:
            return

        now = self._clock.now()
        self._blocking_reason = trimmed
        if self._status == TaskStatus.BLOCKED:
            self._updated_at = now
            self._add_state_history(
                TaskStatus.BLOCKED, TaskStatus.BLOCKED, user_id, now, trimmed
            )
            return

        self._transition(TaskStatus.BLOCKED, user_id, now, "block", trimmed)

    def unblock(self, user_id: str) -> None:
        """解除阻塞：blocked -> pending；非阻塞状态只清除原因"""
        user_id = require_id(user_id, "user_id", "User identifier")

        if self._status != TaskStatus.BLOCKED:
            self._blocking_reason = None
            return

        self._transition(
            TaskStatus.PENDING, user_id, self._clock.now(), "unblock", UNBLOCKED_REASON
        )

    def complete(self, user_id: str) -> None:
        """完成任务；已完成时为 no-op

        Raises:
            InvalidStateTransitionError: 任务不在进行中（pending / blocked 需先 start）
        """
        user_id = require_id(user_id, "user_id", "User identifier")

        if self._status == TaskStatus.COMPLETED:
            return

        if self._status != TaskStatus.IN_PROGRESS:
            raise InvalidStateTransitionError(
                "Task must be in progress before it can be completed.",
                self._status,
                "complete",
            )

        now = self._clock.now()
        self._completed_at = now
        self._transition(TaskStatus.COMPLETED, user_id, now, "complete")

    def cancel(self, reason: str | None, user_id: str) -> None:
        """取消任务；已取消时为 no-op，空原因默认为 "Cancelled"

        Raises:
            InvalidStateTransitionError: 任务已完成
        """
        user_id = require_id(user_id, "user_id", "User identifier")

        if self._status == TaskStatus.CANCELLED:
            return

        if self._status == TaskStatus.COMPLETED:
            raise InvalidStateTransitionError(
                "Completed tasks cannot be cancelled.",
                self._status,
                "cancel",
            )

        trimmed = optional_text(reason) or DEFAULT_CANCEL_REASON
        now = self._clock.now()
        self._cancellation_reason = trimmed
        self._cancelled_at = now
        self._transition(TaskStatus.CANCELLED, user_id, now, "cancel", trimmed)

    # ------------------------------------------------------------------
    # 字段更新
    # ------------------------------------------------------------------

    def assign(
        self,
        user_id: str | None,
        role: str | None,
        assigned_by: str,
        assigned_at: datetime | None = None,
    ) -> None:
        """指派给用户和/或角色（两者可同时设置）"""
        assigned_by = require_id(assigned_by, "assigned_by", "Assigned by identifier")
        if assigned_at is not None:
            require_aware(assigned_at, "assigned_at")
        now = self._clock.now()

        self._assigned_to_user_id = optional_text(user_id)
        self._assigned_to_role = optional_text(role)
        self._assigned_at = assigned_at or now
        self._assigned_by = assigned_by
        self._updated_at = now

    def update_title(self, title: str, user_id: str) -> None:
        require_id(user_id, "user_id", "User identifier")
        self._title = _require_title(title)
        self._updated_at = self._clock.now()

    def update_priority(self, priority: TaskPriority | str, user_id: str) -> None:
        require_id(user_id, "user_id", "User identifier")
        priority = parse_enum(TaskPriority, priority, "priority")
        if priority == TaskPriority.UNDEFINED:
            raise InvalidArgumentError("Priority cannot be undefined.", "priority")

        if self._priority == priority:
            return

        self._priority = priority
        self._updated_at = self._clock.now()

    def update_due_date(self, due_date: datetime | None, user_id: str) -> None:
        require_id(user_id, "user_id", "User identifier")
        if due_date is not None:
            require_aware(due_date, "due_date")
        if due_date is not None and due_date < self._created_at:
            raise InvalidArgumentError(
                "Due date cannot precede creation time.", "due_date"
            )

        if self._due_date == due_date:
            return

        self._due_date = due_date
        self._updated_at = self._clock.now()

    def update_description(self, description: str | None, user_id: str) -> None:
        require_id(user_id, "user_id", "User identifier")
        self._description = optional_text(description)
        self._updated_at = self._clock.now()

    def set_related_entity(self, entity_type: str | None, entity_id: str | None) -> None:
        self._related_entity_type = optional_text(entity_type)
        self._related_entity_id = optional_text(entity_id)
        self._updated_at = self._clock.now()

    def set_custom_task_type(self, custom_type: str | None) -> None:
        # 仅 custom 类型的任务保留自定义标签
        if self._task_type != TaskType.CUSTOM:
            return

        self._custom_task_type = optional_text(custom_type)
        self._updated_at = self._clock.now()

    def replace_requirements(
        self,
        sop_ids: Iterable[str] | None,
        training_ids: Iterable[str] | None,
    ) -> None:
        """整体替换合规要求集合（去重，丢弃空 ID）"""
        self._replace_required_lists(sop_ids, training_ids)
        self._updated_at = self._clock.now()

    def add_dependency(
        self,
        depends_on_task_id: str,
        dependency_type: DependencyType | str | None = None,
        is_blocking: bool = True,
        minimum_lag: timedelta | None = None,
    ) -> TaskDependency:
        """添加依赖边；同一被依赖任务已存在时返回已有边

        Raises:
            InvalidArgumentError: 自依赖、空 ID 或负的最小间隔
        """
        dependency = TaskDependency.create(
            self._task_id,
            depends_on_task_id,
            dependency_type=dependency_type,
            is_blocking=is_blocking,
            minimum_lag=minimum_lag,
        )
        for existing in self._dependencies:
            if existing.depends_on_task_id == dependency.depends_on_task_id:
                return existing

        self._dependencies.append(dependency)
        self._updated_at = self._clock.now()
        return dependency

    # ------------------------------------------------------------------
    # 只读投影
    # ------------------------------------------------------------------

    def is_overdue(self) -> bool:
        if self._due_date is None:
            return False
        if self.is_terminal:
            return False
        return self._clock.now() > self._due_date

    def get_time_to_complete(self) -> timedelta | None:
        """completed_at - started_at；任一缺失时返回 None"""
        if self._started_at is not None and self._completed_at is not None:
            return self._completed_at - self._started_at
        return None

    # ------------------------------------------------------------------
    # 订阅者 / 工时
    # ------------------------------------------------------------------

    def add_watcher(self, user_id: str) -> None:
        user_id = require_id(user_id, "user_id", "User identifier")
        if any(w.user_id == user_id for w in self._watchers):
            return

        self._watchers.append(TaskWatcher.create(self._task_id, user_id, self._clock.now()))

    def remove_watcher(self, user_id: str) -> None:
        for watcher in self._watchers:
            if watcher.user_id == user_id:
                self._watchers.remove(watcher)
                return

    def start_time_entry(
        self,
        user_id: str,
        started_at: datetime | None = None,
        notes: str | None = None,
    ) -> TaskTimeEntry:
        """开始一条工时记录并返回，通过 complete_time_entry() 关闭"""
        entry = TaskTimeEntry.create(
            self._task_id,
            user_id,
            started_at or self._clock.now(),
            notes,
        )
        self._time_entries.append(entry)
        return entry

    def complete_time_entry(
        self,
        time_entry_id: str,
        ended_at: datetime | None = None,
        notes: str | None = None,
    ) -> TaskTimeEntry:
        """关闭工时记录，返回替换后的记录

        Raises:
            InvalidArgumentError: 记录不存在，或结束时间缺少时区 / 早于开始时间
        """
        for index, entry in enumerate(self._time_entries):
            if entry.time_entry_id == time_entry_id:
                closed = entry.completed(ended_at or self._clock.now(), notes)
                self._time_entries[index] = closed
                return closed

        raise InvalidArgumentError(
            f"Time entry {time_entry_id} not found.", "time_entry_id"
        )

    def get_time_entry(self, time_entry_id: str) -> TaskTimeEntry | None:
        for entry in self._time_entries:
            if entry.time_entry_id == time_entry_id:
                return entry
        return None

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _transition(
        self,
        to_status: TaskStatus,
        user_id: str,
        now: datetime,
        operation: str,
        reason: str | None = None,
    ) -> None:
        previous = self._status
        if not validate_transition(previous, to_status):
            raise InvalidStateTransitionError(
                f"Cannot transition task from {previous} to {to_status}.",
                previous,
                operation,
            )

        self._status = to_status
        if previous == TaskStatus.BLOCKED:
            self._blocking_reason = None
        self._updated_at = now
        self._add_state_history(previous, to_status, user_id, now, reason)

    def _add_state_history(
        self,
        from_status: TaskStatus,
        to_status: TaskStatus,
        changed_by: str,
        changed_at: datetime,
        reason: str | None = None,
    ) -> None:
        """状态历史唯一写入口

        账本非空且 from == to 时跳过；第一条（创建记录）永不跳过。
        """
        changed_by = require_id(changed_by, "changed_by", "Changed by identifier")

        if self._state_history and from_status == to_status:
            return

        self._state_history.append(
            TaskStateHistory.create(
                self._task_id,
                from_status,
                to_status,
                changed_by,
                changed_at,
                reason,
            )
        )

    def _replace_required_lists(
        self,
        sop_ids: Iterable[str] | None,
        training_ids: Iterable[str] | None,
    ) -> None:
        self._required_sop_ids.clear()
        self._required_sop_ids.update(_clean_ids(sop_ids))

        self._required_training_ids.clear()
        self._required_training_ids.update(_clean_ids(training_ids))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self._task_id == other._task_id

    def __hash__(self) -> int:
        return hash(self._task_id)

    def __repr__(self) -> str:
        return (
            f"Task(task_id={self._task_id!r}, title={self._title!r}, "
            f"status={self._status.value!r})"
        )


def _require_title(title: str | None) -> str:
    trimmed = optional_text(title)
    if trimmed is None:
        raise InvalidArgumentError("Title is required.", "title")
    return trimmed


def _clean_ids(ids: Iterable[str] | None) -> set[str]:
    if ids is None:
        return set()
    return {value.strip() for value in ids if value and value.strip()}
