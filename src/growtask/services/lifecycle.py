"""TaskLifecycleService -- 任务生命周期编排

典型 "加载 -> 修改 -> 保存" 单元：
1. 从 TaskRepository 加载聚合
2. 调用聚合方法完成状态流转
3. 保存（并发冲突由存储层抛出）

开始任务时先评估合规门控，再加载依赖候选任务并评估依赖。
不发送任何通知；下游副作用由调用方在保存成功后自行处理。
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from pydantic import AwareDatetime, BaseModel, Field

from ..clock import SYSTEM_CLOCK, Clock
from ..exceptions import TaskNotFoundError
from ..models import (
    DependencyType,
    Task,
    TaskDependencyResult,
    TaskGatingResult,
    TaskPriority,
    TaskStateHistory,
    TaskStatus,
    TaskTimeEntry,
    TaskType,
)
from ..store.protocols import ComplianceResolver, TaskRepository

log = structlog.get_logger()

DEFAULT_DEPENDENCY_BLOCK_REASON = "Dependencies not satisfied"


class DependencyRequest(BaseModel):
    """创建任务时声明的依赖边"""

    depends_on_task_id: str
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    is_blocking: bool = True
    minimum_lag: timedelta | None = None


class CreateTaskRequest(BaseModel):
    """创建任务请求"""

    title: str
    task_type: TaskType = TaskType.CUSTOM
    custom_task_type: str | None = None
    description: str | None = None
    priority: TaskPriority = TaskPriority.NORMAL
    assigned_to_user_id: str | None = None
    assigned_to_role: str | None = None
    due_date: AwareDatetime | None = None
    required_sop_ids: list[str] = Field(default_factory=list)
    required_training_ids: list[str] = Field(default_factory=list)
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    dependencies: list[DependencyRequest] = Field(default_factory=list)


class UpdateTaskRequest(BaseModel):
    """更新任务请求，None 字段保持不变"""

    title: str | None = None
    description: str | None = None
    due_date: AwareDatetime | None = None
    priority: TaskPriority | None = None
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    custom_task_type: str | None = None
    required_sop_ids: list[str] | None = None
    required_training_ids: list[str] | None = None


@dataclass(frozen=True)
class StartTaskOutcome:
    """start_task 结果：任务 + 门控与依赖评估

    门控未通过时不评估依赖，dependencies 为 None。
    """

    task: Task
    gating: TaskGatingResult
    dependencies: TaskDependencyResult | None

    @property
    def started(self) -> bool:
        return self.task.status == TaskStatus.IN_PROGRESS


class TaskLifecycleService:
    """任务生命周期业务服务"""

    def __init__(
        self,
        repository: TaskRepository,
        compliance: ComplianceResolver,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._compliance = compliance
        self._clock = clock or SYSTEM_CLOCK

    async def create_task(
        self,
        site_id: str,
        request: CreateTaskRequest,
        user_id: str,
    ) -> Task:
        """创建任务（创建者同时作为指派人）"""
        task = Task.create(
            site_id,
            request.title,
            user_id,
            task_type=request.task_type,
            custom_task_type=request.custom_task_type,
            description=request.description,
            assigned_by=user_id,
            priority=request.priority,
            required_sop_ids=request.required_sop_ids,
            required_training_ids=request.required_training_ids,
            related_entity_type=request.related_entity_type,
            related_entity_id=request.related_entity_id,
            clock=self._clock,
        )

        if request.assigned_to_user_id or request.assigned_to_role:
            task.assign(request.assigned_to_user_id, request.assigned_to_role, user_id)

        if request.due_date is not None:
            task.update_due_date(request.due_date, user_id)

        for dependency in request.dependencies:
            task.add_dependency(
                dependency.depends_on_task_id,
                dependency_type=dependency.dependency_type,
                is_blocking=dependency.is_blocking,
                minimum_lag=dependency.minimum_lag,
            )

        await self._repository.add(task)
        log.info(
            "task_created",
            task_id=task.task_id,
            site_id=site_id,
            priority=task.priority.value,
            dependency_count=len(task.dependencies),
        )
        return task

    async def get_task(self, site_id: str, task_id: str) -> Task:
        """加载任务

        Raises:
            TaskNotFoundError: 任务不存在或不属于该站点
        """
        task = await self._repository.get(task_id, site_id)
        if task is None:
            raise TaskNotFoundError(task_id, site_id)
        return task

    async def list_tasks(
        self,
        site_id: str,
        status: TaskStatus | None = None,
        assigned_to_user_id: str | None = None,
    ) -> list[Task]:
        return await self._repository.list_by_site(site_id, status, assigned_to_user_id)

    async def list_overdue_tasks(self, site_id: str, limit: int | None = None) -> list[Task]:
        return await self._repository.list_overdue(site_id, self._clock.now(), limit)

    async def assign_task(
        self,
        site_id: str,
        task_id: str,
        assignee_user_id: str | None,
        assignee_role: str | None,
        user_id: str,
    ) -> Task:
        task = await self.get_task(site_id, task_id)
        task.assign(assignee_user_id, assignee_role, user_id)
        await self._repository.save(task)
        log.info(
            "task_assigned",
            task_id=task_id,
            assigned_to_user_id=task.assigned_to_user_id,
            assigned_to_role=task.assigned_to_role,
        )
        return task

    async def start_task(self, site_id: str, task_id: str, user_id: str) -> StartTaskOutcome:
        """开始任务

        流程：
        1. 合规门控未通过 -> 不修改任务、不评估依赖，直接返回
        2. 依赖未满足 -> 以第一条原因阻塞任务并保存
        3. 否则清除阻塞并开始任务

        Raises:
            DependencyIntegrityError: 依赖边引用的任务不存在
            InvalidStateTransitionError: 任务已处于终态
        """
        task = await self.get_task(site_id, task_id)

        gating = await self._evaluate_gating(task, user_id)
        if gating.is_gated:
            log.info(
                "task_gated",
                task_id=task_id,
                user_id=user_id,
                reasons=list(gating.reasons),
            )
            return StartTaskOutcome(task, gating, None)

        candidates = await self._load_dependencies(task)
        dependency_result = task.check_dependencies(candidates)

        if not dependency_result.is_satisfied:
            reason = next(iter(dependency_result.reasons), DEFAULT_DEPENDENCY_BLOCK_REASON)
            task.block(reason, user_id)
            await self._repository.save(task)
            log.info(
                "task_blocked_by_dependencies",
                task_id=task_id,
                blocking_task_ids=list(dependency_result.blocking_task_ids),
            )
            return StartTaskOutcome(task, gating, dependency_result)

        task.unblock(user_id)
        task.start(user_id)
        await self._repository.save(task)
        log.info("task_started", task_id=task_id, user_id=user_id)
        return StartTaskOutcome(task, gating, dependency_result)

    async def block_task(self, site_id: str, task_id: str, reason: str, user_id: str) -> Task:
        task = await self.get_task(site_id, task_id)
        task.block(reason, user_id)
        await self._repository.save(task)
        log.info("task_blocked", task_id=task_id, reason=task.blocking_reason)
        return task

    async def unblock_task(self, site_id: str, task_id: str, user_id: str) -> Task:
        task = await self.get_task(site_id, task_id)
        task.unblock(user_id)
        await self._repository.save(task)
        log.info("task_unblocked", task_id=task_id)
        return task

    async def complete_task(self, site_id: str, task_id: str, user_id: str) -> Task:
        task = await self.get_task(site_id, task_id)
        task.complete(user_id)
        await self._repository.save(task)
        log.info(
            "task_completed",
            task_id=task_id,
            time_to_complete_s=_seconds(task.get_time_to_complete()),
        )
        return task

    async def cancel_task(
        self,
        site_id: str,
        task_id: str,
        reason: str | None,
        user_id: str,
    ) -> Task:
        task = await self.get_task(site_id, task_id)
        task.cancel(reason, user_id)
        await self._repository.save(task)
        log.info("task_cancelled", task_id=task_id, reason=task.cancellation_reason)
        return task

    async def update_task(
        self,
        site_id: str,
        task_id: str,
        request: UpdateTaskRequest,
        user_id: str,
    ) -> Task:
        task = await self.get_task(site_id, task_id)

        if request.title is not None:
            task.update_title(request.title, user_id)

        if request.description is not None:
            task.update_description(request.description, user_id)

        if request.due_date is not None:
            task.update_due_date(request.due_date, user_id)

        if request.priority is not None:
            task.update_priority(request.priority, user_id)

        if request.related_entity_type is not None or request.related_entity_id is not None:
            task.set_related_entity(request.related_entity_type, request.related_entity_id)

        if request.custom_task_type is not None:
            task.set_custom_task_type(request.custom_task_type)

        if request.required_sop_ids is not None or request.required_training_ids is not None:
            task.replace_requirements(
                (
                    request.required_sop_ids
                    if request.required_sop_ids is not None
                    else task.required_sop_ids
                ),
                (
                    request.required_training_ids
                    if request.required_training_ids is not None
                    else task.required_training_ids
                ),
            )

        await self._repository.save(task)
        return task

    async def get_task_history(
        self,
        site_id: str,
        task_id: str,
    ) -> tuple[TaskStateHistory, ...]:
        """任务不存在时返回空元组"""
        task = await self._repository.get(task_id, site_id)
        if task is None:
            return ()
        return task.state_history

    async def add_watcher(self, site_id: str, task_id: str, user_id: str) -> Task:
        task = await self.get_task(site_id, task_id)
        task.add_watcher(user_id)
        await self._repository.save(task)
        return task

    async def remove_watcher(self, site_id: str, task_id: str, user_id: str) -> Task:
        task = await self.get_task(site_id, task_id)
        task.remove_watcher(user_id)
        await self._repository.save(task)
        return task

    async def start_time_entry(
        self,
        site_id: str,
        task_id: str,
        user_id: str,
        notes: str | None = None,
    ) -> TaskTimeEntry:
        task = await self.get_task(site_id, task_id)
        entry = task.start_time_entry(user_id, notes=notes)
        await self._repository.save(task)
        return entry

    async def stop_time_entry(
        self,
        site_id: str,
        task_id: str,
        time_entry_id: str,
        ended_at: datetime | None = None,
        notes: str | None = None,
    ) -> TaskTimeEntry:
        """关闭工时记录

        Raises:
            TaskNotFoundError: 任务不存在
            InvalidArgumentError: 工时记录不存在，或结束时间早于开始时间
        """
        task = await self.get_task(site_id, task_id)
        entry = task.complete_time_entry(time_entry_id, ended_at, notes)
        await self._repository.save(task)
        return entry

    async def _evaluate_gating(self, task: Task, user_id: str) -> TaskGatingResult:
        if not task.required_sop_ids and not task.required_training_ids:
            return TaskGatingResult.not_gated()

        completed_sops = await self._compliance.completed_sop_ids(task.site_id, user_id)
        completed_training = await self._compliance.completed_training_ids(
            task.site_id, user_id
        )
        return task.check_gating(completed_sops, completed_training)

    async def _load_dependencies(self, task: Task) -> list[Task]:
        dependency_ids = list(
            dict.fromkeys(d.depends_on_task_id for d in task.dependencies)
        )
        if not dependency_ids:
            return []
        return await self._repository.get_many(dependency_ids, task.site_id)


def _seconds(value: timedelta | None) -> float | None:
    return value.total_seconds() if value is not None else None
