"""门控评估器与依赖评估器 -- 纯函数，不做 I/O

check_gating: 比较任务的合规要求与外部提供的已完成集合。
check_dependencies: 比较依赖边与外部提供的候选任务状态。
"""

from collections.abc import Collection, Iterable
from datetime import datetime
from typing import Protocol, assert_never

from ..exceptions import DependencyIntegrityError
from .dependency import TaskDependency
from .enums import DependencyType, TaskStatus
from .results import TaskDependencyResult, TaskGatingResult

MISSING_SOP_REASON = "Missing SOP acknowledgement"
MISSING_TRAINING_REASON = "Training requirements incomplete"


class DependencyCandidate(Protocol):
    """依赖评估所需的被依赖任务视图"""

    @property
    def task_id(self) -> str: ...

    @property
    def title(self) -> str: ...

    @property
    def status(self) -> TaskStatus: ...

    @property
    def started_at(self) -> datetime | None: ...


def check_gating(
    required_sop_ids: Collection[str],
    required_training_ids: Collection[str],
    completed_sop_ids: Iterable[str] | None,
    completed_training_ids: Iterable[str] | None,
) -> TaskGatingResult:
    """计算 (要求 - 已完成) 差集，SOP 与培训分别计算

    completed 集合为 None 时视为空集。
    """
    if not required_sop_ids and not required_training_ids:
        return TaskGatingResult.not_gated()

    missing_sops = set(required_sop_ids).difference(completed_sop_ids or ())
    missing_training = set(required_training_ids).difference(
        completed_training_ids or ()
    )

    if not missing_sops and not missing_training:
        return TaskGatingResult.not_gated()

    reasons: list[str] = []
    if missing_sops:
        reasons.append(MISSING_SOP_REASON)
    if missing_training:
        reasons.append(MISSING_TRAINING_REASON)

    return TaskGatingResult.gated(missing_sops, missing_training, reasons)


def check_dependencies(
    task_id: str,
    dependencies: Collection[TaskDependency],
    candidates: Iterable[DependencyCandidate] | None,
) -> TaskDependencyResult:
    """按依赖类型逐条评估依赖边

    Args:
        task_id: 拥有依赖边的任务 ID（用于异常信息）
        dependencies: 依赖边
        candidates: 调用方预加载的被依赖任务

    Raises:
        DependencyIntegrityError: 某条依赖边引用的任务未在 candidates 中提供
    """
    if not dependencies:
        return TaskDependencyResult.satisfied()

    by_id = {candidate.task_id: candidate for candidate in candidates or ()}
    blocking: list[str] = []
    reasons: list[str] = []

    for dependency in dependencies:
        candidate = by_id.get(dependency.depends_on_task_id)
        if candidate is None:
            raise DependencyIntegrityError(task_id, dependency.depends_on_task_id)

        if not _is_edge_satisfied(dependency.dependency_type, candidate):
            blocking.append(candidate.task_id)
            reasons.append(_blocking_reason(dependency.dependency_type, candidate))

    if not blocking:
        return TaskDependencyResult.satisfied()
    return TaskDependencyResult.blocked(blocking, reasons)


def _is_edge_satisfied(
    dependency_type: DependencyType,
    candidate: DependencyCandidate,
) -> bool:
    match dependency_type:
        case DependencyType.FINISH_TO_START | DependencyType.FINISH_TO_FINISH:
            return candidate.status == TaskStatus.COMPLETED
        case DependencyType.START_TO_START:
            return candidate.started_at is not None or candidate.status in (
                TaskStatus.IN_PROGRESS,
                TaskStatus.COMPLETED,
            )
        case _:
            assert_never(dependency_type)


def _blocking_reason(
    dependency_type: DependencyType,
    candidate: DependencyCandidate,
) -> str:
    if dependency_type == DependencyType.START_TO_START:
        return f"Task {candidate.title} must start before this task"
    return f"Task {candidate.title} must complete first"
