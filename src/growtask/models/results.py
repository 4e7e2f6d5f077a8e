"""评估结果值对象 -- 不持久化、不可变

TaskGatingResult: 合规门控结果（not gated 单例 / gated 变体）
TaskDependencyResult: 依赖评估结果（satisfied 单例 / blocked 变体）
仅由评估器构造。
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field


class TaskGatingResult(BaseModel):
    """合规门控结果"""

    model_config = ConfigDict(frozen=True)

    is_gated: bool = Field(default=False, description="是否被门控")
    missing_sop_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="未确认的 SOP ID",
    )
    missing_training_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="未完成的培训 ID",
    )
    reasons: tuple[str, ...] = Field(default=(), description="人类可读原因")

    @classmethod
    def not_gated(cls) -> "TaskGatingResult":
        return _NOT_GATED

    @classmethod
    def gated(
        cls,
        missing_sop_ids: Iterable[str],
        missing_training_ids: Iterable[str],
        reasons: Iterable[str],
    ) -> "TaskGatingResult":
        return cls(
            is_gated=True,
            missing_sop_ids=frozenset(missing_sop_ids),
            missing_training_ids=frozenset(missing_training_ids),
            reasons=tuple(reasons),
        )


class TaskDependencyResult(BaseModel):
    """依赖评估结果"""

    model_config = ConfigDict(frozen=True)

    is_satisfied: bool = Field(default=True, description="依赖是否全部满足")
    blocking_task_ids: tuple[str, ...] = Field(
        default=(),
        description="阻塞当前任务的依赖任务 ID（按依赖边顺序）",
    )
    reasons: tuple[str, ...] = Field(default=(), description="人类可读原因")

    @classmethod
    def satisfied(cls) -> "TaskDependencyResult":
        return _SATISFIED

    @classmethod
    def blocked(
        cls,
        blocking_task_ids: Iterable[str],
        reasons: Iterable[str],
    ) -> "TaskDependencyResult":
        return cls(
            is_satisfied=False,
            blocking_task_ids=tuple(blocking_task_ids),
            reasons=tuple(reasons),
        )


_NOT_GATED = TaskGatingResult()
_SATISFIED = TaskDependencyResult()
