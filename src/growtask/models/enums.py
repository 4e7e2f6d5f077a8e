"""枚举定义 -- Task 状态机、任务类型、优先级、依赖类型

包含 TaskStatus 状态机、TaskType、TaskPriority、DependencyType 枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum
from typing import TypeVar

from ..exceptions import InvalidArgumentError

E = TypeVar("E", bound=StrEnum)


class TaskStatus(StrEnum):
    """Task 状态机"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"

    # 终态
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 合法状态流转（不含自环；自环由各操作自身的幂等规则处理）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {
        TaskStatus.IN_PROGRESS,
        TaskStatus.BLOCKED,
        TaskStatus.CANCELLED,
    },
    TaskStatus.IN_PROGRESS: {
        TaskStatus.BLOCKED,
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
    },
    TaskStatus.BLOCKED: {
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.CANCELLED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
    }
)

# can_start 允许的起始状态
STARTABLE_STATES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.PENDING,
        TaskStatus.BLOCKED,
    }
)


class TaskType(StrEnum):
    """任务类型，未指定时归一为 CUSTOM"""

    UNDEFINED = "undefined"
    CUSTOM = "custom"
    CULTIVATION = "cultivation"
    IRRIGATION = "irrigation"
    MAINTENANCE = "maintenance"
    COMPLIANCE = "compliance"
    HARVEST = "harvest"
    PROCESSING = "processing"


class TaskPriority(StrEnum):
    """任务优先级，UNDEFINED 为哨兵值，不可作为更新目标"""

    UNDEFINED = "undefined"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class DependencyType(StrEnum):
    """依赖排序语义"""

    FINISH_TO_START = "finish_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_START = "start_to_start"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def parse_enum(enum_type: type[E], value: E | str, argument: str) -> E:
    """字符串转枚举，未知取值抛 InvalidArgumentError

    Raises:
        InvalidArgumentError: value 不是 enum_type 的合法取值
    """
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown {argument} value: {value!r}.", argument
        ) from None


def normalize_task_type(task_type: TaskType | str | None) -> TaskType:
    """未指定 / UNDEFINED 归一为 CUSTOM"""
    if task_type is None:
        return TaskType.CUSTOM
    value = parse_enum(TaskType, task_type, "task_type")
    return TaskType.CUSTOM if value == TaskType.UNDEFINED else value


def normalize_priority(priority: TaskPriority | str | None) -> TaskPriority:
    """未指定 / UNDEFINED 归一为 NORMAL"""
    if priority is None:
        return TaskPriority.NORMAL
    value = parse_enum(TaskPriority, priority, "priority")
    return TaskPriority.NORMAL if value == TaskPriority.UNDEFINED else value
