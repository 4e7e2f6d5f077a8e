"""growtask -- 栽培任务工作流引擎

Task 聚合状态机 + 合规门控评估 + 依赖评估。
"""

from .clock import Clock, SystemClock
from .exceptions import (
    ConcurrencyConflictError,
    DependencyIntegrityError,
    InvalidArgumentError,
    InvalidStateTransitionError,
    TaskEngineError,
    TaskNotFoundError,
)
from .models import (
    DependencyType,
    Task,
    TaskDependency,
    TaskDependencyResult,
    TaskGatingResult,
    TaskPriority,
    TaskSnapshot,
    TaskStateHistory,
    TaskStatus,
    TaskTimeEntry,
    TaskType,
    TaskWatcher,
)

__all__ = [
    "Clock",
    "SystemClock",
    "Task",
    "TaskSnapshot",
    "TaskDependency",
    "TaskStateHistory",
    "TaskWatcher",
    "TaskTimeEntry",
    "TaskGatingResult",
    "TaskDependencyResult",
    "TaskStatus",
    "TaskType",
    "TaskPriority",
    "DependencyType",
    "TaskEngineError",
    "InvalidArgumentError",
    "InvalidStateTransitionError",
    "DependencyIntegrityError",
    "TaskNotFoundError",
    "ConcurrencyConflictError",
]
