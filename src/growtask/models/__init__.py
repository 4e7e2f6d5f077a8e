"""growtask Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .dependency import TaskDependency
from .enums import (
    STARTABLE_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DependencyType,
    TaskPriority,
    TaskStatus,
    TaskType,
    validate_transition,
)
from .evaluation import (
    MISSING_SOP_REASON,
    MISSING_TRAINING_REASON,
    DependencyCandidate,
    check_dependencies,
    check_gating,
)
from .history import TaskStateHistory
from .results import TaskDependencyResult, TaskGatingResult
from .task import Task, TaskSnapshot
from .time_entry import TaskTimeEntry
from .watcher import TaskWatcher

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskType",
    "TaskPriority",
    "DependencyType",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "STARTABLE_STATES",
    "validate_transition",
    # Task 聚合
    "Task",
    "TaskSnapshot",
    "TaskDependency",
    "TaskStateHistory",
    "TaskWatcher",
    "TaskTimeEntry",
    # 评估
    "TaskGatingResult",
    "TaskDependencyResult",
    "DependencyCandidate",
    "check_gating",
    "check_dependencies",
    "MISSING_SOP_REASON",
    "MISSING_TRAINING_REASON",
]
