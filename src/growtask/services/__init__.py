"""growtask Services -- 生命周期编排"""

from .lifecycle import (
    CreateTaskRequest,
    DependencyRequest,
    StartTaskOutcome,
    TaskLifecycleService,
    UpdateTaskRequest,
)

__all__ = [
    "TaskLifecycleService",
    "CreateTaskRequest",
    "UpdateTaskRequest",
    "DependencyRequest",
    "StartTaskOutcome",
]
