"""growtask 异常体系

所有异常同步抛给直接调用方，引擎内部不做重试、退避或吞掉异常。
"""


class TaskEngineError(Exception):
    """growtask 基础异常"""


class InvalidArgumentError(TaskEngineError, ValueError):
    """参数非法（空 ID、空标题/原因、越界的截止时间等）

    调用方修正参数后可重新调用。
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            argument: 出错的参数名
        """
        super().__init__(message)
        self.argument = argument


class InvalidStateTransitionError(TaskEngineError):
    """当前状态下不允许执行该操作

    调用方应重新检查状态（例如 can_start）后再重试意图，而不是重复调用。
    """

    def __init__(self, message: str, current_status: str, operation: str) -> None:
        """
        Args:
            message: 错误描述
            current_status: 操作发生时的任务状态
            operation: 被拒绝的操作名
        """
        super().__init__(message)
        self.current_status = current_status
        self.operation = operation


class DependencyIntegrityError(TaskEngineError):
    """依赖边引用的任务未被调用方提供

    属于数据完整性问题，不降级为 blocked 结果。
    """

    def __init__(self, task_id: str, depends_on_task_id: str) -> None:
        super().__init__(
            f"Dependent task {depends_on_task_id} not found. "
            "This indicates a data integrity issue."
        )
        self.task_id = task_id
        self.depends_on_task_id = depends_on_task_id


class TaskNotFoundError(TaskEngineError, LookupError):
    """按 ID 查询任务未命中"""

    def __init__(self, task_id: str, site_id: str | None = None) -> None:
        if site_id is None:
            message = f"Task {task_id} not found."
        else:
            message = f"Task {task_id} not found for site {site_id}."
        super().__init__(message)
        self.task_id = task_id
        self.site_id = site_id


class ConcurrencyConflictError(TaskEngineError):
    """乐观并发令牌过期：任务在加载后已被其他事务保存"""

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"Task {task_id} was modified concurrently "
            f"(expected version {expected_version})."
        )
        self.task_id = task_id
        self.expected_version = expected_version
