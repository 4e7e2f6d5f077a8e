"""TaskDependency Domain Model

有向依赖边：owner task -> depends-on task。
创建后不可变；最小间隔与 blocking 标记仅作为调度方的元数据，
依赖评估器不强制它们。
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidArgumentError
from ..ids import new_id, require_id
from .enums import DependencyType, parse_enum


class TaskDependency(BaseModel):
    """依赖边"""

    model_config = ConfigDict(frozen=True)

    dependency_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="拥有该依赖的 Task ID")
    depends_on_task_id: str = Field(description="被依赖的 Task ID")
    dependency_type: DependencyType = Field(
        default=DependencyType.FINISH_TO_START,
        description="依赖排序语义",
    )
    is_blocking: bool = Field(default=True, description="是否为阻塞型依赖")
    minimum_lag: timedelta | None = Field(default=None, description="最小间隔")

    @classmethod
    def create(
        cls,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType | str | None = None,
        is_blocking: bool = True,
        minimum_lag: timedelta | None = None,
        dependency_id: str | None = None,
    ) -> "TaskDependency":
        """创建依赖边

        Raises:
            InvalidArgumentError: ID 为空、自依赖或最小间隔为负
        """
        task_id = require_id(task_id, "task_id", "Task identifier")
        depends_on_task_id = require_id(
            depends_on_task_id, "depends_on_task_id", "Depends-on task identifier"
        )
        if task_id == depends_on_task_id:
            raise InvalidArgumentError(
                "A task cannot depend on itself.", "depends_on_task_id"
            )
        if minimum_lag is not None and minimum_lag < timedelta(0):
            raise InvalidArgumentError(
                "Minimum lag cannot be negative.", "minimum_lag"
            )

        return cls(
            dependency_id=dependency_id or new_id(),
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            dependency_type=(
                DependencyType.FINISH_TO_START
                if dependency_type is None
                else parse_enum(DependencyType, dependency_type, "dependency_type")
            ),
            is_blocking=is_blocking,
            minimum_lag=minimum_lag,
        )
