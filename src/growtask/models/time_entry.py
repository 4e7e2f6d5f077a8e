"""TaskTimeEntry Domain Model

工时记录：开始时创建（无结束时间），通过 Task.complete_time_entry() 关闭。
记录不可变，关闭时由聚合替换为新副本。
结束时间不得早于开始时间，因此 duration 永不为负。
同一任务允许多条同时打开的记录。
"""

from datetime import datetime, timedelta

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from ..exceptions import InvalidArgumentError
from ..ids import new_id, optional_text, require_aware, require_id


class TaskTimeEntry(BaseModel):
    """工时记录"""

    model_config = ConfigDict(frozen=True)

    time_entry_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    user_id: str = Field(description="记录工时的用户 ID")
    started_at: AwareDatetime = Field(description="开始时间")
    ended_at: AwareDatetime | None = Field(default=None, description="结束时间")
    notes: str | None = Field(default=None, description="备注")

    @model_validator(mode="after")
    def _check_end_after_start(self) -> "TaskTimeEntry":
        if self.ended_at is not None and self.ended_at < self.started_at:
            raise InvalidArgumentError("End time cannot precede start time.", "ended_at")
        return self

    @classmethod
    def create(
        cls,
        task_id: str,
        user_id: str,
        started_at: datetime,
        notes: str | None = None,
    ) -> "TaskTimeEntry":
        return cls(
            time_entry_id=new_id(),
            task_id=task_id,
            user_id=require_id(user_id, "user_id", "User identifier"),
            started_at=require_aware(started_at, "started_at"),
            notes=optional_text(notes),
        )

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def duration(self) -> timedelta | None:
        """结束 - 开始；未结束时返回 None"""
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def completed(self, ended_at: datetime, notes: str | None = None) -> "TaskTimeEntry":
        """返回已关闭的副本

        Args:
            ended_at: 结束时间（必须带时区）
            notes: 备注，为空时保留原备注

        Raises:
            InvalidArgumentError: 结束时间缺少时区或早于开始时间
        """
        ended_at = require_aware(ended_at, "ended_at")
        if ended_at < self.started_at:
            raise InvalidArgumentError(
                "End time cannot precede start time.", "ended_at"
            )

        return self.model_copy(
            update={"ended_at": ended_at, "notes": optional_text(notes) or self.notes}
        )
