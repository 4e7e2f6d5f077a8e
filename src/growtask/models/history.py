"""TaskStateHistory Domain Model

状态历史 append-only，是状态机的审计轨迹。
每条记录必须可归属到一个操作者。
"""

from datetime import datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from ..ids import new_id, optional_text, require_id
from .enums import TaskStatus


class TaskStateHistory(BaseModel):
    """状态流转记录"""

    model_config = ConfigDict(frozen=True)

    history_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    from_status: TaskStatus = Field(description="流转前状态")
    to_status: TaskStatus = Field(description="流转后状态")
    changed_by: str = Field(description="操作者 ID")
    changed_at: AwareDatetime = Field(description="流转时间")
    reason: str | None = Field(default=None, description="流转原因")

    @classmethod
    def create(
        cls,
        task_id: str,
        from_status: TaskStatus,
        to_status: TaskStatus,
        changed_by: str,
        changed_at: datetime,
        reason: str | None = None,
    ) -> "TaskStateHistory":
        return cls(
            history_id=new_id(),
            task_id=task_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=require_id(changed_by, "changed_by", "Changed by identifier"),
            changed_at=changed_at,
            reason=optional_text(reason),
        )
