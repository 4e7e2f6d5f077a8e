"""TaskWatcher Domain Model -- 任务订阅者（仅订阅关系，不含通知投递）"""

from datetime import datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from ..ids import new_id, require_id


class TaskWatcher(BaseModel):
    """任务订阅者"""

    model_config = ConfigDict(frozen=True)

    watcher_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    user_id: str = Field(description="订阅用户 ID")
    created_at: AwareDatetime = Field(description="订阅时间")

    @classmethod
    def create(cls, task_id: str, user_id: str, created_at: datetime) -> "TaskWatcher":
        return cls(
            watcher_id=new_id(),
            task_id=task_id,
            user_id=require_id(user_id, "user_id", "User identifier"),
            created_at=created_at,
        )
