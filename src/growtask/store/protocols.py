"""Store / 协作方 Protocol 接口定义

使用 Python Protocol 实现结构化子类型（duck typing）。
持久化层负责唯一性与乐观并发，引擎本身不加锁。
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from ..models.enums import TaskStatus
from ..models.task import Task


class TaskRepository(Protocol):
    """Task 聚合存储接口"""

    async def add(self, task: Task) -> None:
        """新增任务（含全部子集合）"""
        ...

    async def save(self, task: Task) -> None:
        """保存修改后的聚合；并发令牌过期时抛 ConcurrencyConflictError"""
        ...

    async def get(self, task_id: str, site_id: str | None = None) -> Task | None:
        """按 ID 加载完整聚合"""
        ...

    async def get_many(
        self,
        task_ids: Iterable[str],
        site_id: str | None = None,
    ) -> list[Task]:
        """批量加载（依赖图候选任务）"""
        ...

    async def list_by_site(
        self,
        site_id: str,
        status: TaskStatus | None = None,
        assigned_to_user_id: str | None = None,
    ) -> list[Task]:
        """按站点查询，支持状态与执行人筛选"""
        ...

    async def list_overdue(
        self,
        site_id: str,
        reference_time: datetime,
        limit: int | None = None,
    ) -> list[Task]:
        """查询截止时间早于 reference_time 的非终态任务"""
        ...


class ComplianceResolver(Protocol):
    """合规数据来源：用户在站点下已确认的 SOP 与已完成的培训"""

    async def completed_sop_ids(self, site_id: str, user_id: str) -> set[str]:
        ...

    async def completed_training_ids(self, site_id: str, user_id: str) -> set[str]:
        ...
