"""growtask Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from ..clock import Clock
from .protocols import ComplianceResolver, TaskRepository
from .sqlite_init import init_db, verify_wal_mode
from .task_store import SqliteTaskStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection, clock: Clock | None = None) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn, clock=clock)

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(db_path: str, clock: Clock | None = None) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        clock: 注入到重建聚合中的时间源

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    return StoreGroup(conn=conn, clock=clock)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "TaskRepository",
    "ComplianceResolver",
    "init_db",
    "verify_wal_mode",
]
