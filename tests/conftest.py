"""全局 pytest 配置 -- 可控时间源 + 任务工厂 + 临时 SQLite 数据库 fixture"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from growtask.models import Task

SITE_ID = "site-01"
USER_ID = "user-01"
BASE_TIME = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)


class ManualClock:
    """手动推进的时间源"""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


@pytest.fixture
def clock() -> ManualClock:
    """从 BASE_TIME 开始的可控时间源"""
    return ManualClock()


@pytest.fixture
def make_task(clock: ManualClock) -> Callable[..., Task]:
    """以默认站点/用户创建任务"""

    def _make(title: str = "Transplant clones", **kwargs) -> Task:
        kwargs.setdefault("clock", clock)
        return Task.create(SITE_ID, title, USER_ID, **kwargs)

    return _make


@pytest_asyncio.fixture
async def db_conn(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from growtask.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_path / "test.db"))
    await init_db(conn)
    yield conn
    await conn.close()
