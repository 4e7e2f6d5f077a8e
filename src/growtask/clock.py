"""时间源抽象

领域逻辑不直接读取墙上时钟，统一通过 Clock 获取当前时间，
便于测试控制时间。
"""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """时间源接口"""

    def now(self) -> datetime:
        """返回当前 UTC 时间（带时区）"""
        ...


class SystemClock:
    """基于系统时间的默认实现"""

    def now(self) -> datetime:
        return datetime.now(UTC)


SYSTEM_CLOCK = SystemClock()
