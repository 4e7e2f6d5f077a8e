"""ID 生成与参数校验

实体 ID 默认使用 ULID（时间有序）。
所有时间参数必须带时区，与 Clock 返回的 UTC 时间可比较。
"""

from datetime import datetime

from ulid import ULID

from .exceptions import InvalidArgumentError


def new_id() -> str:
    """生成新的 ULID 字符串"""
    return str(ULID())


def require_id(value: str | None, argument: str, label: str) -> str:
    """校验必填 ID 非空，返回去除首尾空白后的值

    Args:
        value: 待校验的 ID
        argument: 参数名（写入异常）
        label: 人类可读的字段名

    Raises:
        InvalidArgumentError: ID 为空
    """
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{label} is required.", argument)
    return str(value).strip()


def optional_text(value: str | None) -> str | None:
    """空白字符串归一为 None，其余去除首尾空白"""
    if value is None or not value.strip():
        return None
    return value.strip()


def require_aware(value: datetime, argument: str) -> datetime:
    """拒绝不带时区的时间

    Raises:
        InvalidArgumentError: value 为 naive datetime
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidArgumentError(
            f"{argument} must be timezone-aware.", argument
        )
    return value
