"""EngineConfig -- 配置加载

从环境变量加载配置：
    GROWTASK_DATA_DIR: 数据基础目录（默认 data）
    GROWTASK_DB_PATH: SQLite 数据库路径（默认 <data_dir>/sqlite/growtask.db）
    GROWTASK_LOG_FORMAT: 日志渲染模式 dev / json
    GROWTASK_LOG_LEVEL: 日志级别
    GROWTASK_OVERDUE_LIMIT: 逾期任务列表最大条数
"""

import os
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

DEFAULT_OVERDUE_LIMIT = 200


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("GROWTASK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "GROWTASK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "growtask.db"),
    )


class EngineConfig(BaseModel):
    """growtask 运行配置"""

    db_path: str = Field(
        default="data/sqlite/growtask.db",
        description="SQLite 数据库路径",
    )
    log_format: Literal["dev", "json"] = Field(
        default="dev",
        description="日志渲染模式：dev / json",
    )
    log_level: str = Field(default="INFO", description="日志级别")
    overdue_limit: int = Field(
        default=DEFAULT_OVERDUE_LIMIT,
        ge=1,
        description="逾期任务列表最大条数",
    )


def load_engine_config() -> EngineConfig:
    """从环境变量加载配置

    整数配置非法时记录警告并使用默认值，不阻塞启动。
    """
    kwargs: dict = {"db_path": get_db_path()}

    if val := os.environ.get("GROWTASK_LOG_FORMAT"):
        kwargs["log_format"] = val

    if val := os.environ.get("GROWTASK_LOG_LEVEL"):
        kwargs["log_level"] = val.upper()

    if val := os.environ.get("GROWTASK_OVERDUE_LIMIT"):
        try:
            kwargs["overdue_limit"] = int(val)
        except ValueError:
            log.warning(
                "invalid_overdue_limit_config",
                env_var="GROWTASK_OVERDUE_LIMIT",
                value=val,
                fallback=DEFAULT_OVERDUE_LIMIT,
            )

    return EngineConfig(**kwargs)
