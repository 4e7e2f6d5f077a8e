"""日志配置 -- structlog 接管标准库 logging

GROWTASK_LOG_FORMAT=dev  控制台可读输出（默认）
GROWTASK_LOG_FORMAT=json 每行一个 JSON 对象
"""

import logging

import structlog

from .config import EngineConfig, load_engine_config

# aiosqlite 在 DEBUG 级别逐条打印 SQL，噪声过大
_NOISY_LOGGERS = ("aiosqlite",)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(config: EngineConfig | None = None) -> None:
    """初始化 structlog，并把根 logger 的输出统一交给 ProcessorFormatter

    Args:
        config: 运行配置；缺省时从环境变量加载
    """
    config = config or load_engine_config()
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(config.log_format),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
