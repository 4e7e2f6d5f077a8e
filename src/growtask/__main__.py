"""CLI 入口模块 -- python -m growtask <command>

支持的命令：
  init-db              创建数据库表结构
  overdue <site_id>    列出站点下的逾期任务
"""

import asyncio
import sys

from .config import load_engine_config
from .logging_config import setup_logging

_USAGE = """用法: python -m growtask <command>
命令:
  init-db              创建数据库表结构
  overdue <site_id>    列出站点下的逾期任务"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    config = load_engine_config()
    setup_logging(config)

    if command == "init-db":
        asyncio.run(init_database(config.db_path))
    elif command == "overdue" and len(sys.argv) >= 3:
        asyncio.run(print_overdue(config.db_path, sys.argv[2], config.overdue_limit))
    else:
        print(f"未知命令: {' '.join(sys.argv[1:])}")
        print(_USAGE)
        sys.exit(1)


async def init_database(db_path: str) -> None:
    """执行数据库初始化"""
    from .store import create_store_group

    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.close()
    print("初始化完成")


async def print_overdue(db_path: str, site_id: str, limit: int) -> None:
    """打印逾期任务"""
    from .clock import SYSTEM_CLOCK
    from .store import create_store_group

    store_group = await create_store_group(db_path)
    try:
        tasks = await store_group.task_store.list_overdue(
            site_id, SYSTEM_CLOCK.now(), limit
        )
    finally:
        await store_group.close()

    if not tasks:
        print(f"站点 {site_id} 无逾期任务")
        return

    for task in tasks:
        due = task.due_date.isoformat() if task.due_date else "-"
        print(f"{task.task_id}  {task.status.value:<12} {due}  {task.title}")


if __name__ == "__main__":
    main()
