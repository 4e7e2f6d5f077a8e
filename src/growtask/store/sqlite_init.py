"""SQLite 数据库初始化

PRAGMA 配置 + 聚合各表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL（聚合根，version 为乐观并发令牌）
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id              TEXT PRIMARY KEY,
    site_id              TEXT NOT NULL,
    task_type            TEXT NOT NULL DEFAULT 'custom',
    custom_task_type     TEXT,
    title                TEXT NOT NULL,
    description          TEXT,
    created_by           TEXT NOT NULL,
    assigned_by          TEXT NOT NULL,
    assigned_to_user_id  TEXT,
    assigned_to_role     TEXT,
    assigned_at          TEXT,
    status               TEXT NOT NULL DEFAULT 'pending',
    priority             TEXT NOT NULL DEFAULT 'normal',
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL,
    due_date             TEXT,
    started_at           TEXT,
    completed_at         TEXT,
    cancelled_at         TEXT,
    cancellation_reason  TEXT,
    blocking_reason      TEXT,
    related_entity_type  TEXT,
    related_entity_id    TEXT,
    version              INTEGER NOT NULL DEFAULT 1
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_site_status ON tasks(site_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_site_due ON tasks(site_id, due_date);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assigned_to_user_id);",
]

_REQUIRED_SOPS_DDL = """
CREATE TABLE IF NOT EXISTS task_required_sops (
    task_id  TEXT NOT NULL,
    sop_id   TEXT NOT NULL,

    PRIMARY KEY (task_id, sop_id),
    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_REQUIRED_TRAININGS_DDL = """
CREATE TABLE IF NOT EXISTS task_required_trainings (
    task_id      TEXT NOT NULL,
    training_id  TEXT NOT NULL,

    PRIMARY KEY (task_id, training_id),
    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_DEPENDENCIES_DDL = """
CREATE TABLE IF NOT EXISTS task_dependencies (
    dependency_id        TEXT PRIMARY KEY,
    task_id              TEXT NOT NULL,
    depends_on_task_id   TEXT NOT NULL,
    dependency_type      TEXT NOT NULL DEFAULT 'finish_to_start',
    is_blocking          INTEGER NOT NULL DEFAULT 1,
    minimum_lag_seconds  REAL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE,
    CHECK (task_id <> depends_on_task_id)
);
"""

# 状态历史 append-only：只插入，不更新、不删除
_STATE_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS task_state_history (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    history_id   TEXT NOT NULL UNIQUE,
    task_id      TEXT NOT NULL,
    from_status  TEXT NOT NULL,
    to_status    TEXT NOT NULL,
    changed_by   TEXT NOT NULL,
    changed_at   TEXT NOT NULL,
    reason       TEXT,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_WATCHERS_DDL = """
CREATE TABLE IF NOT EXISTS task_watchers (
    watcher_id  TEXT PRIMARY KEY,
    task_id     TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    created_at  TEXT NOT NULL,

    UNIQUE (task_id, user_id),
    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_TIME_ENTRIES_DDL = """
CREATE TABLE IF NOT EXISTS task_time_entries (
    time_entry_id  TEXT PRIMARY KEY,
    task_id        TEXT NOT NULL,
    user_id        TEXT NOT NULL,
    started_at     TEXT NOT NULL,
    ended_at       TEXT,
    notes          TEXT,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_CHILD_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_dependencies_task ON task_dependencies(task_id);",
    (
        "CREATE INDEX IF NOT EXISTS idx_state_history_task "
        "ON task_state_history(task_id, changed_at);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_time_entries_task ON task_time_entries(task_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (
        _TASKS_DDL,
        _REQUIRED_SOPS_DDL,
        _REQUIRED_TRAININGS_DDL,
        _DEPENDENCIES_DDL,
        _STATE_HISTORY_DDL,
        _WATCHERS_DDL,
        _TIME_ENTRIES_DDL,
    ):
        await conn.execute(ddl)

    for idx_sql in _TASKS_INDEXES + _CHILD_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
