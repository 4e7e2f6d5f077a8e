"""TaskRepository SQLite 实现

读写完整 Task 聚合（含合规要求、依赖边、状态历史、订阅者、工时记录）。
每次写入在同一事务内完成，失败自动回滚。
状态历史 append-only：已存在的记录不覆盖、不删除。
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

import aiosqlite
import structlog

from ..clock import Clock
from ..exceptions import ConcurrencyConflictError, TaskNotFoundError
from ..models.dependency import TaskDependency
from ..models.enums import TERMINAL_STATES, TaskStatus
from ..models.history import TaskStateHistory
from ..models.task import Task, TaskSnapshot
from ..models.time_entry import TaskTimeEntry
from ..models.watcher import TaskWatcher

log = structlog.get_logger()

_TASK_COLUMNS: tuple[str, ...] = (
    "task_id",
    "site_id",
    "task_type",
    "custom_task_type",
    "title",
    "description",
    "created_by",
    "assigned_by",
    "assigned_to_user_id",
    "assigned_to_role",
    "assigned_at",
    "status",
    "priority",
    "created_at",
    "updated_at",
    "due_date",
    "started_at",
    "completed_at",
    "cancelled_at",
    "cancellation_reason",
    "blocking_reason",
    "related_entity_type",
    "related_entity_id",
    "version",
)

_SELECT_TASKS = f"SELECT {', '.join(_TASK_COLUMNS)} FROM tasks"

# 除 task_id / version 外可被 save() 覆盖的列
_MUTABLE_COLUMNS: tuple[str, ...] = tuple(
    column for column in _TASK_COLUMNS if column not in ("task_id", "version")
)


def _to_db(value: datetime | None) -> str | None:
    """统一转换为 UTC ISO 字符串，保证字典序即时间序"""
    if value is None:
        return None
    return value.astimezone(UTC).isoformat()


class SqliteTaskStore:
    """TaskRepository 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection, clock: Clock | None = None) -> None:
        self._conn = conn
        self._clock = clock

    async def add(self, task: Task) -> None:
        """新增任务记录，初始 version = 1"""
        snapshot = task.to_snapshot()
        row = self._snapshot_to_row(snapshot)
        row["version"] = 1

        try:
            await self._conn.execute(
                f"INSERT INTO tasks ({', '.join(_TASK_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in _TASK_COLUMNS)})",
                tuple(row[column] for column in _TASK_COLUMNS),
            )
            await self._write_children(snapshot)
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

        task.mark_persisted(1)
        log.debug("task_added", task_id=task.task_id, site_id=task.site_id)

    async def save(self, task: Task) -> None:
        """保存聚合

        Raises:
            ConcurrencyConflictError: 任务在加载后已被其他事务保存
            TaskNotFoundError: 任务不存在
        """
        snapshot = task.to_snapshot()
        row = self._snapshot_to_row(snapshot)
        assignments = ", ".join(f"{column} = ?" for column in _MUTABLE_COLUMNS)

        try:
            cursor = await self._conn.execute(
                f"UPDATE tasks SET {assignments}, version = version + 1 "
                "WHERE task_id = ? AND version = ?",
                (
                    *(row[column] for column in _MUTABLE_COLUMNS),
                    snapshot.task_id,
                    snapshot.version,
                ),
            )
            if cursor.rowcount == 0:
                exists = await self._task_exists(snapshot.task_id)
                if not exists:
                    raise TaskNotFoundError(snapshot.task_id)
                raise ConcurrencyConflictError(snapshot.task_id, snapshot.version)

            await self._write_children(snapshot)
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

        task.mark_persisted(snapshot.version + 1)
        log.debug(
            "task_saved",
            task_id=task.task_id,
            status=task.status.value,
            version=task.version,
        )

    async def get(self, task_id: str, site_id: str | None = None) -> Task | None:
        """按 ID 加载完整聚合；指定 site_id 时跨站点查询返回 None"""
        if site_id is None:
            cursor = await self._conn.execute(
                f"{_SELECT_TASKS} WHERE task_id = ?",
                (task_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"{_SELECT_TASKS} WHERE task_id = ? AND site_id = ?",
                (task_id, site_id),
            )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._hydrate(row)

    async def get_many(
        self,
        task_ids: Iterable[str],
        site_id: str | None = None,
    ) -> list[Task]:
        """批量加载，未命中的 ID 直接忽略（由调用方判断完整性）"""
        ids = list(dict.fromkeys(task_ids))
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        sql = f"{_SELECT_TASKS} WHERE task_id IN ({placeholders})"
        params: list[Any] = list(ids)
        if site_id is not None:
            sql += " AND site_id = ?"
            params.append(site_id)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [await self._hydrate(row) for row in rows]

    async def list_by_site(
        self,
        site_id: str,
        status: TaskStatus | None = None,
        assigned_to_user_id: str | None = None,
    ) -> list[Task]:
        """按站点查询，按 created_at 倒序"""
        sql = f"{_SELECT_TASKS} WHERE site_id = ?"
        params: list[Any] = [site_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(TaskStatus(status).value)
        if assigned_to_user_id is not None:
            sql += " AND assigned_to_user_id = ?"
            params.append(assigned_to_user_id)
        sql += " ORDER BY created_at DESC"

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [await self._hydrate(row) for row in rows]

    async def list_overdue(
        self,
        site_id: str,
        reference_time: datetime,
        limit: int | None = None,
    ) -> list[Task]:
        """截止时间早于 reference_time 的非终态任务，按 due_date 升序"""
        terminal = [status.value for status in TERMINAL_STATES]
        sql = (
            f"{_SELECT_TASKS} WHERE site_id = ? AND due_date IS NOT NULL "
            "AND due_date < ? "
            f"AND status NOT IN ({', '.join('?' for _ in terminal)}) "
            "ORDER BY due_date ASC"
        )
        params: list[Any] = [site_id, _to_db(reference_time), *terminal]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [await self._hydrate(row) for row in rows]

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    async def _task_exists(self, task_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return await cursor.fetchone() is not None

    async def _write_children(self, snapshot: TaskSnapshot) -> None:
        """子集合整体替换；状态历史只追加"""
        task_id = snapshot.task_id

        await self._conn.execute(
            "DELETE FROM task_required_sops WHERE task_id = ?", (task_id,)
        )
        await self._conn.executemany(
            "INSERT INTO task_required_sops (task_id, sop_id) VALUES (?, ?)",
            [(task_id, sop_id) for sop_id in snapshot.required_sop_ids],
        )

        await self._conn.execute(
            "DELETE FROM task_required_trainings WHERE task_id = ?", (task_id,)
        )
        await self._conn.executemany(
            "INSERT INTO task_required_trainings (task_id, training_id) VALUES (?, ?)",
            [(task_id, training_id) for training_id in snapshot.required_training_ids],
        )

        await self._conn.execute(
            "DELETE FROM task_dependencies WHERE task_id = ?", (task_id,)
        )
        await self._conn.executemany(
            """
            INSERT INTO task_dependencies (dependency_id, task_id, depends_on_task_id,
                                           dependency_type, is_blocking,
                                           minimum_lag_seconds)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    dep.dependency_id,
                    dep.task_id,
                    dep.depends_on_task_id,
                    dep.dependency_type.value,
                    int(dep.is_blocking),
                    dep.minimum_lag.total_seconds() if dep.minimum_lag else None,
                )
                for dep in snapshot.dependencies
            ],
        )

        await self._conn.executemany(
            """
            INSERT OR IGNORE INTO task_state_history (history_id, task_id, from_status,
                                                      to_status, changed_by,
                                                      changed_at, reason)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.history_id,
                    entry.task_id,
                    entry.from_status.value,
                    entry.to_status.value,
                    entry.changed_by,
                    _to_db(entry.changed_at),
                    entry.reason,
                )
                for entry in snapshot.state_history
            ],
        )

        await self._conn.execute(
            "DELETE FROM task_watchers WHERE task_id = ?", (task_id,)
        )
        await self._conn.executemany(
            """
            INSERT INTO task_watchers (watcher_id, task_id, user_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            [
                (w.watcher_id, w.task_id, w.user_id, _to_db(w.created_at))
                for w in snapshot.watchers
            ],
        )

        await self._conn.execute(
            "DELETE FROM task_time_entries WHERE task_id = ?", (task_id,)
        )
        await self._conn.executemany(
            """
            INSERT INTO task_time_entries (time_entry_id, task_id, user_id,
                                           started_at, ended_at, notes)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.time_entry_id,
                    entry.task_id,
                    entry.user_id,
                    _to_db(entry.started_at),
                    _to_db(entry.ended_at),
                    entry.notes,
                )
                for entry in snapshot.time_entries
            ],
        )

    async def _hydrate(self, row: Iterable[Any]) -> Task:
        """将 tasks 行 + 子表行重建为 Task 聚合"""
        data = dict(zip(_TASK_COLUMNS, row, strict=True))
        task_id = data["task_id"]

        cursor = await self._conn.execute(
            "SELECT sop_id FROM task_required_sops WHERE task_id = ?", (task_id,)
        )
        sop_ids = [r[0] for r in await cursor.fetchall()]

        cursor = await self._conn.execute(
            "SELECT training_id FROM task_required_trainings WHERE task_id = ?",
            (task_id,),
        )
        training_ids = [r[0] for r in await cursor.fetchall()]

        cursor = await self._conn.execute(
            """
            SELECT dependency_id, task_id, depends_on_task_id, dependency_type,
                   is_blocking, minimum_lag_seconds
            FROM task_dependencies WHERE task_id = ? ORDER BY rowid
            """,
            (task_id,),
        )
        dependencies = [
            TaskDependency(
                dependency_id=r[0],
                task_id=r[1],
                depends_on_task_id=r[2],
                dependency_type=r[3],
                is_blocking=bool(r[4]),
                minimum_lag=timedelta(seconds=r[5]) if r[5] is not None else None,
            )
            for r in await cursor.fetchall()
        ]

        cursor = await self._conn.execute(
            """
            SELECT history_id, task_id, from_status, to_status, changed_by,
                   changed_at, reason
            FROM task_state_history WHERE task_id = ?
            ORDER BY changed_at ASC, seq ASC
            """,
            (task_id,),
        )
        history = [
            TaskStateHistory(
                history_id=r[0],
                task_id=r[1],
                from_status=r[2],
                to_status=r[3],
                changed_by=r[4],
                changed_at=r[5],
                reason=r[6],
            )
            for r in await cursor.fetchall()
        ]

        cursor = await self._conn.execute(
            """
            SELECT watcher_id, task_id, user_id, created_at
            FROM task_watchers WHERE task_id = ? ORDER BY created_at, rowid
            """,
            (task_id,),
        )
        watchers = [
            TaskWatcher(watcher_id=r[0], task_id=r[1], user_id=r[2], created_at=r[3])
            for r in await cursor.fetchall()
        ]

        cursor = await self._conn.execute(
            """
            SELECT time_entry_id, task_id, user_id, started_at, ended_at, notes
            FROM task_time_entries WHERE task_id = ? ORDER BY started_at, rowid
            """,
            (task_id,),
        )
        time_entries = [
            TaskTimeEntry(
                time_entry_id=r[0],
                task_id=r[1],
                user_id=r[2],
                started_at=r[3],
                ended_at=r[4],
                notes=r[5],
            )
            for r in await cursor.fetchall()
        ]

        snapshot = TaskSnapshot(
            **data,
            required_sop_ids=sop_ids,
            required_training_ids=training_ids,
            dependencies=dependencies,
            state_history=history,
            watchers=watchers,
            time_entries=time_entries,
        )
        return Task.from_snapshot(snapshot, clock=self._clock)

    @staticmethod
    def _snapshot_to_row(snapshot: TaskSnapshot) -> dict[str, Any]:
        """将快照的标量字段转换为 tasks 行"""
        return {
            "task_id": snapshot.task_id,
            "site_id": snapshot.site_id,
            "task_type": snapshot.task_type.value,
            "custom_task_type": snapshot.custom_task_type,
            "title": snapshot.title,
            "description": snapshot.description,
            "created_by": snapshot.created_by,
            "assigned_by": snapshot.assigned_by,
            "assigned_to_user_id": snapshot.assigned_to_user_id,
            "assigned_to_role": snapshot.assigned_to_role,
            "assigned_at": _to_db(snapshot.assigned_at),
            "status": snapshot.status.value,
            "priority": snapshot.priority.value,
            "created_at": _to_db(snapshot.created_at),
            "updated_at": _to_db(snapshot.updated_at),
            "due_date": _to_db(snapshot.due_date),
            "started_at": _to_db(snapshot.started_at),
            "completed_at": _to_db(snapshot.completed_at),
            "cancelled_at": _to_db(snapshot.cancelled_at),
            "cancellation_reason": snapshot.cancellation_reason,
            "blocking_reason": snapshot.blocking_reason,
            "related_entity_type": snapshot.related_entity_type,
            "related_entity_id": snapshot.related_entity_id,
            "version": snapshot.version,
        }
