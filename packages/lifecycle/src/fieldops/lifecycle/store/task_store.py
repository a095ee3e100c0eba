"""TaskStore SQLite 实现

写操作不自动提交事务；save_task 以 version 做乐观并发检查。
"""

import json
from datetime import date, datetime

import aiosqlite

from ..exceptions import TaskNotFoundError, TaskVersionConflictError
from ..models.enums import ABSORBING_STATES, TaskStatus
from ..models.task import ServiceReport, Task

_COLUMNS = (
    "task_id, project_id, stage_name, name, status, start_date, end_date, "
    "review_date, completed_date, primary_owner_id, secondary_owner_id, remarks, "
    "service_report, daily_update_ids, created_at, updated_at, version"
)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                task.task_id,
                task.project_id,
                task.stage_name.value,
                task.name,
                task.status.value,
                _iso(task.start_date),
                _iso(task.end_date),
                _iso(task.review_date),
                _iso(task.completed_date),
                task.primary_owner_id,
                task.secondary_owner_id,
                task.remarks,
                task.service_report.model_dump_json() if task.service_report else None,
                json.dumps(task.daily_update_ids),
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
                task.version,
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_active_tasks(self) -> list[Task]:
        """查询所有非吸收态任务，按 created_at 正序"""
        absorbing = sorted(s.value for s in ABSORBING_STATES)
        placeholders = ", ".join("?" for _ in absorbing)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE status NOT IN ({placeholders}) "
            "ORDER BY created_at ASC, task_id ASC",
            absorbing,
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_tasks_by_ids(self, task_ids: list[str]) -> list[Task]:
        """批量查询任务（不存在的 ID 被忽略）"""
        if not task_ids:
            return []
        placeholders = ", ".join("?" for _ in task_ids)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id IN ({placeholders})",
            list(task_ids),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_tasks_by_status(self, status: TaskStatus) -> list[Task]:
        """按状态查询任务，按 end_date 正序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE status = ? ORDER BY end_date ASC, task_id ASC",
            (TaskStatus(status).value,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def save_task(self, task: Task, expected_version: int) -> Task:
        """保存任务（乐观并发检查）

        Raises:
            TaskNotFoundError: 任务不存在
            TaskVersionConflictError: 库内版本与 expected_version 不一致
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET project_id = ?, stage_name = ?, name = ?, status = ?,
                start_date = ?, end_date = ?, review_date = ?, completed_date = ?,
                primary_owner_id = ?, secondary_owner_id = ?, remarks = ?,
                service_report = ?, daily_update_ids = ?, updated_at = ?,
                version = version + 1
            WHERE task_id = ? AND version = ?
            """,
            (
                task.project_id,
                task.stage_name.value,
                task.name,
                task.status.value,
                _iso(task.start_date),
                _iso(task.end_date),
                _iso(task.review_date),
                _iso(task.completed_date),
                task.primary_owner_id,
                task.secondary_owner_id,
                task.remarks,
                task.service_report.model_dump_json() if task.service_report else None,
                json.dumps(task.daily_update_ids),
                task.updated_at.isoformat(),
                task.task_id,
                expected_version,
            ),
        )
        if cursor.rowcount == 0:
            exists = await self._conn.execute(
                "SELECT 1 FROM tasks WHERE task_id = ?", (task.task_id,)
            )
            if await exists.fetchone() is None:
                raise TaskNotFoundError(task.task_id)
            raise TaskVersionConflictError(task.task_id, expected_version)
        return task.model_copy(update={"version": expected_version + 1})

    async def delete_task(self, task_id: str) -> None:
        """删除任务记录"""
        await self._conn.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        service_report = ServiceReport.model_validate_json(row[12]) if row[12] else None
        return Task(
            task_id=row[0],
            project_id=row[1],
            stage_name=row[2],
            name=row[3],
            status=row[4],
            start_date=date.fromisoformat(row[5]) if row[5] else None,
            end_date=date.fromisoformat(row[6]) if row[6] else None,
            review_date=datetime.fromisoformat(row[7]) if row[7] else None,
            completed_date=datetime.fromisoformat(row[8]) if row[8] else None,
            primary_owner_id=row[9],
            secondary_owner_id=row[10],
            remarks=row[11],
            service_report=service_report,
            daily_update_ids=json.loads(row[13]) if row[13] else [],
            created_at=datetime.fromisoformat(row[14]),
            updated_at=datetime.fromisoformat(row[15]),
            version=row[16],
        )
