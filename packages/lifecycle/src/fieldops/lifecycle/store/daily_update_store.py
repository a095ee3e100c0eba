"""DailyUpdateStore SQLite 实现

(task_id, day) 唯一；批量操作使用 executemany，单次往返完成。
注意：写操作不自动提交事务，需由调用方管理事务。
"""

import json
from datetime import date, datetime

import aiosqlite

from ..models.daily_update import DailyUpdate, ManHours

_COLUMNS = (
    "update_id, task_id, day, photos, distance_traveled, man_hours, created_at, updated_at"
)


class SqliteDailyUpdateStore:
    """DailyUpdateStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def list_by_task(self, task_id: str) -> list[DailyUpdate]:
        """查询任务的全部日报，按日期正序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM daily_updates WHERE task_id = ? ORDER BY day ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_update(row) for row in rows]

    async def bulk_insert(self, updates: list[DailyUpdate]) -> None:
        """批量插入"""
        if not updates:
            return
        await self._conn.executemany(
            f"INSERT INTO daily_updates ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [self._update_to_params(u) for u in updates],
        )

    async def bulk_delete(self, update_ids: list[str]) -> None:
        """批量删除"""
        if not update_ids:
            return
        placeholders = ", ".join("?" for _ in update_ids)
        await self._conn.execute(
            f"DELETE FROM daily_updates WHERE update_id IN ({placeholders})",
            list(update_ids),
        )

    async def get_daily_update(self, update_id: str) -> DailyUpdate | None:
        """根据 update_id 查询日报"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM daily_updates WHERE update_id = ?",
            (update_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_update(row)

    async def save_daily_update(self, update: DailyUpdate) -> None:
        """保存日报的照片、距离与工时"""
        await self._conn.execute(
            """
            UPDATE daily_updates
            SET photos = ?, distance_traveled = ?, man_hours = ?, updated_at = ?
            WHERE update_id = ?
            """,
            (
                json.dumps(update.photos),
                update.distance_traveled,
                update.man_hours.model_dump_json() if update.man_hours else None,
                update.updated_at.isoformat(),
                update.update_id,
            ),
        )

    async def delete_by_task(self, task_id: str) -> None:
        """删除任务的全部日报"""
        await self._conn.execute("DELETE FROM daily_updates WHERE task_id = ?", (task_id,))

    @staticmethod
    def _update_to_params(update: DailyUpdate) -> tuple:
        return (
            update.update_id,
            update.task_id,
            update.day.isoformat(),
            json.dumps(update.photos),
            update.distance_traveled,
            update.man_hours.model_dump_json() if update.man_hours else None,
            update.created_at.isoformat(),
            update.updated_at.isoformat(),
        )

    @staticmethod
    def _row_to_update(row: aiosqlite.Row) -> DailyUpdate:
        """将数据库行转换为 DailyUpdate 模型"""
        return DailyUpdate(
            update_id=row[0],
            task_id=row[1],
            day=date.fromisoformat(row[2]),
            photos=json.loads(row[3]) if row[3] else [],
            distance_traveled=row[4],
            man_hours=ManHours.model_validate_json(row[5]) if row[5] else None,
            created_at=datetime.fromisoformat(row[6]),
            updated_at=datetime.fromisoformat(row[7]),
        )
