"""任务写入 + 日报台账原子事务封装

在同一 SQLite 事务内原子提交任务记录与日报台账的变更，
任一步失败则整体回滚，保证台账日期集合始终等于任务日期区间。
"""

from datetime import datetime

import aiosqlite

from ..models.daily_update import DailyUpdate
from ..models.enums import ProjectStatus
from ..models.project import Project
from ..models.task import Task
from ..reconciler import reconcile_daily_updates
from .daily_update_store import SqliteDailyUpdateStore
from .project_store import SqliteProjectStore
from .task_store import SqliteTaskStore


async def create_tasks_in_project(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    daily_update_store: SqliteDailyUpdateStore,
    project_store: SqliteProjectStore,
    project: Project,
    tasks: list[Task],
) -> list[Task]:
    """在同一事务内创建任务、生成台账并挂入项目阶段

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        project: 已将新任务 ID 追加到对应阶段的项目
        tasks: 待创建任务（daily_update_ids 由本函数填充）

    Returns:
        带 daily_update_ids 的已创建任务列表
    """
    created: list[Task] = []
    try:
        for task in tasks:
            result = await reconcile_daily_updates(task, daily_update_store, now=task.created_at)
            task = task.model_copy(update={"daily_update_ids": result.daily_update_ids})
            await task_store.create_task(task)
            created.append(task)

        await project_store.save_project(project)

        # 原子提交
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return created


async def save_task_and_reconcile(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    daily_update_store: SqliteDailyUpdateStore,
    task: Task,
    expected_version: int,
    reconcile: bool = True,
    now: datetime | None = None,
) -> Task:
    """在同一事务内对齐台账并保存任务（带乐观并发检查）

    Args:
        conn: 数据库连接
        task: 已应用变更的任务
        expected_version: 读取时的版本号
        reconcile: 日期区间未变化时传 False 跳过台账对齐
        now: 新建日报的创建时间

    Returns:
        版本号递增后的 Task

    Raises:
        TaskVersionConflictError: 版本冲突，事务已回滚
    """
    try:
        if reconcile:
            result = await reconcile_daily_updates(task, daily_update_store, now=now)
            task = task.model_copy(update={"daily_update_ids": result.daily_update_ids})

        saved = await task_store.save_task(task, expected_version)

        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return saved


async def delete_task_cascade(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    daily_update_store: SqliteDailyUpdateStore,
    project_store: SqliteProjectStore,
    task_id: str,
    project: Project | None,
) -> None:
    """在同一事务内删除任务、其全部日报，并从项目阶段移除

    Args:
        project: 已移除该任务 ID 的项目；None 表示项目已不存在
    """
    try:
        await daily_update_store.delete_by_task(task_id)
        await task_store.delete_task(task_id)
        if project is not None:
            await project_store.save_project(project)

        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def save_daily_update(
    conn: aiosqlite.Connection,
    daily_update_store: SqliteDailyUpdateStore,
    update: DailyUpdate,
) -> None:
    """保存单条日报并提交"""
    try:
        await daily_update_store.save_daily_update(update)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def create_project(
    conn: aiosqlite.Connection,
    project_store: SqliteProjectStore,
    project: Project,
) -> None:
    """创建项目并提交"""
    try:
        await project_store.create_project(project)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def update_project_status(
    conn: aiosqlite.Connection,
    project_store: SqliteProjectStore,
    project_id: str,
    status: ProjectStatus,
) -> None:
    """更新项目状态并提交"""
    try:
        await project_store.save_project_status(project_id, status)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def save_project(
    conn: aiosqlite.Connection,
    project_store: SqliteProjectStore,
    project: Project,
) -> None:
    """保存项目阶段与成员并提交"""
    try:
        await project_store.save_project(project)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
