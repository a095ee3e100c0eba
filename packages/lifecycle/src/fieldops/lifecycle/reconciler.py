"""Daily Update Reconciler -- 日报台账与任务日期区间对齐

desired = [start_date, end_date] 内的每一天
to_delete = existing - desired；to_create = desired - existing
两侧都存在的日期保持原记录不动（照片、工时等用户数据不丢失）。
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import structlog
from ulid import ULID

from .dates import days_between
from .models.daily_update import DailyUpdate
from .models.task import Task

if TYPE_CHECKING:
    from .store.protocols import DailyUpdateStore

log = structlog.get_logger()


@dataclass(frozen=True)
class ReconcilePlan:
    """对齐计划（纯计算结果）"""

    to_create: list[date] = field(default_factory=list)
    to_delete: list[DailyUpdate] = field(default_factory=list)
    kept: list[DailyUpdate] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.to_create and not self.to_delete


@dataclass(frozen=True)
class ReconcileResult:
    """对齐执行结果"""

    created: list[DailyUpdate]
    deleted_ids: list[str]
    daily_update_ids: list[str]

    @property
    def changed(self) -> bool:
        return bool(self.created or self.deleted_ids)


def desired_days(task: Task) -> set[date]:
    """任务日期区间内应存在日报的日期；缺任一端时为空"""
    if task.start_date is None or task.end_date is None:
        return set()
    return set(days_between(task.start_date, task.end_date))


def plan_reconciliation(task: Task, existing: Iterable[DailyUpdate]) -> ReconcilePlan:
    """计算需要创建与删除的日报

    同一天出现多条记录时保留第一条，其余视为多余记录删除。
    """
    desired = desired_days(task)
    kept: list[DailyUpdate] = []
    to_delete: list[DailyUpdate] = []
    seen: set[date] = set()

    for update in existing:
        if update.day in desired and update.day not in seen:
            kept.append(update)
            seen.add(update.day)
        else:
            to_delete.append(update)

    to_create = sorted(desired - seen)
    return ReconcilePlan(to_create=to_create, to_delete=to_delete, kept=kept)


def _ordered_ids(updates: Iterable[DailyUpdate]) -> list[str]:
    return [u.update_id for u in sorted(updates, key=lambda u: u.day)]


async def reconcile_daily_updates(
    task: Task,
    store: "DailyUpdateStore",
    now: datetime | None = None,
) -> ReconcileResult:
    """按计划批量删除/创建日报

    注意：不提交事务，需由调用方管理事务（与任务写入同一事务提交）。

    Args:
        task: 已应用新日期区间的任务
        store: DailyUpdateStore 实例
        now: 新记录的创建时间，None 时取当前 UTC 时间

    Returns:
        ReconcileResult，daily_update_ids 按日期排序
    """
    existing = await store.list_by_task(task.task_id)
    plan = plan_reconciliation(task, existing)

    if plan.is_noop:
        return ReconcileResult(
            created=[],
            deleted_ids=[],
            daily_update_ids=_ordered_ids(plan.kept),
        )

    deleted_ids = [u.update_id for u in plan.to_delete]
    if deleted_ids:
        await store.bulk_delete(deleted_ids)

    ts = now or datetime.now(UTC)
    created = [
        DailyUpdate(
            update_id=str(ULID()),
            task_id=task.task_id,
            day=day,
            created_at=ts,
            updated_at=ts,
        )
        for day in plan.to_create
    ]
    if created:
        await store.bulk_insert(created)

    log.info(
        "daily_updates_reconciled",
        task_id=task.task_id,
        created=len(created),
        deleted=len(deleted_ids),
        kept=len(plan.kept),
    )

    return ReconcileResult(
        created=created,
        deleted_ids=deleted_ids,
        daily_update_ids=_ordered_ids([*plan.kept, *created]),
    )
