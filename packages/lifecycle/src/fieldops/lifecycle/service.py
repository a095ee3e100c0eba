"""LifecycleService -- 任务与项目生命周期编排

每个变更按固定顺序执行：解析状态 -> 对齐台账 -> 聚合项目阶段。
- 同一任务的并发变更由任务级 asyncio.Lock 串行化，跨进程由 version 乐观检查兜底
- 任务写入与台账对齐在同一 SQLite 事务内提交
- 通知为 fire-and-forget：投递失败只记录日志，不回滚已提交的状态
"""

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from ulid import ULID

from .aggregator import analyze_project_stages, determine_project_status, is_maintenance_transition
from .config import get_recurrence_max_iterations, get_scheduled_task_lead_days
from .dates import DayLike, to_day
from .exceptions import (
    DailyUpdateNotFoundError,
    InvalidRangeError,
    InvalidTransitionError,
    PreconditionNotMetError,
    ProjectNotFoundError,
    TaskAlreadyCompletedError,
    TaskNotFoundError,
    TaskVersionConflictError,
)
from .models import (
    DailyUpdate,
    ManHours,
    NotificationEvent,
    NotificationKind,
    Project,
    ProjectStage,
    ProjectStatus,
    Recipient,
    RecurrenceRule,
    SchedulePreview,
    ServiceReport,
    StageName,
    SweepReport,
    Task,
    TaskEdit,
    TaskStatus,
    TeamMember,
    TeamRole,
    User,
    validate_transition,
)
from .reconciler import plan_reconciliation
from .recurrence import generate_occurrences, parse_recurrence_rule
from .status import resolve_task_status
from .store import StoreGroup
from .store.protocols import Notifier
from .store.transaction import (
    create_project,
    create_tasks_in_project,
    delete_task_cascade,
    save_daily_update,
    save_project,
    save_task_and_reconcile,
    update_project_status,
)

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class TaskRefresh:
    task: Task
    status_changed: bool
    ledger_repaired: bool


@dataclass(frozen=True)
class ProjectRefresh:
    previous: ProjectStatus
    status: ProjectStatus
    notified: bool

    @property
    def changed(self) -> bool:
        return self.previous != self.status


class LifecycleService:
    """任务生命周期业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        notifier: Notifier,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Args:
            store_group: 共享连接的 Store 实例组
            notifier: 通知投递实现
            clock: 当前时间来源（测试时可注入固定时钟）
        """
        self._stores = store_group
        self._notifier = notifier
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._locks_guard = asyncio.Lock()
        # 共享连接上的事务不能交错，写入单元在此锁内提交
        self._write_lock = asyncio.Lock()

    # ============================================================
    # 创建
    # ============================================================

    async def create_project(
        self,
        name: str,
        team_members: Iterable[TeamMember] = (),
    ) -> Project:
        """创建带三个空阶段的项目"""
        project = Project.with_default_stages(project_id=str(ULID()), name=name)
        project.team_members = list(team_members)
        async with self._write_lock:
            await create_project(self._stores.conn, self._stores.project_store, project)
        log.info("project_created", project_id=project.project_id, name=name)
        return project

    async def create_task(
        self,
        project_id: str,
        stage_name: StageName,
        name: str,
        *,
        start_date: DayLike | None = None,
        end_date: DayLike | None = None,
        primary_owner_id: str | None = None,
        secondary_owner_id: str | None = None,
        remarks: str = "",
        service_report: ServiceReport | None = None,
    ) -> Task:
        """创建单个任务，生成台账并挂入项目阶段

        Raises:
            InvalidRangeError: start_date 晚于 end_date
            ProjectNotFoundError: 项目不存在
        """
        task = self._build_task(
            project_id,
            stage_name,
            name,
            to_day(start_date) if start_date is not None else None,
            to_day(end_date) if end_date is not None else None,
            primary_owner_id=primary_owner_id,
            secondary_owner_id=secondary_owner_id,
            remarks=remarks,
            service_report=service_report,
        )
        [created] = await self._insert_tasks(project_id, StageName(stage_name), [task])

        if created.owner_ids:
            await self._on_owners_assigned(created, created.owner_ids)
        return created

    async def create_scheduled_tasks(
        self,
        project_id: str,
        name: str,
        stage_name: StageName,
        task_dates: Iterable[DayLike],
    ) -> list[Task]:
        """按日期列表批量创建任务

        每个日期作为结束日期，开始日期 = 结束日期 - 提前天数。
        空日期列表不创建任何任务。
        """
        lead = timedelta(days=get_scheduled_task_lead_days())
        ends = sorted({to_day(d) for d in task_dates})
        if not ends:
            log.info("scheduled_tasks_empty", project_id=project_id, name=name)
            return []

        tasks = [
            self._build_task(project_id, stage_name, name, end - lead, end)
            for end in ends
        ]
        return await self._insert_tasks(project_id, StageName(stage_name), tasks)

    async def schedule_recurring_tasks(
        self,
        project_id: str,
        name: str,
        stage_name: StageName,
        rule: Mapping[str, Any] | RecurrenceRule,
        anchor: DayLike | None = None,
    ) -> list[Task]:
        """按重复规则展开日期并批量创建任务

        Raises:
            InvalidRuleError: 规则非法
        """
        preview = self.preview_schedule(rule, anchor, stage_name=stage_name)
        if preview.is_empty:
            log.info("recurrence_produced_no_dates", project_id=project_id, name=name)
            return []
        return await self.create_scheduled_tasks(project_id, name, stage_name, preview.dates)

    def preview_schedule(
        self,
        rule: Mapping[str, Any] | RecurrenceRule,
        anchor: DayLike | None = None,
        stage_name: StageName | None = None,
    ) -> SchedulePreview:
        """展开重复规则但不落库；空结果作为可报告的结果返回"""
        parsed = parse_recurrence_rule(rule)
        anchor = anchor if anchor is not None else self._today()
        # 锚点非法时由 generate_occurrences 抛出 InvalidRuleError
        dates = generate_occurrences(
            parsed,
            anchor,
            max_iterations=get_recurrence_max_iterations(),
        )
        anchor_day = to_day(anchor)
        return SchedulePreview(
            total=len(dates),
            stage_name=stage_name,
            start_date=anchor_day,
            end_date=dates[-1] if dates else None,
            dates=dates,
        )

    # ============================================================
    # 编辑 / 删除
    # ============================================================

    async def edit_task(
        self,
        task_id: str,
        edit: TaskEdit,
        *,
        expected_version: int | None = None,
    ) -> Task:
        """编辑任务：校验区间 -> 重新解析状态 -> 任务与台账同事务写入 -> 聚合项目

        Args:
            task_id: 任务 ID
            edit: 编辑内容（仅显式传入的字段生效）
            expected_version: 调用方读取时的版本号；不一致时拒绝写入

        Raises:
            InvalidRangeError: 新区间 start > end，任务不变
            TaskVersionConflictError: 版本冲突
        """
        changes = edit.changes()
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            if expected_version is not None and expected_version != task.version:
                raise TaskVersionConflictError(task_id, expected_version)

            start = changes.get("start_date", task.start_date)
            end = changes.get("end_date", task.end_date)
            if start is not None and end is not None and start > end:
                raise InvalidRangeError(start, end)

            dates_changed = edit.touches_dates and (start, end) != (task.start_date, task.end_date)
            now = self._clock()
            status = resolve_task_status(now, start, end, task.status)
            updated = task.model_copy(update={**changes, "status": status, "updated_at": now})

            async with self._write_lock:
                saved = await save_task_and_reconcile(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.daily_update_store,
                    updated,
                    expected_version=task.version,
                    reconcile=dates_changed,
                    now=now,
                )

        log.info(
            "task_edited",
            task_id=task_id,
            fields=sorted(changes),
            dates_changed=dates_changed,
            status=saved.status.value,
        )

        new_owners = [o for o in saved.owner_ids if o not in task.owner_ids]
        if new_owners:
            await self._on_owners_assigned(saved, new_owners)
        await self.refresh_project(saved.project_id)
        return saved

    async def assign_task(
        self,
        task_id: str,
        primary_owner_id: str,
        secondary_owner_id: str | None = None,
    ) -> Task:
        """指派负责技术员（新负责人加入项目成员并收到通知）"""
        return await self.edit_task(
            task_id,
            TaskEdit(
                primary_owner_id=primary_owner_id,
                secondary_owner_id=secondary_owner_id,
            ),
        )

    async def delete_task(self, task_id: str) -> list[str]:
        """删除任务及其全部日报，并从项目阶段移除

        Returns:
            需要由文件存储协作方删除的照片 URL 列表
        """
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            updates = await self._stores.daily_update_store.list_by_task(task_id)
            photos = [url for update in updates for url in update.photos]

            project_lock = await self._get_lock(f"project:{task.project_id}")
            async with project_lock:
                project = await self._stores.project_store.get_project(task.project_id)
                if project is not None:
                    for stage in project.stages:
                        if task_id in stage.task_ids:
                            stage.task_ids = [t for t in stage.task_ids if t != task_id]
                            stage.total_tasks = len(stage.task_ids)

                async with self._write_lock:
                    await delete_task_cascade(
                        self._stores.conn,
                        self._stores.task_store,
                        self._stores.daily_update_store,
                        self._stores.project_store,
                        task_id,
                        project,
                    )

        await self._drop_lock(f"task:{task_id}")
        log.info(
            "task_deleted",
            task_id=task_id,
            project_id=task.project_id,
            daily_updates=len(updates),
            photos=len(photos),
        )
        if project is not None:
            await self.refresh_project(task.project_id)
        return photos

    # ============================================================
    # 显式状态流转
    # ============================================================

    async def submit_for_review(self, task_id: str) -> Task:
        """提交审核：To-do/On-going/Delayed -> To-review

        Raises:
            InvalidTransitionError: 当前状态不允许提交
            PreconditionNotMetError: 服务报告未填写，或区间内没有带照片的日报
        """
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            if not validate_transition(task.status, TaskStatus.TO_REVIEW):
                raise InvalidTransitionError("submit for review", task.status.value)

            if task.service_report is not None and task.service_report.requires_data:
                raise PreconditionNotMetError(
                    "Service report must be filled before submitting for review"
                )

            updates = await self._stores.daily_update_store.list_by_task(task_id)
            if not any(u.has_photos and task.covers(u.day) for u in updates):
                raise PreconditionNotMetError(
                    "At least one daily update with a photo is required before review"
                )

            now = self._clock()
            saved = await self._save_task(
                task.model_copy(
                    update={"status": TaskStatus.TO_REVIEW, "review_date": now, "updated_at": now}
                ),
                task.version,
            )

        log.info("task_submitted_for_review", task_id=task_id, previous=task.status.value)
        await self._notify_owners(NotificationKind.TASK_SUBMITTED, saved)
        await self.refresh_project(saved.project_id)
        return saved

    async def resubmit(self, task_id: str, today: DayLike | None = None) -> Task:
        """退回重做：To-review -> 按日期重新解析的状态，清空 review_date

        Raises:
            InvalidTransitionError: 当前状态不是 To-review
        """
        day = to_day(today) if today is not None else self._today()
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            if task.status != TaskStatus.TO_REVIEW:
                raise InvalidTransitionError("resubmit", task.status.value)

            status = resolve_task_status(day, task.start_date, task.end_date)
            saved = await self._save_task(
                task.model_copy(
                    update={"status": status, "review_date": None, "updated_at": self._clock()}
                ),
                task.version,
            )

        log.info("task_resubmitted", task_id=task_id, status=status.value)
        await self._notify_owners(NotificationKind.TASK_RESUBMITTED, saved)
        await self.refresh_project(saved.project_id)
        return saved

    async def mark_as_done(self, task_id: str) -> Task:
        """审核通过：To-review -> Completed

        Raises:
            InvalidTransitionError: 当前状态不是 To-review
        """
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            if not validate_transition(task.status, TaskStatus.COMPLETED):
                raise InvalidTransitionError("mark as done", task.status.value)

            now = self._clock()
            saved = await self._save_task(
                task.model_copy(
                    update={
                        "status": TaskStatus.COMPLETED,
                        "completed_date": now,
                        "updated_at": now,
                    }
                ),
                task.version,
            )

        await self._drop_lock(f"task:{task_id}")
        log.info("task_completed", task_id=task_id)
        await self.refresh_project(saved.project_id)
        return saved

    # ============================================================
    # 日报
    # ============================================================

    async def update_man_hours(
        self,
        update_id: str,
        no_of_person: int,
        no_of_hours: float,
    ) -> DailyUpdate:
        """记录人工工时（total_hours = 人数 × 每人工时）

        Raises:
            TaskAlreadyCompletedError: 所属任务已完成
        """
        return await self._mutate_daily_update(
            update_id,
            lambda update: {"man_hours": ManHours.compute(no_of_person, no_of_hours)},
            completed_guard="Man hours",
        )

    async def update_distance(self, update_id: str, distance_traveled: float) -> DailyUpdate:
        """记录行驶距离

        Raises:
            TaskAlreadyCompletedError: 所属任务已完成
        """
        return await self._mutate_daily_update(
            update_id,
            lambda update: {"distance_traveled": distance_traveled},
            completed_guard="Distance",
        )

    async def attach_photos(self, update_id: str, urls: Iterable[str]) -> DailyUpdate:
        """追加已上传照片的 URL（重复 URL 忽略）"""
        new_urls = list(urls)

        def _apply(update: DailyUpdate) -> dict[str, Any]:
            photos = list(update.photos)
            photos.extend(url for url in dict.fromkeys(new_urls) if url not in photos)
            return {"photos": photos}

        return await self._mutate_daily_update(update_id, _apply)

    async def remove_photo(self, update_id: str, url: str) -> DailyUpdate:
        """移除照片 URL；文件本身由文件存储协作方删除"""
        return await self._mutate_daily_update(
            update_id,
            lambda update: {"photos": [p for p in update.photos if p != url]},
        )

    # ============================================================
    # 解析 / 聚合 / sweep
    # ============================================================

    async def refresh_task(self, task_id: str, today: DayLike | None = None) -> Task:
        """按 today 重新解析任务状态，必要时修复台账"""
        day = to_day(today) if today is not None else self._today()
        outcome = await self._refresh_task(task_id, day)
        return outcome.task

    async def refresh_project(self, project_id: str) -> ProjectStatus:
        """从持久化的任务状态重新聚合项目阶段

        Archive 项目保持不变；进入 Maintenance 时通知管理员与项目经理。
        """
        outcome = await self._refresh_project(project_id)
        return outcome.status

    async def sweep(self, today: DayLike | None = None) -> SweepReport:
        """定时 sweep：幂等，可在任意两个单元之间中断

        阶段 1：逐个解析活跃任务并修复台账（每个任务一个事务）
        阶段 2：全部任务解析完成后，逐个聚合项目
        """
        day = to_day(today) if today is not None else self._today()
        report = SweepReport(today=day)
        log.info("sweep_started", today=day.isoformat())

        for task in await self._stores.task_store.list_active_tasks():
            report.tasks_scanned += 1
            try:
                outcome = await self._refresh_task(task.task_id, day)
            except TaskNotFoundError:
                # sweep 期间被删除
                continue
            except TaskVersionConflictError as e:
                report.task_conflicts += 1
                log.warning("sweep_task_conflict", task_id=task.task_id, error=str(e))
                continue
            finally:
                await self._drop_lock(f"task:{task.task_id}")
            if outcome.status_changed:
                report.tasks_updated += 1
            if outcome.ledger_repaired:
                report.ledgers_repaired += 1

        for project in await self._stores.project_store.list_projects():
            report.projects_scanned += 1
            if project.status == ProjectStatus.ARCHIVE:
                report.projects_skipped += 1
                await self._drop_lock(f"project:{project.project_id}")
                continue
            try:
                outcome = await self._refresh_project(project.project_id)
            except ProjectNotFoundError:
                continue
            finally:
                await self._drop_lock(f"project:{project.project_id}")
            if outcome.changed:
                report.projects_changed += 1
            if outcome.notified:
                report.maintenance_notified += 1

        log.info("sweep_completed", **report.model_dump(mode="json"))
        return report

    async def notify_delayed_tasks(self, today: DayLike | None = None) -> int:
        """为每个 Delayed 任务发送一条延期通知

        接收人：任务负责人、项目主/次经理、全部管理员（仅限有联系方式者）。

        Returns:
            成功发出的通知数
        """
        day = to_day(today) if today is not None else self._today()
        delayed = await self._stores.task_store.list_tasks_by_status(TaskStatus.DELAYED)
        if not delayed:
            log.info("no_delayed_tasks", today=day.isoformat())
            return 0

        admins = await self._stores.user_directory.list_admins()
        projects: dict[str, Project | None] = {}
        sent = 0
        for task in delayed:
            if task.project_id not in projects:
                projects[task.project_id] = await self._stores.project_store.get_project(
                    task.project_id
                )
            project = projects[task.project_id]
            manager_ids = project.manager_ids if project is not None else []
            users = await self._stores.user_directory.get_users(
                [*task.owner_ids, *manager_ids]
            )
            owners = {u.user_id: u for u in users}

            delay_days = (day - task.end_date).days if task.end_date is not None else 0
            payload = {
                **self._task_payload(task, project),
                "delay_days": delay_days,
                "primary_owner": self._user_name(owners, task.primary_owner_id),
                "secondary_owner": self._user_name(owners, task.secondary_owner_id),
            }
            if await self._notify(NotificationKind.TASK_DELAYED, [*users, *admins], payload):
                sent += 1

        log.info("delayed_tasks_notified", today=day.isoformat(), tasks=len(delayed), sent=sent)
        return sent

    # ============================================================
    # 内部实现
    # ============================================================

    def _today(self) -> date:
        return self._clock().date()

    def _build_task(
        self,
        project_id: str,
        stage_name: StageName,
        name: str,
        start_date: date | None,
        end_date: date | None,
        **fields: Any,
    ) -> Task:
        if start_date is not None and end_date is not None and start_date > end_date:
            raise InvalidRangeError(start_date, end_date)
        now = self._clock()
        return Task(
            task_id=str(ULID()),
            project_id=project_id,
            stage_name=stage_name,
            name=name,
            status=resolve_task_status(now, start_date, end_date),
            start_date=start_date,
            end_date=end_date,
            created_at=now,
            updated_at=now,
            **fields,
        )

    async def _insert_tasks(
        self,
        project_id: str,
        stage_name: StageName,
        tasks: list[Task],
    ) -> list[Task]:
        lock = await self._get_lock(f"project:{project_id}")
        async with lock:
            project = await self._require_project(project_id)
            stage = project.get_stage(stage_name)
            if stage is None:
                stage = ProjectStage(name=stage_name)
                project.stages.append(stage)
            stage.task_ids.extend(task.task_id for task in tasks)
            stage.total_tasks = len(stage.task_ids)

            async with self._write_lock:
                created = await create_tasks_in_project(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.daily_update_store,
                    self._stores.project_store,
                    project,
                    tasks,
                )

        log.info(
            "tasks_created",
            project_id=project_id,
            stage=stage_name.value,
            count=len(created),
        )
        await self.refresh_project(project_id)
        return created

    async def _save_task(self, task: Task, expected_version: int) -> Task:
        """保存任务（日期未变，不对齐台账）"""
        async with self._write_lock:
            return await save_task_and_reconcile(
                self._stores.conn,
                self._stores.task_store,
                self._stores.daily_update_store,
                task,
                expected_version=expected_version,
                reconcile=False,
            )

    async def _refresh_task(self, task_id: str, today: date) -> TaskRefresh:
        lock = await self._get_lock(f"task:{task_id}")
        async with lock:
            task = await self._require_task(task_id)
            status = resolve_task_status(today, task.start_date, task.end_date, task.status)

            existing = await self._stores.daily_update_store.list_by_task(task_id)
            plan = plan_reconciliation(task, existing)
            kept_ids = [u.update_id for u in sorted(plan.kept, key=lambda u: u.day)]
            ledger_dirty = not plan.is_noop or kept_ids != task.daily_update_ids

            if status == task.status and not ledger_dirty:
                return TaskRefresh(task=task, status_changed=False, ledger_repaired=False)

            now = self._clock()
            async with self._write_lock:
                saved = await save_task_and_reconcile(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.daily_update_store,
                    task.model_copy(update={"status": status, "updated_at": now}),
                    expected_version=task.version,
                    reconcile=ledger_dirty,
                    now=now,
                )

        if status != task.status:
            log.info(
                "task_status_resolved",
                task_id=task_id,
                previous=task.status.value,
                status=status.value,
            )
        if ledger_dirty:
            log.warning("task_ledger_repaired", task_id=task_id)
        return TaskRefresh(
            task=saved,
            status_changed=status != task.status,
            ledger_repaired=ledger_dirty,
        )

    async def _refresh_project(self, project_id: str) -> ProjectRefresh:
        lock = await self._get_lock(f"project:{project_id}")
        async with lock:
            project = await self._require_project(project_id)
            if project.status == ProjectStatus.ARCHIVE:
                log.debug("project_archived_skipped", project_id=project_id)
                return ProjectRefresh(
                    previous=ProjectStatus.ARCHIVE,
                    status=ProjectStatus.ARCHIVE,
                    notified=False,
                )

            tasks = await self._stores.task_store.list_tasks_by_ids(project.all_task_ids)
            statuses = {task.task_id: task.status for task in tasks}
            status = determine_project_status(analyze_project_stages(project.stages, statuses))

            counters_changed = self._recount_stages(project, statuses)
            if counters_changed:
                async with self._write_lock:
                    await save_project(self._stores.conn, self._stores.project_store, project)

            previous = project.status
            if status != previous:
                async with self._write_lock:
                    await update_project_status(
                        self._stores.conn,
                        self._stores.project_store,
                        project_id,
                        status,
                    )
                log.info(
                    "project_status_changed",
                    project_id=project_id,
                    previous=previous.value,
                    status=status.value,
                )

            notified = False
            if is_maintenance_transition(previous, status):
                notified = await self._notify_maintenance(project)

        return ProjectRefresh(previous=previous, status=status, notified=notified)

    @staticmethod
    def _recount_stages(project: Project, statuses: Mapping[str, TaskStatus]) -> bool:
        """按现存任务重新统计阶段计数，返回是否有变化"""
        changed = False
        for stage in project.stages:
            present = [statuses[tid] for tid in stage.task_ids if tid in statuses]
            total = len(present)
            completed = sum(1 for s in present if s == TaskStatus.COMPLETED)
            if (stage.total_tasks, stage.completed_tasks) != (total, completed):
                stage.total_tasks = total
                stage.completed_tasks = completed
                changed = True
        return changed

    async def _mutate_daily_update(
        self,
        update_id: str,
        apply: Callable[[DailyUpdate], dict[str, Any]],
        completed_guard: str | None = None,
    ) -> DailyUpdate:
        update = await self._stores.daily_update_store.get_daily_update(update_id)
        if update is None:
            raise DailyUpdateNotFoundError(update_id)

        lock = await self._get_lock(f"task:{update.task_id}")
        async with lock:
            task = await self._require_task(update.task_id)
            if completed_guard and task.status == TaskStatus.COMPLETED:
                raise TaskAlreadyCompletedError(task.task_id, completed_guard)

            # 取锁后重新读取，避免覆盖并发写入
            current = await self._stores.daily_update_store.get_daily_update(update_id)
            if current is None:
                raise DailyUpdateNotFoundError(update_id)
            changed = current.model_copy(update={**apply(current), "updated_at": self._clock()})
            async with self._write_lock:
                await save_daily_update(
                    self._stores.conn,
                    self._stores.daily_update_store,
                    changed,
                )

        log.info("daily_update_saved", update_id=update_id, task_id=update.task_id)
        return changed

    async def _on_owners_assigned(self, task: Task, owner_ids: list[str]) -> None:
        """新负责人加入项目成员并收到指派通知"""
        lock = await self._get_lock(f"project:{task.project_id}")
        async with lock:
            project = await self._stores.project_store.get_project(task.project_id)
            if project is not None:
                members = {m.user_id for m in project.team_members}
                additions = [uid for uid in owner_ids if uid not in members]
                if additions:
                    project.team_members.extend(
                        TeamMember(role=TeamRole.TECHNICIAN, user_id=uid) for uid in additions
                    )
                    async with self._write_lock:
                        await save_project(self._stores.conn, self._stores.project_store, project)

        users = await self._stores.user_directory.get_users(owner_ids)
        await self._notify(
            NotificationKind.TASK_ASSIGNED,
            users,
            self._task_payload(task, project),
        )

    async def _notify_owners(self, kind: NotificationKind, task: Task) -> bool:
        users = await self._stores.user_directory.get_users(task.owner_ids)
        project = await self._stores.project_store.get_project(task.project_id)
        return await self._notify(kind, users, self._task_payload(task, project))

    async def _notify_maintenance(self, project: Project) -> bool:
        admins = await self._stores.user_directory.list_admins()
        managers = await self._stores.user_directory.get_users(project.manager_ids)
        return await self._notify(
            NotificationKind.PROJECT_MAINTENANCE,
            [*admins, *managers],
            {"project_id": project.project_id, "project_name": project.name},
        )

    async def _notify(
        self,
        kind: NotificationKind,
        users: Iterable[User],
        payload: dict[str, Any],
    ) -> bool:
        """发送通知；无可达接收人时跳过，投递失败只记录日志"""
        recipients: dict[str, Recipient] = {}
        for user in users:
            if user.reachable and user.user_id not in recipients:
                recipients[user.user_id] = Recipient.from_user(user)
        if not recipients:
            log.info("notification_skipped_no_recipients", kind=kind.value)
            return False

        event = NotificationEvent(kind=kind, recipients=list(recipients.values()), payload=payload)
        try:
            await self._notifier.notify(event)
        except Exception as e:
            log.warning(
                "notification_failed",
                kind=kind.value,
                recipients=len(recipients),
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        return True

    @staticmethod
    def _task_payload(task: Task, project: Project | None) -> dict[str, Any]:
        return {
            "task_id": task.task_id,
            "task_name": task.name,
            "stage": task.stage_name.value,
            "project_id": task.project_id,
            "project_name": project.name if project is not None else "",
            "start_date": task.start_date.isoformat() if task.start_date else None,
            "end_date": task.end_date.isoformat() if task.end_date else None,
            "timeline": (
                f"{task.start_date.isoformat()} - {task.end_date.isoformat()}"
                if task.start_date and task.end_date
                else ""
            ),
        }

    @staticmethod
    def _user_name(users: Mapping[str, User], user_id: str | None) -> str:
        if user_id is None or user_id not in users:
            return "N/A"
        return users[user_id].name or "N/A"

    async def _require_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def _require_project(self, project_id: str) -> Project:
        project = await self._stores.project_store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def _get_lock(self, key: str) -> asyncio.Lock:
        """获取任务/项目级别锁"""
        async with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            return lock

    async def _drop_lock(self, key: str) -> None:
        async with self._locks_guard:
            lock = self._locks.get(key)
            if lock is not None and not lock.locked():
                self._locks.pop(key, None)
