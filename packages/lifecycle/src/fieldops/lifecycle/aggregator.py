"""Project Stage Aggregator -- 由任务状态聚合项目阶段

判定顺序：
1. 无任务 -> To-start
2. 无待办且无进行中 -> Maintenance
3. 有进行中 -> On-going
4. 其他 -> To-start

Maintenance 阶段内的待办任务不计入 "pending"。
Archive 为外部显式覆盖，聚合不产生也不覆盖。
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .models.enums import ProjectStatus, StageName, TaskStatus
from .models.project import ProjectStage

PENDING_STATES: set[TaskStatus] = {TaskStatus.TODO, TaskStatus.ONGOING}


@dataclass(frozen=True)
class StageAnalysis:
    has_ongoing: bool
    has_pending: bool
    total_tasks: int


def analyze_project_stages(
    stages: Iterable[ProjectStage],
    statuses: Mapping[str, TaskStatus],
) -> StageAnalysis:
    """统计各阶段任务状态

    Args:
        stages: 项目阶段列表
        statuses: task_id -> 当前状态快照（缺失的 task_id 视为已删除，不计数）
    """
    has_ongoing = False
    has_pending = False
    total_tasks = 0

    for stage in stages:
        stage_statuses = [statuses[tid] for tid in stage.task_ids if tid in statuses]
        total_tasks += len(stage_statuses)

        if any(status == TaskStatus.ONGOING for status in stage_statuses):
            has_ongoing = True
        if stage.name != StageName.MAINTENANCE and any(
            status in PENDING_STATES for status in stage_statuses
        ):
            has_pending = True

    return StageAnalysis(
        has_ongoing=has_ongoing,
        has_pending=has_pending,
        total_tasks=total_tasks,
    )


def determine_project_status(analysis: StageAnalysis) -> ProjectStatus:
    """按固定顺序判定项目状态（永不返回 Archive）"""
    if analysis.total_tasks == 0:
        return ProjectStatus.TO_START
    if not analysis.has_pending and not analysis.has_ongoing:
        return ProjectStatus.MAINTENANCE
    if analysis.has_ongoing:
        return ProjectStatus.ONGOING
    return ProjectStatus.TO_START


def is_maintenance_transition(previous: ProjectStatus, new: ProjectStatus) -> bool:
    """仅当从其他状态进入 Maintenance 时需要通知"""
    return new == ProjectStatus.MAINTENANCE and previous != ProjectStatus.MAINTENANCE
