"""Project Stage Aggregator 单元测试"""

import pytest
from fieldops.lifecycle.aggregator import (
    analyze_project_stages,
    determine_project_status,
    is_maintenance_transition,
)
from fieldops.lifecycle.models import ProjectStage, ProjectStatus, StageName, TaskStatus


def _stages(pre: list[str] = (), install: list[str] = (), maintenance: list[str] = ()):
    return [
        ProjectStage(name=StageName.PRE_REQUISITES, task_ids=list(pre)),
        ProjectStage(name=StageName.INSTALLATION, task_ids=list(install)),
        ProjectStage(name=StageName.MAINTENANCE, task_ids=list(maintenance)),
    ]


def _status_of(stages, statuses) -> ProjectStatus:
    return determine_project_status(analyze_project_stages(stages, statuses))


class TestDetermineProjectStatus:
    """固定顺序判定"""

    def test_no_tasks_is_to_start(self):
        assert _status_of(_stages(), {}) == ProjectStatus.TO_START

    def test_all_completed_is_maintenance(self):
        stages = _stages(pre=["a"], install=["b"])
        statuses = {"a": TaskStatus.COMPLETED, "b": TaskStatus.COMPLETED}
        assert _status_of(stages, statuses) == ProjectStatus.MAINTENANCE

    def test_ongoing_wins_over_pending(self):
        stages = _stages(pre=["a"], install=["b"])
        statuses = {"a": TaskStatus.TODO, "b": TaskStatus.ONGOING}
        assert _status_of(stages, statuses) == ProjectStatus.ONGOING

    def test_only_todo_is_to_start(self):
        stages = _stages(install=["a", "b"])
        statuses = {"a": TaskStatus.TODO, "b": TaskStatus.COMPLETED}
        assert _status_of(stages, statuses) == ProjectStatus.TO_START

    def test_maintenance_stage_todo_does_not_block_maintenance(self):
        stages = _stages(install=["a"], maintenance=["m1", "m2"])
        statuses = {"a": TaskStatus.COMPLETED, "m1": TaskStatus.TODO, "m2": TaskStatus.TODO}
        assert _status_of(stages, statuses) == ProjectStatus.MAINTENANCE

    def test_maintenance_stage_ongoing_counts_as_ongoing(self):
        stages = _stages(install=["a"], maintenance=["m1"])
        statuses = {"a": TaskStatus.COMPLETED, "m1": TaskStatus.ONGOING}
        assert _status_of(stages, statuses) == ProjectStatus.ONGOING

    @pytest.mark.parametrize("status", [TaskStatus.DELAYED, TaskStatus.TO_REVIEW])
    def test_delayed_and_review_are_not_pending(self, status: TaskStatus):
        stages = _stages(install=["a"])
        assert _status_of(stages, {"a": status}) == ProjectStatus.MAINTENANCE

    def test_missing_task_ids_ignored(self):
        stages = _stages(install=["gone"])
        analysis = analyze_project_stages(stages, {})
        assert analysis.total_tasks == 0
        assert determine_project_status(analysis) == ProjectStatus.TO_START

    def test_never_produces_archive(self):
        for statuses in (
            {},
            {"a": TaskStatus.COMPLETED},
            {"a": TaskStatus.ONGOING},
            {"a": TaskStatus.TODO},
        ):
            assert _status_of(_stages(install=["a"]), statuses) != ProjectStatus.ARCHIVE


class TestMaintenanceTransition:
    """Maintenance 通知门控"""

    @pytest.mark.parametrize(
        "previous",
        [ProjectStatus.TO_START, ProjectStatus.ONGOING],
    )
    def test_entering_maintenance(self, previous: ProjectStatus):
        assert is_maintenance_transition(previous, ProjectStatus.MAINTENANCE)

    def test_staying_in_maintenance(self):
        assert not is_maintenance_transition(ProjectStatus.MAINTENANCE, ProjectStatus.MAINTENANCE)

    def test_leaving_maintenance(self):
        assert not is_maintenance_transition(ProjectStatus.MAINTENANCE, ProjectStatus.ONGOING)
