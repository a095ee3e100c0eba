"""Task 状态解析与状态机单元测试

测试内容：
1. resolve_task_status 边界（开始日、结束日、结束日次日）
2. 吸收态原样返回
3. VALID_TRANSITIONS 合法 / 非法流转
"""

from datetime import date, datetime

import pytest
from fieldops.lifecycle.models.enums import (
    ABSORBING_STATES,
    VALID_TRANSITIONS,
    TaskStatus,
    validate_transition,
)
from fieldops.lifecycle.status import resolve_task_status

START = date(2024, 3, 10)
END = date(2024, 3, 12)


class TestResolveTaskStatus:
    """由日期推导状态"""

    @pytest.mark.parametrize(
        "today,expected",
        [
            (date(2024, 3, 9), TaskStatus.TODO),
            (date(2024, 3, 10), TaskStatus.ONGOING),
            (date(2024, 3, 11), TaskStatus.ONGOING),
            (date(2024, 3, 12), TaskStatus.ONGOING),
            (date(2024, 3, 13), TaskStatus.DELAYED),
        ],
    )
    def test_boundaries(self, today: date, expected: TaskStatus):
        assert resolve_task_status(today, START, END) == expected

    def test_time_of_day_does_not_matter(self):
        """结束日当天 23:59 仍为 On-going"""
        assert resolve_task_status(datetime(2024, 3, 12, 23, 59), START, END) == TaskStatus.ONGOING
        assert resolve_task_status(datetime(2024, 3, 10, 0, 0), START, END) == TaskStatus.ONGOING

    @pytest.mark.parametrize(
        "start,end",
        [(None, END), (START, None), (None, None)],
    )
    def test_missing_dates_is_todo(self, start, end):
        assert resolve_task_status(date(2030, 1, 1), start, end) == TaskStatus.TODO

    @pytest.mark.parametrize("status", sorted(ABSORBING_STATES))
    def test_absorbing_states_unchanged(self, status: TaskStatus):
        assert resolve_task_status(date(2030, 1, 1), START, END, status) == status

    @pytest.mark.parametrize(
        "status",
        [TaskStatus.TODO, TaskStatus.ONGOING, TaskStatus.DELAYED],
    )
    def test_auto_states_are_recomputed(self, status: TaskStatus):
        assert resolve_task_status(date(2024, 3, 13), START, END, status) == TaskStatus.DELAYED

    def test_single_day_task(self):
        day = date(2024, 2, 29)
        assert resolve_task_status(day, day, day) == TaskStatus.ONGOING
        assert resolve_task_status(date(2024, 3, 1), day, day) == TaskStatus.DELAYED

    def test_string_dates_accepted(self):
        assert resolve_task_status("2024-03-11", "2024-03-10", "2024-03-12") == TaskStatus.ONGOING


class TestStateMachineTransitions:
    """状态机流转验证"""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.TODO, TaskStatus.TO_REVIEW),
            (TaskStatus.ONGOING, TaskStatus.TO_REVIEW),
            (TaskStatus.DELAYED, TaskStatus.TO_REVIEW),
            (TaskStatus.TODO, TaskStatus.ONGOING),
            (TaskStatus.ONGOING, TaskStatus.DELAYED),
            (TaskStatus.DELAYED, TaskStatus.ONGOING),
            (TaskStatus.TO_REVIEW, TaskStatus.COMPLETED),
            (TaskStatus.TO_REVIEW, TaskStatus.ONGOING),
        ],
    )
    def test_valid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        """合法流转应通过验证"""
        assert validate_transition(from_status, to_status) is True

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.TODO, TaskStatus.COMPLETED),
            (TaskStatus.ONGOING, TaskStatus.COMPLETED),
            (TaskStatus.DELAYED, TaskStatus.COMPLETED),
            (TaskStatus.TO_REVIEW, TaskStatus.TO_REVIEW),
            (TaskStatus.COMPLETED, TaskStatus.TO_REVIEW),
            (TaskStatus.COMPLETED, TaskStatus.ONGOING),
        ],
    )
    def test_invalid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        """非法流转应被拒绝"""
        assert validate_transition(from_status, to_status) is False

    def test_completed_is_terminal(self):
        assert VALID_TRANSITIONS[TaskStatus.COMPLETED] == set()

    def test_every_status_has_entry(self):
        assert set(VALID_TRANSITIONS) == set(TaskStatus)
