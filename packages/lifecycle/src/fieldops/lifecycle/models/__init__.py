"""FieldOps Lifecycle Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .daily_update import DailyUpdate, ManHours
from .enums import (
    ABSORBING_STATES,
    VALID_TRANSITIONS,
    EndConditionType,
    Frequency,
    MonthlyOption,
    NotificationKind,
    ProjectStatus,
    StageName,
    TaskStatus,
    TeamRole,
    UserRole,
    validate_transition,
)
from .notification import NotificationEvent, Recipient
from .project import Project, ProjectStage, TeamMember, User
from .recurrence import EndCondition, RecurrenceRule
from .report import SchedulePreview, SweepReport
from .task import ServiceReport, Task, TaskEdit

__all__ = [
    # 枚举
    "TaskStatus",
    "ProjectStatus",
    "StageName",
    "TeamRole",
    "UserRole",
    "Frequency",
    "MonthlyOption",
    "EndConditionType",
    "NotificationKind",
    # 状态机
    "VALID_TRANSITIONS",
    "ABSORBING_STATES",
    "validate_transition",
    # Task
    "Task",
    "ServiceReport",
    "TaskEdit",
    # DailyUpdate
    "DailyUpdate",
    "ManHours",
    # Project
    "Project",
    "ProjectStage",
    "TeamMember",
    "User",
    # Recurrence
    "RecurrenceRule",
    "EndCondition",
    # Notification
    "NotificationEvent",
    "Recipient",
    # 编排结果
    "SchedulePreview",
    "SweepReport",
]
