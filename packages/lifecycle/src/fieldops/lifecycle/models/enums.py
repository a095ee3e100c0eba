"""枚举定义

包含 TaskStatus 状态机、ProjectStatus、StageName、重复规则相关枚举，
以及 VALID_TRANSITIONS 合法流转映射和 ABSORBING_STATES 吸收态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    # 自动解析状态（由日期推导）
    TODO = "To-do"
    ONGOING = "On-going"
    DELAYED = "Delayed"

    # 吸收态（仅能由显式操作进入/离开）
    TO_REVIEW = "To-review"
    COMPLETED = "Completed"


class ProjectStatus(StrEnum):
    """Project 生命周期阶段"""

    TO_START = "To-start"
    ONGOING = "On-going"
    MAINTENANCE = "Maintenance"
    # 外部显式覆盖，聚合永远不会产生也不会覆盖
    ARCHIVE = "Archive"


class StageName(StrEnum):
    """项目阶段（固定三段流水线）"""

    PRE_REQUISITES = "Pre-requisites"
    INSTALLATION = "Installation & Commissioning"
    MAINTENANCE = "Maintenance"


class TeamRole(StrEnum):
    """项目成员角色"""

    PRIMARY_PM = "primaryProjectManager"
    SECONDARY_PM = "secondaryProjectManager"
    INSTALLATION_MANAGER = "installationManager"
    MAINTENANCE_MANAGER = "maintenanceManager"
    TECHNICIAN = "Technician"


class UserRole(StrEnum):
    """用户角色"""

    ADMIN = "Admin"
    PROJECT_MANAGER = "ProjectManager"
    TECHNICIAN = "Technician"


class Frequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MonthlyOption(StrEnum):
    FIRST_DAY = "firstDay"
    LAST_DAY = "lastDay"
    NTH_DAY = "nthDay"


class EndConditionType(StrEnum):
    ONE_YEAR = "oneYear"
    END_DATE = "endDate"
    OCCURRENCES = "occurrences"


class NotificationKind(StrEnum):
    """通知类型"""

    PROJECT_MAINTENANCE = "project_maintenance"
    TASK_SUBMITTED = "task_submitted"
    TASK_RESUBMITTED = "task_resubmitted"
    TASK_ASSIGNED = "task_assigned"
    TASK_DELAYED = "task_delayed"


# 自动解析下的吸收态
ABSORBING_STATES: set[TaskStatus] = {
    TaskStatus.TO_REVIEW,
    TaskStatus.COMPLETED,
}

# 合法状态流转：自动态之间由日期驱动，吸收态只能经显式操作进出
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.TODO: {TaskStatus.ONGOING, TaskStatus.DELAYED, TaskStatus.TO_REVIEW},
    TaskStatus.ONGOING: {TaskStatus.TODO, TaskStatus.DELAYED, TaskStatus.TO_REVIEW},
    TaskStatus.DELAYED: {TaskStatus.TODO, TaskStatus.ONGOING, TaskStatus.TO_REVIEW},
    # resubmit 回到自动解析；mark_as_done 进入终态
    TaskStatus.TO_REVIEW: {
        TaskStatus.TODO,
        TaskStatus.ONGOING,
        TaskStatus.DELAYED,
        TaskStatus.COMPLETED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
