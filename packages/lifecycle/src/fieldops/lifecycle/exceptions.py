"""生命周期引擎异常体系

调用方错误（非法区间、非法规则、非法流转、前置条件不满足）同步抛出，不自动重试；
持久层异常（aiosqlite）原样向上传递，由调用方决定是否重试。
"""


class LifecycleError(Exception):
    """生命周期引擎基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class InvalidRangeError(LifecycleError):
    """开始日期晚于结束日期"""

    def __init__(self, start: object, end: object) -> None:
        super().__init__(f"Start date {start} cannot be after end date {end}")
        self.start = start
        self.end = end


class InvalidRuleError(LifecycleError):
    """重复规则缺字段、格式错误或日期无法解析"""


class InvalidTransitionError(LifecycleError):
    """显式操作在当前状态下不允许"""

    def __init__(self, action: str, current_status: str) -> None:
        super().__init__(f"Cannot {action} a task in status {current_status}")
        self.action = action
        self.current_status = current_status


class PreconditionNotMetError(LifecycleError):
    """提交审核的前置条件不满足"""


class TaskAlreadyCompletedError(LifecycleError):
    """任务已完成，不允许再修改日报数据"""

    def __init__(self, task_id: str, field: str) -> None:
        super().__init__(f"Task {task_id} is completed. {field} cannot be updated.")
        self.task_id = task_id
        self.field = field


class TaskNotFoundError(LifecycleError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class ProjectNotFoundError(LifecycleError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class DailyUpdateNotFoundError(LifecycleError):
    def __init__(self, update_id: str) -> None:
        super().__init__(f"Daily update not found: {update_id}")
        self.update_id = update_id


class TaskVersionConflictError(LifecycleError):
    """乐观并发检查失败：任务在读取后被其他写入者修改

    重新读取任务后重试即可恢复。
    """

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"Task {task_id} was modified concurrently (expected version {expected_version})",
            recoverable=True,
        )
        self.task_id = task_id
        self.expected_version = expected_version
