"""Store Protocol 接口定义

定义 TaskStore、DailyUpdateStore、ProjectStore、UserDirectory 与 Notifier 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
写操作不自动提交事务，由调用方管理事务边界。
"""

from typing import Protocol

from ..models.daily_update import DailyUpdate
from ..models.enums import ProjectStatus, TaskStatus
from ..models.notification import NotificationEvent
from ..models.project import Project, User
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_active_tasks(self) -> list[Task]:
        """查询所有非吸收态任务（sweep 使用）"""
        ...

    async def list_tasks_by_ids(self, task_ids: list[str]) -> list[Task]:
        """批量查询任务（不存在的 ID 被忽略）"""
        ...

    async def list_tasks_by_status(self, status: TaskStatus) -> list[Task]:
        """按状态查询任务"""
        ...

    async def save_task(self, task: Task, expected_version: int) -> Task:
        """保存任务；expected_version 与库内版本不一致时抛出 TaskVersionConflictError

        Returns:
            版本号递增后的 Task
        """
        ...

    async def delete_task(self, task_id: str) -> None:
        """删除任务记录"""
        ...


class DailyUpdateStore(Protocol):
    """DailyUpdate 存储接口"""

    async def list_by_task(self, task_id: str) -> list[DailyUpdate]:
        """查询任务的全部日报，按日期正序"""
        ...

    async def bulk_insert(self, updates: list[DailyUpdate]) -> None:
        """批量插入"""
        ...

    async def bulk_delete(self, update_ids: list[str]) -> None:
        """批量删除"""
        ...

    async def get_daily_update(self, update_id: str) -> DailyUpdate | None:
        """根据 update_id 查询日报"""
        ...

    async def save_daily_update(self, update: DailyUpdate) -> None:
        """保存日报（照片、距离、工时）"""
        ...

    async def delete_by_task(self, task_id: str) -> None:
        """删除任务的全部日报"""
        ...


class ProjectStore(Protocol):
    """Project 存储接口"""

    async def create_project(self, project: Project) -> None:
        """创建项目记录"""
        ...

    async def get_project(self, project_id: str) -> Project | None:
        """根据 project_id 查询项目"""
        ...

    async def list_projects(self) -> list[Project]:
        """查询全部项目"""
        ...

    async def save_project(self, project: Project) -> None:
        """保存项目（阶段与成员）"""
        ...

    async def save_project_status(self, project_id: str, status: ProjectStatus) -> None:
        """仅更新项目状态"""
        ...


class UserDirectory(Protocol):
    """用户目录接口（只读，用于解析通知接收人）"""

    async def list_admins(self) -> list[User]:
        """查询全部管理员"""
        ...

    async def get_users(self, user_ids: list[str]) -> list[User]:
        """批量查询用户（不存在的 ID 被忽略）"""
        ...


class Notifier(Protocol):
    """通知投递接口 -- 对引擎而言 fire-and-forget"""

    async def notify(self, event: NotificationEvent) -> None:
        """发送通知请求"""
        ...
