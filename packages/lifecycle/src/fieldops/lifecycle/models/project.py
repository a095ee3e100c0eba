"""Project Domain Model

项目由三个阶段组成，每个阶段持有有序的任务 ID 列表。
status 由任务状态聚合得出（Archive 除外）。
"""

from pydantic import BaseModel, Field

from .enums import ProjectStatus, StageName, TeamRole, UserRole


class ProjectStage(BaseModel):
    """项目阶段"""

    name: StageName = Field(description="阶段名称")
    task_ids: list[str] = Field(default_factory=list, description="有序任务 ID 列表")
    total_tasks: int = Field(default=0, ge=0, description="任务总数")
    completed_tasks: int = Field(default=0, ge=0, description="已完成任务数")


class TeamMember(BaseModel):
    """项目成员"""

    role: TeamRole
    user_id: str


class Project(BaseModel):
    """Project 数据模型"""

    project_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="项目名称")
    status: ProjectStatus = Field(default=ProjectStatus.TO_START, description="当前阶段")
    stages: list[ProjectStage] = Field(default_factory=list, description="阶段列表")
    team_members: list[TeamMember] = Field(default_factory=list, description="项目成员")

    @classmethod
    def with_default_stages(cls, project_id: str, name: str) -> "Project":
        """创建带三个空阶段的项目"""
        return cls(
            project_id=project_id,
            name=name,
            stages=[ProjectStage(name=stage) for stage in StageName],
        )

    def get_stage(self, name: StageName) -> ProjectStage | None:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    @property
    def all_task_ids(self) -> list[str]:
        return [task_id for stage in self.stages for task_id in stage.task_ids]

    @property
    def manager_ids(self) -> list[str]:
        """主/次项目经理 ID"""
        managers: list[str] = []
        for member in self.team_members:
            if member.role in (TeamRole.PRIMARY_PM, TeamRole.SECONDARY_PM):
                if member.user_id not in managers:
                    managers.append(member.user_id)
        return managers


class User(BaseModel):
    """用户（仅用于解析通知接收人）"""

    user_id: str
    name: str = ""
    role: UserRole = UserRole.TECHNICIAN
    email: str | None = None
    phone_no: str | None = None

    @property
    def reachable(self) -> bool:
        return bool(self.email or self.phone_no)
