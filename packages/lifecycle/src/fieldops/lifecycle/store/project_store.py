"""ProjectStore / UserDirectory SQLite 实现

stages 与 team_members 以 JSON 列存储。
"""

import aiosqlite
from pydantic import TypeAdapter

from ..models.enums import ProjectStatus, UserRole
from ..models.project import Project, ProjectStage, TeamMember, User

_STAGES = TypeAdapter(list[ProjectStage])
_MEMBERS = TypeAdapter(list[TeamMember])


class SqliteProjectStore:
    """ProjectStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_project(self, project: Project) -> None:
        """创建项目记录"""
        await self._conn.execute(
            """
            INSERT INTO projects (project_id, name, status, stages, team_members)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                project.project_id,
                project.name,
                project.status.value,
                _STAGES.dump_json(project.stages).decode(),
                _MEMBERS.dump_json(project.team_members).decode(),
            ),
        )

    async def get_project(self, project_id: str) -> Project | None:
        """根据 project_id 查询项目"""
        cursor = await self._conn.execute(
            "SELECT project_id, name, status, stages, team_members "
            "FROM projects WHERE project_id = ?",
            (project_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_project(row)

    async def list_projects(self) -> list[Project]:
        """查询全部项目"""
        cursor = await self._conn.execute(
            "SELECT project_id, name, status, stages, team_members "
            "FROM projects ORDER BY project_id ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_project(row) for row in rows]

    async def save_project(self, project: Project) -> None:
        """保存项目的阶段与成员（不修改 status）"""
        await self._conn.execute(
            "UPDATE projects SET name = ?, stages = ?, team_members = ? WHERE project_id = ?",
            (
                project.name,
                _STAGES.dump_json(project.stages).decode(),
                _MEMBERS.dump_json(project.team_members).decode(),
                project.project_id,
            ),
        )

    async def save_project_status(self, project_id: str, status: ProjectStatus) -> None:
        """仅更新项目状态"""
        await self._conn.execute(
            "UPDATE projects SET status = ? WHERE project_id = ?",
            (ProjectStatus(status).value, project_id),
        )

    @staticmethod
    def _row_to_project(row: aiosqlite.Row) -> Project:
        """将数据库行转换为 Project 模型"""
        return Project(
            project_id=row[0],
            name=row[1],
            status=row[2],
            stages=_STAGES.validate_json(row[3]) if row[3] else [],
            team_members=_MEMBERS.validate_json(row[4]) if row[4] else [],
        )


class SqliteUserDirectory:
    """UserDirectory 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_user(self, user: User) -> None:
        """写入或更新用户（由外部用户管理同步）"""
        await self._conn.execute(
            """
            INSERT INTO users (user_id, name, role, email, phone_no)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                name = excluded.name, role = excluded.role,
                email = excluded.email, phone_no = excluded.phone_no
            """,
            (user.user_id, user.name, user.role.value, user.email, user.phone_no),
        )

    async def list_admins(self) -> list[User]:
        """查询全部管理员"""
        cursor = await self._conn.execute(
            "SELECT user_id, name, role, email, phone_no FROM users "
            "WHERE role = ? ORDER BY user_id ASC",
            (UserRole.ADMIN.value,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def get_users(self, user_ids: list[str]) -> list[User]:
        """批量查询用户，按入参顺序返回"""
        if not user_ids:
            return []
        placeholders = ", ".join("?" for _ in user_ids)
        cursor = await self._conn.execute(
            f"SELECT user_id, name, role, email, phone_no FROM users "
            f"WHERE user_id IN ({placeholders})",
            list(user_ids),
        )
        rows = await cursor.fetchall()
        by_id = {row[0]: self._row_to_user(row) for row in rows}
        return [by_id[uid] for uid in user_ids if uid in by_id]

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        return User(
            user_id=row[0],
            name=row[1],
            role=row[2],
            email=row[3],
            phone_no=row[4],
        )
