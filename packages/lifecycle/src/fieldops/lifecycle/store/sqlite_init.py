"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id             TEXT PRIMARY KEY,
    project_id          TEXT NOT NULL,
    stage_name          TEXT NOT NULL,
    name                TEXT NOT NULL DEFAULT '',
    status              TEXT NOT NULL DEFAULT 'To-do',
    start_date          TEXT,
    end_date            TEXT,
    review_date         TEXT,
    completed_date      TEXT,
    primary_owner_id    TEXT,
    secondary_owner_id  TEXT,
    remarks             TEXT NOT NULL DEFAULT '',
    service_report      TEXT,
    daily_update_ids    TEXT NOT NULL DEFAULT '[]',
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    version             INTEGER NOT NULL DEFAULT 1
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_stage_name ON tasks(stage_name);",
]

# daily_updates 表 DDL
_DAILY_UPDATES_DDL = """
CREATE TABLE IF NOT EXISTS daily_updates (
    update_id           TEXT PRIMARY KEY,
    task_id             TEXT NOT NULL,
    day                 TEXT NOT NULL,
    photos              TEXT NOT NULL DEFAULT '[]',
    distance_traveled   REAL,
    man_hours           TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,

    -- 延迟到提交时检查：新建任务时台账先于任务写入
    FOREIGN KEY (task_id) REFERENCES tasks(task_id) DEFERRABLE INITIALLY DEFERRED
);
"""

_DAILY_UPDATES_INDEXES = [
    # 同一任务每天仅一条日报
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_updates_task_day ON daily_updates(task_id, day);",
]

# projects 表 DDL
_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id    TEXT PRIMARY KEY,
    name          TEXT NOT NULL DEFAULT '',
    status        TEXT NOT NULL DEFAULT 'To-start',
    stages        TEXT NOT NULL DEFAULT '[]',
    team_members  TEXT NOT NULL DEFAULT '[]'
);
"""

_PROJECTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status);",
]

# users 表 DDL
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id   TEXT PRIMARY KEY,
    name      TEXT NOT NULL DEFAULT '',
    role      TEXT NOT NULL,
    email     TEXT,
    phone_no  TEXT
);
"""

_USERS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_TASKS_DDL)
    await conn.execute(_DAILY_UPDATES_DDL)
    await conn.execute(_PROJECTS_DDL)
    await conn.execute(_USERS_DDL)

    for idx_sql in (
        _TASKS_INDEXES + _DAILY_UPDATES_INDEXES + _PROJECTS_INDEXES + _USERS_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()
