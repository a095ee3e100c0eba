"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、重复规则迭代上限、排期任务提前天数以及通知投递配置。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("FIELDOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "FIELDOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "fieldops.db"),
    )


def _int_from_env(name: str, default: int, minimum: int = 0) -> int:
    """读取整数环境变量，非法值回退默认值"""
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        parsed = int(val)
    except ValueError:
        log.warning("invalid_int_config", env_var=name, value=val, fallback=default)
        return default
    if parsed < minimum:
        log.warning("invalid_int_config", env_var=name, value=val, fallback=default)
        return default
    return parsed


def get_recurrence_max_iterations() -> int:
    """重复规则外层循环的安全上限"""
    return _int_from_env("FIELDOPS_RECURRENCE_MAX_ITERATIONS", 10_000, minimum=1)


def get_scheduled_task_lead_days() -> int:
    """排期任务的开始日期相对结束日期提前的天数"""
    return _int_from_env("FIELDOPS_SCHEDULED_TASK_LEAD_DAYS", 1, minimum=0)


class NotifierConfig(BaseModel):
    """通知投递配置 -- 从环境变量加载

    环境变量:
        FIELDOPS_NOTIFY_URL: 投递服务 webhook 地址（为空时只记录日志）
        FIELDOPS_NOTIFY_API_KEY: 投递服务访问密钥
        FIELDOPS_NOTIFY_TIMEOUT_S: 投递超时（秒，默认 10）
    """

    url: str = Field(default="", description="投递服务 webhook 地址")
    api_key: SecretStr = Field(default=SecretStr(""), description="投递服务访问密钥")
    timeout_s: int = Field(default=10, ge=1, description="投递超时（秒）")


def load_notifier_config() -> NotifierConfig:
    """从环境变量加载通知配置

    Returns:
        NotifierConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("FIELDOPS_NOTIFY_URL"):
        kwargs["url"] = val

    if val := os.environ.get("FIELDOPS_NOTIFY_API_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if os.environ.get("FIELDOPS_NOTIFY_TIMEOUT_S") is not None:
        kwargs["timeout_s"] = _int_from_env("FIELDOPS_NOTIFY_TIMEOUT_S", 10, minimum=1)

    return NotifierConfig(**kwargs)
