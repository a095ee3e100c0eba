"""CLI 入口模块 -- python -m fieldops.lifecycle <command>

支持的命令：
  sweep [YYYY-MM-DD]           重新解析全部活跃任务并聚合项目阶段
  notify-delayed [YYYY-MM-DD]  为全部 Delayed 任务发送延期通知
  init-db                      初始化数据库表结构
"""

import asyncio
import sys
from datetime import date

from .config import get_db_path, load_notifier_config
from .dates import to_day
from .logging_config import setup_logging

_USAGE = """用法: python -m fieldops.lifecycle <command>
命令:
  sweep [YYYY-MM-DD]           重新解析全部活跃任务并聚合项目阶段
  notify-delayed [YYYY-MM-DD]  为全部 Delayed 任务发送延期通知
  init-db                      初始化数据库表结构"""


def main(argv: list[str] | None = None) -> None:
    """CLI 主入口"""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(_USAGE)
        sys.exit(1)

    command, rest = args[0], args[1:]

    if command == "init-db":
        setup_logging(command=command)
        asyncio.run(init_database())
    elif command in ("sweep", "notify-delayed"):
        today = _parse_day_arg(rest)
        setup_logging(command=command, today=today.isoformat() if today else None)
        if command == "sweep":
            asyncio.run(run_sweep(today))
        else:
            asyncio.run(run_notify_delayed(today))
    else:
        print(f"未知命令: {command}")
        print("可用命令: sweep, notify-delayed, init-db")
        sys.exit(1)


def _parse_day_arg(rest: list[str]) -> date | None:
    if not rest:
        return None
    try:
        return to_day(rest[0])
    except (ValueError, TypeError):
        print(f"无效日期: {rest[0]}（格式 YYYY-MM-DD）")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库与表结构"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    await store_group.close()
    print("初始化完成")


async def run_sweep(today: date | None) -> None:
    """执行一次 sweep"""
    from .notifier import build_notifier
    from .service import LifecycleService
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        service = LifecycleService(store_group, build_notifier(load_notifier_config()))
        report = await service.sweep(today)
        print(
            f"sweep 完成（{report.today.isoformat()}）："
            f"任务 {report.tasks_scanned} 个，状态变更 {report.tasks_updated} 个，"
            f"台账修复 {report.ledgers_repaired} 个；"
            f"项目 {report.projects_scanned} 个，阶段变更 {report.projects_changed} 个"
        )
    finally:
        await store_group.close()


async def run_notify_delayed(today: date | None) -> None:
    """为 Delayed 任务发送延期通知"""
    from .notifier import build_notifier
    from .service import LifecycleService
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        service = LifecycleService(store_group, build_notifier(load_notifier_config()))
        sent = await service.notify_delayed_tasks(today)
        print(f"已发送延期通知 {sent} 条")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
