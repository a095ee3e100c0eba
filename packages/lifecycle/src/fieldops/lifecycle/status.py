"""Task Status Resolver -- 由日历时间推导任务状态

纯函数：today 显式传入，不读取系统时间，不产生副作用。
To-review / Completed 在自动解析下为吸收态，原样返回。
"""

from datetime import date

from .dates import DayLike, to_day
from .models.enums import ABSORBING_STATES, TaskStatus


def resolve_task_status(
    today: DayLike,
    start_date: DayLike | None,
    end_date: DayLike | None,
    current_status: TaskStatus | None = None,
) -> TaskStatus:
    """推导任务状态

    Args:
        today: 当前日期（日粒度）
        start_date: 开始日期（含）
        end_date: 结束日期（含）
        current_status: 当前状态；为吸收态时原样返回

    Returns:
        推导后的 TaskStatus
    """
    if current_status is not None and current_status in ABSORBING_STATES:
        return current_status

    if start_date is None or end_date is None:
        return TaskStatus.TODO

    day: date = to_day(today)
    if day < to_day(start_date):
        return TaskStatus.TODO
    if day <= to_day(end_date):
        return TaskStatus.ONGOING
    # 结束日当天过完之后才算延期
    return TaskStatus.DELAYED
