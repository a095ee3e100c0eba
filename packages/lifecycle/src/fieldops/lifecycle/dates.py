"""日历工具 -- 纯日期运算

所有比较均在日粒度上进行：datetime 一律先归一化为其日历日期，
时刻与时区噪声不影响日期身份。
"""

import calendar
from collections.abc import Iterator
from datetime import date, datetime, timedelta

from dateutil import parser as date_parser

from .exceptions import InvalidRangeError

DayLike = date | datetime | str


def to_day(value: DayLike) -> date:
    """归一化为日历日期

    Args:
        value: date / datetime / 日期字符串

    Returns:
        date

    Raises:
        ValueError: 字符串无法解析
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date_parser.parse(value).date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Unparseable date: {value!r}") from e
    raise TypeError(f"Unsupported date value: {value!r}")


class DayRange:
    """闭区间 [start, end] 内的日期序列

    惰性、有限、可重复迭代；支持 len() 与 in。
    """

    __slots__ = ("start", "end")

    def __init__(self, start: date, end: date) -> None:
        if start > end:
            raise InvalidRangeError(start, end)
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[date]:
        # 按偏移生成，end 为 date.max 时不会越界
        for offset in range(len(self)):
            yield self.start + timedelta(days=offset)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, date):
            return False
        return self.start <= to_day(item) <= self.end

    def __repr__(self) -> str:
        return f"DayRange({self.start.isoformat()}, {self.end.isoformat()})"


def days_between(start: DayLike, end: DayLike) -> DayRange:
    """start 到 end（含两端）的逐日序列

    Raises:
        InvalidRangeError: start 晚于 end
    """
    return DayRange(to_day(start), to_day(end))


def is_same_day(a: DayLike, b: DayLike) -> bool:
    """仅比较日历日期"""
    return to_day(a) == to_day(b)


def first_day_of_month(day: date) -> date:
    return day.replace(day=1)


def last_day_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def add_months(day: date, months: int) -> date:
    """按月偏移，日号超出目标月天数时截断到月末"""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def add_years(day: date, years: int) -> date:
    """按年偏移（2/29 落到非闰年时为 2/28）"""
    return add_months(day, years * 12)


def js_weekday(day: date) -> int:
    """星期索引：0 = 周日 … 6 = 周六"""
    return (day.weekday() + 1) % 7
