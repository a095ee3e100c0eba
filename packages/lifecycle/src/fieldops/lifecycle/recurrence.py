"""Recurrence Generator -- 将重复规则展开为具体日期序列

输出升序、去重；从不产生早于锚点日期的日期。
外层步进循环受迭代上限保护，规则异常时提前终止并返回已生成的部分。
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import date, timedelta
from typing import Any

import structlog
from pydantic import ValidationError

from .config import get_recurrence_max_iterations
from .dates import (
    DayLike,
    add_months,
    add_years,
    first_day_of_month,
    js_weekday,
    last_day_of_month,
    to_day,
)
from .exceptions import InvalidRuleError
from .models.enums import EndConditionType, Frequency, MonthlyOption
from .models.recurrence import RecurrenceRule

log = structlog.get_logger()


def parse_recurrence_rule(raw: Mapping[str, Any] | RecurrenceRule) -> RecurrenceRule:
    """校验并构建 RecurrenceRule

    Args:
        raw: 前端提交的规则（camelCase 或 snake_case 键）

    Returns:
        RecurrenceRule

    Raises:
        InvalidRuleError: 缺字段、格式错误或日期无法解析
    """
    if isinstance(raw, RecurrenceRule):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidRuleError("Recurrence rule must be a mapping")
    try:
        return RecurrenceRule.model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidRuleError(f"Invalid recurrence rule: {_summarize(e)}") from e


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "rule"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def _resolve_anchor(anchor: DayLike) -> date:
    try:
        return to_day(anchor)
    except (ValueError, TypeError) as e:
        raise InvalidRuleError(f"Invalid anchor date: {anchor!r}") from e


def _end_boundary(rule: RecurrenceRule, anchor: date) -> date | None:
    """计算截止日期（含）；occurrences 模式无日期边界"""
    end = rule.end_condition
    if end.type == EndConditionType.ONE_YEAR:
        try:
            return add_years(anchor, 1)
        except (OverflowError, ValueError):
            # 锚点一年后超出 date.max：以 date.max 为边界
            return date.max
    if end.type == EndConditionType.END_DATE:
        return end.end_date
    return None


def _step_cursor(rule: RecurrenceRule, anchor: date, step: int) -> date:
    """第 step 次外层步进的起点"""
    if rule.frequency == Frequency.DAILY:
        return anchor + timedelta(days=rule.interval * step)
    if rule.frequency == Frequency.WEEKLY:
        return anchor + timedelta(weeks=rule.interval * step)
    month_start = first_day_of_month(anchor)
    if rule.monthly_option == MonthlyOption.FIRST_DAY and anchor.day > 1:
        # 锚点月的 1 日已过，从下月 1 日起步
        month_start = add_months(month_start, 1)
    return add_months(month_start, rule.interval * step)


def _weekly_candidates(rule: RecurrenceRule, cursor: date) -> list[date]:
    # 只向前推算到下一个目标星期，不回退
    offsets = {(day - js_weekday(cursor)) % 7 for day in rule.days_of_week}
    return [cursor + timedelta(days=offset) for offset in sorted(offsets)]


def _nth_weekday_of_month(month_start: date, weekday: int, nth: int) -> date | None:
    """month_start 所在月份的第 nth 个 weekday；溢出本月时返回 None"""
    offset = (weekday - js_weekday(month_start)) % 7
    day_number = 1 + offset + (nth - 1) * 7
    if day_number > last_day_of_month(month_start).day:
        return None
    return month_start.replace(day=day_number)


def _monthly_candidates(rule: RecurrenceRule, cursor: date) -> list[date]:
    if rule.monthly_option == MonthlyOption.FIRST_DAY:
        return [first_day_of_month(cursor)]
    if rule.monthly_option == MonthlyOption.LAST_DAY:
        return [last_day_of_month(cursor)]
    nth_day = _nth_weekday_of_month(
        cursor, rule.days_of_week[0], rule.nth_occurrence or 1
    )
    if nth_day is None:
        log.debug(
            "recurrence_nth_day_overflow",
            month=cursor.isoformat(),
            nth_occurrence=rule.nth_occurrence,
        )
        return []
    return [nth_day]


_CANDIDATES: dict[Frequency, Callable[[RecurrenceRule, date], list[date]]] = {
    Frequency.DAILY: lambda rule, cursor: [cursor],
    Frequency.WEEKLY: _weekly_candidates,
    Frequency.MONTHLY: _monthly_candidates,
}


def generate_occurrences(
    rule: Mapping[str, Any] | RecurrenceRule,
    anchor: DayLike,
    *,
    max_iterations: int | None = None,
) -> list[date]:
    """将重复规则从锚点日期展开为日期序列

    Args:
        rule: 重复规则（未校验的 dict 会先经 parse_recurrence_rule 校验）
        anchor: 锚点日期
        max_iterations: 外层循环上限，None 时使用配置值

    Returns:
        升序、去重的日期列表；空列表是合法结果

    Raises:
        InvalidRuleError: 规则或锚点日期非法
    """
    parsed = parse_recurrence_rule(rule)
    anchor_day = _resolve_anchor(anchor)
    limit = max_iterations if max_iterations is not None else get_recurrence_max_iterations()

    boundary = _end_boundary(parsed, anchor_day)
    max_count = (
        parsed.end_condition.occurrences
        if parsed.end_condition.type == EndConditionType.OCCURRENCES
        else None
    )
    candidates_for = _CANDIDATES[parsed.frequency]

    emitted: set[date] = set()
    dates: list[date] = []
    step = 0
    while max_count is None or len(dates) < max_count:
        if step >= limit:
            log.warning(
                "recurrence_iteration_cap_reached",
                frequency=parsed.frequency.value,
                max_iterations=limit,
                generated=len(dates),
            )
            break

        try:
            cursor = _step_cursor(parsed, anchor_day, step)
            candidates = candidates_for(parsed, cursor)
        except (OverflowError, ValueError):
            # 超出 date.max 视同越过边界，返回已生成的部分
            log.warning(
                "recurrence_date_out_of_range",
                frequency=parsed.frequency.value,
                step=step,
                generated=len(dates),
            )
            break
        step += 1
        if boundary is not None and cursor > boundary:
            break

        _collect(
            candidates,
            anchor_day,
            boundary,
            max_count,
            emitted,
            dates,
        )

    dates.sort()
    return dates


def _collect(
    candidates: Iterable[date],
    anchor: date,
    boundary: date | None,
    max_count: int | None,
    emitted: set[date],
    dates: list[date],
) -> None:
    for candidate in candidates:
        if max_count is not None and len(dates) >= max_count:
            return
        if candidate < anchor or candidate in emitted:
            continue
        if boundary is not None and candidate > boundary:
            continue
        emitted.add(candidate)
        dates.append(candidate)
