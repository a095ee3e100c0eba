"""Recurrence Generator 单元测试

测试内容：
1. daily / weekly / monthly(firstDay, lastDay, nthDay) 展开
2. 三种终止条件与迭代上限
3. 不产生早于锚点的日期；输出升序去重且可复现
4. 非法规则 -> InvalidRuleError
"""

from datetime import date

import pytest
from fieldops.lifecycle.exceptions import InvalidRuleError
from fieldops.lifecycle.models import RecurrenceRule
from fieldops.lifecycle.recurrence import generate_occurrences, parse_recurrence_rule


def _rule(frequency: str, interval: int = 1, end: dict | None = None, **extra) -> dict:
    return {
        "frequency": frequency,
        "interval": interval,
        "end_condition": end or {"type": "oneYear"},
        **extra,
    }


def _count(n: int) -> dict:
    return {"type": "occurrences", "occurrences": n}


def _until(day: str) -> dict:
    return {"type": "endDate", "end_date": day}


class TestDaily:
    """daily 展开"""

    def test_interval_and_occurrences(self):
        dates = generate_occurrences(_rule("daily", 2, _count(4)), date(2024, 1, 30))
        assert dates == [
            date(2024, 1, 30),
            date(2024, 2, 1),
            date(2024, 2, 3),
            date(2024, 2, 5),
        ]

    def test_end_date_is_inclusive(self):
        dates = generate_occurrences(_rule("daily", 1, _until("2024-01-03")), date(2024, 1, 1))
        assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_one_year_boundary_across_leap_year(self):
        dates = generate_occurrences(_rule("daily"), date(2024, 1, 1))
        assert dates[0] == date(2024, 1, 1)
        assert dates[-1] == date(2025, 1, 1)
        assert len(dates) == 367

    def test_end_date_before_anchor_yields_empty(self):
        assert generate_occurrences(_rule("daily", 1, _until("2023-12-31")), date(2024, 1, 1)) == []

    def test_iteration_cap_returns_partial_result(self):
        dates = generate_occurrences(
            _rule("daily", 1, _count(100)),
            date(2024, 1, 1),
            max_iterations=5,
        )
        assert len(dates) == 5


class TestWeekly:
    """weekly 展开（0 = 周日）"""

    def test_multiple_weekdays_per_step(self):
        # 2024-03-10 为周日
        dates = generate_occurrences(
            _rule("weekly", 1, _count(4), days_of_week=[1, 3]),
            date(2024, 3, 10),
        )
        assert dates == [
            date(2024, 3, 11),
            date(2024, 3, 13),
            date(2024, 3, 18),
            date(2024, 3, 20),
        ]

    def test_earlier_weekday_rolls_forward_never_backward(self):
        # 锚点周三，目标周一 -> 下一个周一
        dates = generate_occurrences(
            _rule("weekly", 2, _count(3), days_of_week=[1]),
            date(2024, 3, 13),
        )
        assert dates == [date(2024, 3, 18), date(2024, 4, 1), date(2024, 4, 15)]
        assert all(d >= date(2024, 3, 13) for d in dates)

    def test_anchor_weekday_included(self):
        dates = generate_occurrences(
            _rule("weekly", 1, _count(2), days_of_week=[3]),
            date(2024, 3, 13),
        )
        assert dates == [date(2024, 3, 13), date(2024, 3, 20)]

    def test_duplicate_weekdays_deduplicated(self):
        dates = generate_occurrences(
            _rule("weekly", 1, _count(3), days_of_week=[5, 5]),
            date(2024, 3, 10),
        )
        assert dates == [date(2024, 3, 15), date(2024, 3, 22), date(2024, 3, 29)]


class TestMonthly:
    """monthly 展开"""

    def test_first_day_skips_anchor_month_when_before_anchor(self):
        dates = generate_occurrences(
            _rule("monthly", 1, _count(3), monthly_option="firstDay"),
            date(2024, 1, 15),
        )
        assert dates == [date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)]

    def test_first_day_with_interval(self):
        dates = generate_occurrences(
            _rule("monthly", 2, _count(3), monthly_option="firstDay"),
            date(2024, 11, 1),
        )
        assert dates == [date(2024, 11, 1), date(2025, 1, 1), date(2025, 3, 1)]

    def test_first_day_with_interval_starts_next_month(self):
        dates = generate_occurrences(
            _rule("monthly", 2, _count(3), monthly_option="firstDay"),
            date(2024, 1, 15),
        )
        assert dates == [date(2024, 2, 1), date(2024, 4, 1), date(2024, 6, 1)]

    def test_last_day_handles_variable_month_lengths(self):
        dates = generate_occurrences(
            _rule("monthly", 1, _count(3), monthly_option="lastDay"),
            date(2024, 1, 31),
        )
        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_last_day_one_year_from_leap_day(self):
        dates = generate_occurrences(
            _rule("monthly", 1, monthly_option="lastDay"),
            date(2024, 2, 29),
        )
        assert len(dates) == 13
        assert dates[-1] == date(2025, 2, 28)

    def test_nth_weekday(self):
        # 每月第 2 个周二
        dates = generate_occurrences(
            _rule("monthly", 1, _count(3), monthly_option="nthDay", days_of_week=[2], nth_occurrence=2),
            date(2024, 1, 1),
        )
        assert dates == [date(2024, 1, 9), date(2024, 2, 13), date(2024, 3, 12)]

    def test_nth_weekday_overflow_month_is_skipped(self):
        # 第 5 个周五只在 2024-03 存在
        dates = generate_occurrences(
            _rule(
                "monthly",
                1,
                _until("2024-04-30"),
                monthly_option="nthDay",
                days_of_week=[5],
                nth_occurrence=5,
            ),
            date(2024, 1, 1),
        )
        assert dates == [date(2024, 3, 29)]


class TestDateLimits:
    """展开到 date.max 附近时返回已生成的部分"""

    def test_huge_daily_interval(self):
        dates = generate_occurrences(_rule("daily", 1_000_000, _count(5)), date(2024, 1, 1))
        assert len(dates) == 3
        assert dates[0] == date(2024, 1, 1)

    def test_daily_anchor_near_max(self):
        dates = generate_occurrences(_rule("daily", 1, _count(5)), date(9999, 12, 29))
        assert dates == [date(9999, 12, 29), date(9999, 12, 30), date(9999, 12, 31)]

    def test_monthly_last_day_until_max(self):
        dates = generate_occurrences(
            _rule("monthly", 1, _until("9999-12-31"), monthly_option="lastDay"),
            date(9999, 11, 1),
        )
        assert dates == [date(9999, 11, 30), date(9999, 12, 31)]

    def test_one_year_past_max_year(self):
        dates = generate_occurrences(_rule("weekly", 1, days_of_week=[1]), date(9999, 6, 1))
        assert dates
        assert dates == sorted(set(dates))
        assert all(d.weekday() == 0 for d in dates)
        assert dates[-1] == date(9999, 12, 27)


class TestOutputProperties:
    """输出性质"""

    @pytest.mark.parametrize(
        "raw",
        [
            _rule("daily", 3),
            _rule("weekly", 1, days_of_week=[0, 2, 4, 6]),
            _rule("monthly", 1, monthly_option="lastDay"),
            _rule("monthly", 1, monthly_option="nthDay", days_of_week=[1], nth_occurrence=3),
        ],
    )
    def test_ascending_distinct_and_not_before_anchor(self, raw):
        anchor = date(2024, 5, 17)
        dates = generate_occurrences(raw, anchor)
        assert dates == sorted(set(dates))
        assert all(d >= anchor for d in dates)

    def test_deterministic(self):
        raw = _rule("weekly", 2, _count(10), days_of_week=[1, 5])
        assert generate_occurrences(raw, "2024-03-10") == generate_occurrences(raw, "2024-03-10")

    def test_camel_case_input_accepted(self):
        rule = parse_recurrence_rule(
            {
                "frequency": "weekly",
                "interval": 1,
                "daysOfWeek": [1],
                "endCondition": {"type": "occurrences", "occurrences": 2},
            }
        )
        assert isinstance(rule, RecurrenceRule)
        assert rule.days_of_week == [1]
        assert generate_occurrences(rule, date(2024, 3, 10)) == [date(2024, 3, 11), date(2024, 3, 18)]


class TestInvalidRules:
    """非法规则"""

    @pytest.mark.parametrize(
        "raw",
        [
            _rule("hourly"),
            _rule("daily", 0),
            _rule("weekly"),
            _rule("monthly"),
            _rule("monthly", monthly_option="nthDay", days_of_week=[1]),
            _rule("monthly", monthly_option="nthDay", nth_occurrence=2),
            _rule("daily", end={"type": "endDate"}),
            _rule("daily", end={"type": "endDate", "end_date": "garbage"}),
            _rule("daily", end={"type": "occurrences", "occurrences": 0}),
            _rule("weekly", days_of_week=[7]),
            {"frequency": "daily", "interval": 1},
        ],
    )
    def test_invalid_rule_rejected(self, raw):
        with pytest.raises(InvalidRuleError):
            generate_occurrences(raw, date(2024, 1, 1))

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidRuleError):
            parse_recurrence_rule(["daily"])

    def test_unparseable_anchor(self):
        with pytest.raises(InvalidRuleError):
            generate_occurrences(_rule("daily", 1, _count(2)), "not-a-date")
