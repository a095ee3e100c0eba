"""RecurrenceRule 值对象

输入值对象，不单独持久化；由 Recurrence Generator 一次性消费。
星期索引约定：0 = 周日 … 6 = 周六。
"""

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..dates import to_day
from .enums import EndConditionType, Frequency, MonthlyOption

Weekday = Annotated[int, Field(ge=0, le=6)]

# 前端以 camelCase 提交（daysOfWeek / endCondition ...），snake_case 同样接受
_RULE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class EndCondition(BaseModel):
    """重复终止条件"""

    model_config = _RULE_CONFIG

    type: EndConditionType
    end_date: date | None = Field(default=None, description="type=endDate 时的截止日期（含）")
    occurrences: int | None = Field(default=None, ge=1, description="type=occurrences 时的次数")

    @field_validator("end_date", mode="before")
    @classmethod
    def _parse_end_date(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            return to_day(value)
        except TypeError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _check_required(self) -> "EndCondition":
        if self.type == EndConditionType.END_DATE and self.end_date is None:
            raise ValueError("endDate end condition requires end_date")
        if self.type == EndConditionType.OCCURRENCES and self.occurrences is None:
            raise ValueError("occurrences end condition requires occurrences")
        return self


class RecurrenceRule(BaseModel):
    """重复规则"""

    model_config = _RULE_CONFIG

    frequency: Frequency
    interval: int = Field(ge=1, description="步长（天/周/月）")
    days_of_week: list[Weekday] = Field(default_factory=list, description="星期索引列表")
    monthly_option: MonthlyOption | None = Field(default=None)
    nth_occurrence: int | None = Field(default=None, ge=1, description="nthDay 的第 N 次")
    end_condition: EndCondition

    @model_validator(mode="after")
    def _check_frequency_fields(self) -> "RecurrenceRule":
        if self.frequency == Frequency.WEEKLY and not self.days_of_week:
            raise ValueError("weekly frequency requires days_of_week")
        if self.frequency == Frequency.MONTHLY:
            if self.monthly_option is None:
                raise ValueError("monthly frequency requires monthly_option")
            if self.monthly_option == MonthlyOption.NTH_DAY:
                if not self.days_of_week:
                    raise ValueError("nthDay option requires days_of_week")
                if self.nth_occurrence is None:
                    raise ValueError("nthDay option requires nth_occurrence")
        return self
