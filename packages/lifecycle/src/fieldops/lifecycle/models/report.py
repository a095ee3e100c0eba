"""编排层结果模型

SchedulePreview: 重复规则预览（不落库）
SweepReport: 定时 sweep 的执行统计
"""

from datetime import date

from pydantic import BaseModel, Field

from .enums import StageName


class SchedulePreview(BaseModel):
    """重复规则预览结果；dates 为空时 total=0，不视为错误"""

    total: int = Field(description="生成的日期数量")
    stage_name: StageName | None = Field(default=None, description="目标阶段")
    start_date: date = Field(description="锚点日期")
    end_date: date | None = Field(default=None, description="最后一个日期")
    dates: list[date] = Field(default_factory=list, description="升序日期列表")

    @property
    def is_empty(self) -> bool:
        return self.total == 0


class SweepReport(BaseModel):
    """sweep 执行统计"""

    today: date
    tasks_scanned: int = 0
    tasks_updated: int = 0
    ledgers_repaired: int = 0
    task_conflicts: int = 0
    projects_scanned: int = 0
    projects_changed: int = 0
    projects_skipped: int = 0
    maintenance_notified: int = 0
