"""DailyUpdate Domain Model

每个任务在其活跃区间内每天一条记录，(task_id, day) 唯一。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class ManHours(BaseModel):
    """人工工时"""

    no_of_person: int = Field(ge=0, description="人数")
    no_of_hours: float = Field(ge=0, description="每人工时")
    total_hours: float = Field(ge=0, description="总工时 = 人数 × 每人工时")

    @classmethod
    def compute(cls, no_of_person: int, no_of_hours: float) -> "ManHours":
        return cls(
            no_of_person=no_of_person,
            no_of_hours=no_of_hours,
            total_hours=no_of_person * no_of_hours,
        )


class DailyUpdate(BaseModel):
    """DailyUpdate 数据模型"""

    update_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    day: date = Field(description="记录日期（日粒度）")
    photos: list[str] = Field(default_factory=list, description="照片 URL 列表")
    distance_traveled: float | None = Field(default=None, ge=0, description="行驶距离")
    man_hours: ManHours | None = Field(default=None, description="人工工时")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def has_photos(self) -> bool:
        return len(self.photos) > 0
