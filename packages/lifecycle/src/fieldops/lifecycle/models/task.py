"""Task Domain Model

tasks 表保存任务当前状态；status 除吸收态外均由日期推导，
daily_update_ids 由 Reconciler 维护，不允许手工增删。
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .enums import StageName, TaskStatus


class ServiceReport(BaseModel):
    """服务报告（附属于 Task）"""

    report_id: str = Field(description="唯一标识，ULID 格式")
    form_id: str | None = Field(default=None, description="表单模板 ID，None 表示无需填写")
    form_name: str = Field(default="No Service Form Required", description="表单名称")
    data: dict[str, Any] = Field(default_factory=dict, description="已采集的表单数据")

    @property
    def requires_data(self) -> bool:
        """配置了表单但尚未填写"""
        return bool(self.form_id) and not self.data


class Task(BaseModel):
    """Task 数据模型

    start_date / end_date 为日粒度；两者同时存在时 end_date >= start_date。
    version 为乐观并发计数器，每次保存递增。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    project_id: str = Field(description="所属项目 ID")
    stage_name: StageName = Field(description="所属阶段")
    name: str = Field(description="任务名称")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="当前状态")
    start_date: date | None = Field(default=None, description="开始日期（含）")
    end_date: date | None = Field(default=None, description="结束日期（含）")
    review_date: datetime | None = Field(default=None, description="提交审核时间")
    completed_date: datetime | None = Field(default=None, description="完成时间")
    primary_owner_id: str | None = Field(default=None, description="主负责技术员")
    secondary_owner_id: str | None = Field(default=None, description="次负责技术员")
    remarks: str = Field(default="", description="备注")
    service_report: ServiceReport | None = Field(default=None, description="服务报告")
    daily_update_ids: list[str] = Field(
        default_factory=list,
        description="按日期排序的 DailyUpdate ID 列表",
    )
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    version: int = Field(default=1, ge=1, description="乐观并发版本号")

    @model_validator(mode="after")
    def _check_date_range(self) -> "Task":
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        ):
            raise ValueError("end_date must be on or after start_date")
        return self

    @property
    def owner_ids(self) -> list[str]:
        """主/次负责人（去重，保持顺序）"""
        owners: list[str] = []
        for owner in (self.primary_owner_id, self.secondary_owner_id):
            if owner and owner not in owners:
                owners.append(owner)
        return owners

    def covers(self, day: date) -> bool:
        """day 是否落在 [start_date, end_date] 内"""
        if self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= day <= self.end_date


class TaskEdit(BaseModel):
    """任务编辑请求

    仅显式传入的字段生效；start_date / end_date 显式传 None 表示清空。
    """

    name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    primary_owner_id: str | None = None
    secondary_owner_id: str | None = None
    remarks: str = ""
    service_report: ServiceReport | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}

    @property
    def touches_dates(self) -> bool:
        return bool({"start_date", "end_date"} & self.model_fields_set)
