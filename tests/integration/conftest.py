"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest_asyncio
from fieldops.lifecycle.models import NotificationEvent, TeamMember, TeamRole, User, UserRole
from fieldops.lifecycle.notifier import LogNotifier
from fieldops.lifecycle.service import LifecycleService
from fieldops.lifecycle.store import StoreGroup, create_store_group


class RecordingNotifier(LogNotifier):
    """记录全部事件的 Notifier"""

    def __init__(self) -> None:
        self.sent: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> None:
        self.sent.append(event)
        await super().notify(event)


@pytest_asyncio.fixture
async def integration_stores(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    group = await create_store_group(str(tmp_path / "integration.db"))
    for user in (
        User(user_id="u-admin", name="Ada", role=UserRole.ADMIN, email="ada@example.com"),
        User(user_id="u-pm", name="Pat", role=UserRole.PROJECT_MANAGER, email="pat@example.com"),
        User(user_id="u-tech", name="Tom", role=UserRole.TECHNICIAN, phone_no="+10000000001"),
    ):
        await group.user_directory.upsert_user(user)
    await group.conn.commit()
    yield group
    await group.close()


@pytest_asyncio.fixture
async def integration_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def lifecycle(
    integration_stores: StoreGroup,
    integration_notifier: RecordingNotifier,
) -> LifecycleService:
    """mutation 路径固定时钟为 2024-06-01；sweep 的 today 由测试显式传入"""
    return LifecycleService(
        integration_stores,
        integration_notifier,
        clock=lambda: datetime(2024, 6, 1, 8, 0, tzinfo=UTC),
    )


@pytest_asyncio.fixture
async def managed_project(lifecycle: LifecycleService):
    return await lifecycle.create_project(
        "Rooftop Solar",
        team_members=[TeamMember(role=TeamRole.PRIMARY_PM, user_id="u-pm")],
    )
