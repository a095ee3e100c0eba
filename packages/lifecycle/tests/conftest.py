"""packages/lifecycle 测试配置 -- Store / Service fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from fieldops.lifecycle.models import NotificationEvent, User, UserRole
from fieldops.lifecycle.notifier import LogNotifier
from fieldops.lifecycle.service import LifecycleService
from fieldops.lifecycle.store import StoreGroup, create_store_group


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, day: date) -> None:
        self.now = datetime(day.year, day.month, day.day, 9, 0, tzinfo=UTC)


class RecordingNotifier(LogNotifier):
    """记录全部事件的 Notifier"""

    def __init__(self) -> None:
        self.sent: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> None:
        self.sent.append(event)
        await super().notify(event)


class FailingNotifier:
    """每次投递都失败的 Notifier"""

    def __init__(self) -> None:
        self.attempts: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> None:
        self.attempts.append(event)
        raise RuntimeError("delivery backend down")


@pytest.fixture
def clock() -> FakeClock:
    """固定在 2024-03-10 09:00 UTC 的时钟"""
    return FakeClock(datetime(2024, 3, 10, 9, 0, tzinfo=UTC))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已初始化的 Store 实例组"""
    group = await create_store_group(str(tmp_path / "lifecycle_test.db"))
    yield group
    await group.close()


@pytest_asyncio.fixture
async def users(store_group: StoreGroup) -> dict[str, User]:
    """预置用户：管理员、项目经理、两名技术员、一名无联系方式的技术员"""
    seeded = {
        "admin": User(user_id="u-admin", name="Ada", role=UserRole.ADMIN, email="ada@example.com"),
        "pm": User(
            user_id="u-pm", name="Pat", role=UserRole.PROJECT_MANAGER, phone_no="+10000000001"
        ),
        "tech1": User(
            user_id="u-tech1", name="Tom", role=UserRole.TECHNICIAN, email="tom@example.com"
        ),
        "tech2": User(
            user_id="u-tech2", name="Tia", role=UserRole.TECHNICIAN, phone_no="+10000000002"
        ),
        "ghost": User(user_id="u-ghost", name="Gus", role=UserRole.TECHNICIAN),
    }
    for user in seeded.values():
        await store_group.user_directory.upsert_user(user)
    await store_group.conn.commit()
    return seeded


@pytest_asyncio.fixture
async def service(
    store_group: StoreGroup,
    notifier: RecordingNotifier,
    clock: FakeClock,
    users: dict[str, User],
) -> LifecycleService:
    return LifecycleService(store_group, notifier, clock=clock)
