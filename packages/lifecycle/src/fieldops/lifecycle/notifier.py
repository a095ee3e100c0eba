"""Notifier 实现 -- 通知请求投递

LogNotifier: 仅记录日志（未配置投递地址时的默认实现）
HttpNotifier: POST 到外部投递服务（邮件/WhatsApp 由对方负责）

投递失败向上抛出，由 LifecycleService 记录并吞掉，不回滚业务状态。
"""

import httpx
import structlog

from .config import NotifierConfig
from .models.notification import NotificationEvent
from .store.protocols import Notifier

log = structlog.get_logger()


class LogNotifier:
    """只记录日志的 Notifier"""

    async def notify(self, event: NotificationEvent) -> None:
        log.info(
            "notification_logged",
            kind=event.kind.value,
            recipients=[r.user_id for r in event.recipients],
        )


class HttpNotifier:
    """通过 HTTP webhook 投递通知请求"""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout_s: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            url: 投递服务 webhook 地址
            api_key: 通过 X-API-Key 头传递的访问密钥
            timeout_s: 请求超时（秒）
            transport: 自定义 transport（测试时注入 httpx.MockTransport）
        """
        self._url = url
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport

    async def notify(self, event: NotificationEvent) -> None:
        """POST 通知请求；非 2xx 响应抛出 httpx.HTTPStatusError"""
        headers = {"X-API-Key": self._api_key} if self._api_key else {}
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout_s,
        ) as client:
            resp = await client.post(
                self._url,
                json=event.model_dump(mode="json"),
                headers=headers,
            )
            resp.raise_for_status()

        log.info(
            "notification_sent",
            kind=event.kind.value,
            recipients=len(event.recipients),
            status_code=resp.status_code,
        )


def build_notifier(config: NotifierConfig) -> Notifier:
    """按配置选择 Notifier 实现"""
    if not config.url:
        return LogNotifier()
    return HttpNotifier(
        url=config.url,
        api_key=config.api_key.get_secret_value(),
        timeout_s=config.timeout_s,
    )
