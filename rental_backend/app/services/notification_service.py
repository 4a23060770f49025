"""
Notification Service.

Fire-and-forget delivery of back-office events (new reservation, new
expense) to a chat channel. Callers enqueue and return immediately; a
single worker task drains the queue and talks to the channel. Delivery is
at-most-once: a full queue or a failing channel loses the event, and the
loss is only logged.
"""

import asyncio
import contextlib
import html
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from rental_backend.app.core.config import Settings, settings
from rental_backend.app.core.exceptions import NotificationError
from rental_backend.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)

EVENT_TITLES = {
    "reservation.created": "New reservation",
    "expense.created": "Expense notice",
}


def format_message(event: str, fields: Mapping[str, Any]) -> str:
    """Render an event as Telegram HTML. Every value is escaped."""
    title = EVENT_TITLES.get(event, event)
    lines = [f"<b>{html.escape(title, quote=False)}</b>"]
    for label, value in fields.items():
        text = "" if value is None else str(value)
        lines.append(f"<b>{html.escape(label, quote=False)}:</b> {html.escape(text, quote=False)}")
    return "\n".join(lines)


class LoggingChannel:
    """Channel used when Telegram is not configured: messages go to the log."""

    async def send(self, text: str) -> None:
        logger.info("Notification (telegram disabled):\n%s", text)

    async def status(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "username": None,
            "name": None,
            "bot_id": None,
            "error": "NO_TOKEN",
            "chat_configured": False
        }


class TelegramChannel:
    """
    Telegram Bot API channel.

    Calls go through a circuit breaker, so an unreachable API is skipped
    for ``reset_timeout`` seconds after repeated failures instead of
    holding the worker on every event.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.token = token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(name="telegram")
        self._transport = transport

    def _url(self, method: str) -> str:
        return f"{self.api_base}/bot{self.token}/{method}"

    async def _call(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            if payload is None:
                response = await client.get(self._url(method))
            else:
                response = await client.post(self._url(method), json=payload)
        data = response.json()
        if not response.is_success or not data.get("ok"):
            raise NotificationError(data.get("description") or f"Telegram {method} failed with HTTP {response.status_code}")
        return data

    async def send(self, text: str) -> None:
        """
        Post a message to the configured chat.

        Raises:
            NotificationError: If the API rejects the message, is unreachable,
                or the circuit is open
        """
        if not self.chat_id:
            logger.debug("Telegram chat id not set, message skipped")
            return

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True
        }
        try:
            await self.breaker.call(self._call, "sendMessage", payload)
        except CircuitOpenError as exc:
            raise NotificationError(str(exc)) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise NotificationError(f"Telegram sendMessage failed: {exc}") from exc

    async def get_me(self) -> Dict[str, Any]:
        try:
            return await self._call("getMe")
        except NotificationError as exc:
            return {"ok": False, "error": str(exc)}
        except (httpx.HTTPError, ValueError) as exc:
            return {"ok": False, "error": str(exc) or exc.__class__.__name__}

    async def status(self) -> Dict[str, Any]:
        """Connectivity probe: bot identity plus whether a chat is configured."""
        info = await self.get_me()
        result = info.get("result") or {}
        return {
            "ok": bool(info.get("ok")),
            "username": result.get("username"),
            "name": result.get("first_name"),
            "bot_id": result.get("id"),
            "error": info.get("error"),
            "chat_configured": bool(self.chat_id)
        }


def build_channel(config: Settings):
    if not config.telegram_bot_token:
        return LoggingChannel()
    return TelegramChannel(
        token=config.telegram_bot_token,
        chat_id=config.telegram_chat_id,
        api_base=config.telegram_api_base,
        timeout=config.telegram_timeout_seconds,
        breaker=CircuitBreaker(
            failure_threshold=config.notifier_failure_threshold,
            reset_timeout=config.notifier_reset_timeout,
            name="telegram"
        )
    )


class NotificationDispatcher:
    """Bounded queue plus one worker task in front of a channel."""

    def __init__(self, channel, max_queue_size: int = 100):
        self.channel = channel
        self.max_queue_size = max_queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._worker = asyncio.create_task(self._run(), name="notification-worker")
        logger.info("Notification worker started (%s)", type(self.channel).__name__)

    async def stop(self, timeout: float = 5.0) -> None:
        """Flush what is queued, up to ``timeout`` seconds, then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Dropping %d queued notifications on shutdown", self._queue.qsize())
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        self._queue = None

    def notify(self, event: str, fields: Mapping[str, Any]) -> None:
        """Enqueue an event. Never blocks and never raises."""
        if self._queue is None:
            logger.warning("Notification worker not running, dropping %s", event)
            return
        try:
            self._queue.put_nowait((event, dict(fields)))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s", event)

    async def _run(self) -> None:
        while True:
            item: Tuple[str, Dict[str, Any]] = await self._queue.get()
            event, fields = item
            try:
                await self.channel.send(format_message(event, fields))
            except NotificationError as exc:
                logger.warning("Notification %s not delivered: %s", event, exc)
            except Exception:
                logger.exception("Notification channel crashed on %s", event)
            finally:
                self._queue.task_done()


notification_dispatcher = NotificationDispatcher(
    build_channel(settings),
    max_queue_size=settings.notification_queue_size
)


def get_notifier() -> NotificationDispatcher:
    return notification_dispatcher
