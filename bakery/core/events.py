"""
Канал уведомлений «что-то изменилось» для панели персонала.
Сигнал несёт только тему (prepared / orders): получатель сам перечитывает данные.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from bakery.core.logging_config import get_logger

logger = get_logger(__name__)

TOPIC_PREPARED = "prepared"
TOPIC_ORDERS = "orders"

_SESSION_KEY = "changed_topics"


class ChangeNotifier:
    """Рассылка сигналов всем подписчикам процесса (очередь на подписчика)."""

    def __init__(self, max_pending: int = 16):
        self._max_pending = max_pending
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, topic: str) -> None:
        for queue in list(self._subscribers):
            if queue.full():
                # Медленный подписчик: старый сигнал теряет смысл, оставляем свежий
                queue.get_nowait()
            queue.put_nowait(topic)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_pending)
        self._subscribers.add(queue)
        logger.debug("Подписчик событий подключён, всего %s", len(self._subscribers))
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)


notifier = ChangeNotifier()


def mark_changed(session, topic: str) -> None:
    """Запомнить тему в сессии; сигнал уйдёт только после успешного commit."""
    session.info.setdefault(_SESSION_KEY, set()).add(topic)


def publish_pending(session) -> None:
    for topic in sorted(session.info.pop(_SESSION_KEY, set())):
        notifier.publish(topic)


def discard_pending(session) -> None:
    session.info.pop(_SESSION_KEY, None)
