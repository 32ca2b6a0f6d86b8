"""User-visible status notices."""

import logging
from collections import deque
from typing import Deque, List, Protocol

logger = logging.getLogger("vault_mcp.notice")


class NotificationSink(Protocol):
    def notify(self, message: str) -> None:
        ...


class LoggingNotifier:
    """Surfaces notices through the log; the default sink for the CLI."""

    def notify(self, message: str) -> None:
        logger.info(message)


class RecordingNotifier:
    """Keeps the most recent notices in memory (status endpoint, tests)."""

    def __init__(self, maxlen: int = 100, forward: NotificationSink = None):
        self._messages: Deque[str] = deque(maxlen=maxlen)
        self._forward = forward

    def notify(self, message: str) -> None:
        self._messages.append(message)
        if self._forward is not None:
            self._forward.notify(message)

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()
