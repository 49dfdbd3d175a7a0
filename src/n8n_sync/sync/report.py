"""Progress messages produced during a sync or refresh pass."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class Reporter:
    """Collects human-readable progress messages.

    Every message is kept in ``messages``, logged at INFO and passed to the
    optional ``on_message`` callback (the CLI prints them to the console).
    """

    def __init__(self, on_message: Callable[[str], None] | None = None):
        self.messages: list[str] = []
        self._on_message = on_message

    def __call__(self, message: str) -> None:
        self.messages.append(message)
        logger.info(message)
        if self._on_message:
            self._on_message(message)

    def dry_run_messages(self) -> list[str]:
        return [m for m in self.messages if m.startswith("Would ")]
