"""Cooperative shutdown for sync runs."""

import asyncio
import logging
import signal

logger = logging.getLogger(__name__)


class ShutdownFlag:
    """Set once by an operator interrupt, polled before each batch and item."""

    def __init__(self) -> None:
        self._requested = False
        self.reason: str | None = None

    def request(self, reason: str = "shutdown requested") -> None:
        if not self._requested:
            logger.warning(f"🛑 {reason}; finishing in-flight work and saving progress")
        self._requested = True
        self.reason = reason

    def is_set(self) -> bool:
        return self._requested

    def __bool__(self) -> bool:
        return self._requested


def install_signal_handlers(flag: ShutdownFlag, loop: asyncio.AbstractEventLoop) -> None:
    """Route SIGINT/SIGTERM to the flag instead of raising KeyboardInterrupt."""
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, flag.request, f"received {sig.name}")
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda signum, frame: flag.request(f"received signal {signum}"))
