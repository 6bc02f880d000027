"""Turn SIGINT/SIGTERM into a cooperative cancellation event.

Long-running commands pass the yielded event to the sync and polling loops,
which stop at their next suspension point. A second signal falls back to an
immediate ``KeyboardInterrupt``.
"""

import logging
import signal
import threading
from collections.abc import Generator
from contextlib import contextmanager
from types import FrameType

logger = logging.getLogger(__name__)

CANCELLED_EXIT_CODE = 130


@contextmanager
def cancel_on_signal() -> Generator[threading.Event, None, None]:
    """Install signal handlers that set a cancellation event for the block."""
    cancel = threading.Event()

    if threading.current_thread() is not threading.main_thread():
        # Signal handlers can only be installed from the main thread
        yield cancel
        return

    def _on_signal(signum: int, _frame: FrameType | None) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.warning(
            f"Received {signal.Signals(signum).name}, stopping at the next checkpoint "
            "(repeat to abort immediately)"
        )
        cancel.set()

    previous = {
        sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
