"""
Optional server-enforced round deadlines.

Each running round can have one timer. When it fires the callback receives
the round id it was armed for; the engine ignores deadlines for rounds that
have already ended.
"""

import logging
import threading
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class DeadlineScheduler:
    """One-shot timers keyed by round id."""

    def __init__(self, on_deadline: Callable[[str], None]):
        self._on_deadline = on_deadline
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule(self, round_id: str, delay_seconds: float) -> None:
        timer = threading.Timer(max(delay_seconds, 0.0), self._fire, args=(round_id,))
        timer.daemon = True

        with self._lock:
            existing = self._timers.pop(round_id, None)
            if existing is not None:
                existing.cancel()
            self._timers[round_id] = timer

        timer.start()
        logger.debug(f"Armed deadline for round {round_id} in {delay_seconds:.1f}s")

    def cancel(self, round_id: str) -> None:
        with self._lock:
            timer = self._timers.pop(round_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._timers)

    def _fire(self, round_id: str) -> None:
        with self._lock:
            self._timers.pop(round_id, None)

        logger.info(f"Deadline reached for round {round_id}")
        try:
            self._on_deadline(round_id)
        except Exception as e:
            logger.error(f"Deadline handler failed for round {round_id}: {e}", exc_info=True)
