import logging
import threading
import time
from typing import Callable, Optional

from .broadcast import GAME_UPDATE, PHASE_TRANSITION

logger = logging.getLogger(__name__)


def run_inline(func, *args):
    return func(*args)


class PhaseClock:
    """Single global tick driver for every live match.

    Per match and per tick: AI injection check, countdown step, broadcast,
    and persistence when Results was just entered. Each match is processed
    inside its own error boundary so one faulty match never stalls the rest.
    """

    def __init__(self, registry, machine, driver, broadcaster,
                 spawn: Callable = run_inline, interval: float = 1.0,
                 heartbeat_sec: int = 0, sleep: Callable[[float], None] = time.sleep):
        self.registry = registry
        self.machine = machine
        self.driver = driver
        self.broadcaster = broadcaster
        self.spawn = spawn
        self.interval = interval
        self.heartbeat_sec = heartbeat_sec
        self._sleep = sleep
        self._running = False
        self._start_lock = threading.Lock()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    def tick(self) -> int:
        """Advance every live match by one second. Returns how many were ticked."""
        ticked = 0
        for match in self.registry.live_matches():
            try:
                self._tick_match(match)
                ticked += 1
            except Exception:
                logger.exception(f"[tick-error] match={match.id}")
        self.registry.evict_finished()
        self.ticks += 1
        return ticked

    def _tick_match(self, match) -> None:
        with match.lock:
            if match.is_finished:
                return
            inject = self.driver.should_inject(match)
        if inject:
            self.spawn(self.driver.inject, match)

        with match.lock:
            if match.is_finished:
                return
            step = self.machine.tick(match)
            if step.transitioned:
                self.broadcaster.emit_to_match(match.id, PHASE_TRANSITION, {
                    'phase': step.phase.value,
                    'timeLeft': step.time_left,
                })
            self.broadcaster.emit_to_match(match.id, GAME_UPDATE, {
                'momentum': match.momentum,
                'phase': match.phase.value,
                'timeLeft': match.time_left,
                'topic': dict(match.topic),
            })

        if step.entered_results:
            self.spawn(self.machine.finalize, match)

    def start(self, start_background_task: Callable) -> bool:
        """Start the tick loop once. Returns False if it was already running."""
        with self._start_lock:
            if self._running:
                return False
            self._running = True
        logger.info(f"[clock-start] interval={self.interval}s")
        start_background_task(self.run)
        return True

    def stop(self) -> None:
        self._running = False

    def run(self, max_ticks: Optional[int] = None) -> None:
        last_heartbeat = time.monotonic()
        while self._running:
            started = time.monotonic()
            self.tick()
            if max_ticks is not None and self.ticks >= max_ticks:
                self._running = False
                break
            if self.heartbeat_sec and started - last_heartbeat >= self.heartbeat_sec:
                last_heartbeat = started
                logger.info(f"[clock-heartbeat] ticks={self.ticks} matches={len(self.registry)}")
            elapsed = time.monotonic() - started
            self._sleep(max(0.0, self.interval - elapsed))
        logger.info(f"[clock-stop] ticks={self.ticks}")
