"""Live monitoring of listening processes."""

import time
from enum import Enum
from typing import Callable, Iterable, Optional

from .keys import KeySource
from .models import ListenerRecord, PortRange, WatchEntry
from .repository import ListenerRepository
from ..config import CANCEL_KEYS, DEFAULT_INTERVAL_MS
from ..utils.logging_config import get_logger

logger = get_logger('monitor')


class MonitorState(Enum):
    IDLE = "IDLE"
    SCHEDULED = "SCHEDULED"
    RENDERING = "RENDERING"
    STOPPED = "STOPPED"


def mark_new(previous_keys: set[str],
             records: Iterable[ListenerRecord]) -> tuple[list[WatchEntry], set[str]]:
    """
    Flag records whose key was not present in the previous render.

    Returns:
        (entries in input order, key set of this render)
    """
    entries = []
    current_keys: set[str] = set()
    for record in records:
        key = record.key
        current_keys.add(key)
        entries.append(WatchEntry(record=record, is_new=key not in previous_keys))
    return entries, current_keys


class ListenerMonitor:
    """
    Cooperative polling loop over a ListenerRepository.

    Two event sources share the one control thread: a deadline timer and a
    key-press stream. The loop waits on the key source until the deadline,
    so a cancel key is seen between renders and never interrupts one.

    States: IDLE -> SCHEDULED -> RENDERING -> SCHEDULED ... -> STOPPED
    """

    def __init__(self,
                 repository: ListenerRepository,
                 keys: KeySource,
                 on_render: Callable[[list[WatchEntry]], None],
                 on_error: Optional[Callable[[Exception], None]] = None,
                 interval_ms: int = DEFAULT_INTERVAL_MS,
                 port: Optional[int] = None,
                 port_range: Optional[PortRange] = None,
                 clock: Callable[[], float] = time.monotonic):
        if port is not None and port_range is not None:
            raise ValueError("Use either port or port_range, not both")
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")

        self.repository = repository
        self.keys = keys
        self.on_render = on_render
        self.on_error = on_error
        self.interval = interval_ms / 1000.0
        self.port = port
        self.port_range = port_range
        self.clock = clock

        self.state = MonitorState.IDLE
        self.render_count = 0
        self.stop_reason: Optional[str] = None
        self._seen_keys: set[str] = set()
        self._deadline: Optional[float] = None

    @property
    def stopped(self) -> bool:
        return self.state is MonitorState.STOPPED

    def fetch(self) -> list[ListenerRecord]:
        """Run the selected filtered read."""
        if self.port is not None:
            return self.repository.filter_by_port(self.port)
        if self.port_range is not None:
            return self.repository.filter_by_range(self.port_range.min, self.port_range.max)
        return self.repository.list_all()

    def run(self) -> None:
        """Render immediately, then every interval until cancelled."""
        if self.state is not MonitorState.IDLE:
            raise RuntimeError(f"Monitor cannot start from state {self.state.value}")

        self.state = MonitorState.SCHEDULED
        logger.info(f"Watch started (interval {self.interval:.3f}s)")
        try:
            self.fire()
            while not self.stopped:
                remaining = self._deadline - self.clock()
                if remaining > 0:
                    data = self.keys.read(remaining)
                    if data:
                        self.handle_input(data)
                    continue
                self.fire()
        except KeyboardInterrupt:
            self.stop("interrupted")
        finally:
            if not self.stopped:
                self.stop("loop exited")

    def fire(self) -> bool:
        """
        Timer callback. Runs one render unless one is already in flight.

        Returns:
            True if a render ran, False if the fire was dropped.
        """
        if self.state is MonitorState.RENDERING:
            logger.debug("Render already in flight, dropping timer fire")
            return False
        if self.stopped:
            return False

        self._deadline = None
        self.state = MonitorState.RENDERING
        try:
            self._render()
        finally:
            if not self.stopped:
                self._deadline = self.clock() + self.interval
                self.state = MonitorState.SCHEDULED
        return True

    def _render(self) -> None:
        try:
            records = self.fetch()
            entries, current_keys = mark_new(self._seen_keys, records)
            self._seen_keys = current_keys
            self.render_count += 1
            self.on_render(entries)
        except Exception as e:
            logger.error(f"Watch render failed: {e}")
            if self.on_error:
                self.on_error(e)

    def handle_input(self, data: bytes) -> None:
        """Stop on any cancel key in the input chunk; ignore other keys."""
        for key, label in CANCEL_KEYS.items():
            if key in data:
                self.stop(label)
                return

    def stop(self, reason: str = "stopped") -> None:
        """Enter STOPPED, cancel the pending deadline and release the keyboard."""
        if self.stopped:
            return
        self.state = MonitorState.STOPPED
        self.stop_reason = reason
        self._deadline = None
        self.keys.close()
        logger.info(f"Watch stopped ({reason}) after {self.render_count} render(s)")
