"""
Clock module for Chordloop.

Provides musical duration tokens, tempo-aware conversion to seconds and
the transport clocks that fire scheduled callbacks: a realtime clock
driven by a background thread and an offline clock driven by hand.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union


logger = logging.getLogger(__name__)

BEATS_PER_MEASURE = 4

# Note values in beats (quarter note = 1 beat)
NOTE_VALUES: dict[str, float] = {
    "1m": float(BEATS_PER_MEASURE),
    "1n": 4.0,
    "2n": 2.0,
    "4n": 1.0,
    "8n": 0.5,
    "16n": 0.25,
    "32n": 0.125,
}

Duration = Union[str, float, int]
ClockCallback = Callable[[float], None]


def duration_to_beats(token: str) -> float:
    """
    Convert a duration token to beats.

    Tokens are note values ("2n", "16n"), measures ("1m"), and may carry
    a "." suffix (dotted, x1.5) or a "t" suffix (triplet, x2/3).

    Args:
        token: Duration token such as "4n." or "8t".

    Returns:
        Length in beats.

    Raises:
        ValueError: If the token is not recognised.
    """
    text = token.strip()
    factor = 1.0
    if text.endswith("."):
        text, factor = text[:-1], 1.5
    elif text.endswith("t"):
        text, factor = text[:-1] + "n", 2.0 / 3.0
    if text not in NOTE_VALUES:
        raise ValueError(f"Unknown duration token: {token!r}")
    return NOTE_VALUES[text] * factor


@dataclass(order=True)
class _Entry:
    time: float
    seq: int
    callback: ClockCallback = field(compare=False)
    interval: Optional[Duration] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    @property
    def repeating(self) -> bool:
        return self.interval is not None


class ScheduleHandle:
    """Handle returned by the clock for cancelling a scheduled callback."""

    def __init__(self, entry: _Entry):
        self._entry = entry

    @property
    def cancelled(self) -> bool:
        return self._entry.cancelled

    def cancel(self):
        self._entry.cancelled = True


class Clock:
    """
    Base transport clock.

    Keeps a time-ordered queue of callbacks and the current tempo.
    Subclasses decide how time advances. A callback always receives its
    scheduled time rather than the moment it actually ran.

    Attributes:
        bpm: Current tempo in beats per minute.
    """

    def __init__(self, bpm: float = 120.0):
        """
        Initialize the clock.

        Args:
            bpm: Starting tempo.
        """
        self.bpm = float(bpm)
        # One-shots and repeats are kept apart so a repeat inside the
        # lookahead window is never stuck behind a one-shot that is not due
        self._once: list[_Entry] = []
        self._repeats: list[_Entry] = []
        self._firing: Optional[_Entry] = None
        self._counter = itertools.count()
        self._lock = threading.RLock()

    @property
    def beat_duration(self) -> float:
        """Duration of one beat in seconds at current tempo."""
        return 60.0 / self.bpm

    def set_tempo(self, bpm: float):
        """Set the tempo used for conversions and future repeats."""
        self.bpm = float(bpm)

    def time_to_seconds(self, duration: Duration) -> float:
        """
        Convert a duration to seconds at the current tempo.

        Args:
            duration: A duration token ("1m", "16n", "4n.") or seconds.

        Returns:
            Length in seconds.
        """
        if isinstance(duration, (int, float)):
            return float(duration)
        return duration_to_beats(duration) * self.beat_duration

    def now(self) -> float:
        raise NotImplementedError

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    @property
    def pending(self) -> int:
        """Number of callbacks waiting to fire."""
        with self._lock:
            return sum(1 for e in self._once + self._repeats if not e.cancelled)

    def schedule_once(self, callback: ClockCallback, at_time: float) -> ScheduleHandle:
        """
        Run a callback once at an absolute clock time.

        Args:
            callback: Function called with the scheduled time.
            at_time: Clock time in seconds.

        Returns:
            Handle for cancelling the callback.
        """
        return self._push(callback, at_time)

    def schedule_repeating(
        self,
        callback: ClockCallback,
        interval: Duration,
        start: Optional[float] = None,
    ) -> ScheduleHandle:
        """
        Run a callback every ``interval`` until cancelled.

        The next firing time is computed when the current one fires, so a
        tempo change applies from the next unscheduled repeat on.

        Args:
            callback: Function called with each scheduled time.
            interval: Duration token or seconds between firings.
            start: First firing time (defaults to now).

        Returns:
            Handle for cancelling the repeat.
        """
        self.time_to_seconds(interval)  # validate the token up front
        first = self.now() if start is None else start
        return self._push(callback, first, interval)

    def cancel(self, handle: ScheduleHandle):
        """Cancel one scheduled callback."""
        handle.cancel()

    def cancel_all(self):
        """Cancel every pending callback, repeating and one-shot alike."""
        with self._lock:
            for entry in self._once + self._repeats:
                entry.cancelled = True
            self._once.clear()
            self._repeats.clear()
            # A repeat that is running right now is off the heap
            if self._firing is not None:
                self._firing.cancelled = True

    def _push(
        self,
        callback: ClockCallback,
        at_time: float,
        interval: Optional[Duration] = None,
    ) -> ScheduleHandle:
        entry = _Entry(at_time, next(self._counter), callback, interval)
        with self._lock:
            heapq.heappush(self._repeats if entry.repeating else self._once, entry)
        return ScheduleHandle(entry)

    @staticmethod
    def _head(queue: list[_Entry]) -> Optional[_Entry]:
        while queue and queue[0].cancelled:
            heapq.heappop(queue)
        return queue[0] if queue else None

    def _pop_due(self, limit: float, lookahead: float = 0.0) -> Optional[_Entry]:
        """Pop the next live entry due before ``limit`` (repeats get ``lookahead``)."""
        with self._lock:
            due = []
            once = self._head(self._once)
            if once is not None and once.time < limit:
                due.append((once, self._once))
            repeat = self._head(self._repeats)
            if repeat is not None and repeat.time < limit + lookahead:
                due.append((repeat, self._repeats))
            if not due:
                return None
            _entry, queue = min(due, key=lambda d: d[0])
            return heapq.heappop(queue)

    def _fire(self, entry: _Entry):
        with self._lock:
            self._firing = entry
        try:
            entry.callback(entry.time)
        except Exception:
            logger.exception("Clock callback failed at t=%.3f", entry.time)
        with self._lock:
            self._firing = None
            # cancel_all() may have run during the callback
            if not entry.repeating or entry.cancelled:
                return
            entry.time += self.time_to_seconds(entry.interval)
            entry.seq = next(self._counter)
            heapq.heappush(self._repeats, entry)


class RealtimeClock(Clock):
    """
    Clock that follows wall time on a background thread.

    Repeating callbacks fire ``lookahead`` seconds early so the notes
    they emit can be queued before they are due; one-shot callbacks fire
    when due.

    Usage:
        >>> clock = RealtimeClock(bpm=96)
        >>> clock.schedule_repeating(lambda t: print(t), "1m")
        >>> clock.start()
        >>> # ...
        >>> clock.stop()
    """

    def __init__(self, bpm: float = 120.0, lookahead: float = 0.1, resolution: float = 0.002):
        """
        Initialize the realtime clock.

        Args:
            bpm: Starting tempo.
            lookahead: Seconds by which repeating callbacks run early.
            resolution: Sleep between queue checks, in seconds.
        """
        super().__init__(bpm)
        self.lookahead = lookahead
        self.resolution = resolution
        self._origin: Optional[float] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def now(self) -> float:
        """Seconds since start (0.0 while stopped)."""
        if self._origin is None:
            return 0.0
        return time.perf_counter() - self._origin

    def start(self):
        """Start the clock thread; time begins at 0."""
        if self.running:
            return
        self._origin = time.perf_counter()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="chordloop-clock", daemon=True)
        self._thread.start()
        logger.debug("Realtime clock started at %.1f BPM", self.bpm)

    def stop(self):
        """Stop the clock thread and drop everything still queued."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        self._origin = None
        self.cancel_all()
        logger.debug("Realtime clock stopped")

    def _run(self):
        while not self._stop_event.is_set():
            now = self.now()
            entry = self._pop_due(now, self.lookahead)
            while entry is not None and not self._stop_event.is_set():
                self._fire(entry)
                entry = self._pop_due(self.now(), self.lookahead)
            time.sleep(self.resolution)


class OfflineClock(Clock):
    """
    Clock with virtual time, advanced explicitly.

    Used for offline rendering and tests: nothing fires until
    ``advance`` moves time forward.
    """

    def __init__(self, bpm: float = 120.0):
        super().__init__(bpm)
        self._position = 0.0
        self.running = False

    def now(self) -> float:
        return self._position

    def start(self):
        self.running = True

    def stop(self):
        self.running = False
        self.cancel_all()

    def advance(self, seconds: float) -> int:
        """
        Move time forward, firing every callback scheduled before the
        new position in time order.

        Args:
            seconds: How far to move.

        Returns:
            Number of callbacks fired.
        """
        target = self._position + seconds
        fired = 0
        entry = self._pop_due(target)
        while entry is not None:
            self._position = max(self._position, entry.time)
            self._fire(entry)
            fired += 1
            entry = self._pop_due(target)
        self._position = target
        return fired
