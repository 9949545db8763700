"""
Transport module for Chordloop.

Start/stop lifecycle around the measure scheduler. The transport owns
the playback state and tempo and arms the scheduler on the clock.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import TYPE_CHECKING, Optional

from .clock import Clock

if TYPE_CHECKING:
    from .scheduler import ActiveChordCallback, MeasureScheduler


logger = logging.getLogger(__name__)

MEASURE = "1m"


class InvalidTempo(ValueError):
    """Raised when a tempo is not a positive, finite number of BPM."""


class TransportState(Enum):
    """Transport states."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class PlaybackState:
    """
    Process-wide playback state.

    Attributes:
        running: True between start() and stop().
        step_counter: Measures emitted since start (never negative).
        tempo_bpm: Current tempo, always > 0.
    """

    running: bool = False
    step_counter: int = 0
    tempo_bpm: float = 120.0


def validate_tempo(bpm) -> float:
    """
    Check a tempo value.

    Returns:
        The tempo as a float.

    Raises:
        InvalidTempo: If bpm is not a finite number greater than zero.
    """
    if isinstance(bpm, bool) or not isinstance(bpm, Real):
        raise InvalidTempo(f"Tempo must be a number, got {bpm!r}")
    bpm = float(bpm)
    if not math.isfinite(bpm) or bpm <= 0:
        raise InvalidTempo(f"Tempo must be greater than 0 BPM, got {bpm}")
    return bpm


class Transport:
    """
    Two-state machine (Stopped, Running) driving the scheduler.

    ``start`` resets the step counter and arms ``scheduler.on_measure``
    on the clock once per measure; ``stop`` cancels everything the clock
    still holds and clears the active-chord indicator. Both are no-ops
    when already in the target state.

    Usage:
        >>> transport = Transport(clock, scheduler, state)
        >>> transport.set_tempo(96)
        >>> transport.start()
        >>> transport.stop()
    """

    def __init__(
        self,
        clock: Clock,
        scheduler: "MeasureScheduler",
        state: Optional[PlaybackState] = None,
        on_active_index: Optional["ActiveChordCallback"] = None,
    ):
        """
        Initialize the transport.

        Args:
            clock: Clock that fires the measure callback.
            scheduler: Scheduler whose on_measure is armed.
            state: Playback state shared with the scheduler.
            on_active_index: Indicator callback, called with (None, None) on stop.
        """
        self.clock = clock
        self.scheduler = scheduler
        self.playback = state or scheduler.state
        self.on_active_index = on_active_index
        self._handle = None
        self.clock.set_tempo(self.playback.tempo_bpm)

    @property
    def state(self) -> TransportState:
        return TransportState.RUNNING if self.playback.running else TransportState.STOPPED

    def start(self):
        """Start looping the progression (no-op when already running)."""
        if self.playback.running:
            return
        self.playback.step_counter = 0
        self.clock.set_tempo(self.playback.tempo_bpm)
        self._handle = self.clock.schedule_repeating(self.scheduler.on_measure, MEASURE)
        self.playback.running = True
        self.clock.start()
        logger.info("Transport started at %.1f BPM", self.playback.tempo_bpm)

    def stop(self):
        """Stop playback and cancel all pending work (no-op when stopped)."""
        if not self.playback.running:
            return
        self.clock.cancel_all()
        self.clock.stop()
        self._handle = None
        self.playback.running = False
        self.playback.step_counter = 0
        if self.on_active_index:
            self.on_active_index(None, None)
        logger.info("Transport stopped")

    def set_tempo(self, bpm: float):
        """
        Set the tempo for measures not yet scheduled.

        Args:
            bpm: Tempo in beats per minute.

        Raises:
            InvalidTempo: If bpm is not a finite number greater than zero.
        """
        bpm = validate_tempo(bpm)
        self.playback.tempo_bpm = bpm
        self.clock.set_tempo(bpm)
        logger.debug("Tempo set to %.1f BPM", bpm)
