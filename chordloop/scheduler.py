"""
Scheduler module for Chordloop.

Turns the current chord of the progression into the bass, pad and
melody note events of one measure. All randomness comes from a single
injectable source, so a scripted source reproduces every branch.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from .clock import Clock
from .progression import Progression
from .theory import ChordSymbol, Pitch, UnknownPitchClass, UnknownQuality, resolve_chord
from .transport import PlaybackState

if TYPE_CHECKING:
    from .sinks import AudioSink


logger = logging.getLogger(__name__)

ActiveChordCallback = Callable[[Optional[int], Optional[ChordSymbol]], None]


class Voice(Enum):
    """The three voices of a measure."""

    BASS = "bass"
    PAD = "pad"
    LEAD = "lead"


class RandomSource(Protocol):
    """Source of uniform floats in [0, 1)."""

    def next(self) -> float:
        ...


class SeededRandom:
    """
    RandomSource backed by ``random.Random``.

    Attributes:
        seed: Seed given at construction (None = seeded from the OS).
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed)

    def next(self) -> float:
        return self._random.random()


@dataclass(frozen=True)
class NoteEvent:
    """
    One scheduled sound: a single note or a chord.

    Attributes:
        voice: Which voice plays it.
        pitches: Pitches sounded together.
        measure_time: Clock time at which the measure starts (seconds).
        offset: Start offset within the measure (seconds).
        duration: Length in seconds.
        step: Measure counter value the event belongs to.
        chord_index: Progression index of the chord.
    """

    voice: Voice
    pitches: tuple[Pitch, ...]
    measure_time: float
    offset: float
    duration: float
    step: int = 0
    chord_index: int = 0

    @property
    def time(self) -> float:
        """Absolute clock time of the note start."""
        return self.measure_time + self.offset

    @property
    def pitch_names(self) -> list[str]:
        """Pitch names such as ["C4", "E4", "G4"]."""
        return [p.name for p in self.pitches]


@dataclass
class ScheduleSettings:
    """
    Tunables of the per-measure generator.

    Attributes:
        base_octave: Octave the chord is resolved at.
        syncopation_threshold: A draw above this adds the bass accent.
        rest_threshold: A draw above this sounds a melody slot.
        octave_jump_threshold: A draw above this lifts a melody note an octave.
        slots: Melody subdivisions per measure.
    """

    base_octave: int = 4
    syncopation_threshold: float = 0.6
    rest_threshold: float = 0.4
    octave_jump_threshold: float = 0.7
    slots: int = 16


class MeasureScheduler:
    """
    Generates the note events of each measure.

    ``on_measure`` is registered with the clock as a repeating callback
    (one call per measure). It reads the chord for the current step,
    reports the active index, builds the bass, pad and melody events,
    hands them to the sink and advances the step counter.

    Attributes:
        progression: Chords to loop over (read only).
        state: Shared playback state; only ``step_counter`` is written.
        clock: Used for tempo-aware duration conversion.
        sink: Receives every emitted NoteEvent.
        rng: Random source for syncopation and melody choices.
        settings: Generator tunables.
    """

    def __init__(
        self,
        progression: Progression,
        state: PlaybackState,
        clock: Clock,
        sink: "AudioSink",
        rng: Optional[RandomSource] = None,
        on_active_index: Optional[ActiveChordCallback] = None,
        settings: Optional[ScheduleSettings] = None,
    ):
        self.progression = progression
        self.state = state
        self.clock = clock
        self.sink = sink
        self.rng = rng or SeededRandom()
        self.on_active_index = on_active_index
        self.settings = settings or ScheduleSettings()

    def on_measure(self, time: float):
        """
        Emit one measure starting at clock time ``time``.

        An empty progression emits nothing and leaves the counter alone.
        A chord that cannot be resolved skips this measure's notes only.
        Stopping the transport from the active-chord callback drops the
        rest of the measure and keeps the counter at its reset value.

        Args:
            time: Scheduled start of the measure, in clock seconds.
        """
        selected = self.progression.chord_for_step(self.state.step_counter)
        if selected is None:
            return
        index, symbol = selected
        step = self.state.step_counter
        was_running = self.state.running

        try:
            if self.on_active_index:
                self.on_active_index(index, symbol)
            if was_running and not self.state.running:
                return

            try:
                events = self.build_measure(symbol, time, step, index)
            except (UnknownQuality, UnknownPitchClass) as e:
                logger.warning("Skipping measure %d (chord %d, %s): %s", step, index, symbol, e)
                events = []

            for event in events:
                self.sink.play(event)
            logger.debug("Measure %d: %s -> %d events", step, symbol, len(events))
        finally:
            if self.state.running or not was_running:
                self.state.step_counter += 1

    def build_measure(
        self,
        symbol: ChordSymbol,
        time: float,
        step: int = 0,
        index: int = 0,
    ) -> list[NoteEvent]:
        """
        Build the note events for one chord.

        Randomness is consumed in a fixed order: one syncopation draw,
        then for each slot a rest draw and, when the slot sounds, a pick
        draw and an octave draw.

        Args:
            symbol: Chord to play.
            time: Clock time at which the measure starts.
            step: Measure counter value (recorded on events).
            index: Progression index (recorded on events).

        Returns:
            Bass, pad and melody events in that order.

        Raises:
            UnknownQuality: If the chord's quality is not in the catalog.
            UnknownPitchClass: If the chord's root is invalid.
        """
        tones = resolve_chord(symbol, self.settings.base_octave)
        seconds = self.clock.time_to_seconds

        def event(voice: Voice, pitches, offset: float, duration: float) -> NoteEvent:
            return NoteEvent(voice, tuple(pitches), time, offset, duration, step, index)

        events = []

        bass = tones[0].transpose(-12)
        events.append(event(Voice.BASS, [bass], 0.0, seconds("2n")))
        if self.rng.next() > self.settings.syncopation_threshold:
            events.append(event(Voice.BASS, [bass], seconds("4n."), seconds("8n")))

        events.append(event(Voice.PAD, tones, 0.0, seconds("1m")))

        slot = seconds("1m") / self.settings.slots
        for i in range(self.settings.slots):
            if self.rng.next() <= self.settings.rest_threshold:
                continue
            pick = min(int(self.rng.next() * len(tones)), len(tones) - 1)
            note = tones[pick]
            if self.rng.next() > self.settings.octave_jump_threshold:
                note = note.transpose(12)
            events.append(event(Voice.LEAD, [note], i * slot, slot))

        return events
