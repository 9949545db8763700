"""
Main engine for Chordloop.

The ChordLoopEngine wires the progression, scheduler, transport, clock
and audio sink together. It loops a chord progression with a bass line,
a pad and a randomized arpeggiated melody, streaming MIDI in real time
or rendering a number of measures to a MIDI file.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .clock import Clock, OfflineClock, RealtimeClock
from .midi_io import MidiOut, list_output_names
from .progression import Progression
from .scheduler import MeasureScheduler, ScheduleSettings, SeededRandom, Voice
from .sinks import DEFAULT_CHANNELS, DEFAULT_VELOCITIES, AudioSink, MidiFileSink, MidiSink
from .theory import ChordSymbol
from .transport import PlaybackState, Transport, TransportState, validate_tempo


logger = logging.getLogger(__name__)

ChordChangeCallback = Callable[[Optional[int], Optional[ChordSymbol]], None]


@dataclass
class EngineConfig:
    """
    Configuration for the Chordloop engine.

    Attributes:
        tempo: Tempo in BPM.
        seed: Random seed for reproducible performances (None = random).
        base_octave: Octave the chords are voiced at.
        channels: MIDI channel (0-15) per voice.
        velocities: MIDI velocity (1-127) per voice.
        lookahead: Seconds the realtime clock schedules measures early.
    """

    tempo: float = 120.0
    seed: Optional[int] = None
    base_octave: int = 4
    channels: dict[Voice, int] = field(default_factory=lambda: dict(DEFAULT_CHANNELS))
    velocities: dict[Voice, int] = field(default_factory=lambda: dict(DEFAULT_VELOCITIES))
    lookahead: float = 0.1


class ChordLoopEngine:
    """
    The looping chord-progression performer.

    Usage:
        >>> engine = ChordLoopEngine()
        >>> engine.apply_preset("jazz")
        >>> engine.start()  # Begin playing
        >>> # ... music plays ...
        >>> engine.stop()   # Stop playing

    Attributes:
        config: Engine configuration.
        progression: The chords being looped (edit freely while playing).
        playback: Shared playback state.
        clock: Transport clock.
        sink: Receiver of note events.
        scheduler: Per-measure note generator.
        transport: Start/stop state machine.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        progression: Optional[Progression] = None,
        sink: Optional[AudioSink] = None,
        clock: Optional[Clock] = None,
        midi_port: Optional[str] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (uses defaults if None).
            progression: Progression to loop (the default one if None).
            sink: Event receiver; a MIDI port sink is opened on first
                start when None.
            clock: Transport clock (a realtime clock if None).
            midi_port: Name of MIDI port to use (auto-selects if None).
        """
        self.config = config or EngineConfig()
        validate_tempo(self.config.tempo)
        self.progression = progression if progression is not None else Progression.default()
        self.playback = PlaybackState(tempo_bpm=float(self.config.tempo))
        self.clock = clock or RealtimeClock(self.config.tempo, lookahead=self.config.lookahead)
        self.sink = sink
        self._midi_port_name = midi_port
        self._midi: Optional[MidiOut] = None
        self._on_chord_change: Optional[ChordChangeCallback] = None

        self.scheduler = MeasureScheduler(
            self.progression,
            self.playback,
            self.clock,
            sink=sink,
            rng=SeededRandom(self.config.seed),
            on_active_index=self._chord_changed,
            settings=ScheduleSettings(base_octave=self.config.base_octave),
        )
        self.transport = Transport(
            self.clock, self.scheduler, self.playback, on_active_index=self._chord_changed
        )

    @property
    def is_playing(self) -> bool:
        return self.transport.state == TransportState.RUNNING

    def start(self):
        """Start looping the progression."""
        if self.is_playing:
            return
        if self.sink is None:
            self._midi = MidiOut(self._midi_port_name)
            self.sink = MidiSink(self._midi, self.clock, self.config.channels, self.config.velocities)
            self.scheduler.sink = self.sink
        self.transport.start()
        logger.info("Chordloop started - Tempo: %.0f BPM, %s", self.playback.tempo_bpm, self.progression)

    def stop(self):
        """Stop playback and silence anything still sounding."""
        if not self.is_playing:
            return
        self.transport.stop()
        self.sink.release_all()
        if self._midi is not None:
            self._midi.all_notes_off()
        logger.info("Chordloop stopped")

    def close(self):
        """Stop and release the MIDI port."""
        self.stop()
        if self._midi is not None:
            self._midi.close()
            self._midi = None

    def set_tempo(self, bpm: float):
        """
        Set the engine tempo.

        Args:
            bpm: Tempo in beats per minute (> 0).

        Raises:
            InvalidTempo: If bpm is not positive.
        """
        self.transport.set_tempo(bpm)
        self.config.tempo = self.playback.tempo_bpm

    def apply_preset(self, name: str):
        """Replace the progression with a named preset."""
        self.progression.apply_preset(name)

    def on_chord_change(self, callback: ChordChangeCallback):
        """
        Register a callback for the active chord.

        Args:
            callback: Called with (index, chord) each measure and with
                (None, None) when playback stops.
        """
        self._on_chord_change = callback

    def render(self, path: str, measures: int) -> MidiFileSink:
        """
        Render measures to a MIDI file without touching live playback.

        Args:
            path: Output .mid path.
            measures: Number of measures to render.

        Returns:
            The sink holding the rendered events.
        """
        if measures < 1:
            raise ValueError("measures must be at least 1")
        clock = OfflineClock(self.playback.tempo_bpm)
        sink = MidiFileSink(self.config.channels, self.config.velocities)
        playback = PlaybackState(tempo_bpm=self.playback.tempo_bpm)
        scheduler = MeasureScheduler(
            self.progression,
            playback,
            clock,
            sink,
            rng=SeededRandom(self.config.seed),
            settings=self.scheduler.settings,
        )
        transport = Transport(clock, scheduler, playback)
        transport.start()
        # Stop half a measure early so rounding never fires an extra measure
        measure = clock.time_to_seconds("1m")
        clock.advance(measure * measures - measure / 2)
        transport.stop()
        sink.save(path, playback.tempo_bpm)
        return sink

    @staticmethod
    def list_midi_ports() -> list[str]:
        """Return the available MIDI output port names."""
        return list_output_names()

    def _chord_changed(self, index: Optional[int], symbol: Optional[ChordSymbol]):
        if self._on_chord_change:
            self._on_chord_change(index, symbol)
