"""
Audio sinks for Chordloop.

A sink receives every NoteEvent the scheduler emits. Sinks play them on
a MIDI port in real time, collect them into a MIDI file, or print them.
"""

import logging
import sys
from collections import Counter
from typing import Optional, Protocol, TextIO

import mido

from .clock import Clock
from .scheduler import NoteEvent, Voice


logger = logging.getLogger(__name__)

DEFAULT_CHANNELS: dict[Voice, int] = {Voice.PAD: 0, Voice.BASS: 1, Voice.LEAD: 2}
DEFAULT_VELOCITIES: dict[Voice, int] = {Voice.PAD: 70, Voice.BASS: 100, Voice.LEAD: 85}


class AudioSink(Protocol):
    """Receiver of note events (fire-and-forget)."""

    def play(self, event: NoteEvent):
        ...

    def release_all(self):
        ...


class MidiSink:
    """
    Plays events on a MIDI port at their clock times.

    Every note-on and note-off is queued on the clock as a one-shot
    callback, so ``Clock.cancel_all()`` drops notes that have not started
    yet. ``release_all()`` silences notes that are already sounding.

    Attributes:
        midi: Output port (anything with note_on/note_off).
        clock: Clock the notes are queued on.
        channels: MIDI channel per voice.
        velocities: MIDI velocity per voice.
    """

    def __init__(
        self,
        midi,
        clock: Clock,
        channels: Optional[dict[Voice, int]] = None,
        velocities: Optional[dict[Voice, int]] = None,
    ):
        self.midi = midi
        self.clock = clock
        self.channels = dict(channels or DEFAULT_CHANNELS)
        self.velocities = dict(velocities or DEFAULT_VELOCITIES)
        self._active: Counter = Counter()

    def play(self, event: NoteEvent):
        channel = self.channels[event.voice]
        velocity = self.velocities[event.voice]
        for pitch in event.pitches:
            note = pitch.midi
            self.clock.schedule_once(
                lambda t, n=note: self._note_on(n, velocity, channel), event.time
            )
            self.clock.schedule_once(
                lambda t, n=note: self._note_off(n, channel), event.time + event.duration
            )

    def release_all(self):
        """Send note-off for every note still sounding."""
        for (note, channel), count in list(self._active.items()):
            for _ in range(count):
                self.midi.note_off(note, channel)
        self._active.clear()

    def _note_on(self, note: int, velocity: int, channel: int):
        self.midi.note_on(note, velocity, channel)
        self._active[(note, channel)] += 1

    def _note_off(self, note: int, channel: int):
        self.midi.note_off(note, channel)
        key = (note, channel)
        if self._active[key] > 1:
            self._active[key] -= 1
        else:
            self._active.pop(key, None)


class MidiFileSink:
    """
    Collects events and writes them as a standard MIDI file.

    Attributes:
        events: Every event received, in arrival order.
        channels: MIDI channel per voice.
        velocities: MIDI velocity per voice.
    """

    def __init__(
        self,
        channels: Optional[dict[Voice, int]] = None,
        velocities: Optional[dict[Voice, int]] = None,
        ticks_per_beat: int = 480,
    ):
        self.channels = dict(channels or DEFAULT_CHANNELS)
        self.velocities = dict(velocities or DEFAULT_VELOCITIES)
        self.ticks_per_beat = ticks_per_beat
        self.events: list[NoteEvent] = []

    def play(self, event: NoteEvent):
        self.events.append(event)

    def release_all(self):
        pass

    def to_midi_file(self, bpm: float) -> mido.MidiFile:
        """
        Build a single-track MIDI file from the collected events.

        Note-offs sort before note-ons on the same tick so repeated
        pitches retrigger cleanly.

        Args:
            bpm: Tempo the events were generated at.

        Returns:
            The MIDI file.
        """
        tempo = mido.bpm2tempo(bpm)
        mid = mido.MidiFile(type=1, ticks_per_beat=self.ticks_per_beat)
        track = mido.MidiTrack()
        mid.tracks.append(track)
        track.append(mido.MetaMessage("set_tempo", tempo=tempo, time=0))

        def tick(seconds: float) -> int:
            return int(round(mido.second2tick(seconds, self.ticks_per_beat, tempo)))

        msgs = []
        for event in self.events:
            channel = self.channels[event.voice]
            velocity = self.velocities[event.voice]
            start = tick(event.time)
            end = max(start + 1, tick(event.time + event.duration))
            for pitch in event.pitches:
                msgs.append((start, 1, mido.Message(
                    "note_on", note=pitch.midi, velocity=velocity, channel=channel)))
                msgs.append((end, 0, mido.Message(
                    "note_off", note=pitch.midi, velocity=0, channel=channel)))
        msgs.sort(key=lambda m: (m[0], m[1]))

        last = 0
        for abs_tick, _prio, msg in msgs:
            msg.time = abs_tick - last
            track.append(msg)
            last = abs_tick
        track.append(mido.MetaMessage("end_of_track", time=0))
        return mid

    def save(self, path: str, bpm: float):
        """Write the collected events to ``path``."""
        self.to_midi_file(bpm).save(path)
        logger.info("Wrote %d events to %s", len(self.events), path)


class ConsoleSink:
    """Prints one line per event; useful without a MIDI port."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def play(self, event: NoteEvent):
        names = " ".join(event.pitch_names)
        print(
            f"bar {event.step + 1:>3}  {event.voice.value:<4}  {names:<18}"
            f" +{event.offset:.3f}s  {event.duration:.3f}s",
            file=self.stream or sys.stdout,
        )

    def release_all(self):
        pass
