from __future__ import annotations

import pytest

from chordloop.clock import OfflineClock
from chordloop.progression import Progression
from chordloop.scheduler import MeasureScheduler, NoteEvent, Voice
from chordloop.transport import PlaybackState


class ScriptedRandom:
    """RandomSource that replays a fixed list of draws."""

    def __init__(self, values):
        self.values = list(values)

    def next(self) -> float:
        if not self.values:
            raise AssertionError("random source exhausted")
        return self.values.pop(0)


class RecordingSink:
    def __init__(self):
        self.events: list[NoteEvent] = []
        self.released = 0

    def play(self, event: NoteEvent):
        self.events.append(event)

    def release_all(self):
        self.released += 1

    def by_voice(self, voice: Voice) -> list[NoteEvent]:
        return [e for e in self.events if e.voice == voice]

    def for_step(self, step: int) -> list[NoteEvent]:
        return [e for e in self.events if e.step == step]


class FakeMidi:
    def __init__(self):
        self.messages = []
        self.closed = False

    def note_on(self, note, velocity, channel=0):
        self.messages.append(("on", note, velocity, channel))

    def note_off(self, note, channel=0):
        self.messages.append(("off", note, channel))

    def all_notes_off(self):
        self.messages.append(("all_off",))

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return OfflineClock(bpm=120)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_scheduler(clock, sink):
    def _make(progression=None, rng=None, **kwargs):
        progression = progression if progression is not None else Progression.default()
        state = PlaybackState(tempo_bpm=clock.bpm)
        return MeasureScheduler(progression, state, clock, sink, rng=rng, **kwargs)

    return _make
