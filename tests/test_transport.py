from __future__ import annotations

import math

import pytest

from chordloop.progression import Progression
from chordloop.scheduler import MeasureScheduler, SeededRandom, Voice
from chordloop.theory import ChordSymbol
from chordloop.transport import InvalidTempo, PlaybackState, Transport, TransportState


@pytest.fixture
def indicator():
    return []


@pytest.fixture
def transport(clock, sink, indicator):
    state = PlaybackState()
    scheduler = MeasureScheduler(
        Progression.default(), state, clock, sink, rng=SeededRandom(11),
        on_active_index=lambda i, c: indicator.append(i),
    )
    return Transport(clock, scheduler, state, on_active_index=lambda i, c: indicator.append(i))


def test_initial_state(transport):
    assert transport.state == TransportState.STOPPED
    assert transport.playback.running is False
    assert transport.playback.step_counter == 0


def test_start_arms_one_measure_callback(transport, clock):
    transport.start()
    assert transport.state == TransportState.RUNNING
    assert clock.pending == 1
    transport.start()
    assert clock.pending == 1


def test_double_start_does_not_duplicate_measures(transport, clock, sink):
    transport.start()
    transport.start()
    clock.advance(5.0)
    assert transport.playback.step_counter == 3
    assert len(sink.by_voice(Voice.PAD)) == 3


def test_looping_over_three_cycles(transport, clock, indicator):
    transport.start()
    clock.advance(2.0 * 12 - 1.0)
    assert indicator == [0, 1, 2, 3] * 3


def test_stop_cancels_and_resets(transport, clock, indicator):
    transport.start()
    clock.advance(3.0)
    transport.stop()
    assert transport.state == TransportState.STOPPED
    assert transport.playback.step_counter == 0
    assert clock.pending == 0
    assert indicator[-1] is None
    clock.advance(10.0)
    assert indicator == [0, 1, None]


def test_stop_when_stopped_is_a_no_op(transport, indicator):
    transport.stop()
    transport.stop()
    assert indicator == []
    assert transport.state == TransportState.STOPPED


def test_restart_begins_at_first_chord(transport, clock, indicator):
    transport.start()
    clock.advance(5.0)
    transport.stop()
    indicator.clear()
    transport.start()
    clock.advance(1.0)
    assert indicator == [0]


@pytest.mark.parametrize("bpm", [0, -5, -0.1, math.nan, math.inf, "fast", None, True])
def test_invalid_tempo_is_rejected(transport, clock, bpm):
    with pytest.raises(InvalidTempo):
        transport.set_tempo(bpm)
    assert transport.playback.tempo_bpm == 120.0
    assert clock.bpm == 120.0


def test_invalid_tempo_is_a_value_error(transport):
    with pytest.raises(ValueError):
        transport.set_tempo(0)


def test_tempo_change_reaches_next_measures(transport, clock, sink):
    transport.set_tempo(120)
    transport.start()
    clock.advance(1.0)
    transport.set_tempo(60)
    assert transport.playback.tempo_bpm == 60.0
    clock.advance(8.0)

    pads = sink.by_voice(Voice.PAD)
    assert [e.measure_time for e in pads] == pytest.approx([0.0, 2.0, 6.0])
    # Durations are computed when the measure is built
    assert pads[0].duration == pytest.approx(2.0)
    assert pads[1].duration == pytest.approx(4.0)


def test_tempo_set_before_start_is_used(transport, clock):
    transport.set_tempo(240)
    transport.start()
    clock.advance(2.5)
    assert transport.playback.step_counter == 3


def test_empty_progression_keeps_transport_armed(clock, sink):
    prog = Progression()
    state = PlaybackState()
    transport = Transport(clock, MeasureScheduler(prog, state, clock, sink), state)
    transport.start()
    clock.advance(4.5)
    assert sink.events == []
    prog.append(ChordSymbol("E", "min"))
    clock.advance(2.0)
    assert sink.for_step(0)[0].pitch_names == ["E3"]
    assert transport.state == TransportState.RUNNING


def test_stop_inside_indicator_callback_ends_the_loop(clock, sink):
    state = PlaybackState()
    seen = []
    transport = None

    def indicator(index, chord):
        seen.append(index)
        if index == 2:
            transport.stop()

    scheduler = MeasureScheduler(Progression.default(), state, clock, sink, on_active_index=indicator)
    transport = Transport(clock, scheduler, state, on_active_index=indicator)
    transport.start()
    clock.advance(20.0)

    assert seen == [0, 1, 2, None]
    assert [e.step for e in sink.by_voice(Voice.PAD)] == [0, 1]
    assert clock.pending == 0
    assert state.step_counter == 0

    transport.start()
    assert clock.pending == 1
