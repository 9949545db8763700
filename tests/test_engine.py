from __future__ import annotations

import mido
import pytest

from chordloop.clock import OfflineClock
from chordloop.engine import ChordLoopEngine, EngineConfig
from chordloop.presets import get_preset
from chordloop.scheduler import Voice
from chordloop.transport import InvalidTempo

from conftest import RecordingSink


@pytest.fixture
def engine():
    return ChordLoopEngine(EngineConfig(seed=5), sink=RecordingSink(), clock=OfflineClock())


def test_engine_loops_and_reports_chords(engine):
    changes = []
    engine.on_chord_change(lambda i, c: changes.append((i, str(c) if c else None)))
    engine.start()
    assert engine.is_playing
    engine.clock.advance(7.0)
    assert changes == [(0, "C maj7"), (1, "A min7"), (2, "D min7"), (3, "G dom7")]

    engine.stop()
    assert not engine.is_playing
    assert changes[-1] == (None, None)
    assert engine.sink.released == 1
    assert engine.playback.step_counter == 0


def test_stop_twice_releases_once(engine):
    engine.start()
    engine.stop()
    engine.stop()
    assert engine.sink.released == 1


def test_set_tempo_updates_config(engine):
    engine.set_tempo(90)
    assert engine.config.tempo == 90.0
    assert engine.clock.bpm == 90.0
    with pytest.raises(InvalidTempo):
        engine.set_tempo(-1)
    assert engine.config.tempo == 90.0


def test_apply_preset_while_playing(engine):
    engine.start()
    engine.clock.advance(1.0)
    engine.apply_preset("creepy")
    engine.clock.advance(2.0)
    pads = engine.sink.by_voice(Voice.PAD)
    assert pads[1].pitch_names == ["D4", "F4", "G#4"]
    assert len(engine.progression) == len(get_preset("creepy").chords)


def test_invalid_config_tempo():
    with pytest.raises(InvalidTempo):
        ChordLoopEngine(EngineConfig(tempo=0), sink=RecordingSink(), clock=OfflineClock())


def test_render_writes_midi_file(tmp_path):
    engine = ChordLoopEngine(EngineConfig(seed=3), clock=OfflineClock())
    path = tmp_path / "loop.mid"
    sink = engine.render(str(path), 4)

    assert path.exists()
    pads = [e for e in sink.events if e.voice == Voice.PAD]
    assert [e.chord_index for e in pads] == [0, 1, 2, 3]
    assert [e.measure_time for e in pads] == pytest.approx([0.0, 2.0, 4.0, 6.0])
    loaded = mido.MidiFile(str(path))
    assert any(m.type == "note_on" for m in loaded.tracks[0])


def test_render_is_reproducible_with_seed(tmp_path):
    first = ChordLoopEngine(EngineConfig(seed=42), clock=OfflineClock())
    second = ChordLoopEngine(EngineConfig(seed=42), clock=OfflineClock())
    a = first.render(str(tmp_path / "a.mid"), 8)
    b = second.render(str(tmp_path / "b.mid"), 8)
    assert a.events == b.events
    assert (tmp_path / "a.mid").read_bytes() == (tmp_path / "b.mid").read_bytes()


def test_render_leaves_live_playback_alone(engine, tmp_path):
    engine.start()
    engine.clock.advance(3.0)
    engine.render(str(tmp_path / "side.mid"), 2)

    assert engine.is_playing
    assert engine.playback.step_counter == 2
    assert engine.clock.pending == 1


def test_render_uses_current_tempo(engine, tmp_path):
    engine.set_tempo(60)
    sink = engine.render(str(tmp_path / "slow.mid"), 2)
    pads = [e for e in sink.events if e.voice == Voice.PAD]
    assert [e.measure_time for e in pads] == pytest.approx([0.0, 4.0])


def test_render_rejects_zero_measures(engine, tmp_path):
    with pytest.raises(ValueError):
        engine.render(str(tmp_path / "none.mid"), 0)


def test_stop_from_chord_callback_silences_the_loop(engine):
    seen = []

    def stop_on_second_chord(index, chord):
        seen.append(index)
        if index == 1 and engine.is_playing:
            engine.stop()

    engine.on_chord_change(stop_on_second_chord)
    engine.start()
    engine.clock.advance(10.0)

    assert seen == [0, 1, None]
    assert len(engine.sink.by_voice(Voice.PAD)) == 1
    assert not engine.is_playing
    assert engine.playback.step_counter == 0
    assert engine.clock.pending == 0


def test_restart_after_stop_from_chord_callback(engine):
    stopped = []

    def stop_once(index, chord):
        if index == 1 and not stopped:
            stopped.append(index)
            engine.stop()

    engine.on_chord_change(stop_once)
    engine.start()
    engine.clock.advance(3.0)
    engine.start()
    engine.start()
    assert engine.clock.pending == 1
    engine.clock.advance(3.0)
    pads = engine.sink.by_voice(Voice.PAD)
    assert [e.step for e in pads] == [0, 0, 1]


def test_stop_sends_all_notes_off_to_the_port(monkeypatch):
    from chordloop import engine as engine_module
    from conftest import FakeMidi

    port = FakeMidi()
    monkeypatch.setattr(engine_module, "MidiOut", lambda name=None: port)
    engine = ChordLoopEngine(EngineConfig(seed=1), clock=OfflineClock())
    engine.start()
    engine.clock.advance(0.5)
    engine.close()

    assert port.messages[-1] == ("all_off",)
    assert port.closed
    # Notes queued for later never start
    count = len(port.messages)
    engine.clock.advance(5.0)
    assert len(port.messages) == count
