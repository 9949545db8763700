from __future__ import annotations

import pytest

from chordloop.theory import (
    CHORD_QUALITIES,
    NOTE_NAMES,
    ChordSymbol,
    Pitch,
    UnknownPitchClass,
    UnknownQuality,
    format_chord,
    get_quality,
    normalize_pitch_class,
    parse_chord_symbol,
    resolve_chord,
)


@pytest.mark.parametrize("quality", list(CHORD_QUALITIES))
@pytest.mark.parametrize("root", NOTE_NAMES)
def test_resolve_every_root_and_quality(root, quality):
    intervals = CHORD_QUALITIES[quality].intervals
    pitches = resolve_chord(ChordSymbol(root, quality), 4)

    assert len(pitches) == len(intervals)
    assert pitches[0] == Pitch(4, NOTE_NAMES.index(root))
    for pitch, interval in zip(pitches, intervals):
        assert pitch.pitch_class == (NOTE_NAMES.index(root) + interval) % 12
        assert pitch.octave == 4 + (NOTE_NAMES.index(root) + interval) // 12


def test_cmaj7_at_octave_4():
    names = [p.name for p in resolve_chord(ChordSymbol("C", "maj7"), 4)]
    assert names == ["C4", "E4", "G4", "B4"]


def test_octave_bumps_when_crossing_c():
    names = [p.name for p in resolve_chord(ChordSymbol("A", "min7"), 4)]
    assert names == ["A4", "C5", "E5", "G5"]


def test_compound_interval_lands_above_base_octave():
    pitches = resolve_chord(ChordSymbol("C", "add9"), 4)
    assert pitches[-1].name == "D5"
    assert pitches[-1].octave > 4

    # B + 14 semitones wraps twice past C
    pitches = resolve_chord(ChordSymbol("B", "maj9"), 3)
    assert [p.name for p in pitches] == ["B3", "D#4", "F#4", "A#4", "C#5"]


def test_resolve_respects_base_octave():
    assert resolve_chord(ChordSymbol("G", "maj"), 2)[0].name == "G2"


def test_catalog_invariants():
    for quality in CHORD_QUALITIES.values():
        assert quality.intervals
        assert quality.intervals[0] == 0
        assert all(0 <= i < 24 for i in quality.intervals)
    assert list(CHORD_QUALITIES)[:9] == [
        "maj", "min", "maj7", "min7", "dom7", "dim", "dim7", "aug", "sus4",
    ]


def test_unknown_quality_fails_fast():
    with pytest.raises(UnknownQuality) as exc:
        resolve_chord(ChordSymbol("C", "maj13"))
    assert exc.value.key == "maj13"
    # Usable as a KeyError too
    with pytest.raises(KeyError):
        get_quality("nope")


def test_unknown_root_fails():
    with pytest.raises(UnknownPitchClass):
        resolve_chord(ChordSymbol("H", "maj"))


def test_flat_roots_resolve_like_sharps():
    assert resolve_chord(ChordSymbol("Bb", "dom7")) == resolve_chord(ChordSymbol("A#", "dom7"))
    assert normalize_pitch_class("eb") == "D#"


def test_pitch_transpose_is_structural():
    c4 = Pitch.from_name("C4")
    assert c4.transpose(-12).name == "C3"
    assert c4.transpose(12).name == "C5"
    assert Pitch.from_name("C#4").transpose(-2).name == "B3"
    assert Pitch.from_name("A#4").transpose(2).name == "C5"


def test_pitch_midi_numbers():
    assert Pitch.from_name("C4").midi == 60
    assert Pitch.from_name("A4").midi == 69
    assert Pitch.from_midi(61).name == "C#4"
    assert Pitch.from_name("Cb4").name == "B3"
    assert Pitch.from_name("B#3").name == "C4"


def test_pitch_ordering_follows_height():
    assert Pitch.from_name("B3") < Pitch.from_name("C4") < Pitch.from_name("C#4")


@pytest.mark.parametrize("bad", ["", "C", "H4", "C#x", "4C"])
def test_pitch_from_name_rejects_garbage(bad):
    with pytest.raises(UnknownPitchClass):
        Pitch.from_name(bad)


def test_parse_chord_symbol():
    assert parse_chord_symbol("C maj7") == ChordSymbol("C", "maj7")
    assert parse_chord_symbol(" Db min7 ") == ChordSymbol("C#", "min7")
    assert parse_chord_symbol("G:dom7") == ChordSymbol("G", "dom7")
    assert parse_chord_symbol("A") == ChordSymbol("A", "maj")


def test_parse_chord_symbol_errors():
    with pytest.raises(ValueError):
        parse_chord_symbol("")
    with pytest.raises(ValueError):
        parse_chord_symbol("C maj 7")
    with pytest.raises(UnknownPitchClass):
        parse_chord_symbol("X maj")
    with pytest.raises(UnknownQuality):
        parse_chord_symbol("C major")


def test_chord_symbol_is_a_value():
    assert ChordSymbol("C", "maj7") == ChordSymbol("C", "maj7")
    assert hash(ChordSymbol("C", "maj7")) == hash(ChordSymbol("C", "maj7"))
    assert str(ChordSymbol("F#", "dim")) == "F# dim"


def test_format_chord():
    assert format_chord(ChordSymbol("C", "maj7")) == "C Maj 7"
    assert format_chord(ChordSymbol("C", "weird")) == "C weird"
    assert format_chord(None) == "—"
