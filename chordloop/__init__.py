"""
Chordloop - Procedural Chord Progression Looper

Chordloop loops a chord progression at a chosen tempo. Each measure it
voices the current chord, plays a bass line with occasional syncopation,
sustains the chord as a pad and improvises a sixteenth-note melody drawn
only from the chord's own tones.
"""

__version__ = "0.1.0"
__author__ = "Chordloop Project"

from .clock import Clock, OfflineClock, RealtimeClock
from .engine import ChordLoopEngine, EngineConfig
from .presets import PRESETS, get_preset, preset_names
from .progression import IndexOutOfRange, Progression
from .scheduler import MeasureScheduler, NoteEvent, SeededRandom, Voice
from .theory import (
    CHORD_QUALITIES,
    NOTE_NAMES,
    ChordSymbol,
    Pitch,
    UnknownPitchClass,
    UnknownQuality,
    parse_chord_symbol,
    resolve_chord,
)
from .transport import InvalidTempo, PlaybackState, Transport

__all__ = [
    "ChordLoopEngine",
    "EngineConfig",
    "Clock",
    "OfflineClock",
    "RealtimeClock",
    "PRESETS",
    "get_preset",
    "preset_names",
    "Progression",
    "IndexOutOfRange",
    "MeasureScheduler",
    "NoteEvent",
    "SeededRandom",
    "Voice",
    "CHORD_QUALITIES",
    "NOTE_NAMES",
    "ChordSymbol",
    "Pitch",
    "UnknownPitchClass",
    "UnknownQuality",
    "parse_chord_symbol",
    "resolve_chord",
    "InvalidTempo",
    "PlaybackState",
    "Transport",
]
