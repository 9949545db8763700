"""
Theory module for Chordloop.

Provides the pitch-class table, the chord quality catalog, a structured
pitch type and the resolution of chord symbols into concrete pitches.
"""

from dataclasses import dataclass
from typing import Optional
import re


class UnknownQuality(KeyError):
    """Raised when a chord symbol names a quality missing from the catalog."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown chord quality: {self.key!r}"


class UnknownPitchClass(ValueError):
    """Raised when a root or pitch name is not one of the 12 pitch classes."""


NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Accepted spellings that are not in NOTE_NAMES
ENHARMONICS = {
    "Db": "C#", "Eb": "D#", "Gb": "F#", "Ab": "G#", "Bb": "A#",
    "Cb": "B", "Fb": "E", "E#": "F", "B#": "C",
}


@dataclass(frozen=True)
class ChordQuality:
    """
    A named chord quality.

    Attributes:
        key: Catalog key, e.g. "maj7".
        label: Display label, e.g. "Maj 7".
        intervals: Semitone offsets from the root, root first.
    """

    key: str
    label: str
    intervals: tuple[int, ...]


def _catalog(*qualities: ChordQuality) -> dict[str, ChordQuality]:
    catalog = {}
    for quality in qualities:
        if not quality.intervals or quality.intervals[0] != 0:
            raise ValueError(f"Quality {quality.key!r} must start on the root")
        if any(not 0 <= i < 24 for i in quality.intervals):
            raise ValueError(f"Quality {quality.key!r} has an offset outside two octaves")
        catalog[quality.key] = quality
    return catalog


# Order matters: the UI lists qualities in catalog order
CHORD_QUALITIES: dict[str, ChordQuality] = _catalog(
    ChordQuality("maj", "Major", (0, 4, 7)),
    ChordQuality("min", "Minor", (0, 3, 7)),
    ChordQuality("maj7", "Maj 7", (0, 4, 7, 11)),
    ChordQuality("min7", "Min 7", (0, 3, 7, 10)),
    ChordQuality("dom7", "Dom 7", (0, 4, 7, 10)),
    ChordQuality("dim", "Dim", (0, 3, 6)),
    ChordQuality("dim7", "Dim 7", (0, 3, 6, 9)),
    ChordQuality("aug", "Aug", (0, 4, 8)),
    ChordQuality("sus4", "Sus4", (0, 5, 7)),
    # Extended qualities
    ChordQuality("sus2", "Sus2", (0, 2, 7)),
    ChordQuality("6", "Maj 6", (0, 4, 7, 9)),
    ChordQuality("min6", "Min 6", (0, 3, 7, 9)),
    ChordQuality("add9", "Add 9", (0, 4, 7, 14)),
    ChordQuality("maj9", "Maj 9", (0, 4, 7, 11, 14)),
    ChordQuality("min9", "Min 9", (0, 3, 7, 10, 14)),
    ChordQuality("dom9", "Dom 9", (0, 4, 7, 10, 14)),
)


def normalize_pitch_class(name: str) -> str:
    """
    Return the canonical (sharp) spelling of a pitch class name.

    Args:
        name: Pitch class such as "C", "f#" or "Db".

    Returns:
        One of NOTE_NAMES.

    Raises:
        UnknownPitchClass: If the name is not a pitch class.
    """
    if not isinstance(name, str):
        raise UnknownPitchClass(f"Invalid pitch class: {name!r}")
    cleaned = name.strip()
    if cleaned:
        cleaned = cleaned[0].upper() + cleaned[1:]
    if cleaned in NOTE_NAMES:
        return cleaned
    if cleaned in ENHARMONICS:
        return ENHARMONICS[cleaned]
    raise UnknownPitchClass(f"Invalid pitch class: {name!r}")


def pitch_class_index(name: str) -> int:
    """Return the index (0-11) of a pitch class name."""
    return NOTE_NAMES.index(normalize_pitch_class(name))


def get_quality(key: str) -> ChordQuality:
    """
    Look up a chord quality by catalog key.

    Raises:
        UnknownQuality: If the key is not in the catalog.
    """
    try:
        return CHORD_QUALITIES[key]
    except (KeyError, TypeError):
        raise UnknownQuality(key) from None


_PITCH_RE = re.compile(r"^\s*([A-Ga-g][#b]?)(-?\d+)\s*$")


@dataclass(frozen=True, order=True)
class Pitch:
    """
    A concrete pitch: pitch class plus octave.

    Ordering follows pitch height (octave first, then pitch class).

    Attributes:
        octave: Octave number (C4 is middle C).
        pitch_class: Index into NOTE_NAMES (0-11).
    """

    octave: int
    pitch_class: int

    def __post_init__(self):
        if not 0 <= self.pitch_class < 12:
            raise UnknownPitchClass(f"Pitch class index out of range: {self.pitch_class}")

    @property
    def name(self) -> str:
        """Scientific pitch name, e.g. "F#5"."""
        return f"{NOTE_NAMES[self.pitch_class]}{self.octave}"

    @property
    def midi(self) -> int:
        """MIDI note number (C4 = 60)."""
        return (self.octave + 1) * 12 + self.pitch_class

    def transpose(self, semitones: int) -> "Pitch":
        """
        Return this pitch moved by a number of semitones.

        Args:
            semitones: Distance to move; negative moves down.

        Returns:
            A new Pitch with octave carried across pitch-class wraps.
        """
        absolute = self.octave * 12 + self.pitch_class + semitones
        return Pitch(absolute // 12, absolute % 12)

    @classmethod
    def from_midi(cls, note: int) -> "Pitch":
        """Build a Pitch from a MIDI note number."""
        return cls(note // 12 - 1, note % 12)

    @classmethod
    def from_name(cls, name: str) -> "Pitch":
        """
        Parse a scientific pitch name such as "C4", "F#5" or "Bb3".

        Raises:
            UnknownPitchClass: If the name cannot be parsed.
        """
        match = _PITCH_RE.match(name) if isinstance(name, str) else None
        if not match:
            raise UnknownPitchClass(f"Invalid pitch name: {name!r}")
        # Cb4 and B#3 cross the octave line relative to their written octave
        written, octave = match.group(1), int(match.group(2))
        spelled = written[0].upper() + written[1:]
        index = pitch_class_index(spelled)
        if spelled == "Cb":
            octave -= 1
        elif spelled == "B#":
            octave += 1
        return cls(octave, index)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ChordSymbol:
    """
    An abstract chord: root pitch class plus quality key.

    Attributes:
        root: Pitch class name of the root, e.g. "C" or "F#".
        quality: Key into CHORD_QUALITIES, e.g. "maj7".
    """

    root: str
    quality: str = "maj"

    def __str__(self) -> str:
        return f"{self.root} {self.quality}"


def resolve_chord(symbol: ChordSymbol, base_octave: int = 4) -> list[Pitch]:
    """
    Resolve a chord symbol into concrete pitches.

    Intervals are taken in catalog order, so element 0 is always the
    root at ``base_octave``. Every 12 semitones above the root's pitch
    class raise the octave by one.

    Args:
        symbol: The chord to resolve.
        base_octave: Octave of the root.

    Returns:
        One Pitch per interval of the chord's quality.

    Raises:
        UnknownQuality: If the quality key is not in the catalog.
        UnknownPitchClass: If the root is not a pitch class.
    """
    quality = get_quality(symbol.quality)
    root_index = pitch_class_index(symbol.root)

    pitches = []
    for interval in quality.intervals:
        absolute = root_index + interval
        pitches.append(Pitch(base_octave + absolute // 12, absolute % 12))
    return pitches


def parse_chord_symbol(text: str) -> ChordSymbol:
    """
    Parse a chord symbol written as "<root> <quality>".

    A colon may separate root and quality ("G:dom7"); a bare root means
    a major triad. Flat roots are stored with their sharp spelling.

    Args:
        text: Text such as "C maj7", "Db min7" or "A".

    Returns:
        The parsed ChordSymbol.

    Raises:
        ValueError: If the text is empty or has too many parts.
        UnknownPitchClass: If the root is not a pitch class.
        UnknownQuality: If the quality is not in the catalog.
    """
    parts = text.replace(":", " ").split()
    if not parts or len(parts) > 2:
        raise ValueError(f"Cannot parse chord symbol: {text!r}")
    root = normalize_pitch_class(parts[0])
    quality = parts[1] if len(parts) == 2 else "maj"
    get_quality(quality)
    return ChordSymbol(root, quality)


def format_chord(symbol: Optional[ChordSymbol]) -> str:
    """Return a display string such as "C Maj 7" ("—" for no chord)."""
    if symbol is None:
        return "—"
    quality = CHORD_QUALITIES.get(symbol.quality)
    label = quality.label if quality else symbol.quality
    return f"{symbol.root} {label}"
