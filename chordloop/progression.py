"""
Progression module for Chordloop.

Holds the ordered, editable sequence of chord symbols that the
scheduler loops over. The editor owns mutation; the engine only reads.
"""

import copy
import dataclasses
import logging
from typing import Callable, Iterable, Iterator, Optional

from .presets import get_preset
from .theory import ChordSymbol, normalize_pitch_class


logger = logging.getLogger(__name__)


class IndexOutOfRange(IndexError):
    """Raised when an edit targets an index outside the progression."""


DEFAULT_PROGRESSION = (
    ChordSymbol("C", "maj7"),
    ChordSymbol("A", "min7"),
    ChordSymbol("D", "min7"),
    ChordSymbol("G", "dom7"),
)


class Progression:
    """
    An ordered, mutable sequence of chord symbols.

    The progression may be empty and may repeat chords. Removing a chord
    closes the gap, so later chords shift down by one index.

    Usage:
        >>> prog = Progression()
        >>> prog.append(ChordSymbol("F", "maj7"))
        >>> prog.set_quality_at(0, "min7")
        >>> prog.chord_for_step(5)
        (0, ChordSymbol(root='F', quality='min7'))
    """

    def __init__(self, chords: Optional[Iterable[ChordSymbol]] = None):
        """
        Initialize the progression.

        Args:
            chords: Starting chords (copied). None gives an empty progression.
        """
        self._chords: list[ChordSymbol] = copy.deepcopy(list(chords or []))
        self._listeners: list[Callable[[], None]] = []

    @classmethod
    def default(cls) -> "Progression":
        """Return a progression holding DEFAULT_PROGRESSION."""
        return cls(DEFAULT_PROGRESSION)

    def __len__(self) -> int:
        return len(self._chords)

    def __getitem__(self, idx: int) -> ChordSymbol:
        return self._chords[self._check_index(idx)]

    def __iter__(self) -> Iterator[ChordSymbol]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"Progression([{', '.join(str(c) for c in self._chords)}])"

    def snapshot(self) -> tuple[ChordSymbol, ...]:
        """Return the current chords as an immutable tuple."""
        return tuple(self._chords)

    def chord_for_step(self, step: int) -> Optional[tuple[int, ChordSymbol]]:
        """
        Select the chord that plays on a given measure step.

        The progression is read once, so a concurrent edit can only move
        the wrap point of later steps.

        Args:
            step: Measure counter (0-based).

        Returns:
            (index, chord) with index = step mod length, or None when empty.
        """
        chords = self.snapshot()
        if not chords:
            return None
        index = step % len(chords)
        return index, chords[index]

    # Editing

    def append(self, symbol: ChordSymbol):
        """Add a chord at the end."""
        self._chords.append(symbol)
        self._changed()

    def remove_at(self, index: int):
        """
        Remove the chord at an index; later chords shift down.

        Raises:
            IndexOutOfRange: If no chord is stored at the index.
        """
        del self._chords[self._check_index(index)]
        self._changed()

    def set_root_at(self, index: int, root: str):
        """
        Change the root of the chord at an index.

        Raises:
            IndexOutOfRange: If no chord is stored at the index.
            UnknownPitchClass: If the root is not a pitch class.
        """
        index = self._check_index(index)
        root = normalize_pitch_class(root)
        self._chords[index] = dataclasses.replace(self._chords[index], root=root)
        self._changed()

    def set_quality_at(self, index: int, quality: str):
        """
        Change the quality of the chord at an index.

        The key is not checked here; an unknown key is reported when the
        chord is resolved.

        Raises:
            IndexOutOfRange: If no chord is stored at the index.
        """
        index = self._check_index(index)
        self._chords[index] = dataclasses.replace(self._chords[index], quality=quality)
        self._changed()

    def clear(self):
        """Remove every chord."""
        self._chords.clear()
        self._changed()

    def replace_all(self, chords: Iterable[ChordSymbol]):
        """
        Replace the whole progression with a deep copy of ``chords``.

        Neither the caller's sequence nor the stored one can change the
        other afterwards.
        """
        self._chords = copy.deepcopy(list(chords))
        self._changed()

    def apply_preset(self, name: str):
        """
        Replace the progression with a named preset.

        Raises:
            KeyError: If no preset has that name.
        """
        preset = get_preset(name)
        self.replace_all(preset.to_symbols())
        logger.info("Applied preset %r (%d chords)", name, len(self))

    def on_change(self, callback: Callable[[], None]):
        """
        Register a callback run after every edit.

        Args:
            callback: Function called with no arguments.
        """
        self._listeners.append(callback)

    def _check_index(self, index: int) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise IndexOutOfRange(f"Chord index must be an integer, got {index!r}")
        if not 0 <= index < len(self._chords):
            raise IndexOutOfRange(
                f"Chord index {index} out of range for progression of length {len(self._chords)}"
            )
        return index

    def _changed(self):
        for callback in list(self._listeners):
            callback()
