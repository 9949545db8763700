"""
Preset progressions for Chordloop.

Presets are declared as validated models so a bad entry fails at import
instead of at playback.
"""

from pydantic import BaseModel, Field, field_validator

from .theory import CHORD_QUALITIES, ChordSymbol, normalize_pitch_class


class ChordDef(BaseModel):
    root: str
    quality: str = "maj"

    @field_validator("root")
    @classmethod
    def _check_root(cls, value: str) -> str:
        return normalize_pitch_class(value)

    @field_validator("quality")
    @classmethod
    def _check_quality(cls, value: str) -> str:
        if value not in CHORD_QUALITIES:
            raise ValueError(f"unknown chord quality {value!r}")
        return value


class PresetDef(BaseModel):
    name: str
    label: str = ""
    chords: list[ChordDef] = Field(min_length=1)

    def to_symbols(self) -> list[ChordSymbol]:
        """Return the preset as a new list of chord symbols."""
        return [ChordSymbol(c.root, c.quality) for c in self.chords]


def _preset(name: str, label: str, *chords: str) -> PresetDef:
    defs = []
    for text in chords:
        root, quality = text.split()
        defs.append(ChordDef(root=root, quality=quality))
    return PresetDef(name=name, label=label, chords=defs)


PRESETS: dict[str, PresetDef] = {
    p.name: p
    for p in (
        _preset("pop", "Pop (I-V-vi-IV)",
                "C maj", "G maj", "A min", "F maj"),
        _preset("jazz", "Jazz (ii-V-I-VI)",
                "D min7", "G dom7", "C maj7", "A dom7"),
        _preset("neosoul", "Neo Soul",
                "F maj7", "E min7", "D min7", "D min7", "G dom7", "C maj7"),
        _preset("creepy", "Creepy",
                "C min", "D dim", "G dim7", "C min"),
        _preset("emotional", "Emotional",
                "C maj", "E maj", "F maj7", "F min"),
    )
}


def preset_names() -> list[str]:
    """Return the preset names in catalog order."""
    return list(PRESETS)


def get_preset(name: str) -> PresetDef:
    """
    Look up a preset by name.

    Raises:
        KeyError: If no preset has that name.
    """
    try:
        return PRESETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown preset {name!r}; available: {', '.join(PRESETS)}"
        ) from None
