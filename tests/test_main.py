from __future__ import annotations

import pytest

from chordloop.main import main, parse_args, parse_progression
from chordloop.theory import ChordSymbol


def test_parse_progression():
    prog = parse_progression("C maj7, A min7,Db dom7, G")
    assert prog.snapshot() == (
        ChordSymbol("C", "maj7"),
        ChordSymbol("A", "min7"),
        ChordSymbol("C#", "dom7"),
        ChordSymbol("G", "maj"),
    )


@pytest.mark.parametrize("text", ["", " , ", "C maj7, H min", "C blah"])
def test_parse_progression_errors(text):
    with pytest.raises((ValueError, KeyError)):
        parse_progression(text)


def test_preset_and_progression_are_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["--preset", "jazz", "--progression", "C maj"])


def test_render_command(tmp_path, capsys):
    path = tmp_path / "jazz.mid"
    code = main(["--preset", "jazz", "--seed", "7", "--render", str(path), "--measures", "4"])
    assert code == 0
    assert path.exists()
    assert "Rendered 4 measures" in capsys.readouterr().out


def test_render_progression_text(tmp_path):
    path = tmp_path / "two.mid"
    assert main(["--progression", "F maj7, E min7", "--render", str(path), "--measures", "2"]) == 0
    assert path.exists()


def test_bad_chord_reports_error(tmp_path, capsys):
    code = main(["--progression", "H maj", "--render", str(tmp_path / "x.mid")])
    assert code == 1
    assert capsys.readouterr().out.startswith("Error:")


def test_bad_quality_reports_error(tmp_path, capsys):
    code = main(["--progression", "C super", "--render", str(tmp_path / "x.mid")])
    assert code == 1
    assert "super" in capsys.readouterr().out


def test_bad_tempo_reports_error(tmp_path, capsys):
    code = main(["--tempo", "0", "--render", str(tmp_path / "x.mid")])
    assert code == 1
    assert not (tmp_path / "x.mid").exists()


def test_bad_measure_count(tmp_path):
    assert main(["--render", str(tmp_path / "x.mid"), "--measures", "0"]) == 1
