#!/usr/bin/env python3
"""
Chordloop - Procedural Chord Progression Looper

Entry point for running Chordloop from the command line. Streams the
looping performance to a MIDI port, prints it, renders it to a MIDI
file, or opens the editor window.

Usage:
    python -m chordloop.main [options]

Options:
    --tempo TEMPO         Set tempo in BPM (default: 120)
    --preset NAME         Start from a preset progression
    --progression TEXT    Comma-separated chords, e.g. "C maj7, A min7"
    --seed SEED           Seed the random melody for a repeatable take
    --port PORT           MIDI port name to use
    --list-ports          List available MIDI ports and exit
    --console             Print note events instead of sending MIDI
    --render FILE         Render to a MIDI file instead of playing
    --measures N          Measures to render (default: 16)
    --gui                 Open the editor window
"""

import argparse
import logging
import signal
import sys
import time

from .engine import ChordLoopEngine, EngineConfig
from .presets import PRESETS
from .progression import Progression
from .sinks import ConsoleSink
from .theory import CHORD_QUALITIES, parse_chord_symbol
from .transport import validate_tempo


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    presets = "\n".join(f"  {name:<12} {p.label}" for name, p in PRESETS.items())
    qualities = ", ".join(CHORD_QUALITIES)
    parser = argparse.ArgumentParser(
        prog="chordloop",
        description="Chordloop - Procedural Chord Progression Looper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Presets:
{presets}

Chord qualities:
  {qualities}

Examples:
  python -m chordloop.main --preset jazz --tempo 96
  python -m chordloop.main --progression "F maj7, E min7, D min7, G dom7"
  python -m chordloop.main --preset neosoul --render neosoul.mid --measures 24
  python -m chordloop.main --port "loopMIDI Port 1"
        """
    )

    parser.add_argument(
        "--tempo", type=float, default=120.0,
        help="Tempo in BPM (default: 120)"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--preset", type=str, default=None, choices=list(PRESETS),
        help="Preset progression to start from"
    )
    source.add_argument(
        "--progression", type=str, default=None,
        help='Comma-separated chord symbols, e.g. "C maj7, A min7"'
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for a repeatable performance"
    )
    parser.add_argument(
        "--port", type=str, default=None,
        help="MIDI port name to use (auto-selects if not specified)"
    )
    parser.add_argument(
        "--list-ports", action="store_true",
        help="List available MIDI ports and exit"
    )
    parser.add_argument(
        "--console", action="store_true",
        help="Print note events instead of sending MIDI"
    )
    parser.add_argument(
        "--render", type=str, default=None, metavar="FILE",
        help="Render to a MIDI file and exit"
    )
    parser.add_argument(
        "--measures", type=int, default=16,
        help="Number of measures to render (default: 16)"
    )
    parser.add_argument(
        "--gui", action="store_true",
        help="Open the progression editor window"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log every measure"
    )

    return parser.parse_args(argv)


def parse_progression(text: str) -> Progression:
    """
    Build a progression from comma-separated chord symbols.

    Args:
        text: Text like "C maj7, A min7, Db dom7".

    Returns:
        The parsed progression.

    Raises:
        ValueError: If any chord cannot be parsed.
    """
    chords = [parse_chord_symbol(part) for part in text.split(",") if part.strip()]
    if not chords:
        raise ValueError("Progression is empty")
    return Progression(chords)


def build_progression(args: argparse.Namespace) -> Progression:
    """Return the starting progression selected on the command line."""
    if args.progression:
        return parse_progression(args.progression)
    progression = Progression.default()
    if args.preset:
        progression.apply_preset(args.preset)
    return progression


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%H:%M:%S",
    )


def print_banner():
    """Print the Chordloop startup banner."""
    print("""
╔══════════════════════════════════════════════╗
║                                              ║
║     C H O R D L O O P                        ║
║                                              ║
║     Procedural Chord Progression Looper      ║
║                                              ║
╚══════════════════════════════════════════════╝
    """)


def main(argv=None):
    """Main entry point for Chordloop."""
    args = parse_args(argv)
    configure_logging(args.verbose)

    # List ports if requested
    if args.list_ports:
        ports = ChordLoopEngine.list_midi_ports()
        print("\nAvailable MIDI output ports:")
        if ports:
            for port in ports:
                print(f"  - {port}")
        else:
            print("  (none found - create a virtual MIDI port like loopMIDI)")
        return 0

    try:
        config = EngineConfig(tempo=validate_tempo(args.tempo), seed=args.seed)
        progression = build_progression(args)

        if args.gui:
            from .window import run
            return run(config, progression, args.port)

        if args.render:
            engine = ChordLoopEngine(config, progression)
            sink = engine.render(args.render, args.measures)
            print(f"Rendered {args.measures} measures ({len(sink.events)} events) to {args.render}")
            return 0

        print_banner()
        sink = ConsoleSink() if args.console else None
        engine = ChordLoopEngine(config, progression, sink=sink, midi_port=args.port)

        # Handle Ctrl+C gracefully
        def signal_handler(sig, frame):
            print("\n\nStopping Chordloop...")
            engine.close()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)

        engine.start()

        print(f"\nLooping: {progression}")
        print("\nControls:")
        print("  Ctrl+C  - Stop and exit")
        print("-" * 50)

        # Keep running
        while True:
            time.sleep(0.1)

    except (ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1
    except RuntimeError as e:
        print(f"MIDI Error: {e}")
        print("\nMake sure you have a virtual MIDI port like loopMIDI installed.")
        print("Run with --list-ports to see available ports, or --console to print notes.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
