#!/usr/bin/env python3
"""
Chordloop Launcher
Run this script to open the progression editor window.
"""

if __name__ == "__main__":
    import sys
    from chordloop.main import main
    sys.exit(main(["--gui", *sys.argv[1:]]))
