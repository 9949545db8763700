"""
MIDI output for Chordloop.

Opens an output port through mido (RtMidi when installed, otherwise the
pygame backend) and falls back to pygame.midi directly when mido cannot
open a port.
"""

import atexit
import importlib.util
import logging
from typing import Optional

import mido
import pygame.midi


logger = logging.getLogger(__name__)

# Pick a concrete mido backend up front to avoid noisy import errors later
if importlib.util.find_spec("rtmidi") is not None:
    mido.set_backend("mido.backends.rtmidi")
else:
    mido.set_backend("mido.backends.pygame")

_pygame_midi_initialized = False


def _ensure_pygame_midi():
    global _pygame_midi_initialized
    if not _pygame_midi_initialized:
        pygame.midi.init()
        _pygame_midi_initialized = True


def _quit_pygame_midi():
    global _pygame_midi_initialized
    if _pygame_midi_initialized:
        pygame.midi.quit()
        _pygame_midi_initialized = False


atexit.register(_quit_pygame_midi)


def _pygame_outputs() -> list[tuple[int, str]]:
    outputs = []
    for i in range(pygame.midi.get_count()):
        info = pygame.midi.get_device_info(i)
        if info and info[3] == 1:  # output device
            outputs.append((i, info[1].decode()))
    return outputs


def _pick(names: list[str], contains: Optional[str]) -> Optional[str]:
    if contains:
        for name in names:
            if contains.lower() in name.lower():
                return name
    return names[0] if names else None


class MidiOut:
    """
    A MIDI output port.

    Attributes:
        name: Name of the opened port.
        use_pygame: True when writing through pygame.midi directly.
    """

    # Errors raised by a port that has gone away mid-session
    PORT_ERRORS = (ValueError, AttributeError, RuntimeError, OSError)

    def __init__(self, port_name_contains: Optional[str] = None):
        """
        Open an output port.

        Args:
            port_name_contains: Substring of the port name to prefer; the
                first available port is used when None or not found.

        Raises:
            RuntimeError: If no MIDI output port exists.
        """
        self.use_pygame = False
        self.name: Optional[str] = None
        try:
            if "pygame" in str(mido.backend):
                _ensure_pygame_midi()
            name = _pick(mido.get_output_names(), port_name_contains)
            if name is None:
                raise RuntimeError("No MIDI outputs found with mido")
            self.port = mido.open_output(name)
            self.name = name
            logger.info("Using mido backend with port: %s", name)
        except (ImportError, OSError, RuntimeError) as e:
            logger.info("Mido backend unavailable (%s), switching to pygame backend", e)
            self.use_pygame = True
            _ensure_pygame_midi()
            outputs = _pygame_outputs()
            name = _pick([n for _, n in outputs], port_name_contains)
            if name is None:
                raise RuntimeError("No MIDI outputs found. Create a virtual MIDI port first.") from e
            port_id = next(i for i, n in outputs if n == name)
            self.port = pygame.midi.Output(port_id)
            self.name = name
            logger.info("Using pygame backend with port: %s", name)

    def note_on(self, note: int, velocity: int, channel: int = 0):
        velocity = max(1, min(127, velocity))
        self._send(0x90, "note_on", note, velocity, channel)

    def note_off(self, note: int, channel: int = 0):
        self._send(0x80, "note_off", note, 0, channel)

    def all_notes_off(self, channels=range(16)):
        """Send the All Notes Off controller on each channel."""
        for channel in channels:
            if self.use_pygame:
                self._write_short(0xB0 + channel, 123, 0)
            else:
                self._send_message(mido.Message("control_change", control=123, value=0, channel=channel))

    def close(self):
        """Close the port; safe to call twice."""
        port, self.port = getattr(self, "port", None), None
        if port is not None:
            port.close()

    def _send(self, status: int, kind: str, note: int, velocity: int, channel: int):
        if self.use_pygame:
            self._write_short(status + channel, note, velocity)
        else:
            self._send_message(mido.Message(kind, note=note, velocity=velocity, channel=channel))

    def _write_short(self, status: int, data1: int, data2: int):
        try:
            self.port.write_short(status, data1, data2)
        except self.PORT_ERRORS as e:
            logger.debug("MIDI write failed: %s", e)

    def _send_message(self, message: "mido.Message"):
        try:
            self.port.send(message)
        except self.PORT_ERRORS as e:
            logger.debug("MIDI send failed: %s", e)


def list_output_names() -> list[str]:
    """
    Return the available MIDI output port names.

    Uses mido when available and adds pygame.midi device names, without
    duplicates.
    """
    names: list[str] = []
    try:
        names.extend(mido.get_output_names())
    except (ImportError, OSError, RuntimeError) as e:
        logger.debug("mido could not list outputs: %s", e)
    try:
        _ensure_pygame_midi()
        names.extend(n for _, n in _pygame_outputs())
    except pygame.error as e:
        logger.debug("pygame.midi could not list outputs: %s", e)
    return list(dict.fromkeys(names))
