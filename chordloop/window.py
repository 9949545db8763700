"""
Chordloop Window - progression editor and transport controls.

Provides chord cards for editing the progression, presets, a tempo
slider and a start/stop button. The card of the chord currently playing
is highlighted.
"""

import logging
import sys
from typing import Callable, Optional

from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QPushButton, QGroupBox, QGridLayout, QSlider, QComboBox, QFrame,
    QScrollArea,
)
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont

from .engine import ChordLoopEngine, EngineConfig
from .presets import PRESETS
from .progression import Progression
from .theory import CHORD_QUALITIES, NOTE_NAMES, ChordSymbol, format_chord


logger = logging.getLogger(__name__)

CARD_STYLE = """
    QFrame#chordCard {
        background-color: #2b2f36;
        border: 2px solid #3b4148;
        border-radius: 8px;
    }
"""
ACTIVE_CARD_STYLE = """
    QFrame#chordCard {
        background-color: #3a3152;
        border: 2px solid #9b7fd4;
        border-radius: 8px;
    }
"""
START_BUTTON_STYLE = """
    QPushButton {
        background-color: #2d5a2d;
        border: 2px solid #3d7a3d;
        border-radius: 8px;
        color: #fff;
        font-size: 16px;
        font-weight: bold;
    }
    QPushButton:hover { background-color: #3d7a3d; }
    QPushButton:pressed { background-color: #4d9a4d; }
"""
STOP_BUTTON_STYLE = """
    QPushButton {
        background-color: #5a2d2d;
        border: 2px solid #7a3d3d;
        border-radius: 8px;
        color: #fff;
        font-size: 16px;
        font-weight: bold;
    }
    QPushButton:hover { background-color: #7a3d3d; }
    QPushButton:pressed { background-color: #9a4d4d; }
"""


class ChordCard(QFrame):
    """A card editing one chord of the progression."""

    def __init__(
        self,
        index: int,
        chord: ChordSymbol,
        on_root: Callable[[int, str], None],
        on_quality: Callable[[int, str], None],
        on_remove: Callable[[int], None],
        parent=None,
    ):
        super().__init__(parent)
        self.index = index
        self.setObjectName("chordCard")
        self.setStyleSheet(CARD_STYLE)
        self.setFixedWidth(110)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(4)

        remove_btn = QPushButton("✕")
        remove_btn.setFixedSize(22, 22)
        remove_btn.setToolTip("Remove chord")
        remove_btn.clicked.connect(lambda: on_remove(self.index))
        layout.addWidget(remove_btn, alignment=Qt.AlignmentFlag.AlignRight)

        self.root_combo = QComboBox()
        self.root_combo.addItems(NOTE_NAMES)
        if chord.root in NOTE_NAMES:
            self.root_combo.setCurrentIndex(NOTE_NAMES.index(chord.root))
        self.root_combo.currentTextChanged.connect(lambda text: on_root(self.index, text))
        layout.addWidget(self.root_combo)

        self.quality_combo = QComboBox()
        for key, quality in CHORD_QUALITIES.items():
            self.quality_combo.addItem(quality.label, key)
        found = self.quality_combo.findData(chord.quality)
        if found >= 0:
            self.quality_combo.setCurrentIndex(found)
        self.quality_combo.currentIndexChanged.connect(
            lambda i: on_quality(self.index, self.quality_combo.itemData(i))
        )
        layout.addWidget(self.quality_combo)

    def set_active(self, active: bool):
        self.setStyleSheet(ACTIVE_CARD_STYLE if active else CARD_STYLE)


class ChordloopWindow(QMainWindow):
    """
    GUI window for editing and playing a progression.

    Engine callbacks arrive on the clock thread and are forwarded to the
    GUI thread through a Qt signal.
    """

    # (index, chord) of the sounding chord, or (None, None) when stopped
    chord_changed = Signal(object, object)

    def __init__(
        self,
        engine: ChordLoopEngine,
        parent=None,
    ):
        """
        Initialize the Chordloop window.

        Args:
            engine: Engine to control.
            parent: Parent widget.
        """
        super().__init__(parent)
        self.engine = engine
        self.progression = engine.progression
        self._cards: list[ChordCard] = []
        self._active_index: Optional[int] = None

        self._setup_ui()
        self._apply_theme()

        self.chord_changed.connect(self._on_chord_changed)
        self.engine.on_chord_change(self.chord_changed.emit)
        self.progression.on_change(self._render_cards)
        self._render_cards()

    def _setup_ui(self):
        """Set up the user interface."""
        self.setWindowTitle("Chordloop")
        self.setMinimumSize(640, 520)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(20, 15, 20, 15)
        layout.setSpacing(12)

        # Header
        header = QLabel("Chordloop")
        header.setFont(QFont("", 24, QFont.Weight.Bold))
        header.setAlignment(Qt.AlignmentFlag.AlignCenter)
        header.setStyleSheet("color: #9b7fd4;")
        layout.addWidget(header)

        # Status display
        status_frame = QFrame()
        status_frame.setStyleSheet("""
            QFrame {
                background-color: #2b2f36;
                border: 2px solid #3b4148;
                border-radius: 8px;
                padding: 8px;
            }
        """)
        status_layout = QHBoxLayout(status_frame)

        self.status_label = QLabel("● Stopped")
        self.status_label.setStyleSheet("color: #888; font-size: 14px; font-weight: bold;")
        status_layout.addWidget(self.status_label)

        self.chord_label = QLabel("—")
        self.chord_label.setStyleSheet("color: #9b7fd4; font-size: 16px; font-weight: bold;")
        self.chord_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        status_layout.addWidget(self.chord_label)

        layout.addWidget(status_frame)

        # Play/Stop button
        self.play_btn = QPushButton("▶  Start")
        self.play_btn.setMinimumHeight(45)
        self.play_btn.setStyleSheet(START_BUTTON_STYLE)
        self.play_btn.clicked.connect(self._toggle_play)
        layout.addWidget(self.play_btn)

        # Progression cards
        prog_group = QGroupBox("Progression")
        prog_layout = QVBoxLayout(prog_group)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        scroll.setFixedHeight(150)
        cards_host = QWidget()
        self.cards_layout = QHBoxLayout(cards_host)
        self.cards_layout.setSpacing(8)
        self.add_btn = QPushButton("+")
        self.add_btn.setFixedSize(50, 100)
        self.add_btn.setToolTip("Add chord")
        self.add_btn.clicked.connect(self._on_add)
        self.cards_layout.addWidget(self.add_btn)
        self.cards_layout.addStretch()
        scroll.setWidget(cards_host)
        prog_layout.addWidget(scroll)

        edit_row = QHBoxLayout()
        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(lambda: self.progression.clear())
        edit_row.addWidget(clear_btn)
        edit_row.addStretch()
        edit_row.addWidget(QLabel("Preset:"))
        self.preset_combo = QComboBox()
        for name, preset in PRESETS.items():
            self.preset_combo.addItem(preset.label or name, name)
        edit_row.addWidget(self.preset_combo)
        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._on_apply_preset)
        edit_row.addWidget(apply_btn)
        prog_layout.addLayout(edit_row)

        layout.addWidget(prog_group)

        # Tempo
        params_group = QGroupBox("Global")
        params_layout = QGridLayout(params_group)
        params_layout.setSpacing(6)

        params_layout.addWidget(QLabel("Tempo:"), 0, 0)
        self.tempo_slider = QSlider(Qt.Orientation.Horizontal)
        self.tempo_slider.setRange(40, 200)
        self.tempo_slider.setValue(int(self.engine.playback.tempo_bpm))
        self.tempo_slider.valueChanged.connect(self._on_tempo_changed)
        params_layout.addWidget(self.tempo_slider, 0, 1)
        self.tempo_value = QLabel(str(int(self.engine.playback.tempo_bpm)))
        self.tempo_value.setMinimumWidth(35)
        params_layout.addWidget(self.tempo_value, 0, 2)

        layout.addWidget(params_group)
        layout.addStretch()

    def _apply_theme(self):
        """Apply dark theme styling."""
        self.setStyleSheet("""
            QMainWindow, QWidget {
                background-color: #1e2127;
                color: #fff;
            }
            QGroupBox {
                font-size: 14px;
                font-weight: bold;
                border: 2px solid #3b4148;
                border-radius: 8px;
                margin-top: 12px;
                padding-top: 12px;
            }
            QGroupBox::title {
                subcontrol-origin: margin;
                left: 10px;
                padding: 0 5px;
            }
            QComboBox {
                background-color: #2b2f36;
                border: 1px solid #3b4148;
                border-radius: 4px;
                padding: 3px 8px;
                min-height: 22px;
            }
            QComboBox:hover { border: 1px solid #2f82e6; }
            QSlider::groove:horizontal {
                height: 6px;
                background: #3b4148;
                border-radius: 3px;
            }
            QSlider::handle:horizontal {
                background: #9b7fd4;
                width: 16px;
                height: 16px;
                margin: -5px 0;
                border-radius: 8px;
            }
            QLabel { color: #ccc; }
        """)

    # Progression editing

    def _render_cards(self):
        """Rebuild the chord cards from the progression."""
        for card in self._cards:
            self.cards_layout.removeWidget(card)
            card.hide()
            card.deleteLater()
        self._cards = []
        for i, chord in enumerate(self.progression.snapshot()):
            card = ChordCard(
                i, chord,
                on_root=self.progression.set_root_at,
                on_quality=self.progression.set_quality_at,
                on_remove=self.progression.remove_at,
            )
            self.cards_layout.insertWidget(i, card)
            self._cards.append(card)
        self._highlight(self._active_index)

    def _on_add(self):
        self.progression.append(ChordSymbol("C", "maj"))

    def _on_apply_preset(self):
        name = self.preset_combo.currentData()
        if name:
            self.progression.apply_preset(name)

    # Transport

    def _toggle_play(self):
        """Toggle play/stop state."""
        if self.engine.is_playing:
            self._stop()
        else:
            self._start()

    def _start(self):
        """Start the engine."""
        try:
            self.engine.start()
        except RuntimeError as e:
            logger.error("Could not start: %s", e)
            self.status_label.setText(f"● {e}")
            self.status_label.setStyleSheet("color: #d55; font-size: 14px; font-weight: bold;")
            return

        self.play_btn.setText("■  Stop")
        self.play_btn.setStyleSheet(STOP_BUTTON_STYLE)
        self.status_label.setText("● Playing")
        self.status_label.setStyleSheet("color: #5d5; font-size: 14px; font-weight: bold;")

    def _stop(self):
        """Stop the engine."""
        self.engine.stop()

        self.play_btn.setText("▶  Start")
        self.play_btn.setStyleSheet(START_BUTTON_STYLE)
        self.status_label.setText("● Stopped")
        self.status_label.setStyleSheet("color: #888; font-size: 14px; font-weight: bold;")

    def _on_tempo_changed(self, value: int):
        """Handle tempo slider change."""
        self.tempo_value.setText(str(value))
        self.engine.set_tempo(value)

    def _on_chord_changed(self, index: Optional[int], chord: Optional[ChordSymbol]):
        """Highlight the sounding chord (runs on the GUI thread)."""
        self._active_index = index
        self.chord_label.setText(format_chord(chord))
        self._highlight(index)

    def _highlight(self, index: Optional[int]):
        for card in self._cards:
            card.set_active(card.index == index)

    def closeEvent(self, event):
        """Handle window close."""
        self.engine.close()
        super().closeEvent(event)


def run(
    config: Optional[EngineConfig] = None,
    progression: Optional[Progression] = None,
    midi_port: Optional[str] = None,
) -> int:
    """
    Open the Chordloop window and run the Qt event loop.

    Returns:
        The application's exit code.
    """
    app = QApplication.instance() or QApplication(sys.argv)
    engine = ChordLoopEngine(config, progression, midi_port=midi_port)
    window = ChordloopWindow(engine)
    window.show()
    return app.exec()
