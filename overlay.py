"""Floating overlay showing listener status, live transcript and shutter flashes."""

from __future__ import annotations

import html

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_PANEL = "padding: 12px 16px; background: rgba(0,0,0,{alpha}); border-radius: 12px;"

TONES = {
    "neutral": "color: white; font-size: 18px;" + _PANEL.format(alpha=190),
    "trigger": "color: #22C55E; font-size: 22px; font-weight: 600;" + _PANEL.format(alpha=210),
    "error": "color: #FF6B6B; font-size: 18px;" + _PANEL.format(alpha=210),
}
_STATUS_STYLE = "color: #BBBBBB; font-size: 12px; padding: 0 16px;"
_PHRASE_MARKUP = '<span style="color:#22C55E; font-weight:600">{}</span>'


def highlight_phrase(transcript: str, phrase: str) -> str:
    """Escape ``transcript`` for a rich-text label and mark the last ``phrase`` hit."""
    if not phrase:
        return html.escape(transcript)
    at = transcript.lower().rfind(phrase.lower())
    if at < 0:
        return html.escape(transcript)
    end = at + len(phrase)
    return (
        html.escape(transcript[:at])
        + _PHRASE_MARKUP.format(html.escape(transcript[at:end]))
        + html.escape(transcript[end:])
    )


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(600)

        self._status = QLabel("")
        self._status.setStyleSheet(_STATUS_STYLE)
        self._status.hide()

        self._body = QLabel("")
        self._body.setWordWrap(True)
        self._body.setTextFormat(Qt.RichText)
        self._body.setStyleSheet(TONES["neutral"])

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
        layout.addWidget(self._status)
        layout.addWidget(self._body)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _place(self) -> None:
        """Move to the top center of the primary screen, below the menu bar."""
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        self.move(geom.x() + (geom.width() - self.width()) // 2, geom.y() + 40)

    def set_status(self, text: str) -> None:
        self._status.setText(html.escape(text))
        self._status.setVisible(bool(text))

    def set_text(self, text: str, phrase: str = "") -> None:
        self._present("neutral", highlight_phrase(text, phrase))

    def show_trigger(self, text: str, hide_after_ms: int = 2000) -> None:
        self._present("trigger", html.escape(text))
        self.hide_with_delay(hide_after_ms)

    def show_error(self, text: str, hide_after_ms: int = 3000) -> None:
        self._present("error", html.escape(f"⚠️ {text}"))
        self.hide_with_delay(hide_after_ms)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is None:
            return
        timer = QTimer()
        timer.setSingleShot(True)
        timer.timeout.connect(self.hide)
        timer.start(delay_ms)
        self._hide_timer = timer

    def _present(self, tone: str, markup: str) -> None:
        self._cancel_hide_timer()
        self._body.setStyleSheet(TONES[tone])
        self._body.setText(markup)
        self._place()
        self.show()

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
