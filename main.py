"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
import threading

from audio_routes import SoundDeviceRouteProvider
from capture import SoundDeviceCaptureSource
from config import JsonConfigStore
from errors import InvalidPhraseError, VoiceTriggerError
from hotkey import GlobalHotkeyAdapter
from models import (
    AudioRouteSnapshot,
    PermissionSnapshot,
    SessionEvent,
    SessionEventKind,
    SessionState,
    TriggerEvent,
)
from overlay import OverlayWindow
from permissions import DesktopPermissionProvider, status_message
from phrases import SUGGESTED_PHRASES, validate_phrase
from recognizer import DashscopeTranscriptionEngine
from session_supervisor import SessionSupervisor
from shutter import KeyPressShutter

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"       # grey
ICON_LISTENING = "#E94560"  # red
ICON_ERROR = "#FF8800"      # orange


class UIBridge(QObject):
    transcript_signal = Signal(str)
    trigger_signal = Signal(str)
    error_signal = Signal(str)
    state_signal = Signal(str, str)  # from_state, to_state
    permissions_signal = Signal(str)
    routes_signal = Signal(object)
    api_key_prompt_signal = Signal()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.transcript_signal.connect(self._on_transcript_ui)
        self.ui.trigger_signal.connect(self._on_trigger_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.permissions_signal.connect(self._on_permissions_ui)
        self.ui.routes_signal.connect(self._on_routes_ui)
        self.ui.api_key_prompt_signal.connect(self._prompt_api_key_ui)

        self.testing_mode = False
        self._api_key_answer = ""
        self._api_key_answered = threading.Event()

        api_key = self.config_store.get_api_key()
        self.engine = DashscopeTranscriptionEngine(api_key=api_key)
        self.permission_provider = DesktopPermissionProvider(
            api_key=api_key or os.getenv("DASHSCOPE_API_KEY", ""),
            prompt_api_key=self._prompt_api_key,
        )
        self.routes = SoundDeviceRouteProvider(preferred_input_id=self.config_store.get_preferred_input_id())
        self.shutter = KeyPressShutter(key_name=self.config_store.get_shutter_key())
        self.supervisor = SessionSupervisor(
            capture=SoundDeviceCaptureSource(device_selector=self.routes.preferred_device_index),
            engine=self.engine,
            permissions=self.permission_provider,
            routes=self.routes,
            trigger_phrase=self.config_store.get_trigger_phrase(),
            on_trigger=self._on_trigger,
            on_session_event=self._on_session_event,
            on_transcript=self._on_transcript,
            on_permissions=self._on_permissions,
            on_routes=self._on_routes,
            on_state_change=self._on_state_change,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Voice Shutter — Idle")
        self._mic_menu: QMenu | None = None
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        toggle_action = QAction("Start / Stop Listening", menu)
        toggle_action.triggered.connect(self._toggle_listening)
        menu.addAction(toggle_action)

        testing_action = QAction("Testing Mode (no shutter)", menu)
        testing_action.setCheckable(True)
        testing_action.toggled.connect(self._set_testing_mode)
        menu.addAction(testing_action)

        menu.addSeparator()
        phrase_action = QAction("Set Trigger Phrase…", menu)
        phrase_action.triggered.connect(self._set_trigger_phrase)
        menu.addAction(phrase_action)

        suggestions = menu.addMenu("Suggested Phrases")
        for phrase in SUGGESTED_PHRASES:
            action = QAction(phrase, suggestions)
            action.triggered.connect(lambda _checked=False, p=phrase: self._apply_trigger_phrase(p))
            suggestions.addAction(action)

        self._mic_menu = menu.addMenu("Microphone")
        self._rebuild_mic_menu(self.routes.snapshot())

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        shutter_action = QAction("Set Shutter Key", menu)
        shutter_action.triggered.connect(self._set_shutter_key)
        menu.addAction(shutter_action)

        hotkey_action = QAction("Set Toggle Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _rebuild_mic_menu(self, snapshot: AudioRouteSnapshot) -> None:
        if self._mic_menu is None:
            return
        self._mic_menu.clear()
        if not snapshot.inputs:
            empty = QAction("No input devices", self._mic_menu)
            empty.setEnabled(False)
            self._mic_menu.addAction(empty)
            return
        for source in snapshot.inputs:
            action = QAction(f"{source.name} ({source.kind.value})", self._mic_menu)
            action.setCheckable(True)
            action.setChecked(source.is_current)
            action.triggered.connect(lambda _checked=False, sid=source.id: self._select_input(sid))
            self._mic_menu.addAction(action)

    # ------------------------------------------------------------------
    # Menu actions (UI thread)
    # ------------------------------------------------------------------

    def _toggle_listening(self) -> None:
        if self.supervisor.state in (SessionState.IDLE, SessionState.STOPPED):
            threading.Thread(target=self._start_listening, daemon=True).start()
        else:
            threading.Thread(target=self.supervisor.stop, daemon=True).start()

    def _set_testing_mode(self, enabled: bool) -> None:
        self.testing_mode = enabled
        if enabled:
            self.overlay.set_text(f"Testing: say \"{self.supervisor.trigger_phrase.raw}\"")
        else:
            self.overlay.hide_with_delay(400)

    def _set_trigger_phrase(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Trigger Phrase", "Phrase to listen for", text=self.supervisor.trigger_phrase.raw
        )
        if not ok:
            return
        self._apply_trigger_phrase(value)

    def _apply_trigger_phrase(self, value: str) -> None:
        try:
            phrase = validate_phrase(value)
        except InvalidPhraseError as exc:
            QMessageBox.warning(None, "Trigger Phrase", exc.message)
            return
        self.config_store.set_trigger_phrase(phrase)
        self.supervisor.update_trigger_phrase(phrase)
        self._refresh_tooltip(self.supervisor.state)

    def _select_input(self, source_id: str) -> None:
        self.config_store.set_preferred_input_id(source_id)
        self.supervisor.select_preferred_input(source_id)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self.engine.update_api_key(value)
        self.permission_provider.set_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_shutter_key(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Shutter Key", "Use pynput key format, e.g. Key.space", text=self.shutter.key_name
        )
        if not ok or not value:
            return
        self.config_store.set_shutter_key(value)
        self.shutter.set_key(value)

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Toggle Hotkey", "Use pynput key format, e.g. Key.f8", text=self.hotkey.hotkey_name
        )
        if not ok or not value.strip():
            return
        self.config_store.set_hotkey(value.strip())
        self.hotkey.set_hotkey(value)

    # ------------------------------------------------------------------
    # API key prompt (permission worker blocks, dialog runs on UI thread)
    # ------------------------------------------------------------------

    def _prompt_api_key(self) -> str:
        self._api_key_answered.clear()
        self.ui.api_key_prompt_signal.emit()
        self._api_key_answered.wait()
        return self._api_key_answer

    def _prompt_api_key_ui(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "Speech recognition needs a DashScope API Key")
        self._api_key_answer = value if ok else ""
        if self._api_key_answer:
            self.config_store.set_api_key(self._api_key_answer)
            self.engine.update_api_key(self._api_key_answer)
        self._api_key_answered.set()

    # ------------------------------------------------------------------
    # Supervisor callbacks (control path → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_trigger(self, event: TriggerEvent) -> None:
        if self.testing_mode:
            self.ui.trigger_signal.emit(f"Heard \"{event.phrase}\" (testing, shutter not pressed)")
            return
        result = self.shutter.fire()
        if result.success:
            self.ui.trigger_signal.emit(f"📸 \"{event.phrase}\"")
        else:
            self.ui.error_signal.emit(result.reason)

    def _on_session_event(self, event: SessionEvent) -> None:
        if event.kind is SessionEventKind.FAILURE:
            self.ui.error_signal.emit(event.message)

    def _on_transcript(self, text: str) -> None:
        self.ui.transcript_signal.emit(text)

    def _on_permissions(self, snapshot: PermissionSnapshot) -> None:
        self.ui.permissions_signal.emit(status_message(snapshot))

    def _on_routes(self, snapshot: AudioRouteSnapshot) -> None:
        self.ui.routes_signal.emit(snapshot)

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_transcript_ui(self, text: str) -> None:
        if self.testing_mode:
            self.overlay.set_text(text, self.supervisor.trigger_phrase.normalized)

    def _on_trigger_ui(self, text: str) -> None:
        self.overlay.show_trigger(text)

    def _on_error_ui(self, msg: str) -> None:
        self.overlay.show_error(msg)

    def _on_permissions_ui(self, message: str) -> None:
        self.overlay.set_status(message)
        if message:
            self.tray.setToolTip(f"Voice Shutter — {message}")

    def _on_routes_ui(self, snapshot: AudioRouteSnapshot) -> None:
        self._rebuild_mic_menu(snapshot)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        state = SessionState(to_state)
        if state is SessionState.LISTENING:
            self.tray.setIcon(_create_icon(ICON_LISTENING))
        elif state is SessionState.STOPPED:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        elif state is SessionState.IDLE:
            self.tray.setIcon(_create_icon(ICON_IDLE))
        self._refresh_tooltip(state)

    def _refresh_tooltip(self, state: SessionState) -> None:
        if state is SessionState.LISTENING:
            self.tray.setToolTip(f"Voice Shutter — Listening for \"{self.supervisor.trigger_phrase.raw}\"")
        elif state is SessionState.RESTARTING:
            self.tray.setToolTip("Voice Shutter — Reconnecting…")
        elif state is SessionState.STOPPED:
            self.tray.setToolTip("Voice Shutter — Listener inactive")
        elif state is SessionState.IDLE:
            self.tray.setToolTip("Voice Shutter — Listener paused")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _start_listening(self) -> None:
        try:
            self.supervisor.start()
        except VoiceTriggerError as exc:
            # Permission denials stay pending and resume once granted.
            self.ui.error_signal.emit(exc.message)
            if self.supervisor.pending_start:
                self.supervisor.request_permissions_if_needed()

    def run(self) -> int:
        self.routes.start()
        try:
            self.hotkey.start(on_toggle=self._toggle_listening)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        threading.Thread(target=self._start_listening, daemon=True).start()
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self._api_key_answered.set()
        self.supervisor.close()
        self.routes.stop()
        self.app.quit()


def main() -> int:
    logging.basicConfig(
        level=os.getenv("VOICE_SHUTTER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
