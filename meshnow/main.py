"""Application entry point and main window wiring."""

from __future__ import annotations

import logging
import sys
import threading

import uvicorn
from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from meshnow.core.config import config
from meshnow.core.logging_config import configure_logging
from meshnow.core.secrets import FORMNOW_ACCOUNT, MESHY_ACCOUNT, load_key
from meshnow.relay.proxy import RelayClient
from meshnow.ui.generator_view import GeneratorView
from meshnow.ui.login_view import LoginView
from meshnow.ui.viewer_view import ViewerView

logger = logging.getLogger(__name__)


def start_embedded_relay() -> uvicorn.Server:
    """Serve the relay app on a daemon thread for the viewer and uploads."""
    from meshnow.relay.app import app as relay_app

    server = uvicorn.Server(
        uvicorn.Config(relay_app, host=config.relay_host, port=config.relay_port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, name="meshnow-relay", daemon=True)
    thread.start()
    logger.info("Embedded relay listening on %s", config.relay_base_url)
    return server


class MainWindow(QMainWindow):
    """Main application window with stacked navigation."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("MeshNow")

        self._stack = QStackedWidget()
        self._login_view = LoginView()
        self._generator_view = GeneratorView()
        self._viewer_view = ViewerView(RelayClient(config.relay_base_url))

        self._stack.addWidget(self._login_view)
        self._stack.addWidget(self._generator_view)
        self._stack.addWidget(self._viewer_view)

        self._login_view.loginSuccess.connect(self._handle_login)
        self._generator_view.openViewerRequested.connect(self._open_viewer)

        self._nav_login = QPushButton("Login")
        self._nav_generator = QPushButton("Generator")
        self._nav_viewer = QPushButton("Viewer")

        self._nav_login.clicked.connect(lambda: self._stack.setCurrentWidget(self._login_view))
        self._nav_generator.clicked.connect(
            lambda: self._stack.setCurrentWidget(self._generator_view)
        )
        self._nav_viewer.clicked.connect(lambda: self._stack.setCurrentWidget(self._viewer_view))

        nav_layout = QHBoxLayout()
        nav_layout.addWidget(self._nav_login)
        nav_layout.addWidget(self._nav_generator)
        nav_layout.addWidget(self._nav_viewer)
        nav_layout.addStretch()

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.addLayout(nav_layout)
        layout.addWidget(self._stack)
        layout.setContentsMargins(8, 8, 8, 8)
        self.setCentralWidget(container)

        self._bootstrap_session()

    def _bootstrap_session(self) -> None:
        api_key = load_key(MESHY_ACCOUNT)
        if api_key:
            self._handle_login(api_key, load_key(FORMNOW_ACCOUNT) or "")
        else:
            self._stack.setCurrentWidget(self._login_view)

    def _handle_login(self, api_key: str, formnow_key: str) -> None:
        self._generator_view.set_api_keys(api_key, formnow_key)
        self._stack.setCurrentWidget(self._generator_view)

    def _open_viewer(self, url: str) -> None:
        self._viewer_view.load_glb(url)
        self._stack.setCurrentWidget(self._viewer_view)

    def closeEvent(self, event) -> None:
        self._generator_view.shutdown()
        super().closeEvent(event)


def main() -> None:
    """Launch the Qt application."""
    configure_logging(config.log_level)
    relay_server = None
    if config.embedded_relay and not config.relay_url:
        relay_server = start_embedded_relay()

    app = QApplication(sys.argv)
    app.setApplicationName("MeshNow")
    app.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    window = MainWindow()
    window.resize(1200, 800)
    window.show()
    exit_code = app.exec()
    if relay_server is not None:
        relay_server.should_exit = True
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
