"""Login view definitions for API key entry and validation."""

from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from meshnow.core.config import config
from meshnow.core.meshy_client import MeshyClient
from meshnow.core.secrets import FORMNOW_ACCOUNT, MESHY_ACCOUNT, delete_key, load_key, save_key


class LoginView(QWidget):
    """Collects the Meshy API key and the optional Form Now publishable key."""

    loginSuccess = Signal(str, str)

    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("login_view")

        self._api_input = QLineEdit()
        self._api_input.setPlaceholderText("Enter Meshy API key")
        self._api_input.setEchoMode(QLineEdit.Password)

        self._formnow_input = QLineEdit()
        self._formnow_input.setPlaceholderText("Form Now publishable key (optional)")
        self._formnow_input.setEchoMode(QLineEdit.Password)

        self._toggle_button = QToolButton()
        self._toggle_button.setText("Show")
        self._toggle_button.setCheckable(True)
        self._toggle_button.clicked.connect(self._toggle_password)

        self._continue_button = QPushButton("Continue")
        self._continue_button.clicked.connect(self._handle_continue)

        self._forget_button = QPushButton("Forget Keys")
        self._forget_button.clicked.connect(self._handle_forget)

        self._status_label = QLabel("")
        self._status_label.setWordWrap(True)
        self._status_label.setAlignment(Qt.AlignLeft | Qt.AlignVCenter)

        self._build_layout()
        self._load_saved_keys()

    def _build_layout(self) -> None:
        meshy_row = QHBoxLayout()
        meshy_row.addWidget(self._api_input)
        meshy_row.addWidget(self._toggle_button)

        form_layout = QFormLayout()
        form_layout.addRow("Meshy", meshy_row)
        form_layout.addRow("Form Now", self._formnow_input)

        button_layout = QHBoxLayout()
        button_layout.addWidget(self._continue_button)
        button_layout.addWidget(self._forget_button)

        layout = QVBoxLayout()
        layout.addLayout(form_layout)
        layout.addLayout(button_layout)
        layout.addWidget(self._status_label)
        layout.addStretch()
        self.setLayout(layout)

    def _load_saved_keys(self) -> None:
        saved = load_key(MESHY_ACCOUNT)
        if saved:
            self._api_input.setText(saved)
            self._status_label.setText("Loaded saved API key.")
        formnow_key = load_key(FORMNOW_ACCOUNT)
        if formnow_key:
            self._formnow_input.setText(formnow_key)

    def _toggle_password(self) -> None:
        mode = QLineEdit.Normal if self._toggle_button.isChecked() else QLineEdit.Password
        self._api_input.setEchoMode(mode)
        self._formnow_input.setEchoMode(mode)
        self._toggle_button.setText("Hide" if self._toggle_button.isChecked() else "Show")

    def _handle_continue(self) -> None:
        api_key = self._api_input.text().strip()
        formnow_key = self._formnow_input.text().strip()
        if not api_key:
            self._status_label.setText("Please enter your Meshy API key.")
            return
        self._status_label.setText("Validating API key...")
        with MeshyClient(
            api_key, base_url=config.meshy_base_url, timeout=config.request_timeout_s
        ) as client:
            valid = client.validate_key()
        if not valid:
            self._status_label.setText("Invalid API key. Please try again.")
            return
        save_key(api_key, MESHY_ACCOUNT)
        if formnow_key:
            save_key(formnow_key, FORMNOW_ACCOUNT)
        self._status_label.setText("API keys saved.")
        self.loginSuccess.emit(api_key, formnow_key)

    def _handle_forget(self) -> None:
        delete_key(MESHY_ACCOUNT)
        delete_key(FORMNOW_ACCOUNT)
        self._api_input.clear()
        self._formnow_input.clear()
        self._status_label.setText("Saved API keys removed.")
