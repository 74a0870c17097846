"""Viewer view definitions for embedded 3D previews."""

from __future__ import annotations

import json
from pathlib import Path

from PySide6.QtCore import QUrl, Signal
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QVBoxLayout, QWidget

from meshnow.relay.proxy import RelayClient

VIEWER_HTML = Path(__file__).resolve().parent / "resources" / "viewer" / "index.html"


class ViewerView(QWidget):
    """Shows a generated GLB in an embedded ``<model-viewer>`` page.

    Remote models are loaded through the relay because the page cannot read
    the asset host cross-origin.
    """

    load_requested = Signal(str)

    def __init__(self, relay: RelayClient) -> None:
        super().__init__()
        self.setObjectName("viewer_view")
        self._relay = relay

        self._web_view = QWebEngineView(self)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._web_view)

        self._web_view.setUrl(QUrl.fromLocalFile(str(VIEWER_HTML)))

    def load_glb(self, url: str) -> None:
        """Load a local file path or a remote GLB URL into the viewer."""
        if url.startswith(("http://", "https://")):
            model_url = self._relay.proxied_url(url)
        elif url.startswith("file://"):
            model_url = url
        else:
            model_url = QUrl.fromLocalFile(url).toString()
        payload = json.dumps(model_url)
        self._web_view.page().runJavaScript(f"window.loadModel({payload})")
        self.load_requested.emit(model_url)
