"""Generator view definitions for creating Meshy tasks and ordering prints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPlainTextEdit,
    QProgressBar,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from meshnow.core.config import config
from meshnow.core.errors import MeshNowError
from meshnow.core.formnow_client import FormNowClient
from meshnow.core.image_codec import ImageInputSet, encode_image_to_data_uri
from meshnow.core.meshy_client import MeshyClient
from meshnow.core.models import (
    ART_STYLES,
    MAX_IMAGES,
    MAX_PROMPT_LENGTH,
    GenerationRequest,
    ImageTo3D,
    MultiImageTo3D,
    Task,
    TaskStatus,
    TextTo3D,
    UploadRecord,
)
from meshnow.core.session import Session
from meshnow.core.task_runner import TaskRunner, UploadRunner
from meshnow.core.uploader import UploadOrchestrator
from meshnow.relay.proxy import RelayClient, fetch_resource

MODES = ("Text to 3D", "Image to 3D", "Multi-Image to 3D")
DOWNLOAD_FORMATS = ("glb", "fbx", "obj", "mtl", "usdz")

logger = logging.getLogger(__name__)


class GeneratorView(QWidget):
    """Widget responsible for submitting generations and following them."""

    openViewerRequested = Signal(str)

    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("generator_view")

        self._client: Optional[MeshyClient] = None
        self._formnow_key: str = ""
        self._session = Session()
        self._task_runner: Optional[TaskRunner] = None
        self._upload_runner: Optional[UploadRunner] = None
        self._single_image: Optional[str] = None
        self._multi_images = ImageInputSet()

        self._mode_input = QComboBox()
        self._mode_input.addItems(MODES)

        self._prompt_input = QPlainTextEdit()
        self._prompt_input.setPlaceholderText("Describe the object, e.g. a red cube")
        self._prompt_input.textChanged.connect(self._update_prompt_counter)
        self._prompt_counter = QLabel(f"0/{MAX_PROMPT_LENGTH}")
        self._art_style_input = QComboBox()
        self._art_style_input.addItems(ART_STYLES)

        self._image_button = QPushButton("Select Image")
        self._image_button.clicked.connect(self._select_image)
        self._preview_label = QLabel("No image selected")
        self._preview_label.setAlignment(Qt.AlignCenter)
        self._preview_label.setFixedSize(240, 240)
        self._preview_label.setStyleSheet("border: 1px solid #999;")

        self._multi_add_button = QPushButton("Add Images")
        self._multi_add_button.clicked.connect(self._add_multi_images)
        self._multi_remove_button = QPushButton("Remove Selected")
        self._multi_remove_button.clicked.connect(self._remove_multi_image)
        self._multi_list = QListWidget()
        self._multi_count = QLabel(f"0/{MAX_IMAGES} images selected")

        self._mode_pages = QStackedWidget()
        self._mode_pages.addWidget(self._build_text_page())
        self._mode_pages.addWidget(self._build_image_page())
        self._mode_pages.addWidget(self._build_multi_page())
        self._mode_input.currentIndexChanged.connect(self._mode_pages.setCurrentIndex)

        self._generate_button = QPushButton("Generate")
        self._generate_button.clicked.connect(self._handle_generate)
        self._reset_button = QPushButton("Reset")
        self._reset_button.clicked.connect(self._handle_reset)

        self._progress_bar = QProgressBar()
        self._progress_bar.setRange(0, 100)
        self._status_label = QLabel("Idle")
        self._status_label.setWordWrap(True)

        self._format_input = QComboBox()
        self._download_button = QPushButton("Download")
        self._download_button.clicked.connect(self._handle_download)
        self._open_viewer_button = QPushButton("Open in Viewer")
        self._open_viewer_button.clicked.connect(self._handle_open_viewer)
        self._order_button = QPushButton("Order Print")
        self._order_button.clicked.connect(self._handle_order_print)
        self._upload_file_button = QPushButton("Upload STL/OBJ File")
        self._upload_file_button.clicked.connect(self._handle_upload_file)
        self._order_link = QLabel("")
        self._order_link.setOpenExternalLinks(True)
        self._order_link.setTextFormat(Qt.RichText)

        self._build_layout()
        self._refresh_actions()

    def set_api_keys(self, api_key: str, formnow_key: str = "") -> None:
        """Provide the credentials used for Meshy and Form Now requests."""
        if self._client is not None:
            self._client.close()
        self._client = MeshyClient(
            api_key, base_url=config.meshy_base_url, timeout=config.request_timeout_s
        )
        self._formnow_key = formnow_key
        self._refresh_actions()

    def shutdown(self) -> None:
        """Stop background work before the window closes."""
        self._stop_runner()
        if self._upload_runner is not None:
            self._upload_runner.wait()

    # -- layout -------------------------------------------------------------

    def _build_text_page(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        form.addRow("Prompt", self._prompt_input)
        form.addRow("", self._prompt_counter)
        form.addRow("Art style", self._art_style_input)
        return page

    def _build_image_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.addWidget(self._image_button)
        layout.addWidget(self._preview_label)
        return page

    def _build_multi_page(self) -> QWidget:
        page = QWidget()
        buttons = QHBoxLayout()
        buttons.addWidget(self._multi_add_button)
        buttons.addWidget(self._multi_remove_button)
        buttons.addStretch()
        layout = QVBoxLayout(page)
        layout.addLayout(buttons)
        layout.addWidget(self._multi_list)
        layout.addWidget(self._multi_count)
        return page

    def _build_layout(self) -> None:
        input_group = QGroupBox("Input")
        input_layout = QVBoxLayout()
        input_layout.addWidget(self._mode_input)
        input_layout.addWidget(self._mode_pages)
        input_group.setLayout(input_layout)

        action_layout = QHBoxLayout()
        action_layout.addWidget(self._generate_button)
        action_layout.addWidget(self._reset_button)
        action_layout.addStretch()

        status_layout = QVBoxLayout()
        status_layout.addWidget(self._status_label)
        status_layout.addWidget(self._progress_bar)

        result_group = QGroupBox("Result")
        result_row = QHBoxLayout()
        result_row.addWidget(self._format_input)
        result_row.addWidget(self._download_button)
        result_row.addWidget(self._open_viewer_button)
        result_row.addStretch()
        print_row = QHBoxLayout()
        print_row.addWidget(self._order_button)
        print_row.addWidget(self._upload_file_button)
        print_row.addStretch()
        result_layout = QVBoxLayout()
        result_layout.addLayout(result_row)
        result_layout.addLayout(print_row)
        result_layout.addWidget(self._order_link)
        result_group.setLayout(result_layout)

        layout = QVBoxLayout()
        layout.addWidget(input_group)
        layout.addLayout(action_layout)
        layout.addLayout(status_layout)
        layout.addWidget(result_group)
        layout.addStretch()
        self.setLayout(layout)

    # -- input handling -----------------------------------------------------

    def _update_prompt_counter(self) -> None:
        self._prompt_counter.setText(f"{len(self._prompt_input.toPlainText())}/{MAX_PROMPT_LENGTH}")

    def _select_image(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Select Image", "", "Images (*.png *.jpg *.jpeg)"
        )
        if not file_path:
            return
        try:
            self._single_image = encode_image_to_data_uri(file_path)
        except MeshNowError as exc:
            self._status_label.setText(str(exc))
            return
        pixmap = QPixmap(file_path)
        if not pixmap.isNull():
            self._preview_label.setPixmap(
                pixmap.scaled(self._preview_label.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
            )

    def _add_multi_images(self) -> None:
        if self._multi_images.remaining == 0:
            self._status_label.setText(f"Maximum {MAX_IMAGES} images allowed.")
            return
        file_paths, _ = QFileDialog.getOpenFileNames(
            self, "Select Images", "", "Images (*.png *.jpg *.jpeg)"
        )
        if not file_paths:
            return
        kept_paths = file_paths[: self._multi_images.remaining]
        try:
            self._multi_images.add_files(kept_paths)
        except MeshNowError as exc:
            self._status_label.setText(str(exc))
            return
        for path in kept_paths:
            self._multi_list.addItem(Path(path).name)
        self._multi_count.setText(f"{len(self._multi_images)}/{MAX_IMAGES} images selected")

    def _remove_multi_image(self) -> None:
        row = self._multi_list.currentRow()
        if row < 0:
            return
        self._multi_images.remove(row)
        self._multi_list.takeItem(row)
        self._multi_count.setText(f"{len(self._multi_images)}/{MAX_IMAGES} images selected")

    def _build_request(self) -> GenerationRequest:
        index = self._mode_input.currentIndex()
        if index == 0:
            return TextTo3D(self._prompt_input.toPlainText(), self._art_style_input.currentText())
        if index == 1:
            return ImageTo3D(self._single_image or "")
        return MultiImageTo3D(self._multi_images.images)

    # -- generation ---------------------------------------------------------

    def _handle_generate(self) -> None:
        if not self._client:
            self._status_label.setText("Please log in with an API key first.")
            return
        try:
            request = self._build_request()
        except MeshNowError as exc:
            self._status_label.setText(str(exc))
            return

        self._stop_runner()
        self._session.begin(request)
        self._order_link.clear()
        self._refresh_actions()
        self._status_label.setText("Submitting task...")
        try:
            task_id = self._client.create_task(request)
        except MeshNowError as exc:
            self._session.fail(str(exc))
            self._status_label.setText(str(exc))
            self._refresh_actions()
            return
        self._session.task_created(task_id)

        self._progress_bar.setValue(0)
        self._status_label.setText("Task submitted. Awaiting progress...")

        self._task_runner = TaskRunner(
            self._client,
            task_id,
            self._session.kind,
            interval_s=config.poll_interval_s,
            max_attempts=config.max_attempts,
        )
        self._task_runner.taskUpdated.connect(self._handle_task_update)
        self._task_runner.taskCompleted.connect(self._handle_task_complete)
        self._task_runner.taskFailed.connect(self._handle_task_failed)
        self._task_runner.start()

    def _stop_runner(self) -> None:
        if self._task_runner is None:
            return
        self._task_runner.stop()
        self._task_runner.wait()
        self._task_runner = None

    def _handle_task_update(self, task: Task) -> None:
        if not self._session.apply(task):
            return
        self._progress_bar.setValue(task.progress)
        if task.status is TaskStatus.PENDING and task.queue_position:
            self._status_label.setText(f"Queued ({task.queue_position} tasks ahead)")
        else:
            self._status_label.setText(f"Status: {task.status.value} ({task.progress}%)")

    def _handle_task_complete(self, task: Task) -> None:
        if not self._session.apply(task):
            return
        self._status_label.setText("Generation complete.")
        self._refresh_actions()

    def _handle_task_failed(self, task_id: str, message: str) -> None:
        if not self._session.fail(message, task_id=task_id):
            return
        logger.warning("Task %s failed: %s", task_id, message)
        self._status_label.setText(f"Task failed: {message}")
        self._refresh_actions()

    def _handle_reset(self) -> None:
        if self._session.generating:
            return
        self._stop_runner()
        self._session.reset()
        self._prompt_input.clear()
        self._single_image = None
        self._preview_label.clear()
        self._preview_label.setText("No image selected")
        self._multi_images.clear()
        self._multi_list.clear()
        self._multi_count.setText(f"0/{MAX_IMAGES} images selected")
        self._progress_bar.setValue(0)
        self._order_link.clear()
        self._status_label.setText("Idle")
        self._refresh_actions()

    def _refresh_actions(self) -> None:
        task = self._session.task
        succeeded = task is not None and task.status is TaskStatus.SUCCEEDED
        busy = self._session.generating
        self._mode_input.setEnabled(not busy)
        self._generate_button.setEnabled(not busy and self._client is not None)
        self._reset_button.setEnabled(not busy)

        self._format_input.clear()
        if succeeded:
            self._format_input.addItems([fmt for fmt in DOWNLOAD_FORMATS if task.model_url(fmt)])
        self._download_button.setEnabled(succeeded and self._format_input.count() > 0)
        self._open_viewer_button.setEnabled(succeeded and task.model_url("glb") is not None)
        uploading = self._upload_runner is not None and self._upload_runner.isRunning()
        can_upload = bool(self._formnow_key) and not uploading
        self._order_button.setEnabled(can_upload and succeeded and task.model_url("obj") is not None)
        self._upload_file_button.setEnabled(can_upload)

    # -- results ------------------------------------------------------------

    def _handle_download(self) -> None:
        task = self._session.task
        fmt = self._format_input.currentText()
        url = task.model_url(fmt) if task else None
        if not url or not self._client:
            return
        destination = config.downloads_dir / f"meshy-{task.task_id}.{fmt}"
        try:
            path = self._client.download_file(url, destination)
        except MeshNowError as exc:
            self._status_label.setText(str(exc))
            return
        self._status_label.setText(f"Saved {path}")

    def _handle_open_viewer(self) -> None:
        task = self._session.task
        url = task.model_url("glb") if task else None
        if url:
            self.openViewerRequested.emit(url)

    def _orchestrator(self) -> UploadOrchestrator:
        client = FormNowClient(self._formnow_key, base_url=config.formnow_base_url)
        fetcher = RelayClient(config.relay_url).fetch if config.relay_url else fetch_resource
        return UploadOrchestrator(client, fetcher=fetcher)

    def _handle_order_print(self) -> None:
        task = self._session.task
        url = task.model_url("obj") if task else None
        if url:
            self._start_upload(model_url=url)

    def _handle_upload_file(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Select 3D Model", "", "3D models (*.stl *.obj)"
        )
        if file_path:
            self._start_upload(file_path=file_path)

    def _start_upload(self, file_path: Optional[str] = None, model_url: Optional[str] = None) -> None:
        self._order_link.clear()
        self._upload_runner = UploadRunner(self._orchestrator(), file_path=file_path, model_url=model_url)
        self._upload_runner.stepChanged.connect(self._status_label.setText)
        self._upload_runner.uploadCompleted.connect(self._handle_upload_complete)
        self._upload_runner.uploadFailed.connect(self._handle_upload_failed)
        self._upload_runner.finished.connect(self._refresh_actions)
        self._upload_runner.start()
        self._refresh_actions()

    def _handle_upload_complete(self, record: UploadRecord) -> None:
        self._session.upload = record
        if record.redirect_url:
            self._order_link.setText(f'<a href="{record.redirect_url}">Order on Form Now</a>')
        self._status_label.setText("Upload complete!")

    def _handle_upload_failed(self, message: str) -> None:
        self._status_label.setText(f"Upload failed: {message}")
