"""Three-step signed upload of a mesh to Form Now.

The handshake is initialize, transfer, finalize. Each step only runs after
the previous one succeeded, and a failure ends the attempt without touching
the record again; an unused record simply expires on the service side. A new
attempt always starts from initialize, so signed URLs are never reused.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from meshnow.core.errors import ValidationError
from meshnow.core.formnow_client import FormNowClient
from meshnow.core.models import FileType, UploadRecord
from meshnow.relay.proxy import FetchedResource, fetch_resource

DEFAULT_REMOTE_FILE_NAME = "meshy-model.obj"
METADATA_SOURCE = "meshnow-app"

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], FetchedResource]
StepCallback = Callable[[str], None]


def default_metadata() -> Dict[str, object]:
    return {
        "source": METADATA_SOURCE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class UploadOrchestrator:
    """Runs the upload handshake against a Form Now client."""

    def __init__(
        self,
        client: FormNowClient,
        fetcher: Fetcher = fetch_resource,
        on_step: Optional[StepCallback] = None,
    ) -> None:
        self.client = client
        self.fetcher = fetcher
        self.on_step = on_step

    def _step(self, message: str) -> None:
        logger.info(message)
        if self.on_step is not None:
            self.on_step(message)

    def upload_file(self, path: str, metadata: Optional[Mapping[str, object]] = None) -> UploadRecord:
        """Upload a local STL or OBJ file."""
        file_path = Path(path)
        FileType.from_file_name(file_path.name)
        try:
            content = file_path.read_bytes()
        except OSError as exc:
            raise ValidationError(f"Could not read {file_path.name}: {exc}") from exc
        return self.upload_bytes(content, file_path.name, metadata)

    def upload_from_url(
        self,
        url: str,
        file_name: str = DEFAULT_REMOTE_FILE_NAME,
        metadata: Optional[Mapping[str, object]] = None,
    ) -> UploadRecord:
        """Fetch a generated mesh through the relay, then upload it.

        A failed fetch raises before the upload service is contacted.
        """
        self._step("Fetching model...")
        resource = self.fetcher(url)
        return self.upload_bytes(resource.content, file_name, metadata)

    def upload_bytes(
        self,
        content: bytes,
        file_name: str,
        metadata: Optional[Mapping[str, object]] = None,
    ) -> UploadRecord:
        """Run initialize, transfer and finalize for an in-memory file."""
        file_type = FileType.from_file_name(file_name)
        if not content:
            raise ValidationError(f"{file_name} is empty")

        self._step("Initializing upload...")
        record = self.client.initialize(
            file_type,
            file_name,
            metadata if metadata is not None else default_metadata(),
        )

        self._step("Uploading file...")
        self.client.transfer(record.consume_signed_url(), content)

        self._step("Finalizing upload...")
        finalized = self.client.finalize(record.record_id)

        self._step("Upload complete")
        return finalized
