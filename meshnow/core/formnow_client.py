"""HTTP client wrapper for the Form Now part-file upload API."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import httpx

from meshnow.core.errors import (
    FinalizationError,
    InitializationError,
    MeshNowError,
    TransferError,
    TransportError,
    ValidationError,
)
from meshnow.core.http import json_object, raise_for_status
from meshnow.core.models import FileType, UploadRecord, UploadStatus

BASE_URL = "https://api.formlabs.com/form-now"
PART_FILES_PATH = "/api/v1/part-files"
API_KEY_HEADER = "x-publishable-api-key"

logger = logging.getLogger(__name__)


class FormNowClient:
    """Talks to the Form Now upload service and its signed storage URLs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValidationError("Form Now API key is missing")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "FormNowClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            API_KEY_HEADER: self.api_key,
        }

    def _json_request(self, method: str, path: str, body: Mapping[str, object]) -> dict:
        url = f"{self.base_url}{PART_FILES_PATH}{path}"
        try:
            response = self._http.request(method, url, headers=self._headers(), json=dict(body))
        except httpx.HTTPError as exc:
            raise TransportError(f"Form Now API request failed: {exc}") from exc
        raise_for_status(response, "Form Now")
        return json_object(response, "Form Now")

    def create_part_file(self, body: Mapping[str, object]) -> dict:
        """POST a part-file record and return the raw JSON."""
        return self._json_request("POST", "", body)

    def update_part_file(self, record_id: str, body: Mapping[str, object]) -> dict:
        """PATCH a part-file record and return the raw JSON."""
        if not record_id:
            raise ValidationError("Upload id is required")
        return self._json_request("PATCH", f"/{record_id}", body)

    def initialize(
        self,
        file_type: FileType,
        file_name: str,
        metadata: Optional[Mapping[str, object]] = None,
    ) -> UploadRecord:
        """Create a pending record and obtain its signed write URL."""
        body: Dict[str, object] = {"file_type": file_type.value, "file_name": file_name}
        if metadata is not None:
            body["metadata"] = dict(metadata)
        try:
            data = self.create_part_file(body)
        except MeshNowError as exc:
            raise InitializationError(
                f"Failed to initialize upload: {exc}", status_code=exc.status_code
            ) from exc
        if not data.get("id") or not data.get("signed_url"):
            raise InitializationError("Failed to initialize upload: response missing id or signed_url")
        try:
            record = UploadRecord.from_payload(data)
        except ValueError as exc:
            raise InitializationError(f"Failed to initialize upload: {exc}") from exc
        logger.info("Initialized upload %s for %s", record.record_id, file_name)
        return record

    def transfer(self, signed_url: str, content: bytes) -> None:
        """PUT the whole file to the signed storage URL in one request."""
        try:
            response = self._http.put(
                signed_url,
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as exc:
            raise TransferError(f"Storage upload failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransferError(
                f"Storage upload failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

    def finalize(self, record_id: str) -> UploadRecord:
        """Mark the record as uploaded and return it with its redirect URL."""
        try:
            data = self.update_part_file(record_id, {"status": UploadStatus.UPLOADED.value})
        except MeshNowError as exc:
            raise FinalizationError(
                f"Failed to update status: {exc}", status_code=exc.status_code
            ) from exc
        try:
            return UploadRecord.from_payload(data)
        except ValueError as exc:
            raise FinalizationError(f"Failed to update status: {exc}") from exc
