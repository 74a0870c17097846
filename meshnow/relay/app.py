"""MeshNow relay: FastAPI application.

Stateless pass-through between a browser-style client and the external
services. Credentials arrive with each request and are forwarded upstream;
nothing is stored between requests.

Endpoints
---------
========  =============================================  ===========================
Method    Path                                           Purpose
========  =============================================  ===========================
POST      ``/api/meshy/create``                          Text-to-3D task
POST      ``/api/meshy/image-to-3d``                     Image-to-3D task
POST      ``/api/meshy/multi-image-to-3d``               Multi-image-to-3D task
GET       ``/api/meshy/status/{task_id}``                Text-to-3D status
GET       ``/api/meshy/image-to-3d/status/{task_id}``    Image-to-3D status
GET       ``/api/meshy/multi-image-to-3d/status/{id}``   Multi-image status
POST      ``/api/formnow/initialize``                    Create upload record
PATCH     ``/api/formnow/update-status/{record_id}``     Finalize upload record
GET       ``/api/proxy?url=...``                         Fetch a remote asset
GET       ``/api/health``                                Liveness probe
========  =============================================  ===========================

Usage
-----
CLI (installed entry point)::

    meshnow-relay
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from meshnow.core.config import MeshNowConfig, config
from meshnow.core.errors import AuthError, MeshNowError, TransportError, ValidationError
from meshnow.core.formnow_client import API_KEY_HEADER, FormNowClient
from meshnow.core.logging_config import configure_logging
from meshnow.core.meshy_client import MeshyClient
from meshnow.core.models import (
    FileType,
    ImageTo3D,
    MultiImageTo3D,
    TaskKind,
    TextTo3D,
)
from meshnow.relay.models import (
    CreateTaskResponse,
    ImageTo3DBody,
    InitializeUploadBody,
    MultiImageTo3DBody,
    TextTo3DBody,
    UpdateUploadStatusBody,
)
from meshnow.relay.proxy import CACHE_CONTROL, fetch_resource

logger = logging.getLogger(__name__)


def _error_status(exc: MeshNowError) -> int:
    if isinstance(exc, TransportError):
        return 502
    return exc.status_code or 500


async def _handle_meshnow_error(request: Request, exc: MeshNowError) -> JSONResponse:
    status = _error_status(exc)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status, exc)
    return JSONResponse({"error": str(exc)}, status_code=status)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled relay error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def _meshy_client(request: Request, api_key: Optional[str]) -> MeshyClient:
    if not api_key:
        raise ValidationError("API key is required")
    settings: MeshNowConfig = request.app.state.settings
    return MeshyClient(
        api_key,
        base_url=settings.meshy_base_url,
        timeout=settings.request_timeout_s,
        transport=request.app.state.meshy_transport,
    )


def _formnow_client(request: Request, api_key: Optional[str]) -> FormNowClient:
    if not api_key:
        raise AuthError("Missing API key", status_code=401)
    settings: MeshNowConfig = request.app.state.settings
    return FormNowClient(
        api_key,
        base_url=settings.formnow_base_url,
        transport=request.app.state.formnow_transport,
    )


def _create_task(request: Request, api_key: Optional[str], generation) -> CreateTaskResponse:
    with _meshy_client(request, api_key) as client:
        return CreateTaskResponse(taskId=client.create_task(generation))


def _task_status(request: Request, api_key: Optional[str], task_id: str, kind: TaskKind) -> dict:
    with _meshy_client(request, api_key) as client:
        return client.get_task_payload(task_id, kind)


def create_app(
    settings: MeshNowConfig = config,
    meshy_transport: Optional[httpx.BaseTransport] = None,
    formnow_transport: Optional[httpx.BaseTransport] = None,
    proxy_transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    """Build the relay application.

    The transports are only overridden in tests; by default every route talks
    to the real services.
    """
    app = FastAPI(
        title="MeshNow Relay",
        description="Same-origin relay for Meshy generation and Form Now uploads.",
    )
    app.state.settings = settings
    app.state.meshy_transport = meshy_transport
    app.state.formnow_transport = formnow_transport
    app.state.proxy_transport = proxy_transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MeshNowError, _handle_meshnow_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)

    # -----------------------------------------------------------------------
    # Generation routes.
    # -----------------------------------------------------------------------

    @app.post("/api/meshy/create", response_model=CreateTaskResponse)
    def create_text_task(body: TextTo3DBody, request: Request) -> CreateTaskResponse:
        if not body.apiKey:
            raise ValidationError("API key is required")
        if not body.prompt:
            raise ValidationError("Prompt is required")
        return _create_task(request, body.apiKey, TextTo3D(body.prompt, body.artStyle))

    @app.post("/api/meshy/image-to-3d", response_model=CreateTaskResponse)
    def create_image_task(body: ImageTo3DBody, request: Request) -> CreateTaskResponse:
        if not body.apiKey:
            raise ValidationError("API key is required")
        if not body.imageUrl:
            raise ValidationError("Image URL is required")
        return _create_task(request, body.apiKey, ImageTo3D(body.imageUrl))

    @app.post("/api/meshy/multi-image-to-3d", response_model=CreateTaskResponse)
    def create_multi_image_task(body: MultiImageTo3DBody, request: Request) -> CreateTaskResponse:
        if not body.apiKey:
            raise ValidationError("API key is required")
        if not body.imageUrls:
            raise ValidationError("At least one image URL is required")
        return _create_task(request, body.apiKey, MultiImageTo3D(tuple(body.imageUrls)))

    @app.get("/api/meshy/status/{task_id}")
    def text_task_status(
        task_id: str, request: Request, x_api_key: Optional[str] = Header(default=None)
    ) -> dict:
        return _task_status(request, x_api_key, task_id, TaskKind.TEXT_TO_3D)

    @app.get("/api/meshy/image-to-3d/status/{task_id}")
    def image_task_status(
        task_id: str, request: Request, x_api_key: Optional[str] = Header(default=None)
    ) -> dict:
        return _task_status(request, x_api_key, task_id, TaskKind.IMAGE_TO_3D)

    @app.get("/api/meshy/multi-image-to-3d/status/{task_id}")
    def multi_image_task_status(
        task_id: str, request: Request, x_api_key: Optional[str] = Header(default=None)
    ) -> dict:
        return _task_status(request, x_api_key, task_id, TaskKind.MULTI_IMAGE_TO_3D)

    # -----------------------------------------------------------------------
    # Upload routes.
    # -----------------------------------------------------------------------

    @app.post("/api/formnow/initialize")
    def initialize_upload(body: InitializeUploadBody, request: Request) -> dict:
        client = _formnow_client(request, request.headers.get(API_KEY_HEADER))
        if body.file_type.upper() not in FileType.__members__:
            client.close()
            raise ValidationError("file_type must be STL or OBJ")
        body.file_type = body.file_type.upper()
        with client:
            return client.create_part_file(body.model_dump(exclude_none=True))

    @app.patch("/api/formnow/update-status/{record_id}")
    def update_upload_status(record_id: str, body: UpdateUploadStatusBody, request: Request) -> dict:
        with _formnow_client(request, request.headers.get(API_KEY_HEADER)) as client:
            return client.update_part_file(record_id, body.model_dump())

    # -----------------------------------------------------------------------
    # Proxy and health.
    # -----------------------------------------------------------------------

    @app.get("/api/proxy")
    def proxy(request: Request, url: Optional[str] = None) -> Response:
        if not url:
            raise ValidationError("URL is required")
        resource = fetch_resource(url, transport=request.app.state.proxy_transport)
        return Response(
            content=resource.content,
            media_type=resource.content_type,
            headers={"Cache-Control": CACHE_CONTROL},
        )

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    """Launch the relay with uvicorn, using the configured host and port."""
    import uvicorn

    configure_logging(config.log_level)
    uvicorn.run(app, host=config.relay_host, port=config.relay_port)


if __name__ == "__main__":
    main()
