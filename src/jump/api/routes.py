"""FastAPI routes for the jump API."""

import logging
import time
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from jump import __version__
from jump.api.models import (
    ArpLookupRequest,
    ArpLookupResponse,
    CreateDeviceRequest,
    DeviceResponse,
    ErrorResponse,
    ExportedDevice,
    ImportDeviceRequest,
    UpdateDeviceRequest,
    WakeResponse,
)
from jump.config.loader import AppConfig
from jump.core import devices as ops
from jump.core.arp import ArpResolver, ArpTableSource
from jump.core.errors import ErrorCategory, JumpError
from jump.core.storage import DeviceStore

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_STATUS_BY_CATEGORY = {
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.INTERNAL: 500,
}

_ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tag each request with an X-Request-ID and log its outcome and latency."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s → %d (%.1f ms) [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[DeviceStore] = None,
    arp_source: Optional[ArpTableSource] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application config. Defaults are used if None.
        store: Device store. Loaded from ``config.storage.file_path`` if None.
        arp_source: ARP table source. The local ``ping``/``arp`` tools if None.

    Returns:
        FastAPI application instance

    Raises:
        StorageError: If the storage file exists but cannot be loaded
    """
    config = config or AppConfig()
    if store is None:
        store = DeviceStore.load(config.storage.file_path)

    app = FastAPI(
        title="jump",
        version=__version__,
        description="Wake-on-LAN API for managing and waking network devices",
    )

    # ── App state ─────────────────────────────────────────────────────────────
    app.state.config = config
    app.state.store = store
    app.state.resolver = ArpResolver(arp_source)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    # ── Errors ────────────────────────────────────────────────────────────────

    @app.exception_handler(JumpError)
    async def handle_jump_error(request: Request, exc: JumpError) -> JSONResponse:
        status_code = _STATUS_BY_CATEGORY[exc.category]
        if exc.category is ErrorCategory.INTERNAL:
            logger.error(
                "Request failed: %s %s → %d: %s",
                request.method,
                request.url.path,
                status_code,
                exc,
            )
            message = "Internal server error"
        else:
            logger.warning(
                "Request failed: %s %s → %d: %s",
                request.method,
                request.url.path,
                status_code,
                exc,
            )
            message = str(exc)
        return JSONResponse(
            ErrorResponse(message=message).model_dump(), status_code=status_code
        )

    # ── Health ────────────────────────────────────────────────────────────────

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "version": __version__, "devices": len(store)}

    # ── Devices ───────────────────────────────────────────────────────────────

    @app.get("/api/devices", response_model=list[DeviceResponse], tags=["devices"])
    def get_devices() -> list[DeviceResponse]:
        devices = ops.list_devices(store)
        logger.debug("Devices retrieved: %d", len(devices))
        return [DeviceResponse.from_device(d) for d in devices]

    @app.post(
        "/api/devices",
        response_model=DeviceResponse,
        status_code=201,
        responses=_ERROR_RESPONSES,
        tags=["devices"],
    )
    def create_device(req: CreateDeviceRequest) -> DeviceResponse:
        device = ops.create_device(
            store,
            name=req.name,
            mac_address=req.mac_address,
            ip_address=req.ip_address,
            port=req.port,
            description=req.description,
            default_port=config.wol.default_port,
        )
        return DeviceResponse.from_device(device)

    # Declared before /api/devices/{device_id} so "export" is not taken as an id.
    @app.get("/api/devices/export", response_model=list[ExportedDevice], tags=["devices"])
    def export_devices() -> list[ExportedDevice]:
        return [ExportedDevice(**d) for d in ops.export_devices(store)]

    @app.post(
        "/api/devices/import",
        response_model=list[DeviceResponse],
        status_code=201,
        responses=_ERROR_RESPONSES,
        tags=["devices"],
    )
    def import_devices(req: list[ImportDeviceRequest]) -> list[DeviceResponse]:
        imported = ops.import_devices(
            store,
            [r.model_dump() for r in req],
            default_port=config.wol.default_port,
        )
        return [DeviceResponse.from_device(d) for d in imported]

    @app.get(
        "/api/devices/{device_id}",
        response_model=DeviceResponse,
        responses=_ERROR_RESPONSES,
        tags=["devices"],
    )
    def get_device(device_id: str) -> DeviceResponse:
        return DeviceResponse.from_device(ops.get_device(store, device_id))

    @app.put(
        "/api/devices/{device_id}",
        response_model=DeviceResponse,
        responses=_ERROR_RESPONSES,
        tags=["devices"],
    )
    def update_device(device_id: str, req: UpdateDeviceRequest) -> DeviceResponse:
        updated = ops.update_device(store, device_id, req.model_dump(exclude_unset=True))
        return DeviceResponse.from_device(updated)

    @app.delete(
        "/api/devices/{device_id}",
        status_code=204,
        responses=_ERROR_RESPONSES,
        tags=["devices"],
    )
    def delete_device(device_id: str) -> Response:
        ops.delete_device(store, device_id)
        return Response(status_code=204)

    # ── Wake-on-LAN ───────────────────────────────────────────────────────────

    @app.post(
        "/api/devices/{device_id}/wake",
        response_model=WakeResponse,
        responses=_ERROR_RESPONSES,
        tags=["wol"],
    )
    def wake_device(device_id: str) -> WakeResponse:
        device = ops.wake_device(store, device_id)
        return WakeResponse(
            success=True,
            message=f"Wake-on-LAN packet sent to {device.name}",
            device_name=device.name,
        )

    # ── Network ───────────────────────────────────────────────────────────────

    @app.post(
        "/api/arp-lookup",
        response_model=ArpLookupResponse,
        responses=_ERROR_RESPONSES,
        tags=["network"],
    )
    def arp_lookup(req: ArpLookupRequest) -> ArpLookupResponse:
        # Plain def: FastAPI runs this in its threadpool while ping/arp block.
        return ArpLookupResponse(mac=app.state.resolver.lookup_mac(req.ip))

    # ── Frontend ──────────────────────────────────────────────────────────────

    static_dir = config.server.static_dir
    if static_dir and Path(static_dir).is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="frontend")
        logger.info("Serving frontend from %s", static_dir)

    return app
