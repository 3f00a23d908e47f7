"""FastAPI REST interface for Acuity laser gauge acquisition.

Single-process, single-gauge lifecycle with a lock-guarded ConnectionHandle.

Error mapping:
- InvalidArgument → 400
- ParseError → 502
- DeviceUnavailable, TransportError → 503
- ReadTimeout → 504
- Other exceptions → 500
"""

import logging
import os
from threading import RLock
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from acuity_lib import controller
from acuity_lib.acquisition import validate_timeout_policy
from acuity_lib.connection import ConnectionHandle
from acuity_lib.errors import (
    DeviceUnavailable,
    InvalidArgument,
    ParseError,
    ReadTimeout,
    TransportError,
)
from acuity_lib.models import TimeoutPolicy

# =============================================================================
# Environment Configuration
# =============================================================================

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "9160"))
DEFAULT_SERIAL_PORT = os.getenv("SERIAL_PORT", "/dev/ttyUSB0")
DEFAULT_SERIAL_BAUD = int(os.getenv("SERIAL_BAUD", "9600"))

API_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

try:
    DEFAULT_TIMEOUT_POLICY = validate_timeout_policy(os.getenv("ACUITY_TIMEOUT_POLICY", "skip"))
except InvalidArgument as e:
    logger.warning(f"Ignoring ACUITY_TIMEOUT_POLICY: {e}; using skip")
    DEFAULT_TIMEOUT_POLICY = TimeoutPolicy.SKIP

# =============================================================================
# Global Singletons
# =============================================================================

_handle: Optional[ConnectionHandle] = None
_lock = RLock()  # Protects state-changing operations

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="Acuity Gauge API",
    description="REST interface for Acuity 3-channel laser gauges",
    version=API_VERSION
)

# =============================================================================
# Request/Response Models
# =============================================================================

class ModeRequest(BaseModel):
    """Request body for POST /mode. Validated by the library, not pydantic."""
    mode: Any


class DeviceResponse(BaseModel):
    """One entry of GET /devices."""
    name: str
    description: str
    manufacturer: str
    product_id: Optional[int]
    vendor_id: Optional[int]


class ConnectResponse(BaseModel):
    """Response for POST /connect."""
    status: str
    device: str
    mode: str


class StatusResponse(BaseModel):
    """Response for GET /status."""
    connected: bool
    device: Optional[str]
    mode: Optional[str]


class ConfigResponse(BaseModel):
    """Response for GET /config."""
    device: str
    settings: Dict[str, Any]


class BatchResponse(BaseModel):
    """Response for POST /acquire."""
    complete: bool
    count: int
    records: List[Dict[str, float]]


# =============================================================================
# Exception Handlers
# =============================================================================

def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    logger.error(f"{type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument):
    """Map InvalidArgument to 400 Bad Request."""
    return _error_response(400, exc)


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    """Map ParseError to 502 Bad Gateway (the gauge sent garbage)."""
    return _error_response(502, exc)


@app.exception_handler(DeviceUnavailable)
async def device_unavailable_handler(request: Request, exc: DeviceUnavailable):
    """Map DeviceUnavailable to 503 Service Unavailable."""
    return _error_response(503, exc)


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    """Map TransportError to 503 Service Unavailable."""
    return _error_response(503, exc)


@app.exception_handler(ReadTimeout)
async def read_timeout_handler(request: Request, exc: ReadTimeout):
    """Map ReadTimeout to 504 Gateway Timeout."""
    return _error_response(504, exc)


def _require_handle() -> ConnectionHandle:
    if _handle is None:
        raise HTTPException(status_code=503, detail="Not connected")
    return _handle


# =============================================================================
# Read-Only Endpoints
# =============================================================================

@app.get("/")
async def root():
    """Service health check."""
    return {
        "service": "Acuity Gauge API",
        "version": API_VERSION,
        "status": "online"
    }


@app.get("/devices", response_model=List[DeviceResponse])
async def get_devices():
    """List serial ports a gauge could be attached to.

    Raises:
        503: If no ports are present (DeviceUnavailable)
    """
    devices = controller.list_devices()
    return [
        DeviceResponse(
            name=name,
            description=info.description,
            manufacturer=info.manufacturer,
            product_id=info.product_id,
            vendor_id=info.vendor_id,
        )
        for name, info in devices.items()
    ]


@app.get("/status", response_model=StatusResponse)
async def get_status():
    """Get connection status and current read mode."""
    handle = _handle
    if handle is None or not controller.is_alive(handle):
        return StatusResponse(connected=False, device=None, mode=None)

    return StatusResponse(connected=True, device=handle.name, mode=handle.mode.value)


@app.get("/config", response_model=ConfigResponse)
async def get_config():
    """Get device name and serial settings of the open session.

    Raises:
        503: If not connected
    """
    handle = _require_handle()
    device, settings = controller.get_config(handle)
    return ConfigResponse(device=device, settings=settings)


# =============================================================================
# Lifecycle & Acquisition Endpoints
# =============================================================================

@app.post("/connect", response_model=ConnectResponse)
def connect(
    port: str = Query(DEFAULT_SERIAL_PORT, description="Serial port (e.g., /dev/ttyUSB0)"),
    mode: str = Query("passive", description="Read mode: passive or active"),
    baud: int = Query(DEFAULT_SERIAL_BAUD, description="Baud rate")
):
    """Open a session on the gauge.

    Raises:
        400: If already connected or mode/baud is invalid
        503: If port cannot be opened (DeviceUnavailable)
    """
    global _handle, _lock

    with _lock:
        if _handle is not None:
            raise HTTPException(
                status_code=400,
                detail="Already connected. Disconnect first."
            )

        _handle = controller.connect(port, mode=mode, baud=baud)
        logger.info(f"Connected to gauge on {port}")
        return ConnectResponse(status="connected", device=_handle.name, mode=_handle.mode.value)


@app.post("/disconnect")
def disconnect():
    """Close the session if one is open.

    Does not wait for a batch in flight; that batch fails with 503 once
    the session is released.

    Returns:
        {"status": "disconnected"}
    """
    global _handle, _lock

    with _lock:
        handle, _handle = _handle, None

    if handle is not None:
        controller.disconnect(handle)

    return {"status": "disconnected"}


@app.post("/mode")
def set_mode(request: ModeRequest):
    """Switch between passive and active reads.

    Raises:
        400: If mode is not "passive" or "active"
        503: If not connected
    """
    with _lock:
        handle = _require_handle()

    mode = controller.set_read_mode(handle, request.mode)
    return {"mode": mode.value}


@app.post("/acquire", response_model=BatchResponse)
def acquire(
    policy: Optional[str] = Query(
        None, description="Active-mode timeout policy: skip or fail"
    )
):
    """Acquire one batch of readings.

    Runs in the threadpool because a batch blocks on serial reads. The
    handle lock, not the module lock, keeps batches one at a time.

    Raises:
        502: If the gauge sent a malformed line (ParseError)
        503: If not connected or the session failed
        504: On an active-mode timeout under the fail policy
    """
    with _lock:
        handle = _require_handle()

    batch = controller.acquire_batch(handle, timeout_policy=policy or DEFAULT_TIMEOUT_POLICY)

    return BatchResponse(
        complete=batch.complete,
        count=len(batch),
        records=[record.as_dict() for record in batch],
    )


if __name__ == "__main__":
    uvicorn.run(app, host=API_HOST, port=API_PORT)
