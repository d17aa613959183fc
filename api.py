"""
api.py

WHAT THIS FILE IS FOR
---------------------
This module defines the FastAPI application entrypoint for the
ServiceNow change request adapter.

It is responsible for:
- Creating the FastAPI app instance (title/version/description)
- Building ONE ChangeRequestAdapter from Settings and subscribing a
  logging listener to its ONLINE / OFFLINE events
- Registering middleware for:
    - Correlation ID propagation (X-Correlation-Id)
    - API version validation (X-API-Version)
- Defining standard error responses using a consistent schema:
    {code, message, subErrors, timestamp, correlationId}
- Exposing HTTP endpoints:
    - GET  /healthz                  (liveness, no ServiceNow call)
    - GET  /health                   (one health probe: ONLINE/OFFLINE)
    - GET  /api/v1/change-requests   (list change requests)
    - POST /api/v1/change-requests   (create one change request)

ERROR MAPPING
-------------
- TransportError           -> 502 SERVICENOW_CALL_FAILED
- MalformedBody            -> 502 MALFORMED_RESPONSE
- RequestValidationError   -> 400 VALIDATION_FAILED

Response payloads are camelCase across nested objects.

DESIGN INTENT
-------------
This file contains ONLY the HTTP layer. Normalization, health
classification and transport live in functions/*.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Mapping, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from functions.change_adapter.change_request_adapter import ChangeRequestAdapter
from functions.change_adapter.errors import AdapterError, MalformedBody
from functions.change_adapter.status_normalizer import AdapterStatus, normalize_envelope_status
from functions.utils.json_naming_converter import convert_keys_snake_to_camel
from functions.utils.logging_config import configure_logging
from functions.utils.settings import get_settings
from schemas.change_record import ChangeRecord
from schemas.input_schema import ChangeRequestCreate
from schemas.output_schema import AdapterEnvelope, ChangeRecordCreated, ChangeRecordList, HealthResponse

logger = structlog.get_logger(__name__)

settings = get_settings()
configure_logging(settings.log_level, environment=settings.environment)


def _log_status_event(status: AdapterStatus):
    def _listener(event: Mapping[str, Any]) -> None:
        log = logger.warning if status is AdapterStatus.OFFLINE else logger.info
        log("adapter_status_event", status=status.value, adapter_id=event.get("id"))

    return _listener


def build_adapter() -> ChangeRequestAdapter:
    built = ChangeRequestAdapter(settings.adapter_id, settings)
    for status in AdapterStatus:
        built.on(status, _log_status_event(status))
    return built


adapter = build_adapter()

app = FastAPI(
    title="ServiceNow Change Request Adapter",
    version="1.0.0",
    description="Health probe, listing and creation of ServiceNow change requests.",
)

CORRELATION_HEADER = "X-Correlation-Id"
API_VERSION_HEADER = "X-API-Version"
SUPPORTED_API_VERSIONS = {"1"}


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_or_create_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER)
    return incoming.strip() if incoming else f"corr_{uuid.uuid4().hex}"


def _get_api_version(request: Request) -> str:
    v = getattr(request.state, "api_version", None)
    return str(v) if v else request.headers.get(API_VERSION_HEADER, "1").strip() or "1"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", f"corr_{uuid.uuid4().hex}")


def _std_error(
    *,
    code: str,
    message: str,
    correlation_id: str,
    http_status: int,
    api_version: str = "1",
    sub_errors: Optional[list[dict[str, Any]]] = None,
) -> JSONResponse:
    payload = {
        "code": code,
        "message": message,
        "subErrors": sub_errors or [],
        "timestamp": int(time.time()),
        "correlationId": correlation_id,
    }
    headers = {
        CORRELATION_HEADER: correlation_id,
        API_VERSION_HEADER: api_version,
    }
    return JSONResponse(status_code=http_status, content=payload, headers=headers)


def _upstream_failure(exc: AdapterError) -> HTTPException:
    code = "MALFORMED_RESPONSE" if isinstance(exc, MalformedBody) else "SERVICENOW_CALL_FAILED"
    return HTTPException(status_code=502, detail={"code": code, "message": str(exc)})


def _envelope_response(envelope: AdapterEnvelope, *, http_status: int = 200) -> JSONResponse:
    payload_dict = convert_keys_snake_to_camel(envelope.model_dump())
    return JSONResponse(status_code=http_status, content=payload_dict)


def _debug_metadata() -> Optional[dict[str, Any]]:
    if not settings.enable_debug_metadata:
        return None
    return {"adapterId": adapter.id, "table": settings.change_request_table}


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = _get_or_create_correlation_id(request)
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.middleware("http")
async def api_version_middleware(request: Request, call_next):
    correlation_id = _correlation_id(request)
    version = request.headers.get(API_VERSION_HEADER, "1").strip() or "1"

    if version not in SUPPORTED_API_VERSIONS:
        return _std_error(
            code="INVALID_FIELD_VALUE",
            message="Invalid API version",
            correlation_id=correlation_id,
            http_status=400,
            sub_errors=[
                {
                    "field": API_VERSION_HEADER,
                    "errors": [{"code": "isIn", "message": "Supported versions: 1"}],
                }
            ],
        )

    request.state.api_version = version
    response = await call_next(request)
    response.headers[API_VERSION_HEADER] = version
    return response


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    correlation_id = _correlation_id(request)
    api_version = _get_api_version(request)

    sub_errors: list[dict[str, Any]] = []
    for err in exc.errors():
        field = ".".join(str(x) for x in err.get("loc", []) if x != "body") or "body"
        sub_errors.append(
            {
                "field": field,
                "errors": [{"code": err.get("type"), "message": err.get("msg")}],
            }
        )

    logger.info(
        "request_validation_failed",
        correlation_id=correlation_id,
        error_count=len(sub_errors),
    )

    return _std_error(
        code="VALIDATION_FAILED",
        message="Validation failed",
        correlation_id=correlation_id,
        http_status=400,
        api_version=api_version,
        sub_errors=sub_errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    correlation_id = _correlation_id(request)
    api_version = _get_api_version(request)

    logger.warning(
        "http_exception",
        correlation_id=correlation_id,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )

    message = str(exc.detail.get("message")) if isinstance(exc.detail, dict) else str(exc.detail)
    sub_errors: list[dict[str, Any]] = []

    if isinstance(exc.detail, dict) and exc.detail.get("code"):
        sub_errors.append(
            {
                "field": "servicenow",
                "errors": [{"code": exc.detail["code"], "message": message}],
            }
        )

    return _std_error(
        code="BAD_GATEWAY" if exc.status_code >= 500 else "HTTP_ERROR",
        message=message,
        correlation_id=correlation_id,
        http_status=exc.status_code,
        api_version=api_version,
        sub_errors=sub_errors,
    )


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------
@app.get("/healthz")
async def liveness():
    return {
        "status": "ok",
        "service": settings.service_name,
        "environment": settings.environment,
    }


@app.get("/health")
async def health() -> JSONResponse:
    adapter_status = await adapter.healthcheck()
    online = adapter_status is AdapterStatus.ONLINE
    body = HealthResponse(
        status="ok" if online else "unavailable",
        adapter_status=adapter_status.value,
        adapter_id=adapter.id,
    )
    return JSONResponse(
        status_code=200 if online else 503,
        content=convert_keys_snake_to_camel(body.model_dump()),
    )


@app.get("/api/v1/change-requests", response_model=AdapterEnvelope)
async def list_change_requests(request: Request) -> JSONResponse:
    correlation_id = _correlation_id(request)

    try:
        outcome = await adapter.get_record()
    except AdapterError as exc:
        raise _upstream_failure(exc)

    # the facade hands sentinels back as plain strings in the list
    missing = next((item for item in outcome or [] if isinstance(item, str)), None)
    records = [item for item in outcome or [] if isinstance(item, ChangeRecord)]

    logger.info(
        "change_requests_listed",
        correlation_id=correlation_id,
        record_count=len(records),
        missing_data=missing,
    )

    envelope = AdapterEnvelope(
        status=normalize_envelope_status(http_status=200),
        correlation_id=correlation_id,
        data=ChangeRecordList(records=records, missing_data=missing),
        metadata=_debug_metadata(),
    )
    return _envelope_response(envelope)


@app.post("/api/v1/change-requests", response_model=AdapterEnvelope)
async def create_change_request(
    request: Request,
    payload: Optional[ChangeRequestCreate] = None,
) -> JSONResponse:
    correlation_id = _correlation_id(request)
    body = payload.to_servicenow_payload() if payload is not None else None

    try:
        record, missing = await adapter.post_record(payload=body, with_missing=True)
    except AdapterError as exc:
        raise _upstream_failure(exc)

    logger.info(
        "change_request_created",
        correlation_id=correlation_id,
        change_ticket_number=record.change_ticket_number,
        missing_data=missing,
    )

    envelope = AdapterEnvelope(
        status=normalize_envelope_status(http_status=201),
        correlation_id=correlation_id,
        data=ChangeRecordCreated(record=record, missing_data=missing),
        metadata=_debug_metadata(),
    )
    return _envelope_response(envelope, http_status=201)
