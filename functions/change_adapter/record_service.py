"""
functions/change_adapter/record_service.py

WHAT THIS FILE IS FOR
---------------------
Orchestrates ONE connector call through the response normalizer.

CALL FLOW CONTEXT
-----------------
ChangeRequestAdapter / HealthMonitor
  -> RecordService.list_records()   -> connector.get()  -> normalize (LIST)
  -> RecordService.create_record()  -> connector.post() -> normalize (SINGLE)

ERROR HANDLING RULES
--------------------
- TransportError from the connector is propagated unchanged
- MalformedBody from the normalizer is propagated unchanged
- MissingData sentinels are returned as data, not raised
- No retries here: one invocation == one connector call
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol, Union

import structlog

from functions.change_adapter.errors import TransportError
from functions.change_adapter.response_normalizer import MissingData, NormalizeMode, normalize_response
from functions.utils.connector import ConnectorResponse
from schemas.change_record import ChangeRecord

logger = structlog.get_logger(__name__)


class Connector(Protocol):
    """Collaborator contract: one awaitable call, one outcome."""

    async def get(self, query: Optional[Mapping[str, Any]] = None) -> ConnectorResponse: ...

    async def post(self, payload: Optional[Mapping[str, Any]] = None) -> ConnectorResponse: ...


class RecordService:
    def __init__(self, connector: Connector) -> None:
        self.connector = connector

    async def list_records(
        self, query: Optional[Mapping[str, Any]] = None
    ) -> Union[List[ChangeRecord], MissingData]:
        try:
            response = await self.connector.get(query)
        except TransportError as exc:
            logger.error("servicenow_get_failed", error=str(exc), status_code=exc.status_code)
            raise

        logger.debug("servicenow_get_response", status_code=response.status_code)
        return normalize_response(response, NormalizeMode.LIST)

    async def create_record(
        self, payload: Optional[Mapping[str, Any]] = None
    ) -> Union[ChangeRecord, MissingData]:
        try:
            response = await self.connector.post(payload)
        except TransportError as exc:
            logger.error("servicenow_post_failed", error=str(exc), status_code=exc.status_code)
            raise

        logger.debug("servicenow_post_response", status_code=response.status_code)
        return normalize_response(response, NormalizeMode.SINGLE)
