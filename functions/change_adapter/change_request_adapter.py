"""
functions/change_adapter/change_request_adapter.py

WHAT THIS FILE IS FOR
---------------------
The object the host (api.py, or any other caller) talks to.

It owns configuration, builds the connector, and exposes:

- connect()                     one health probe; outcome observed via events
- healthcheck(callback=None)    one health probe; returns the AdapterStatus
- get_record(callback=None)     list change requests
- post_record(callback=None)    create one change request
- on(status, handler) / off()   subscribe to ONLINE / OFFLINE

CALLBACK CONTRACT
-----------------
Callbacks are data-first: callback(result, error).
- With a callback, errors are delivered through it and the method
  returns None on error.
- Without a callback, errors are raised to the awaiting caller.

SENTINEL DECODING (boundary only)
---------------------------------
- get_record:  MissingData  -> ["Missing Data Body"] / ["Missing Data Results"]
- post_record: MissingData  -> ChangeRecord() with every field None;
               with_missing=True also hands back the sentinel string,
               as (record, "Missing Data Body" | "Missing Data Results" | None)

Everything below this class works with the tagged MissingData value.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Union

import structlog

from functions.change_adapter.callbacks import RecordCallback, deliver
from functions.change_adapter.errors import AdapterError
from functions.change_adapter.health_monitor import HealthMonitor
from functions.change_adapter.record_service import Connector, RecordService
from functions.change_adapter.response_normalizer import MissingData, decode_sentinel
from functions.change_adapter.status_emitter import StatusEmitter, StatusHandler
from functions.change_adapter.status_normalizer import AdapterStatus
from functions.utils.connector import ServiceNowConnector
from functions.utils.settings import Settings
from schemas.change_record import ChangeRecord

logger = structlog.get_logger(__name__)

RecordList = List[Union[ChangeRecord, str]]
CreatedRecord = Tuple[ChangeRecord, Optional[str]]


class ChangeRequestAdapter:
    """
    ServiceNow change request adapter.

    `adapter_id` is fixed at construction and attached to every status event.
    """

    def __init__(
        self,
        adapter_id: str,
        settings: Settings,
        *,
        connector: Optional[Connector] = None,
        emitter: Optional[StatusEmitter] = None,
    ) -> None:
        self._id = adapter_id
        self.settings = settings
        self.connector = connector if connector is not None else ServiceNowConnector(settings)
        self.emitter = emitter if emitter is not None else StatusEmitter()
        self.records = RecordService(self.connector)
        self.monitor = HealthMonitor(self.records, self.emitter, adapter_id)

    @property
    def id(self) -> str:
        return self._id

    # ------------------------------------------------------------------ #
    # Status events
    # ------------------------------------------------------------------ #
    def on(self, status: AdapterStatus | str, handler: StatusHandler) -> None:
        self.emitter.subscribe(status, handler)

    def off(self, status: AdapterStatus | str, handler: StatusHandler) -> None:
        self.emitter.unsubscribe(status, handler)

    async def connect(self) -> None:
        """Run a single health check; the outcome is only visible through events."""
        logger.info("adapter_connect", adapter_id=self._id, instance_url=str(self.settings.instance_url))
        await self.monitor.healthcheck()

    async def healthcheck(self, callback: Optional[RecordCallback] = None) -> AdapterStatus:
        return await self.monitor.healthcheck(callback)

    # ------------------------------------------------------------------ #
    # Records
    # ------------------------------------------------------------------ #
    async def get_record(
        self,
        callback: Optional[RecordCallback] = None,
        *,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Optional[RecordList]:
        try:
            outcome = await self.records.list_records(query)
        except AdapterError as exc:
            return await self._fail(callback, exc, operation="get_record")

        records: RecordList = [decode_sentinel(outcome)] if isinstance(outcome, MissingData) else list(outcome)
        await deliver(callback, records, None)
        return records

    async def post_record(
        self,
        callback: Optional[RecordCallback] = None,
        *,
        payload: Optional[Mapping[str, Any]] = None,
        with_missing: bool = False,
    ) -> Optional[Union[ChangeRecord, CreatedRecord]]:
        try:
            outcome = await self.records.create_record(payload)
        except AdapterError as exc:
            return await self._fail(callback, exc, operation="post_record")

        missing: Optional[str] = None
        if isinstance(outcome, MissingData):
            logger.warning("post_record_missing_data", adapter_id=self._id, missing=outcome.value)
            record = ChangeRecord()
            missing = decode_sentinel(outcome)
        else:
            record = outcome

        result: Union[ChangeRecord, CreatedRecord] = (record, missing) if with_missing else record
        await deliver(callback, result, None)
        return result

    async def _fail(self, callback: Optional[RecordCallback], exc: AdapterError, *, operation: str) -> None:
        logger.error("adapter_operation_failed", adapter_id=self._id, operation=operation, error=str(exc))
        if callback is None:
            raise exc
        await deliver(callback, None, exc)
        return None
