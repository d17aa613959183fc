"""
functions/change_adapter/health_monitor.py

WHAT THIS FILE IS FOR
---------------------
Runs one health probe (a list_records() call) and turns its outcome
into an ONLINE/OFFLINE event.

TRANSITION RULE
---------------
- list_records() raised AdapterError -> OFFLINE, emit OFFLINE,
                                        callback(None, error)
- list_records() returned anything   -> ONLINE, emit ONLINE,
                                        callback(result, None)

Empty lists and MissingData sentinels count as ONLINE: the instance
answered. Classification itself lives in status_normalizer.py.

The monitor remembers the previous status ONLY to log transitions.
Nothing reads it back; subscribers learn the status from events.
"""

from __future__ import annotations

from typing import Optional

import structlog

from functions.change_adapter.callbacks import RecordCallback, deliver
from functions.change_adapter.errors import AdapterError
from functions.change_adapter.record_service import RecordService
from functions.change_adapter.status_emitter import StatusEmitter
from functions.change_adapter.status_normalizer import AdapterStatus, classify_probe_outcome

logger = structlog.get_logger(__name__)


class HealthMonitor:
    def __init__(self, records: RecordService, emitter: StatusEmitter, adapter_id: str) -> None:
        self.records = records
        self.emitter = emitter
        self.adapter_id = adapter_id
        self._previous: Optional[AdapterStatus] = None

    async def healthcheck(self, callback: Optional[RecordCallback] = None) -> AdapterStatus:
        try:
            result = await self.records.list_records()
        except AdapterError as exc:
            status = classify_probe_outcome(exc)
            self._log_transition(status, error=str(exc))
            self.emitter.emit(status, {"id": self.adapter_id})
            await deliver(callback, None, exc)
            return status

        status = classify_probe_outcome(None)
        self._log_transition(status)
        self.emitter.emit(status, {"id": self.adapter_id})
        await deliver(callback, result, None)
        return status

    def _log_transition(self, status: AdapterStatus, error: Optional[str] = None) -> None:
        previous = self._previous.value if self._previous else None
        self._previous = status

        if status is AdapterStatus.OFFLINE:
            logger.warning(
                "adapter_status_transition",
                adapter_id=self.adapter_id,
                previous=previous,
                current=status.value,
                error=error,
            )
        else:
            logger.info(
                "adapter_status_transition",
                adapter_id=self.adapter_id,
                previous=previous,
                current=status.value,
            )
