"""
functions/change_adapter/status_emitter.py

Synchronous in-process fan-out of ONLINE/OFFLINE events.

Subscribers are held in an explicit registry owned by the emitter
instance (injected into the adapter, not inherited). `emit()` calls
every handler currently registered for the status, in subscription
order, with the payload `{"id": <adapter id>}`. No buffering, no replay
to late subscribers. Emitting with no subscribers is a no-op.

A handler that raises is logged and skipped; the remaining handlers are
still notified and the exception does not reach the emitting probe.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from functions.change_adapter.status_normalizer import AdapterStatus

logger = structlog.get_logger(__name__)

StatusHandler = Callable[[Mapping[str, Any]], Any]


class StatusEmitter:
    def __init__(self, subscribers: Optional[Dict[AdapterStatus, List[StatusHandler]]] = None) -> None:
        self._subscribers: Dict[AdapterStatus, List[StatusHandler]] = {
            status: list((subscribers or {}).get(status, [])) for status in AdapterStatus
        }

    def subscribe(self, status: AdapterStatus | str, handler: StatusHandler) -> None:
        self._subscribers[AdapterStatus(status)].append(handler)

    def unsubscribe(self, status: AdapterStatus | str, handler: StatusHandler) -> None:
        handlers = self._subscribers[AdapterStatus(status)]
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, status: AdapterStatus | str) -> int:
        return len(self._subscribers[AdapterStatus(status)])

    def emit(self, status: AdapterStatus | str, payload: Mapping[str, Any]) -> int:
        """Notify current subscribers; returns how many were notified."""
        status = AdapterStatus(status)
        # snapshot so handlers may (un)subscribe while being notified
        handlers = list(self._subscribers[status])
        logger.debug("adapter_status_emit", status=status.value, subscribers=len(handlers), adapter_id=payload.get("id"))
        for handler in handlers:
            try:
                handler(dict(payload))
            except Exception:
                logger.exception(
                    "adapter_status_handler_failed",
                    status=status.value,
                    adapter_id=payload.get("id"),
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )
        return len(handlers)
