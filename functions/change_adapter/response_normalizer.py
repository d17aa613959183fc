"""
functions/change_adapter/response_normalizer.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rule* for turning a raw
ServiceNow Table API response into change records.

Given a connector response and a mode, it produces exactly one of:

- LIST mode:   a list of ChangeRecord (empty only if `result` is [])
- SINGLE mode: one ChangeRecord
- MissingData.BODY:    the response carries no body
- MissingData.RESULTS: the parsed body has no `result` field

or raises MalformedBody when the body is present but unreadable.

NORMALIZATION RULES
-------------------
1) No body (None / blank)            -> MissingData.BODY
2) Body not JSON / not a JSON object -> MalformedBody
3) No `result` key, or result=null   -> MissingData.RESULTS
4) LIST:   `result` must be a list of objects; each entry becomes a
           NEW ChangeRecord (entries never share a record instance)
   SINGLE: `result` must be an object; it becomes one NEW ChangeRecord
5) Unknown fields are ignored; missing fields map to None
6) A value that cannot be coerced into its field type -> MalformedBody

SENTINELS
---------
MissingData is a str-valued Enum, so `MissingData.BODY == "Missing Data Body"`.
Internally callers can branch on the tag; at the facade boundary the
value is decoded back to the plain string callers have always seen.

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Perform HTTP calls
- Decide ONLINE/OFFLINE status
- Swallow parse errors as sentinels

It performs deterministic mapping only (plus logging).
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, List, Union

import structlog
from pydantic import ValidationError

from functions.change_adapter.errors import MalformedBody
from functions.utils.connector import ConnectorResponse
from schemas.change_record import ChangeRecord

logger = structlog.get_logger(__name__)

BODY_SNIPPET_CHARS = 500


class NormalizeMode(str, Enum):
    LIST = "list"
    SINGLE = "single"


class MissingData(str, Enum):
    """In-band marker for a reachable instance returning incomplete data."""

    BODY = "Missing Data Body"
    RESULTS = "Missing Data Results"


NormalizedResult = Union[List[ChangeRecord], ChangeRecord, MissingData]


def normalize_response(response: ConnectorResponse, mode: NormalizeMode) -> NormalizedResult:
    body = getattr(response, "body", None)
    if body is None or (isinstance(body, (str, bytes)) and not body.strip()):
        logger.warning("servicenow_response_missing_body", mode=mode.value)
        return MissingData.BODY

    try:
        parsed = json.loads(body)
    except (TypeError, ValueError) as exc:
        logger.error(
            "servicenow_response_not_json",
            mode=mode.value,
            body_snippet=_snippet(body),
            error=str(exc),
        )
        raise MalformedBody(f"Response body is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise MalformedBody(f"Response body must be a JSON object, got {type(parsed).__name__}")

    result = parsed.get("result")
    if result is None:
        logger.warning("servicenow_response_missing_result", mode=mode.value, keys=sorted(parsed.keys()))
        return MissingData.RESULTS

    if mode is NormalizeMode.LIST:
        if not isinstance(result, list):
            raise MalformedBody(f"Expected `result` to be a list, got {type(result).__name__}")
        records = [_to_record(item, index=i) for i, item in enumerate(result)]
        logger.info("servicenow_response_normalized", mode=mode.value, record_count=len(records))
        return records

    if not isinstance(result, dict):
        raise MalformedBody(f"Expected `result` to be an object, got {type(result).__name__}")
    record = _to_record(result)
    logger.info(
        "servicenow_response_normalized",
        mode=mode.value,
        change_ticket_number=record.change_ticket_number,
    )
    return record


def decode_sentinel(value: Any) -> Any:
    """Return the plain string for a MissingData tag; anything else unchanged."""
    if isinstance(value, MissingData):
        return value.value
    return value


# ------------------------------------------------------------------ #
# Internal helpers
# ------------------------------------------------------------------ #
def _to_record(item: Any, index: int | None = None) -> ChangeRecord:
    if not isinstance(item, dict):
        raise MalformedBody(
            f"Expected change request object at index {index}, got {type(item).__name__}"
            if index is not None
            else f"Expected change request object, got {type(item).__name__}"
        )
    try:
        return ChangeRecord.from_raw(item)
    except ValidationError as exc:
        raise MalformedBody(f"Change request fields have unexpected types: {exc.errors()}") from exc


def _snippet(body: Any) -> str:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return str(body)[:BODY_SNIPPET_CHARS]
