# -------------------------------------------------------------------
# schemas/output_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **internal response schemas** used by the
# HTTP surface of the change request adapter.
#
# NAMING CONVENTION (IMPORTANT)
# -----------------------------
# All fields in this file use **snake_case** by design.
#
# At the API boundary (in api.py), response objects are converted to
# **camelCase JSON** using:
#     convert_keys_snake_to_camel()
#
# DO NOT rename fields here to camelCase.
#
# MISSING DATA
# ------------
# `missing_data` carries the sentinel string ("Missing Data Body" /
# "Missing Data Results") when ServiceNow answered without usable data.
# This keeps three outcomes distinguishable on the wire:
#   - records=[]  missing_data=None      -> instance has no records
#   - records=[]  missing_data="Missing Data Body" -> incomplete payload
#   - HTTP 502 error envelope            -> call failed
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.change_record import ChangeRecord


class ChangeRecordList(BaseModel):
    records: List[ChangeRecord] = Field(default_factory=list)
    missing_data: Optional[str] = None


class ChangeRecordCreated(BaseModel):
    record: ChangeRecord
    missing_data: Optional[str] = None


class AdapterEnvelope(BaseModel):
    """
    Standard response envelope.

    NOTE:
    - This schema is INTERNAL and uses snake_case.
    - Keys are converted to camelCase at the API boundary.
    """

    model_config = {"extra": "forbid"}

    # Contract:
    #   HTTP < 400  -> status = "success"
    #   HTTP >= 400 -> status = "error"
    status: Literal["success", "error"] = "success"

    data: Optional[ChangeRecordList | ChangeRecordCreated] = None

    # Always injected by middleware / api.py
    correlation_id: Optional[str] = None

    # Debug-only metadata (e.g., adapter id)
    metadata: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: Literal["ok", "unavailable"]
    adapter_status: Literal["ONLINE", "OFFLINE"]
    adapter_id: str
