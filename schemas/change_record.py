# -------------------------------------------------------------------
# schemas/change_record.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **canonical change-request record** that
# every ServiceNow payload is normalized into.
#
# FIELD MAPPING (canonical <- ServiceNow)
# --------------------------------------
#   change_ticket_number  <- number
#   active                <- active
#   priority              <- priority
#   description           <- description
#   work_start            <- work_start
#   work_end              <- work_end
#   change_ticket_key     <- sys_id
#
# Every field defaults to None. A record is only ever populated from
# the raw object it was built from: `from_raw()` always returns a NEW
# instance, so two records never share state.
#
# NAMING CONVENTION
# -----------------
# Fields use snake_case. camelCase conversion for the HTTP surface
# happens at the API boundary (convert_keys_snake_to_camel).
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict

# canonical field -> ServiceNow source field
FIELD_MAP: Dict[str, str] = {
    "change_ticket_number": "number",
    "active": "active",
    "priority": "priority",
    "description": "description",
    "work_start": "work_start",
    "work_end": "work_end",
    "change_ticket_key": "sys_id",
}


class ChangeRecord(BaseModel):
    """
    Canonical change request.

    Output-only shape; unknown source fields are ignored and missing
    source fields stay None.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    change_ticket_number: Optional[str] = None
    active: Optional[bool] = None
    priority: Optional[str] = None
    description: Optional[str] = None
    work_start: Optional[str] = None
    work_end: Optional[str] = None
    change_ticket_key: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ChangeRecord":
        """
        Build a fresh record from one raw ServiceNow change_request object.

        Raises pydantic.ValidationError if a mapped value cannot be coerced
        into its field type (e.g. active="maybe").
        """
        mapped = {field: raw.get(source) for field, source in FIELD_MAP.items()}
        return cls.model_validate(mapped)
