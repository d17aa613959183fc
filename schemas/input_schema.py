# -------------------------------------------------------------------
# schemas/input_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **public request schema** for creating a
# change request through POST /api/v1/change-requests.
#
# KEY DESIGN DECISION
# -------------------
# Both camelCase and snake_case JSON field names are accepted:
#   - snake_case: short_description, work_start, work_end
#   - camelCase:  shortDescription, workStart, workEnd
#
# Implemented via alias=camelCase on each field and
# populate_by_name=True in model_config.
#
# Every field is optional. An empty body creates an empty change
# request, the same as a bare Table API POST.
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT call ServiceNow or normalize responses.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeRequestCreate(BaseModel):
    """
    Request payload for change request creation.

    Supports both snake_case and camelCase JSON field names.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "shortDescription": "Patch core routers",
                "description": "Apply vendor patch to edge routers",
                "priority": "3",
                "workStart": "2026-10-20 01:00:00",
                "workEnd": "2026-10-20 03:00:00",
            }
        },
    )

    short_description: Optional[str] = Field(None, alias="shortDescription")
    description: Optional[str] = None
    priority: Optional[str] = Field(None, min_length=1)
    work_start: Optional[str] = Field(None, alias="workStart")
    work_end: Optional[str] = Field(None, alias="workEnd")

    def to_servicenow_payload(self) -> Dict[str, Any]:
        """ServiceNow field names are snake_case already; drop unset values."""
        return self.model_dump(by_alias=False, exclude_none=True)
