"""
functions/change_adapter/status_normalizer.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rules* for turning outcomes
into status values.

ADAPTER STATUS (health probe)
-----------------------------
Reachability is judged on transport/parse success only:

- probe raised an error               -> OFFLINE
- probe returned anything (records,
  an empty list, a MissingData tag)   -> ONLINE

A reachable instance returning an empty or incomplete payload is ONLINE.

A body that cannot be parsed at all (MalformedBody) arrives as an error
and therefore maps to OFFLINE. The transition rule is keyed on "the
probe yielded an error", and MalformedBody is one. In practice an
unparseable answer comes from something standing in front of the
instance (a proxy or login page) that cannot serve records. Only an
absent body or an absent `result` (the MissingData tags) stays ONLINE.

There is no stored "current status"; the status is recomputed from the
latest probe outcome every time.

ENVELOPE STATUS (HTTP surface)
------------------------------
- HTTP status < 400  -> "success"
- HTTP status >= 400 -> "error"

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT perform I/O, log, or emit events.
It performs pure, deterministic mapping only.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class AdapterStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


def classify_probe_outcome(error: Optional[BaseException]) -> AdapterStatus:
    """An error means OFFLINE; any result, sentinel included, means ONLINE."""
    if error is not None:
        return AdapterStatus.OFFLINE
    return AdapterStatus.ONLINE


def normalize_envelope_status(*, http_status: int) -> str:
    """
    Envelope contract:
      - HTTP < 400  -> status = "success"
      - HTTP >= 400 -> status = "error"
    """
    if http_status < 400:
        return "success"
    return "error"
