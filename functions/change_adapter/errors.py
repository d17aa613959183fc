"""
functions/change_adapter/errors.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *error taxonomy* shared by the connector,
the response normalizer and the adapter facade.

- AdapterError:   base class for every error raised by this adapter
- TransportError: the ServiceNow call itself failed (network, timeout,
                  non-2xx, hibernating instance)
- MalformedBody:  the call succeeded but the body cannot be read as the
                  expected structure

WHAT IS NOT AN ERROR
--------------------
A reachable instance returning no body, or a body without `result`,
is NOT an error. Those outcomes are returned in-band as MissingData
sentinels (see response_normalizer.py) so that a reachable-but-empty
instance never looks OFFLINE.
"""

from __future__ import annotations

from typing import Optional


class AdapterError(RuntimeError):
    """Raised when the adapter cannot produce a usable outcome."""


class TransportError(AdapterError):
    """
    Connector-level failure.

    Propagated verbatim to callers; classified as OFFLINE by the health probe.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        response_snippet: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.response_snippet = response_snippet


class MalformedBody(AdapterError):
    """Body present but not parseable as the expected structure."""
