"""
functions/utils/connector.py

WHAT THIS FILE IS FOR
---------------------
This module provides the asynchronous transport used by the change
request adapter to talk to a ServiceNow instance's Table API.

It exists to:
- Centralize all ServiceNow HTTP access in one place
- Read endpoint templates from parameters/config.yaml
- Apply basic auth, timeout and (optional) transport retries
- Turn every transport failure into a single TransportError
- Detect a hibernating developer instance and report it as a failure

Each call ends in exactly one outcome: a ConnectorResponse is
returned, or a TransportError is raised. Never both.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Parsing or validating the JSON body (response_normalizer.py)
- Mapping fields onto ChangeRecord
- Deciding ONLINE/OFFLINE status (health_monitor.py)

It returns the raw body string untouched.

CONFIGURATION
-------------
- Endpoint path template: parameters/config.yaml
      servicenow.endpoints.table = "/api/now/table/{table}"
- Instance URL, credentials, table, timeout and retries: Settings
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx
import structlog
import yaml

from functions.change_adapter.errors import TransportError
from functions.utils.settings import Settings

logger = structlog.get_logger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[2] / "parameters" / "config.yaml"
DEFAULT_TABLE_ENDPOINT = "/api/now/table/{table}"
SNIPPET_CHARS = 500

# Markers of the page a sleeping developer instance serves with HTTP 200
HIBERNATION_MARKERS = ("Instance Hibernating page", "<html>")


@dataclass
class ConnectorResponse:
    """Raw success payload; `body` is the undecoded text (None when empty)."""

    status_code: int
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None


@lru_cache(maxsize=1)
def load_connector_config() -> Dict[str, Any]:
    if not CONFIG_PATH.exists():
        logger.warning("connector_config_missing", path=str(CONFIG_PATH))
        return {}

    try:
        with CONFIG_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning("connector_config_not_dict", path=str(CONFIG_PATH))
            return {}
        logger.info("connector_config_loaded", path=str(CONFIG_PATH))
        return data
    except (OSError, yaml.YAMLError) as exc:
        logger.error("connector_config_load_error", path=str(CONFIG_PATH), error=str(exc))
        return {}


def is_hibernating(response: httpx.Response) -> bool:
    text = response.text or ""
    return response.status_code == 200 and all(marker in text for marker in HIBERNATION_MARKERS)


class ServiceNowConnector:
    """
    Thin async client around the ServiceNow Table API.

    - get():  list records from the configured table
    - post(): create one record in the configured table
    """

    def __init__(self, settings: Settings) -> None:
        if not settings.instance_url:
            raise ValueError("instance_url is required")

        self.settings = settings
        self._base_url = str(settings.instance_url).rstrip("/")
        self._table = settings.change_request_table
        self._config = load_connector_config()
        self._timeout = settings.http_timeout_seconds
        self._max_retries = settings.max_retries
        self._auth = httpx.BasicAuth(settings.username, settings.password.get_secret_value())

    async def get(self, query: Optional[Mapping[str, Any]] = None) -> ConnectorResponse:
        params: Dict[str, Any] = {}
        if self.settings.query_limit is not None:
            params["sysparm_limit"] = self.settings.query_limit
        if query:
            params.update(query)
        return await self._send("GET", params=params)

    async def post(self, payload: Optional[Mapping[str, Any]] = None) -> ConnectorResponse:
        return await self._send("POST", json_body=dict(payload or {}))

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _table_url(self) -> str:
        try:
            template = self._config["servicenow"]["endpoints"]["table"]
        except (KeyError, TypeError):
            template = DEFAULT_TABLE_ENDPOINT

        if not isinstance(template, str) or not template.startswith("/"):
            logger.error("endpoint_template_invalid", section="servicenow", key="table", template=repr(template))
            raise TransportError("Invalid endpoint template for servicenow.table")

        try:
            path = template.format(table=self._table)
        except (KeyError, IndexError, ValueError) as exc:
            logger.error("endpoint_template_invalid", section="servicenow", key="table", template=template)
            raise TransportError(f"Invalid endpoint template for servicenow.table: {exc!r}") from exc

        return self._base_url + path

    async def _send(
        self,
        method: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> ConnectorResponse:
        """
        Perform one logical request.

        - Retries: only httpx transport errors, max_retries extra attempts
        - Raises: TransportError for every failure mode
        """
        url = self._table_url()
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        async with httpx.AsyncClient(timeout=self._timeout, auth=self._auth) as client:
            for attempt in range(1, self._max_retries + 2):
                try:
                    resp = await client.request(method, url, params=params, json=json_body, headers=headers)
                except httpx.HTTPError as exc:
                    logger.warning(
                        "servicenow_request_attempt_failed",
                        method=method,
                        url=url,
                        attempt=attempt,
                        max_retries=self._max_retries,
                        error=str(exc),
                    )
                    if attempt >= self._max_retries + 1:
                        logger.error("servicenow_request_exhausted_retries", method=method, url=url, attempts=attempt)
                        raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc
                    continue

                return self._check(method, url, resp)

        raise TransportError(f"{method} {url} was not attempted", url=url)

    def _check(self, method: str, url: str, resp: httpx.Response) -> ConnectorResponse:
        if resp.status_code >= 300:
            snippet = (resp.text or "")[:SNIPPET_CHARS]
            logger.warning(
                "servicenow_http_error",
                method=method,
                url=url,
                status_code=resp.status_code,
                response_snippet=snippet,
            )
            raise TransportError(
                f"{method} {url} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                url=url,
                response_snippet=snippet,
            )

        if is_hibernating(resp):
            logger.warning("servicenow_instance_hibernating", method=method, url=url)
            raise TransportError(
                "Service Now instance is hibernating",
                status_code=resp.status_code,
                url=url,
            )

        logger.info("servicenow_request_success", method=method, url=url, status_code=resp.status_code)
        return ConnectorResponse(
            status_code=resp.status_code,
            body=resp.text or None,
            headers=dict(resp.headers),
            url=str(resp.url),
        )
