# tests/test_change_request_adapter.py
from __future__ import annotations

import json
from typing import Any, Optional

import pytest
from pydantic import SecretStr

from functions.change_adapter.change_request_adapter import ChangeRequestAdapter
from functions.change_adapter.errors import MalformedBody, TransportError
from functions.change_adapter.status_emitter import StatusEmitter
from functions.change_adapter.status_normalizer import AdapterStatus
from functions.utils.connector import ConnectorResponse, ServiceNowConnector
from functions.utils.settings import Settings
from schemas.change_record import ChangeRecord


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        instance_url="https://dev-test.service-now.com",
        username="admin",
        password=SecretStr("pw"),
    )


class _FakeConnector:
    def __init__(self, *, body: Optional[str] = None, error: Optional[Exception] = None):
        self.body = body
        self.error = error
        self.calls: list[str] = []

    async def get(self, query=None) -> ConnectorResponse:
        self.calls.append("get")
        return self._answer()

    async def post(self, payload=None) -> ConnectorResponse:
        self.calls.append("post")
        return self._answer()

    def _answer(self) -> ConnectorResponse:
        if self.error is not None:
            raise self.error
        return ConnectorResponse(status_code=200, body=self.body)


def _adapter(settings: Settings, **kwargs: Any) -> tuple[ChangeRequestAdapter, _FakeConnector]:
    connector = _FakeConnector(**kwargs)
    return ChangeRequestAdapter("snow-1", settings, connector=connector), connector


def test_builds_servicenow_connector_when_none_injected(settings: Settings) -> None:
    adapter = ChangeRequestAdapter("snow-1", settings)
    assert isinstance(adapter.connector, ServiceNowConnector)
    assert adapter.id == "snow-1"


@pytest.mark.anyio
async def test_connect_emits_online_and_returns_nothing(settings: Settings) -> None:
    adapter, connector = _adapter(settings, body=json.dumps({"result": []}))
    online: list[dict] = []
    offline: list[dict] = []
    adapter.on("ONLINE", online.append)
    adapter.on("OFFLINE", offline.append)

    assert await adapter.connect() is None

    assert online == [{"id": "snow-1"}]
    assert offline == []
    assert connector.calls == ["get"]


@pytest.mark.anyio
async def test_connect_emits_offline_on_transport_error(settings: Settings) -> None:
    adapter, _ = _adapter(settings, error=TransportError("HTTP 401", status_code=401))
    offline: list[dict] = []
    adapter.on(AdapterStatus.OFFLINE, offline.append)

    await adapter.connect()

    assert offline == [{"id": "snow-1"}]


@pytest.mark.anyio
async def test_connect_with_missing_body_is_still_online(settings: Settings) -> None:
    adapter, _ = _adapter(settings, body=None)
    online: list[dict] = []
    adapter.on(AdapterStatus.ONLINE, online.append)

    await adapter.connect()

    assert online == [{"id": "snow-1"}]


@pytest.mark.anyio
async def test_injected_emitter_reaches_both_subscribers(settings: Settings) -> None:
    emitter = StatusEmitter()
    a: list[dict] = []
    b: list[dict] = []
    emitter.subscribe(AdapterStatus.ONLINE, a.append)
    emitter.subscribe(AdapterStatus.ONLINE, b.append)
    adapter = ChangeRequestAdapter(
        "snow-1", settings, connector=_FakeConnector(body='{"result": []}'), emitter=emitter
    )

    await adapter.connect()

    assert a == b == [{"id": "snow-1"}]


@pytest.mark.anyio
async def test_get_record_distinguishes_sentinel_empty_and_error(settings: Settings) -> None:
    sentinel_adapter, _ = _adapter(settings, body=None)
    empty_adapter, _ = _adapter(settings, body=json.dumps({"result": []}))
    error_adapter, _ = _adapter(settings, error=TransportError("down"))

    sentinel_out: list = []
    empty_out: list = []
    error_out: list = []

    await sentinel_adapter.get_record(lambda r, e: sentinel_out.append((r, e)))
    await empty_adapter.get_record(lambda r, e: empty_out.append((r, e)))
    await error_adapter.get_record(lambda r, e: error_out.append((r, e)))

    assert sentinel_out == [(["Missing Data Body"], None)]
    assert empty_out == [([], None)]
    assert error_out[0][0] is None
    assert isinstance(error_out[0][1], TransportError)


@pytest.mark.anyio
async def test_get_record_missing_results_sentinel_is_plain_string(settings: Settings) -> None:
    adapter, _ = _adapter(settings, body=json.dumps({"status": "ok"}))

    out = await adapter.get_record()

    assert out == ["Missing Data Results"]
    assert type(out[0]) is str


@pytest.mark.anyio
async def test_get_record_returns_records(settings: Settings) -> None:
    adapter, _ = _adapter(settings, body=json.dumps({"result": [{"number": "CHG1"}, {"number": "CHG2"}]}))

    out = await adapter.get_record()

    assert [r.change_ticket_number for r in out] == ["CHG1", "CHG2"]


@pytest.mark.anyio
async def test_get_record_without_callback_raises(settings: Settings) -> None:
    adapter, _ = _adapter(settings, error=TransportError("down"))
    with pytest.raises(TransportError):
        await adapter.get_record()


@pytest.mark.anyio
async def test_get_record_malformed_body_goes_to_callback_as_error(settings: Settings) -> None:
    adapter, _ = _adapter(settings, body="<<not json>>")
    received: list = []

    out = await adapter.get_record(lambda r, e: received.append((r, e)))

    assert out is None
    assert isinstance(received[0][1], MalformedBody)


@pytest.mark.anyio
async def test_post_record_maps_result(settings: Settings) -> None:
    raw = {
        "number": "CHG01",
        "active": True,
        "priority": "1",
        "description": "d",
        "work_start": "t1",
        "work_end": "t2",
        "sys_id": "abc",
    }
    adapter, connector = _adapter(settings, body=json.dumps({"result": raw}))
    received: list = []

    await adapter.post_record(lambda r, e: received.append((r, e)))

    record, error = received[0]
    assert error is None
    assert record == ChangeRecord(
        change_ticket_number="CHG01",
        active=True,
        priority="1",
        description="d",
        work_start="t1",
        work_end="t2",
        change_ticket_key="abc",
    )
    assert connector.calls == ["post"]


@pytest.mark.anyio
@pytest.mark.parametrize("body", [None, json.dumps({"nothing": True})])
async def test_post_record_missing_data_yields_all_null_record(settings: Settings, body: Optional[str]) -> None:
    adapter, _ = _adapter(settings, body=body)

    out = await adapter.post_record()

    assert out == ChangeRecord()
    assert all(value is None for value in out.model_dump().values())


@pytest.mark.anyio
async def test_post_record_error_goes_to_callback(settings: Settings) -> None:
    error = TransportError("HTTP 500", status_code=500)
    adapter, _ = _adapter(settings, error=error)
    received: list = []

    assert await adapter.post_record(lambda r, e: received.append((r, e))) is None
    assert received == [(None, error)]


@pytest.mark.anyio
async def test_off_removes_status_handler(settings: Settings) -> None:
    adapter, _ = _adapter(settings, body='{"result": []}')
    seen: list[dict] = []
    adapter.on(AdapterStatus.ONLINE, seen.append)
    adapter.off(AdapterStatus.ONLINE, seen.append)

    await adapter.connect()

    assert seen == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, "Missing Data Body"),
        (json.dumps({"nothing": True}), "Missing Data Results"),
        (json.dumps({"result": {"number": "CHG7"}}), None),
    ],
)
async def test_post_record_with_missing_returns_sentinel_alongside_record(
    settings: Settings, body: Optional[str], expected: Optional[str]
) -> None:
    adapter, _ = _adapter(settings, body=body)
    received: list = []

    record, missing = await adapter.post_record(lambda r, e: received.append((r, e)), with_missing=True)

    assert missing == expected
    assert isinstance(record, ChangeRecord)
    assert received == [((record, missing), None)]


@pytest.mark.anyio
async def test_connect_with_bad_endpoint_template_emits_offline(
    settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> None:
    import functions.utils.connector as conn_mod

    monkeypatch.setattr(conn_mod, "load_connector_config", lambda: {"servicenow": {"endpoints": {"table": "api/now"}}})
    adapter = ChangeRequestAdapter("snow-1", settings)
    offline: list[dict] = []
    adapter.on(AdapterStatus.OFFLINE, offline.append)
    received: list = []

    await adapter.connect()
    status = await adapter.healthcheck(lambda r, e: received.append((r, e)))

    assert status is AdapterStatus.OFFLINE
    assert offline == [{"id": "snow-1"}, {"id": "snow-1"}]
    assert received[0][0] is None
    assert isinstance(received[0][1], TransportError)
