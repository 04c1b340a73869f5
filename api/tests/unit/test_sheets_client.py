from __future__ import annotations

import base64
import json

import pytest
import requests
from loguru import logger

from mentor_sync.infrastructure.external.sheets_sync import sheets_client
from mentor_sync.infrastructure.external.sheets_sync.sheets_client import (
    SheetRef,
    SheetsRowSource,
    load_service_account_info,
)
from mentor_sync.shared.exceptions.sync import SourceUnavailableError, SyncConfigError

REF = SheetRef(spreadsheet_id="sheet-1", tab_name="V8")
VALUES = {"values": [["Timestamp", "Emai"], ["05/03/2025, 14:30:00", "mentor@x.com"]]}


class _Resp:
    def __init__(self, status_code: int, payload=None, headers=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}
        self.text = text

    def json(self):
        return self._payload


class _Session:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def request(self, method, url, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(sheets_client.time, "sleep", recorded.append)
    return recorded


def test_fetch_builds_rows_and_quotes_range(sleeps) -> None:
    session = _Session([_Resp(200, VALUES)])

    rows = SheetsRowSource(session, timeout_s=12).fetch(REF)

    assert len(rows) == 1
    assert rows[0].position == 2
    assert rows[0].get("Emai") == "mentor@x.com"
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"].endswith("/sheet-1/values/%27V8%27%21A%3ACZ")
    assert call["params"]["valueRenderOption"] == "FORMATTED_VALUE"
    assert call["timeout"] == 12
    assert sleeps == []


def test_fetch_respects_retry_after_on_429(sleeps) -> None:
    session = _Session([_Resp(429, headers={"Retry-After": "2"}), _Resp(200, VALUES)])

    rows = SheetsRowSource(session).fetch(REF)

    assert len(rows) == 1
    assert sleeps == [2.0]


def test_fetch_backs_off_exponentially_on_5xx(sleeps) -> None:
    session = _Session([_Resp(503), _Resp(502), _Resp(200, VALUES)])

    SheetsRowSource(session, min_backoff_s=1.0).fetch(REF)

    assert sleeps == [pytest.approx(1.15), pytest.approx(2.3)]


def test_fetch_gives_up_after_max_retries(sleeps) -> None:
    session = _Session([_Resp(500, text="backend error")] * 3)

    with pytest.raises(SourceUnavailableError) as exc:
        SheetsRowSource(session, max_retries=2).fetch(REF)

    assert exc.value.details["status"] == 500
    assert exc.value.fatal
    assert len(sleeps) == 2


def test_fetch_client_error_is_not_retried(sleeps) -> None:
    session = _Session([_Resp(403, text="The caller does not have permission")])

    with pytest.raises(SourceUnavailableError) as exc:
        SheetsRowSource(session).fetch(REF)

    assert "403" in exc.value.message
    assert len(session.calls) == 1
    assert sleeps == []


def test_fetch_connection_error_is_fatal(sleeps) -> None:
    session = _Session([requests.ConnectionError("dns failure")])

    with pytest.raises(SourceUnavailableError):
        SheetsRowSource(session).fetch(REF)


def test_fetch_empty_tab_returns_no_rows(sleeps) -> None:
    assert SheetsRowSource(_Session([_Resp(200, {})])).fetch(REF) == []


def test_fetch_requires_spreadsheet_id() -> None:
    with pytest.raises(SyncConfigError):
        SheetsRowSource(_Session([])).fetch(SheetRef(spreadsheet_id="", tab_name="V8"))


def test_load_service_account_info() -> None:
    info = {"type": "service_account", "client_email": "sync@project.iam.gserviceaccount.com"}
    encoded = base64.b64encode(json.dumps(info).encode()).decode()

    assert load_service_account_info(encoded) == info

    with pytest.raises(SyncConfigError):
        load_service_account_info("")
    with pytest.raises(SyncConfigError):
        load_service_account_info(base64.b64encode(b"not json").decode())


def test_fetch_header_only_tab_warns(sleeps) -> None:
    warnings = []
    sink_id = logger.add(lambda message: warnings.append(message.record["message"]), level="WARNING")
    try:
        rows = SheetsRowSource(_Session([_Resp(200, {"values": [["Timestamp", "Emai"]]})])).fetch(REF)
    finally:
        logger.remove(sink_id)

    assert rows == []
    assert any("'V8'" in w for w in warnings)
