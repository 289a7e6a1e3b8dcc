"""Tests for the HTTP tabular source."""

import httpx
import pytest

import agentflow.utils.retry as retry
from agentflow.cancellation import CancellationToken
from agentflow.errors import ConfigurationError, RunCancelled, SourceUnavailable
from agentflow.sources import HttpTabularSource, parse_csv_rows, parse_json_rows, sheet_export_url


_schedule_retry = retry.schedule_retry


def _source(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTabularSource(client=client, **kwargs)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def _no_wait(attempt, cancellation=None):
        return None

    monkeypatch.setattr(retry, "schedule_retry", _no_wait)


def test_sheet_export_url():
    url = "https://docs.google.com/spreadsheets/d/1AbC-d_9/edit?usp=sharing#gid=42"
    assert sheet_export_url(url) == (
        "https://docs.google.com/spreadsheets/d/1AbC-d_9/export?format=csv&gid=42"
    )
    assert sheet_export_url("https://docs.google.com/spreadsheets/d/xyz/edit").endswith("gid=0")


def test_sheet_export_url_rejects_other_urls():
    with pytest.raises(ConfigurationError):
        sheet_export_url("https://example.com/sheet.csv")


def test_parse_csv_rows_skips_blank_lines():
    text = "\ufeffEmail, Name \na@x.com , A\n,\nb@x.com,B\n"
    assert parse_csv_rows(text) == [
        {"Email": "a@x.com", "Name": "A"},
        {"Email": "b@x.com", "Name": "B"},
    ]


def test_parse_json_rows_accepts_wrapped_lists_and_flattens():
    payload = {"data": [{"email": "a@x.com", "company": {"name": "Acme"}}, "junk"]}
    assert parse_json_rows(payload) == [{"email": "a@x.com", "company_name": "Acme"}]


def test_parse_json_rows_rejects_non_lists():
    with pytest.raises(SourceUnavailable):
        parse_json_rows({"message": "nope"})


@pytest.mark.asyncio
async def test_fetch_csv():
    source = _source(lambda request: httpx.Response(200, text="email,name\na@x.com,A\n"))
    rows = await source.fetch("https://example.com/export.csv")
    assert rows == [{"email": "a@x.com", "name": "A"}]


@pytest.mark.asyncio
async def test_fetch_json():
    source = _source(lambda request: httpx.Response(200, json=[{"email": "a@x.com"}]))
    rows = await source.fetch("https://example.com/api/contacts")
    assert rows == [{"email": "a@x.com"}]


@pytest.mark.asyncio
async def test_fetch_retries_transient_failures():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, text="email\na@x.com\n")

    rows = await _source(handler, max_attempts=3).fetch("https://example.com/data.csv")

    assert len(calls) == 3
    assert rows == [{"email": "a@x.com"}]


@pytest.mark.asyncio
async def test_fetch_gives_up_after_max_attempts():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SourceUnavailable):
        await _source(handler, max_attempts=2).fetch("https://example.com/data.csv")


@pytest.mark.asyncio
async def test_fetch_does_not_retry_client_errors():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    with pytest.raises(SourceUnavailable) as excinfo:
        await _source(handler).fetch("https://example.com/missing.csv")

    assert len(calls) == 1
    assert excinfo.value.details["status_code"] == 404


@pytest.mark.asyncio
async def test_fetch_backoff_stops_when_cancelled(monkeypatch):
    monkeypatch.setattr(retry, "schedule_retry", _schedule_retry)
    monkeypatch.setattr(retry, "compute_backoff", lambda attempt: 60.0)
    calls = []
    token = CancellationToken()

    def handler(request):
        calls.append(request)
        token.cancel("stop")
        return httpx.Response(503)

    with pytest.raises(RunCancelled):
        await _source(handler, max_attempts=5).fetch("https://example.com/data.csv", token)

    assert len(calls) == 1
