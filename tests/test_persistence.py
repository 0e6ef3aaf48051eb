"""
Tests for the debounce utility, the layout API client and the persistence bridge.
"""

import asyncio
import json

import httpx
import pytest

from core.debounce import Debouncer
from core.errors import EmbedDataError, LayoutApiError, NotAuthenticatedError
from core.persistence import DashboardApiClient, PersistenceBridge, layout_from_payload, layout_to_payload
from core.widgets import DEFAULT_ORDER, Report, StaticWidgetId, dynamic_id
from tests.fakes import LayoutServer


def make_client(settings, server, token="user-token"):
    return DashboardApiClient(settings, lambda: token, transport=httpx.MockTransport(server))


@pytest.mark.asyncio
async def test_debouncer_coalesces_bursts():
    calls = []

    async def record(value):
        calls.append(value)

    debounced = Debouncer(0.1, record)
    for i in range(5):
        debounced(i)
        await asyncio.sleep(0.005)
    assert calls == []
    assert debounced.pending

    await asyncio.sleep(0.25)
    await debounced.wait()
    assert calls == [4]
    assert not debounced.pending


@pytest.mark.asyncio
async def test_debouncer_cancel_and_flush():
    calls = []

    async def record(value):
        calls.append(value)

    debounced = Debouncer(0.05, record)
    debounced("dropped")
    debounced.cancel()
    await asyncio.sleep(0.08)
    assert calls == []

    debounced("flushed")
    await debounced.flush()
    assert calls == ["flushed"]
    await asyncio.sleep(0.08)
    assert calls == ["flushed"]


def test_layout_payload_round_trip_drops_unknown_ids():
    payload = layout_to_payload([DEFAULT_ORDER[1], dynamic_id(2)], [Report(id=2, title="Revenue Trends")])
    assert payload["visualOrder"] == ["storeVisual", "dynamic-2"]

    payload["visualOrder"].append("retiredVisual")
    payload["selectedDynamicReports"].append({"title": "no id"})
    layout = layout_from_payload(payload)
    assert layout.visual_order == [StaticWidgetId("storeVisual"), dynamic_id(2)]
    assert [r.title for r in layout.reports] == ["Revenue Trends"]
    assert layout_from_payload(None) is None


@pytest.mark.asyncio
async def test_client_fetch_404_is_none(settings):
    server = LayoutServer()
    client = make_client(settings, server)
    assert await client.fetch_layout() is None
    assert server.requests[0].headers["Authorization"] == "Bearer user-token"
    assert str(server.requests[0].url) == "http://layout.test/api/user/dashboard"
    await client.aclose()


@pytest.mark.asyncio
async def test_client_fetch_error_raises(settings):
    client = make_client(settings, LayoutServer(status=500))
    with pytest.raises(LayoutApiError) as info:
        await client.fetch_layout()
    assert info.value.status_code == 500
    await client.aclose()


@pytest.mark.asyncio
async def test_client_requires_token(settings):
    server = LayoutServer()
    client = make_client(settings, server, token=None)
    with pytest.raises(NotAuthenticatedError):
        await client.save_layout(list(DEFAULT_ORDER), [])
    assert server.requests == []
    await client.aclose()


@pytest.mark.asyncio
async def test_client_fetch_embed_data(settings):
    client = make_client(settings, LayoutServer())
    data = await client.fetch_embed_data()
    assert (data.token, data.embed_url, data.report_id) == ("t", "https://embed.test", "r1")
    await client.aclose()


@pytest.mark.asyncio
async def test_client_rejects_incomplete_embed_data(settings):
    def handler(request):
        return httpx.Response(200, json={"token": "t"})

    client = DashboardApiClient(settings, lambda: "x", transport=httpx.MockTransport(handler))
    with pytest.raises(EmbedDataError):
        await client.fetch_embed_data()
    await client.aclose()


@pytest.mark.asyncio
async def test_bridge_sends_only_last_call_of_burst(settings):
    server = LayoutServer()
    bridge = PersistenceBridge(make_client(settings, server), quiet_period=0.1)

    order = list(DEFAULT_ORDER)
    for _ in range(5):
        order = order[1:] + order[:1]
        bridge.schedule_save(order, [])
        await asyncio.sleep(0.005)
    await asyncio.sleep(0.25)
    await bridge.wait()

    puts = [r for r in server.requests if r.method == "PUT"]
    assert len(puts) == 1
    assert json.loads(puts[0].content)["visualOrder"] == [str(w) for w in order]
    assert bridge.save_count == 1
    assert not bridge.save_failed
    assert bridge.last_saved["visualOrder"] == [str(w) for w in order]


@pytest.mark.asyncio
async def test_bridge_failure_sets_flag_and_recovers(settings):
    server = LayoutServer(status=503)
    bridge = PersistenceBridge(make_client(settings, server), quiet_period=0.01)

    bridge.schedule_save(list(DEFAULT_ORDER), [])
    await bridge.flush()
    assert bridge.save_failed
    assert "Failed to save" in bridge.save_error

    server.status = 200
    bridge.schedule_save(list(DEFAULT_ORDER), [])
    await bridge.flush()
    assert not bridge.save_failed


@pytest.mark.asyncio
async def test_bridge_missing_token_is_reported(settings):
    bridge = PersistenceBridge(make_client(settings, LayoutServer(), token=""), quiet_period=0.01)
    bridge.schedule_save(list(DEFAULT_ORDER), [])
    await bridge.flush()
    assert bridge.save_error == "User not authenticated"


@pytest.mark.asyncio
async def test_schedule_save_copies_the_order(settings):
    server = LayoutServer()
    bridge = PersistenceBridge(make_client(settings, server), quiet_period=0.01)
    order = list(DEFAULT_ORDER)
    bridge.schedule_save(order, [])
    order.clear()
    await bridge.flush()
    assert len(server.layout["visualOrder"]) == 4


@pytest.mark.parametrize(
    "payload",
    [
        {"visualOrder": 5, "selectedDynamicReports": [{"id": 2, "title": "Revenue Trends"}]},
        {"visualOrder": ["storeVisual"], "selectedDynamicReports": "Revenue Trends"},
        {"visualOrder": {"storeVisual": 1}, "selectedDynamicReports": None},
    ],
)
def test_layout_fields_that_are_not_lists_are_ignored(payload):
    layout = layout_from_payload(payload)
    assert layout is not None
    if isinstance(payload["visualOrder"], list):
        assert layout.visual_order == [StaticWidgetId("storeVisual")]
    else:
        assert layout.visual_order == []
    if isinstance(payload["selectedDynamicReports"], list):
        assert [r.id for r in layout.reports] == [2]
    else:
        assert layout.reports == []


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b'["not", "an", "object"]', b"42", b'"token"'])
async def test_client_rejects_embed_payload_that_is_not_an_object(settings, body):
    def handler(request):
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    client = DashboardApiClient(settings, lambda: "x", transport=httpx.MockTransport(handler))
    with pytest.raises(EmbedDataError):
        await client.fetch_embed_data()
    await client.aclose()


@pytest.mark.asyncio
async def test_save_with_unreadable_response_still_counts(settings):
    def handler(request):
        return httpx.Response(200, content=b"saved", headers={"content-type": "text/plain"})

    client = DashboardApiClient(settings, lambda: "x", transport=httpx.MockTransport(handler))
    assert await client.save_layout(list(DEFAULT_ORDER), []) == {}

    bridge = PersistenceBridge(client, quiet_period=0.01)
    bridge.schedule_save(list(DEFAULT_ORDER), [])
    await bridge.flush()
    assert not bridge.save_failed
    assert bridge.save_count == 1
    await client.aclose()
