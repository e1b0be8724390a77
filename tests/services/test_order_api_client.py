# tests/services/test_order_api_client.py
from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from variant_hide.domain.context import RequestContext
from variant_hide.domain.errors import OrderApiError
from variant_hide.domain.orders import CancelOrderInput, OrderLineQuantity, RefundOrderInput
from variant_hide.domain.results import ENTITY_NOT_FOUND, Err, Ok
from variant_hide.services.order_api_client import OrderApiClient

pytestmark = pytest.mark.grp_order_api

BASE = "http://order-api.test"

ORDER_BODY = {
    "id": 7,
    "code": "O-7",
    "state": "Cancelled",
    "lines": [{"id": 70}, {"id": 71}],
    "shippingWithTax": 500,
    "payments": [{"id": 3}, {"id": 4}],
}


def _client(handler, seen: List[httpx.Request]) -> OrderApiClient:
    def _wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return OrderApiClient(BASE, token="secret", timeout_s=2.0, transport=httpx.MockTransport(_wrapped))


@pytest.fixture
def api_ctx() -> RequestContext:
    return RequestContext(channel_id=2, channel_token="tok-2", language_code="de", trace_id="trace-1")


@pytest.mark.asyncio
async def test_find_order_parses_summary_and_sends_headers(api_ctx):
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(200, json=ORDER_BODY), seen) as client:
        got = await client.find_order(api_ctx, 7)

    assert got is not None
    assert (got.id, got.code, got.state) == (7, "O-7", "Cancelled")
    assert got.line_ids == [70, 71]
    assert got.shipping_with_tax == 500
    assert got.primary_payment_id == 3

    req = seen[0]
    assert req.method == "GET"
    assert req.url.path == "/orders/7"
    assert req.headers["authorization"] == "Bearer secret"
    assert req.headers["vendure-token"] == "tok-2"
    assert req.headers["accept-language"] == "de"
    assert req.headers["x-trace-id"] == "trace-1"


@pytest.mark.asyncio
async def test_find_order_404_is_none(api_ctx):
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(404, json={"message": "gone"}), seen) as client:
        assert await client.find_order(api_ctx, 7) is None


@pytest.mark.asyncio
async def test_error_code_body_becomes_err(api_ctx):
    body = {"errorCode": "ORDER_MODIFICATION_ERROR", "message": "paid"}
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(200, json=body), seen) as client:
        res = await client.remove_item_from_order(api_ctx, 7, 70)

    assert isinstance(res, Err)
    assert res.code == "ORDER_MODIFICATION_ERROR"
    assert res.message == "paid"
    assert seen[0].url.path == "/orders/7/lines/70/remove"


@pytest.mark.asyncio
async def test_error_code_on_4xx_becomes_err(api_ctx):
    body = {"errorCode": "QUANTITY_TOO_GREAT", "message": "too many"}
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(400, json=body), seen) as client:
        res = await client.cancel_order(
            api_ctx, CancelOrderInput(order_id=7, lines=[OrderLineQuantity(70, 5)], reason="x")
        )
    assert isinstance(res, Err)
    assert res.code == "QUANTITY_TOO_GREAT"


@pytest.mark.asyncio
async def test_mutation_404_is_entity_not_found(api_ctx):
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(404), seen) as client:
        res = await client.transition_to_state(api_ctx, 7, "AddingItems")
    assert isinstance(res, Err)
    assert res.code == ENTITY_NOT_FOUND


@pytest.mark.asyncio
async def test_server_error_raises(api_ctx):
    seen: List[httpx.Request] = []
    async with _client(lambda r: httpx.Response(503, text="down"), seen) as client:
        with pytest.raises(OrderApiError) as ei:
            await client.transition_to_state(api_ctx, 7, "AddingItems")
    assert ei.value.status == 503


@pytest.mark.asyncio
async def test_transport_error_raises(api_ctx):
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    seen: List[httpx.Request] = []
    async with _client(_boom, seen) as client:
        with pytest.raises(OrderApiError):
            await client.find_order(api_ctx, 7)


@pytest.mark.asyncio
async def test_request_bodies(api_ctx):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "/refunds" in request.url.path:
            return httpx.Response(200, json={"id": 11, "state": "Pending", "total": 0})
        return httpx.Response(200, json=ORDER_BODY)

    lines = [OrderLineQuantity(order_line_id=70, quantity=2)]
    async with _client(handler, seen) as client:
        res_t = await client.transition_to_state(api_ctx, 7, "AddingItems")
        res_c = await client.cancel_order(api_ctx, CancelOrderInput(order_id=7, lines=lines, reason="Product X deleted"))
        res_r = await client.refund_order(
            api_ctx,
            RefundOrderInput(order_id=7, lines=lines, reason="Product X deleted", payment_id=3),
        )
        res_s = await client.settle_refund(api_ctx, 11, transaction_id="3")
        res_n = await client.add_note_to_order(api_ctx, 7, "hello", is_public=False)

    assert all(isinstance(r, Ok) for r in (res_t, res_c, res_r, res_s, res_n))
    assert res_r.value.id == 11 and res_r.value.state == "Pending"

    paths = [(r.method, r.url.path) for r in seen]
    assert paths == [
        ("POST", "/orders/7/transition"),
        ("POST", "/orders/7/cancel"),
        ("POST", "/orders/7/refunds"),
        ("POST", "/refunds/11/settle"),
        ("POST", "/orders/7/notes"),
    ]
    bodies = [json.loads(r.content) for r in seen]
    assert bodies[0] == {"state": "AddingItems"}
    assert bodies[1] == {"lines": [{"orderLineId": 70, "quantity": 2}], "reason": "Product X deleted"}
    assert bodies[2] == {
        "lines": [{"orderLineId": 70, "quantity": 2}],
        "reason": "Product X deleted",
        "paymentId": 3,
        "shipping": 0,
        "adjustment": 0,
    }
    assert bodies[3] == {"transactionId": "3"}
    assert bodies[4] == {"note": "hello", "isPublic": False}
