# variant_hide/services/order_api_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from variant_hide.core.config import AppSettings, get_settings
from variant_hide.domain.context import RequestContext
from variant_hide.domain.errors import OrderApiError
from variant_hide.domain.orders import CancelOrderInput, OrderSummary, RefundOrderInput, RefundSummary
from variant_hide.domain.results import ENTITY_NOT_FOUND, Err, Ok, Result

log = logging.getLogger("variant_hide.order_api")


# ---------- 响应解析 ----------


def parse_order(data: Dict[str, Any]) -> OrderSummary:
    return OrderSummary(
        id=int(data["id"]),
        code=str(data.get("code") or ""),
        state=str(data["state"]),
        line_ids=[int(ln["id"]) for ln in data.get("lines") or []],
        shipping_with_tax=int(data.get("shippingWithTax") or 0),
        payment_ids=[int(p["id"]) for p in data.get("payments") or []],
    )


def parse_refund(data: Dict[str, Any]) -> RefundSummary:
    return RefundSummary(
        id=int(data["id"]),
        state=str(data["state"]),
        total=int(data.get("total") or 0),
    )


def _lines_payload(lines) -> list:
    return [{"orderLineId": ln.order_line_id, "quantity": ln.quantity} for ln in lines]


class OrderApiClient:
    """
    宿主订单管理 API（HTTP）客户端，实现 OrderServicePort。

    返回约定：
    - 响应体带 errorCode → Err(code, message)（领域错误，不抛异常）
    - 变更类接口 404 → Err(ENTITY_NOT_FOUND)；find_order 404 → None
    - 5xx / 网络异常 / 非 JSON → OrderApiError（系统错误）

    用法：
        async with OrderApiClient.from_settings() as client:
            await client.cancel_order(ctx, inp)
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AppSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "OrderApiClient":
        s = settings or get_settings()
        return cls(
            s.ORDER_API_BASE_URL,
            token=s.ORDER_API_TOKEN,
            timeout_s=s.ORDER_API_TIMEOUT_S,
            transport=transport,
        )

    async def __aenter__(self) -> "OrderApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------- 内部辅助 ----------

    def _headers(self, ctx: RequestContext) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "accept-language": ctx.language_code,
            "x-trace-id": ctx.trace_id,
        }
        if self.token:
            headers["authorization"] = f"Bearer {self.token}"
        if ctx.channel_token:
            headers["vendure-token"] = ctx.channel_token
        return headers

    async def _request(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=json, headers=self._headers(ctx))
        except httpx.HTTPError as e:
            raise OrderApiError(f"order api {method} {path} failed: {e}") from e
        if resp.status_code >= 500:
            raise OrderApiError(
                f"order api {method} {path} server error",
                status=resp.status_code,
                detail=resp.text[:500],
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response, path: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise OrderApiError(f"order api {path}: invalid json", status=resp.status_code) from e
        if not isinstance(data, dict):
            raise OrderApiError(f"order api {path}: unexpected body", status=resp.status_code)
        return data

    def _error_result(self, resp: httpx.Response, path: str) -> Optional[Err]:
        """响应是否为领域错误；是则转 Err，否则 None"""
        if resp.status_code == 404:
            msg = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    msg = str(body.get("message") or "")
            except ValueError:
                pass
            return Err(ENTITY_NOT_FOUND, msg or f"{path} not found")

        data = self._json(resp, path) if resp.content else {}
        if "errorCode" in data:
            return Err(str(data["errorCode"]), str(data.get("message") or ""), detail=data)
        if resp.status_code >= 400:
            raise OrderApiError(
                f"order api {path}: unexpected status",
                status=resp.status_code,
                detail=resp.text[:500],
            )
        return None

    async def _mutate_order(
        self, ctx: RequestContext, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Result[OrderSummary]:
        resp = await self._request(ctx, "POST", path, json=json)
        err = self._error_result(resp, path)
        if err is not None:
            log.warning("order api rejected: path=%s err=%s trace=%s", path, err, ctx.trace_id)
            return err
        return Ok(parse_order(self._json(resp, path)))

    async def _mutate_refund(
        self, ctx: RequestContext, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Result[RefundSummary]:
        resp = await self._request(ctx, "POST", path, json=json)
        err = self._error_result(resp, path)
        if err is not None:
            log.warning("order api rejected: path=%s err=%s trace=%s", path, err, ctx.trace_id)
            return err
        return Ok(parse_refund(self._json(resp, path)))

    # ---------- OrderServicePort ----------

    async def transition_to_state(self, ctx: RequestContext, order_id: int, state: str) -> Result[OrderSummary]:
        return await self._mutate_order(
            ctx, f"/orders/{order_id}/transition", {"state": getattr(state, "value", state)}
        )

    async def remove_item_from_order(
        self, ctx: RequestContext, order_id: int, order_line_id: int
    ) -> Result[OrderSummary]:
        return await self._mutate_order(ctx, f"/orders/{order_id}/lines/{order_line_id}/remove")

    async def cancel_order(self, ctx: RequestContext, inp: CancelOrderInput) -> Result[OrderSummary]:
        return await self._mutate_order(
            ctx,
            f"/orders/{inp.order_id}/cancel",
            {"lines": _lines_payload(inp.lines), "reason": inp.reason},
        )

    async def refund_order(self, ctx: RequestContext, inp: RefundOrderInput) -> Result[RefundSummary]:
        return await self._mutate_refund(
            ctx,
            f"/orders/{inp.order_id}/refunds",
            {
                "lines": _lines_payload(inp.lines),
                "reason": inp.reason,
                "paymentId": inp.payment_id,
                "shipping": inp.shipping,
                "adjustment": inp.adjustment,
            },
        )

    async def settle_refund(
        self, ctx: RequestContext, refund_id: int, transaction_id: str
    ) -> Result[RefundSummary]:
        return await self._mutate_refund(
            ctx, f"/refunds/{refund_id}/settle", {"transactionId": transaction_id}
        )

    async def add_note_to_order(
        self, ctx: RequestContext, order_id: int, note: str, *, is_public: bool = False
    ) -> Result[OrderSummary]:
        return await self._mutate_order(
            ctx, f"/orders/{order_id}/notes", {"note": note, "isPublic": is_public}
        )

    async def find_order(self, ctx: RequestContext, order_id: int) -> Optional[OrderSummary]:
        path = f"/orders/{order_id}"
        resp = await self._request(ctx, "GET", path)
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise OrderApiError(f"order api {path}: unexpected status", status=resp.status_code)
        return parse_order(self._json(resp, path))
