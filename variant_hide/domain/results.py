# variant_hide/domain/results.py
"""
宿主订单服务的返回值：成功 / 领域错误 二选一（不是异常）。

调用方必须先判别再继续：

    res = await orders.cancel_order(ctx, inp)
    if isinstance(res, Err):
        ...
    summary = res.value
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    code: str
    message: str = ""
    detail: Optional[dict] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


Result = Union[Ok[T], Err]


# 常用错误码（与宿主 ErrorResult.errorCode 对齐）
ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
ORDER_STATE_TRANSITION_ERROR = "ORDER_STATE_TRANSITION_ERROR"
ORDER_MODIFICATION_ERROR = "ORDER_MODIFICATION_ERROR"
QUANTITY_TOO_GREAT = "QUANTITY_TOO_GREAT"
REFUND_STATE_TRANSITION_ERROR = "REFUND_STATE_TRANSITION_ERROR"
