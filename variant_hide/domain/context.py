# variant_hide/domain/context.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field


def _trace_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RequestContext:
    """
    一次请求的执行上下文（渠道 / 语言 / 操作人 / trace）。

    跨队列传递时不能带活对象：用 capture() 拍快照，消费端 restore() 还原。
    """

    channel_id: int
    channel_token: Optional[str] = None
    language_code: str = "en"
    user_id: Optional[int] = None
    is_authorized: bool = True
    trace_id: str = field(default_factory=_trace_id)

    def capture(self) -> "SerializedRequestContext":
        return SerializedRequestContext(
            channel_id=self.channel_id,
            channel_token=self.channel_token,
            language_code=self.language_code,
            user_id=self.user_id,
            is_authorized=self.is_authorized,
            trace_id=self.trace_id,
        )


class SerializedRequestContext(BaseModel):
    """RequestContext 的 JSON 快照（队列 payload / webhook body 里传这个）"""

    channel_id: int
    channel_token: Optional[str] = None
    language_code: str = "en"
    user_id: Optional[int] = None
    is_authorized: bool = True
    trace_id: str = Field(default_factory=_trace_id)

    def restore(self) -> RequestContext:
        return RequestContext(
            channel_id=self.channel_id,
            channel_token=self.channel_token,
            language_code=self.language_code,
            user_id=self.user_id,
            is_authorized=self.is_authorized,
            trace_id=self.trace_id,
        )
