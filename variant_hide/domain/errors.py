# variant_hide/domain/errors.py
from typing import Optional


class VariantHideError(Exception):
    """Base error."""

    def __init__(self, msg: str = ""):
        super().__init__(msg)
        self.msg = msg

    def __str__(self):
        return self.msg or self.__class__.__name__


class OrderApiError(VariantHideError):
    """宿主订单 API 的系统级失败（5xx / 网络 / 非法响应），区别于领域错误 Err。"""

    def __init__(self, msg: str, *, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(msg)
        self.status = status
        self.detail = detail

    def __str__(self):
        base = super().__str__()
        if self.status is not None:
            return f"{base} [status={self.status}]"
        return base


class JobPayloadError(VariantHideError):
    """队列 payload 无法还原（字段缺失 / 类型不对）。"""
