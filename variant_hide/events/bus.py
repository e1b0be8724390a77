# variant_hide/events/bus.py
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Type, Union

logger = logging.getLogger("variant_hide.events")

Handler = Callable[[Any], Union[None, Awaitable[None]]]


class Subscription:
    def __init__(self, bus: "EventBus", event_type: type, handler: Handler) -> None:
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False


class EventBus:
    """
    进程内事件总线（按事件类型订阅）：

    - 订阅只在启动阶段建立、关闭阶段拆除（见 VariantHidePlugin.start/stop）
    - publish 按订阅顺序依次执行 handler；同步/异步 handler 均可
    - 单个 handler 失败只记日志，不影响其他 handler，也不回抛给发布方
    """

    def __init__(self) -> None:
        self._subs: Dict[type, List[Subscription]] = {}

    def subscribe(self, event_type: Type[Any], handler: Handler) -> Subscription:
        sub = Subscription(self, event_type, handler)
        self._subs.setdefault(event_type, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.event_type, [])
        if sub in subs:
            subs.remove(sub)

    def subscriber_count(self, event_type: Type[Any]) -> int:
        return len(self._subs.get(event_type, []))

    async def publish(self, event: Any) -> None:
        for sub in list(self._subs.get(type(event), [])):
            try:
                res = sub.handler(event)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                logger.exception("event handler failed: event=%s handler=%r", type(event).__name__, sub.handler)
