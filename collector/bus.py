# collector/bus.py
from __future__ import annotations
import asyncio
from typing import Any, Optional


class BatchBus:
    """
    转发总线（下游转发方的接入点）：
      - 保存最近一次发布的批次；
      - publish() 唤醒所有等待者；
      - wait_update() 可超时返回 None。
    实例由调用方创建并持有，不做模块级单例。
    """
    def __init__(self) -> None:
        self._latest: Optional[Any] = None
        self._published = 0
        self._event = asyncio.Event()
        self._lock = asyncio.Lock()

    async def publish(self, batch: Any) -> None:
        async with self._lock:
            self._latest = batch
            self._published += 1
            self._event.set()
            self._event = asyncio.Event()

    def peek(self) -> Optional[Any]:
        return self._latest

    @property
    def published(self) -> int:
        return self._published

    async def wait_update(self, timeout: float = 15.0) -> Optional[Any]:
        event = self._event
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
            return self._latest
        except asyncio.TimeoutError:
            return None
