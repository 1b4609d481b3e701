# 前台分片解析 ChunkedParser
# 解析语义与 parse_batch 完全一致，只改变调度：大数组按固定片大小处理，片与片之间让出事件循环。
from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from commons.base_logger import BaseLogger
from ingest.batch import batch_items, parse_resolved, resolve_payload, unknown_event
from ingest.config import ParseOptions
from ingest.models import Event
from ingest.normalizer import EventNormalizer

_log = BaseLogger(name="ingest.chunked")


async def parse_chunked(payload: Any, options: Optional[ParseOptions] = None) -> List[Event]:
    """
    异步解析入口：
      - 事件列表长度 <= chunk_size：直接同步解析
      - 否则每处理 chunk_size 条 await asyncio.sleep(0) 一次（零延迟让出，不等待外部数据）
    """
    options = options or ParseOptions()
    normalizer = EventNormalizer(prefer_base64=options.prefer_base64)
    chunk_size = options.chunk_size

    try:
        top = resolve_payload(payload)
        items = batch_items(top)
        if items is None or len(items) <= chunk_size:
            return parse_resolved(top, normalizer)

        out: List[Event] = []
        batches = 0
        for start in range(0, len(items), chunk_size):
            out.extend(normalizer.normalize_many(items[start:start + chunk_size]))
            batches += 1
            await asyncio.sleep(0)
    except Exception as e:
        _log.log_warning(f"[parse_chunked] unexpected failure, keep payload as unknown: {e!r}")
        return [unknown_event(payload)]

    if options.debug:
        _log.log_info(f"[parse_chunked] parsed {len(out)} events in {batches} batches")
    return out
