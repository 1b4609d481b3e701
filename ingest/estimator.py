# 规模估计 SizeEstimator：为分发决策提供廉价的字节数 / 事件数估计（不做完整解析）
from __future__ import annotations

import json
from typing import Any

from ingest.models import SizeEstimate


def utf8_length(text: str) -> int:
    return len(text.encode("utf-8", "surrogatepass"))


def _serialized_length(obj: Any) -> int:
    """紧凑 JSON 序列化后的 UTF-8 字节数；无法序列化时记 0。"""
    try:
        return utf8_length(json.dumps(obj, ensure_ascii=False, separators=(",", ":")))
    except (TypeError, ValueError, RecursionError):
        return 0


def estimate_size(payload: Any) -> SizeEstimate:
    """
    - str：字节数为 UTF-8 长度；以 [ 开头时事件数 = 逗号数 + 1
      （嵌套结构/字符串内的逗号会导致多数，偏向多走后台，属已知近似）
    - bytes：同 str，按字节长度计
    - list：事件数 = 元素个数
    - {schema, data: [...]}：事件数 = data 长度
    """
    if isinstance(payload, (bytes, bytearray)):
        byte_size = len(payload)
        text = bytes(payload).decode("utf-8", "replace")
        return SizeEstimate(byte_size=byte_size, event_count=_count_delimiters(text))
    if isinstance(payload, str):
        return SizeEstimate(byte_size=utf8_length(payload), event_count=_count_delimiters(payload))
    if isinstance(payload, list):
        return SizeEstimate(byte_size=_serialized_length(payload), event_count=len(payload))
    if isinstance(payload, dict):
        data = payload.get("data")
        count = len(data) if isinstance(data, list) else 0
        return SizeEstimate(byte_size=_serialized_length(payload), event_count=count)
    return SizeEstimate()


def _count_delimiters(text: str) -> int:
    t = text.strip()
    if not t.startswith("["):
        return 0
    return t.count(",") + 1
