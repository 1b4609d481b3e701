# ──────────────────────────────────────────────────────────────────────────────
# 模块用途：顶层报文（str / bytes / dict / list）-> 有序 Event 列表（同步）
# 顶层判别顺序：
#   a) 字符串：像 JSON 先 JSON 再 base64，否则只试 base64；都失败 -> raw_text 事件
#   b) {schema, data: [...]} 批量信封 -> 逐条规范化
#   c) 数组 -> 逐条规范化
#   d) 带 unstruct_event 的对象 -> 单个自描述事件
#   e) 其它对象 -> 单个原始事件
# 输出顺序 == 输入顺序；本模块对外永不抛异常。
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from typing import Any, List, Optional

from commons.base_logger import BaseLogger
from commons.normalizers import now_ms
from ingest.b64json import decode_base64_json
from ingest.config import ParseOptions
from ingest.format_detect import is_json_like, try_parse_json
from ingest.models import RAW_TEXT_EVENT, UNKNOWN_EVENT, Event, EventKind
from ingest.normalizer import EventNormalizer

_log = BaseLogger(name="ingest.batch")


def raw_text_event(text: str) -> Event:
    """无法解码的字符串：原样作为 payload 的单个占位事件。"""
    return Event(event_type=RAW_TEXT_EVENT, ts=now_ms(), payload=text)


def unknown_event(value: Any) -> Event:
    """无法识别的顶层值（JSON 标量等）的单个占位事件。"""
    return Event(event_type=UNKNOWN_EVENT, ts=now_ms(), payload=value, raw=value)


def resolve_payload(payload: Any) -> Any:
    """
    顶层字符串解码：
      - None / 空白串 -> None（调用方得到空批次）
      - bytes 按 UTF-8（替换非法字节）转文本
      - 解码成功返回 JSON 值；两种方式都失败返回 raw_text Event
    非字符串原样返回。
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8", "replace")
    if not isinstance(payload, str):
        return payload

    t = payload.strip()
    if not t:
        return None

    # 非 JSON 形状的字符串只尝试 base64，数字 / 布尔等字面量按原文保留
    if is_json_like(t):
        attempts = (try_parse_json, decode_base64_json)
    else:
        attempts = (decode_base64_json,)

    for attempt in attempts:
        out = attempt(t)
        if out is not None:
            return out
    return raw_text_event(payload)


def batch_items(obj: Any) -> Optional[list]:
    """返回待逐条规范化的事件列表（批量信封的 data 或裸数组），其它形状返回 None。"""
    if isinstance(obj, list):
        return obj
    if isinstance(obj, dict) and obj.get("schema") and isinstance(obj.get("data"), list):
        return obj["data"]
    return None


def parse_resolved(obj: Any, normalizer: EventNormalizer) -> List[Event]:
    """对已完成字符串解码的顶层值做 b)~e) 判别。"""
    if obj is None:
        return []
    if isinstance(obj, Event):
        return [obj]

    items = batch_items(obj)
    if items is not None:
        return normalizer.normalize_many(items)

    if isinstance(obj, dict):
        if obj.get("unstruct_event") is not None:
            ev = normalizer.normalize(obj, kind=EventKind.SELF_DESCRIBING)
        else:
            ev = normalizer.normalize(obj)
        return [ev] if ev is not None else []

    return [unknown_event(obj)]


def parse_batch(payload: Any, options: Optional[ParseOptions] = None) -> List[Event]:
    """同步解析入口：任意顶层报文 -> 有序 Event 列表。"""
    options = options or ParseOptions()
    normalizer = EventNormalizer(prefer_base64=options.prefer_base64)
    try:
        return parse_resolved(resolve_payload(payload), normalizer)
    except Exception as e:
        # 兜底：深度嵌套导致的 RecursionError 等，保留原始报文
        _log.log_warning(f"[parse_batch] unexpected failure, keep payload as unknown: {e!r}")
        return [unknown_event(payload)]
