# ──────────────────────────────────────────────────────────────────────────────
# 模块用途：单条原始埋点事件 -> 统一 Event
# 说明：
#   - 先用 resolve_kind() 把事件判别为封闭集合 EventKind 中的一种（首个命中即返回）；
#   - 每种形状一个映射方法，通用字段（eid/ts/vid/sid/platform/url）统一按优先级抽取；
#   - 无法识别的形状不丢弃：整条原始对象作为 payload 兜底。
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from commons.normalizers import empty_to_none, first_present, now_ms, to_epoch_ms
from ingest.b64json import decode_base64_json
from ingest.format_detect import is_base64_like, is_json_like, try_parse_json
from ingest.models import (
    PAGE_VIEW_EVENT,
    STRUCTURED_EVENT,
    UNKNOWN_EVENT,
    UNSTRUCT_EVENT,
    Event,
    EventKind,
)

# 判别字段（按优先级）
DISCRIMINATOR_KEYS = ("e", "event", "eventType", "event_type")

STRUCTURED_VALUES = frozenset({"se", "structured_event"})
SELF_DESCRIBING_VALUES = frozenset({"ue", "unstruct"})
PAGE_VIEW_VALUES = frozenset({"pv", "page_view"})

# 通用字段：内部名 -> 候选外部字段（按优先级）
COMMON_FIELDS: Dict[str, Sequence[str]] = {
    "eid": ("eid", "event_id"),
    "vid": ("vid",),
    "sid": ("sid", "domain_sessionid"),
    "platform": ("p", "platform"),
    "url": ("url", "pageUrl", "page_url"),
}
TS_FIELDS = ("dtm", "timestamp", "ts")

# 自描述事件的三种载体
B64_CARRIER = "ue_px"
JSON_CARRIER = "ue_pr"
OBJECT_CARRIERS = ("unstruct_event", "unstruct", "ue")


def discriminator(raw: Mapping[str, Any]) -> Any:
    return first_present(raw, DISCRIMINATOR_KEYS)


def resolve_kind(raw: Mapping[str, Any]) -> EventKind:
    """判别事件形状；顺序固定：结构化 -> 自描述 -> 页面浏览 -> 未知。"""
    value = discriminator(raw)
    if not isinstance(value, str):
        value = None
    if value in STRUCTURED_VALUES:
        return EventKind.STRUCTURED
    if value in SELF_DESCRIBING_VALUES or raw.get("unstruct_event") is not None:
        return EventKind.SELF_DESCRIBING
    if value in PAGE_VIEW_VALUES:
        return EventKind.PAGE_VIEW
    return EventKind.UNKNOWN


def decode_carrier(cand: Any) -> Any:
    """
    对单个载体做最小安全解析，只有 dict/list 结果才算解码成功：
      - dict/list：已是结构化对象，原样返回
      - 像 JSON：先 JSON，再 base64（有的 JSON 被 base64 包过）
      - 像 base64：先 base64，再 JSON
      - 其它字符串：只试 JSON
    """
    if isinstance(cand, (dict, list)):
        return cand
    if not isinstance(cand, str):
        return None

    if is_json_like(cand):
        attempts = (try_parse_json, decode_base64_json)
    elif is_base64_like(cand):
        attempts = (decode_base64_json, try_parse_json)
    else:
        attempts = (try_parse_json,)

    for attempt in attempts:
        out = attempt(cand.strip())
        if isinstance(out, (dict, list)):
            return out
    return None


def unwrap_self_describing(decoded: Any) -> tuple[Optional[str], Any]:
    """
    拆出 (schema, payload)：
      - 接受 {schema, data} 或 {self: {schema, data}}；
      - 若 payload 里还有一层 data 对象，再拆且只拆一层（不递归）；
        这层自带的 schema 更具体，覆盖外层信封 schema。
    """
    if not isinstance(decoded, dict):
        return None, decoded

    self_part = decoded.get("self") if isinstance(decoded.get("self"), dict) else {}
    schema = decoded.get("schema") or self_part.get("schema")

    if decoded.get("data") is not None:
        payload = decoded["data"]
    elif self_part.get("data") is not None:
        payload = self_part["data"]
    else:
        payload = decoded

    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        inner_schema = payload.get("schema")
        if isinstance(inner_schema, str) and inner_schema:
            schema = inner_schema
        payload = payload["data"]

    return (schema if isinstance(schema, str) else None), payload


class EventNormalizer:
    """
    原始事件 -> Event。无内部可变状态，可在前台与后台进程中共用。

    prefer_base64：
      - True：ue_px（base64）优先
      - False：ue_pr（内联 JSON）优先
      - None：按内容轻量探测
    """

    def __init__(self, prefer_base64: Optional[bool] = None):
        self.prefer_base64 = prefer_base64

    def normalize(self, raw: Any, kind: Optional[EventKind] = None) -> Optional[Event]:
        """非 dict 返回 None；kind 可强制指定形状（顶层单个包装事件使用）。"""
        if not isinstance(raw, dict):
            return None
        kind = kind or resolve_kind(raw)
        common = self._common_fields(raw)

        if kind is EventKind.STRUCTURED:
            return self._structured(raw, common)
        if kind is EventKind.SELF_DESCRIBING:
            return self._self_describing(raw, common)
        if kind is EventKind.PAGE_VIEW:
            return self._page_view(raw, common)
        return self._fallback(raw, common)

    def normalize_many(self, items: Sequence[Any]) -> List[Event]:
        """逐条规范化，保持顺序，丢弃 None。"""
        out: List[Event] = []
        for item in items:
            ev = self.normalize(item)
            if ev is not None:
                out.append(ev)
        return out

    # === 通用字段 ===

    @staticmethod
    def _common_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
        common: Dict[str, Any] = {key: first_present(raw, names) for key, names in COMMON_FIELDS.items()}
        ts = to_epoch_ms(first_present(raw, TS_FIELDS))
        common["ts"] = ts if ts is not None else now_ms()
        common["raw"] = raw
        return common

    # === 各形状映射 ===

    def _structured(self, raw: Mapping[str, Any], common: Dict[str, Any]) -> Event:
        prop = first_present(raw, ("se_pr", "property"))
        if isinstance(prop, str):
            parsed = try_parse_json(prop)
            prop = parsed if parsed is not None else prop

        fields = {
            "category": first_present(raw, ("se_ca", "category")),
            "action": first_present(raw, ("se_ac", "action")),
            "label": first_present(raw, ("se_la", "label")),
            "property": prop,
        }
        return Event(event_type=STRUCTURED_EVENT, payload=dict(fields), **fields, **common)

    def _carrier_order(self, raw: Mapping[str, Any]) -> List[Any]:
        px = raw.get(B64_CARRIER)
        pr = raw.get(JSON_CARRIER)
        obj = first_present(raw, OBJECT_CARRIERS)

        if self.prefer_base64 is True:
            return [px, pr, obj]
        if self.prefer_base64 is False:
            return [pr, px, obj]
        if pr and is_json_like(pr):
            return [pr, px, obj]
        if px and is_base64_like(px):
            return [px, pr, obj]
        return [pr, px, obj]

    def _self_describing(self, raw: Mapping[str, Any], common: Dict[str, Any]) -> Event:
        ordered = self._carrier_order(raw)

        decoded = None
        for cand in ordered:
            decoded = decode_carrier(cand)
            if decoded is not None:
                break

        if decoded is not None:
            schema, payload = unwrap_self_describing(decoded)
        else:
            # 都解不开：原样保留第一个有值的载体；连载体都没有时保留规范 payload 或整条原始对象
            present = [c for c in ordered if empty_to_none(c) is not None]
            schema = raw.get("schema") if isinstance(raw.get("schema"), str) else None
            if present:
                payload = present[0]
            elif raw.get("payload") is not None:
                payload = raw["payload"]
            else:
                payload = raw

        return Event(event_type=UNSTRUCT_EVENT, schema=schema, payload=payload, **common)

    def _page_view(self, raw: Mapping[str, Any], common: Dict[str, Any]) -> Event:
        title = first_present(raw, ("pageTitle", "dt", "title"))
        referrer = first_present(raw, ("refr", "referrer"))
        payload = {"title": title, "url": common.get("url"), "referrer": referrer}
        return Event(event_type=PAGE_VIEW_EVENT, title=title, referrer=referrer, payload=payload, **common)

    def _fallback(self, raw: Mapping[str, Any], common: Dict[str, Any]) -> Event:
        value = discriminator(raw)
        event_type = value if isinstance(value, str) else (str(value) if value is not None else UNKNOWN_EVENT)
        # 已是规范事件（带 eventType + payload）时保留其 payload，否则整条原始对象兜底
        canonical = raw.get("eventType") is not None and "payload" in raw
        payload = raw.get("payload") if canonical else raw
        return Event(event_type=event_type, payload=payload, **common)
