# -*- coding: utf-8 -*-
# ingest/models.py
from __future__ import annotations

"""
埋点规范化数据模型。
Event 是所有线上格式（批量信封 / 自描述 / 结构化 / 页面浏览）归一后的统一事件，
下游转发只依赖此模型，不关心上游编码细节。
"""

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from commons.base_dataclasses import BaseDataClass
from commons.normalizers import ensure_event_type, to_epoch_ms


class EventKind(str, enum.Enum):
    """事件形状判别（封闭集合，每条原始事件只判别一次）"""
    STRUCTURED = "structured"
    SELF_DESCRIBING = "self_describing"
    PAGE_VIEW = "page_view"
    UNKNOWN = "unknown"


# 输出的 event_type 取值
STRUCTURED_EVENT = "structured_event"
UNSTRUCT_EVENT = "unstruct"
PAGE_VIEW_EVENT = "page_view"
RAW_TEXT_EVENT = "raw_text"
UNKNOWN_EVENT = "unknown"


@dataclass(slots=True)
class Event(BaseDataClass):
    """
    统一事件对象。
    字段说明：
      - event_type: 事件类型（必填，兜底 'unknown'）
      - ts: 毫秒时间戳（设备时间优先，缺失时取解析时刻）
      - payload: 业务负载（永不为 None，兜底 {} 或原始对象）
      - schema: 自描述事件的 schema URI
      - eid / vid / sid / platform / url: 通用字段
      - category / action / label / property: 结构化事件专有
      - title / referrer: 页面浏览专有
      - raw: 原始事件对象
    """

    event_type: str
    ts: int
    payload: Any = field(default_factory=dict)
    schema: Optional[str] = None

    eid: Optional[str] = None
    vid: Optional[str] = None
    sid: Optional[str] = None
    platform: Optional[str] = None
    url: Optional[str] = None

    category: Optional[str] = None
    action: Optional[str] = None
    label: Optional[str] = None
    property: Any = None

    title: Optional[str] = None
    referrer: Optional[str] = None

    raw: Any = None

    FIELD_MAPPING: ClassVar[Dict[str, str]] = {
        "eventType": "event_type",
    }

    CONVERTERS: ClassVar[Dict[str, Any]] = {
        "ts": to_epoch_ms,
    }

    VALIDATORS: ClassVar[List] = [
        ensure_event_type,
    ]

    def __post_init__(self):
        if self.payload is None:
            self.payload = {}


@dataclass(frozen=True)
class SizeEstimate:
    """分发决策用的廉价规模估计"""
    byte_size: int = 0
    event_count: int = 0


class DispatchReason(str, enum.Enum):
    COUNT = "count"
    SIZE = "size"
    DISABLED = "disabled"
    BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class DispatchDecision:
    use_background: bool
    reason: DispatchReason
