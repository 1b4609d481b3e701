# -*- coding: utf-8 -*-
# commons/normalizers.py
from __future__ import annotations

"""
normalizers
-----------
埋点字段级转换函数库。
约定：func(value) -> new_value，全部为纯函数，失败返回 None 而不是抛异常。
"""

import time
from typing import Any, Iterable, Mapping, Optional


def empty_to_none(x: Any) -> Any:
    """将空串（含全空白）转换为 None，其它值保持不变。"""
    return None if isinstance(x, str) and x.strip() == "" else x


def first_present(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """
    按优先级取第一个“有值”的字段：
    - None / 空串视为缺失
    - 0 / False 视为有值
    全部缺失返回 None。
    """
    for key in keys:
        val = empty_to_none(row.get(key))
        if val is not None:
            return val
    return None


def now_ms() -> int:
    """当前墙钟时间（毫秒）。"""
    return int(time.time() * 1000)


def to_epoch_ms(x: Any) -> Optional[int]:
    """
    设备时间戳 -> int 毫秒：
    - 数值或数字字符串按原值取整（上游 dtm 已是毫秒，不做秒/毫秒猜测）
    - bool / None / 空串 / 非法值 -> None
    """
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, str):
        x = x.strip()
        if x == "":
            return None
    try:
        val = float(x)
    except (TypeError, ValueError):
        return None
    if val != val or val in (float("inf"), float("-inf")):
        return None
    return int(val)


def to_bool_or_none(x: Any) -> Optional[bool]:
    """
    常见真值：True/1/"1"/"true"/"yes"/"y"；常见假值：False/0/"0"/"false"/"no"/"n"
    其它或空返回 None。
    """
    if x is None:
        return None
    if isinstance(x, bool):
        return x
    s = str(x).strip().lower()
    if s in {"1", "true", "yes", "y"}:
        return True
    if s in {"0", "false", "no", "n"}:
        return False
    return None


def ensure_event_type(row: dict, key: str = "event_type") -> None:
    """行级校验：事件类型必须为非空字符串。"""
    val = row.get(key)
    if not isinstance(val, str) or val.strip() == "":
        raise ValueError(f"{key} 必须为非空字符串，实际为 {val!r}")
