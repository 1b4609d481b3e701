# 格式探测 FormatDetector
# 只做廉价的语法判断，结果仅用于决定“先试哪种解码”，不保证解码一定成功。
from __future__ import annotations

import json
import re
from typing import Any

_BASE64_RX = re.compile(r"^[A-Za-z0-9\-_]+=*$")
MIN_BASE64_LEN = 8


def is_json_like(s: Any) -> bool:
    """去掉首尾空白后以 { 或 [ 开头。"""
    if not isinstance(s, str):
        return False
    t = s.strip()
    return t.startswith("{") or t.startswith("[")


def is_base64_like(s: Any) -> bool:
    """长度 >= 8 且只含 URL-safe base64 字符（允许尾部 = 填充）。"""
    if not isinstance(s, str):
        return False
    t = s.strip()
    if len(t) < MIN_BASE64_LEN:
        return False
    return _BASE64_RX.match(t) is not None


def try_parse_json(s: Any) -> Any:
    """json.loads 的不抛异常版本，失败返回 None。"""
    if not isinstance(s, (str, bytes, bytearray)):
        return None
    try:
        return json.loads(s)
    except (ValueError, TypeError, RecursionError):
        return None
