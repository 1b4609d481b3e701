# URL-safe base64 ⇄ JSON
from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from ingest.format_detect import try_parse_json


def decode_base64_json(b64: Any) -> Any:
    """
    URL-safe base64 -> UTF-8 文本 -> JSON 值；任何一步失败返回 None，永不抛异常。

    步骤：
    1. '-' -> '+'，'_' -> '/'（URL-safe 字母表还原为标准字母表）
    2. 右侧补 '=' 到 4 的倍数
    3. 严格 base64 解码（非法字符直接失败，而不是被静默丢弃）
    4. 按 UTF-8 严格解码字节（多字节字符如 emoji / 中文原样还原）
    5. JSON 解析
    """
    if not isinstance(b64, str):
        return None
    t = b64.strip()
    if not t:
        return None
    t = t.replace("-", "+").replace("_", "/")
    t += "=" * (-len(t) % 4)
    try:
        raw = base64.b64decode(t, validate=True)
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    return try_parse_json(text)


def encode_base64_json(value: Any) -> str:
    """JSON 值 -> 紧凑 UTF-8 JSON -> 无填充的 URL-safe base64（decode_base64_json 的逆操作）。"""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")
