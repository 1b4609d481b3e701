# ──────────────────────────────────────────────────────────────────────────────
# 模块用途：集中管理解析 / 分发的运行配置（默认值 / 环境变量 / YAML → dataclass）
# 说明：
#   - 上层只依赖 ParseOptions，不直接感知环境变量键名或配置文件结构；
#   - 后台进程通过 to_dict() / ParseOptions(**d) 往返传递配置。
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from commons.normalizers import to_bool_or_none
from tools.config_loader import load_config


@dataclass(frozen=True)
class ParseOptions:
    """解析与分发配置（不可变 dataclass）"""
    dispatch_enabled: bool = True            # 是否允许后台进程解析
    count_threshold: int = 100               # 事件条数阈值
    byte_threshold: int = 50 * 1024          # 报文字节阈值
    chunk_size: int = 50                     # 前台分片大小
    timeout_ms: int = 3000                   # 后台超时（毫秒）
    debug: bool = False                      # 调试日志开关
    prefer_base64: Optional[bool] = None     # 载体尝试顺序偏好；None 表示自动探测

    def __post_init__(self):
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size 必须 >= 1，实际为 {self.chunk_size}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms 必须 > 0，实际为 {self.timeout_ms}")
        if self.count_threshold < 0 or self.byte_threshold < 0:
            raise ValueError("count_threshold / byte_threshold 不能为负数")

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def with_overrides(self, **overrides: Any) -> "ParseOptions":
        """返回覆盖部分字段后的新实例（值为 None 的覆盖项忽略，prefer_base64 除外）。"""
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"未知配置项: {sorted(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None or k == "prefer_base64"}
        return dataclasses.replace(self, **changes)

    @staticmethod
    def from_env() -> "ParseOptions":
        """从环境变量读取配置；未设置的项使用默认值。"""
        prefer = os.getenv("INGEST_PREFER_BASE64", "")
        return ParseOptions(
            dispatch_enabled=os.getenv("INGEST_DISPATCH_ENABLED", "true").lower() == "true",
            count_threshold=int(os.getenv("INGEST_COUNT_THRESHOLD", "100")),
            byte_threshold=int(os.getenv("INGEST_BYTE_THRESHOLD", str(50 * 1024))),
            chunk_size=int(os.getenv("INGEST_CHUNK_SIZE", "50")),
            timeout_ms=int(os.getenv("INGEST_TIMEOUT_MS", "3000")),
            debug=os.getenv("INGEST_DEBUG", "false").lower() == "true",
            prefer_base64=to_bool_or_none(prefer),
        )

    @staticmethod
    def from_yaml(section: str = "parser", file_path: str = "config/ingest.yaml") -> "ParseOptions":
        """从 YAML 配置块构造；只取认识的键，缺失项使用默认值。"""
        cfg = load_config(section=section, file_path=file_path)
        if not isinstance(cfg, dict):
            raise RuntimeError(f"config section {section!r} must be a dict")
        known = {f.name for f in dataclasses.fields(ParseOptions)}
        return ParseOptions(**{k: v for k, v in cfg.items() if k in known})
