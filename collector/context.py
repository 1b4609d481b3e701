# 会话上下文 IngestContext
from __future__ import annotations

import uuid
from dataclasses import dataclass, field


def _new_request_id() -> str:
    return str(uuid.uuid4())


@dataclass
class IngestContext:
    """
    由接入方持有的显式上下文（替代模块级全局 requestId）：
      - request_id 在一次会话内稳定；
      - reset() 开启新会话；
    解析核心不读取它，只有转发批次时附带。
    """
    request_id: str = field(default_factory=_new_request_id)

    @classmethod
    def create(cls) -> "IngestContext":
        return cls()

    def reset(self) -> str:
        self.request_id = _new_request_id()
        return self.request_id
