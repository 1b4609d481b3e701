# ──────────────────────────────────────────────────────────────────────────────
# 模块用途：自适应分发 WorkerDispatcher
# 流程：规模估计 -> 一次性决策 -> {后台进程解析 | 前台分片解析 | 前台同步解析}
#   - 后台任何非成功结局（创建失败 / 执行错误 / 超时）都对“原始报文”回退前台解析；
#   - 对外契约是全函数：永远返回 Event 列表，不向调用方抛异常。
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from typing import Any, Callable, List, Optional

from commons.base_logger import BaseLogger
from ingest.batch import unknown_event
from ingest.chunked import parse_chunked
from ingest.config import ParseOptions
from ingest.estimator import estimate_size
from ingest.models import DispatchDecision, DispatchReason, Event, SizeEstimate
from ingest.worker import WorkerSession

SessionFactory = Callable[[ParseOptions], WorkerSession]


class WorkerDispatcher:
    """
    外部接口：
      - decide(estimate)     # 纯函数：是否走后台及原因
      - dispatch(payload)    # 完整解析，返回有序 Event 列表
    实例只持有只读配置，不在调用之间共享可变状态。
    """

    def __init__(
        self,
        options: Optional[ParseOptions] = None,
        *,
        session_factory: SessionFactory = WorkerSession,
        logger: Optional[BaseLogger] = None,
    ):
        self.options = options or ParseOptions()
        self._session_factory = session_factory
        self.log = logger or BaseLogger(name="ingest.dispatcher", debug=self.options.debug)

    def decide(self, estimate: SizeEstimate) -> DispatchDecision:
        opts = self.options
        if not opts.dispatch_enabled:
            return DispatchDecision(use_background=False, reason=DispatchReason.DISABLED)
        if estimate.event_count and estimate.event_count >= opts.count_threshold:
            return DispatchDecision(use_background=True, reason=DispatchReason.COUNT)
        if estimate.byte_size and estimate.byte_size >= opts.byte_threshold:
            return DispatchDecision(use_background=True, reason=DispatchReason.SIZE)
        return DispatchDecision(use_background=False, reason=DispatchReason.BELOW_THRESHOLD)

    async def dispatch(self, payload: Any) -> List[Event]:
        try:
            estimate = estimate_size(payload)
            decision = self.decide(estimate)
            self.log.log_debug(
                f"[dispatch] bytes={estimate.byte_size} count={estimate.event_count} "
                f"background={decision.use_background} reason={decision.reason.value}"
            )

            if decision.use_background:
                try:
                    events = await self._run_background(payload)
                except Exception as e:
                    self.log.log_warning(f"[dispatch] background parse raised, fallback to chunked: {e!r}")
                    events = None
                if events is not None:
                    return events

            return await parse_chunked(payload, self.options)
        except Exception as e:
            self.log.log_error(f"[dispatch] unexpected failure, keep payload as unknown: {e!r}")
            return [unknown_event(payload)]

    async def _run_background(self, payload: Any) -> Optional[List[Event]]:
        try:
            session = self._session_factory(self.options)
        except Exception as e:
            self.log.log_warning(f"[dispatch] worker session unavailable: {e!r}")
            return None
        return await session.run(payload)


async def transform_payload(payload: Any, options: Optional[ParseOptions] = None, **overrides: Any) -> List[Event]:
    """一次性入口：transform_payload(body, debug=True) 等价于用覆盖后的配置构造分发器再 dispatch。"""
    options = options or ParseOptions()
    if overrides:
        options = options.with_overrides(**overrides)
    return await WorkerDispatcher(options).dispatch(payload)
