# ──────────────────────────────────────────────────────────────────────────────
# 模块用途：一次性后台解析会话 WorkerSession
# 设计要点：
#   - 每次调用独占一个 spawn 子进程 + 一条双工管道，用完即销毁（不做进程池）；
#   - 子进程直接 import 同一套解析代码（serve_request），不传递源码文本；
#   - 消息约定：请求 {"payload", "config"}；响应 {"ok": True, "result": [...]} 或 {"ok": False, "error"}；
#   - 成功 / 失败 / 超时三路竞争，统一经由一个 asyncio.Future 单次落定（先检查再设置）；
#   - 超时后到达的结果直接丢弃；无论哪一路结束，都在线程中终止子进程，再关闭管道。
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import asyncio
import multiprocessing
from typing import Any, Callable, List, Optional, Tuple

from commons.base_logger import BaseLogger
from ingest.batch import parse_batch
from ingest.config import ParseOptions
from ingest.models import Event

_log = BaseLogger(name="ingest.worker")

OK = "ok"
ERROR = "error"
TIMEOUT = "timeout"

# 终止子进程后等待其退出、以及等待收发线程收尾的上限（秒）
JOIN_TIMEOUT_SEC = 1.0


def serve_request(conn) -> None:
    """子进程入口：收一条请求，同步解析，回一条响应，然后退出。"""
    try:
        request = conn.recv()
        options = ParseOptions(**(request.get("config") or {}))
        events = parse_batch(request.get("payload"), options)
        conn.send({"ok": True, "result": [ev.to_dict() for ev in events]})
    except Exception as e:
        try:
            conn.send({"ok": False, "error": repr(e)})
        except (OSError, ValueError):
            pass
    finally:
        conn.close()


class WorkerSession:
    """
    单次后台解析会话。run() 返回 Event 列表；任何非成功结局返回 None，由调用方回退前台解析。
    """

    def __init__(
        self,
        options: ParseOptions,
        *,
        target: Callable[[Any], None] = serve_request,
        mp_context=None,
        logger: BaseLogger = _log,
    ):
        self.options = options
        self.log = logger
        self._target = target
        self._ctx = mp_context or multiprocessing.get_context("spawn")
        self._proc = None
        self._conn = None
        self.outcome: Optional[str] = None

    # ──────────────────────────── 子进程生命周期 ──────────────────────────── #
    def _launch(self) -> None:
        parent_conn, child_conn = self._ctx.Pipe(duplex=True)
        proc = self._ctx.Process(
            target=self._target,
            args=(child_conn,),
            name="ingest-parse-worker",
            daemon=True,
        )
        self._conn = parent_conn
        try:
            proc.start()
        except Exception:
            child_conn.close()
            raise
        self._proc = proc
        # 父进程必须关闭子端，子进程退出后 recv() 才能收到 EOF
        child_conn.close()

    def _round_trip(self, request: dict) -> Any:
        """阻塞收发（在线程池中执行）。"""
        self._conn.send(request)
        return self._conn.recv()

    def _teardown(self) -> None:
        """终止子进程（幂等）。"""
        proc = self._proc
        if proc is None:
            return
        try:
            if proc.is_alive():
                proc.terminate()
            proc.join(timeout=JOIN_TIMEOUT_SEC)
            if proc.is_alive():
                proc.kill()
                proc.join(timeout=JOIN_TIMEOUT_SEC)
        except (OSError, ValueError) as e:
            self.log.log_warning(f"[WorkerSession] terminate failed: {e!r}")

    def _close_conn(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except OSError:
                pass

    # ──────────────────────────── 结局分类 ──────────────────────────── #
    @staticmethod
    def _classify(fut: asyncio.Future) -> Tuple[str, Any]:
        if fut.cancelled():
            return ERROR, "round trip cancelled"
        exc = fut.exception()
        if exc is not None:
            return ERROR, repr(exc)
        msg = fut.result()
        if isinstance(msg, dict) and msg.get("ok") is True and isinstance(msg.get("result"), list):
            return OK, msg["result"]
        if isinstance(msg, dict):
            return ERROR, msg.get("error") or "malformed response"
        return ERROR, f"unexpected message type {type(msg).__name__}"

    # ──────────────────────────── 对外接口 ──────────────────────────── #
    async def run(self, payload: Any) -> Optional[List[Event]]:
        loop = asyncio.get_running_loop()
        settled: asyncio.Future = loop.create_future()

        def settle(outcome: str, value: Any = None) -> None:
            # 单次完成令牌：只有第一个到达的结局生效
            if not settled.done():
                settled.set_result((outcome, value))

        try:
            self._launch()
        except Exception as e:
            self.outcome = ERROR
            self._report(f"create failed: {e!r}")
            self._teardown()
            self._close_conn()
            return None

        request = {"payload": payload, "config": self.options.to_dict()}
        timer = loop.call_later(self.options.timeout_sec, settle, TIMEOUT, None)
        round_trip = loop.run_in_executor(None, self._round_trip, request)
        round_trip.add_done_callback(lambda f: settle(*self._classify(f)))

        try:
            outcome, value = await settled
        finally:
            timer.cancel()
            # terminate / join / kill 放到线程里做，等待子进程退出期间事件循环不阻塞
            await loop.run_in_executor(None, self._teardown)
            # 子进程已退出，收发线程会很快因 EOF / 管道断开而返回
            await asyncio.wait({round_trip}, timeout=JOIN_TIMEOUT_SEC)
            self._close_conn()

        self.outcome = outcome
        if outcome == OK:
            try:
                return Event.from_list(value, strict=True)
            except Exception as e:
                self.outcome = ERROR
                self._report(f"malformed result: {e!r}")
                return None
        if outcome == TIMEOUT:
            self._report(f"timeout after {self.options.timeout_ms}ms")
        else:
            self._report(f"error: {value}")
        return None

    def _report(self, message: str) -> None:
        if self.options.debug:
            self.log.log_warning(f"[WorkerSession] {message}, fallback to foreground parse")
        else:
            self.log.log_debug(f"[WorkerSession] {message}, fallback to foreground parse")
