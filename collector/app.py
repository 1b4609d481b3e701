# ────────────────────────────────────────────────────────────────
# 模块用途：埋点接收端（FastAPI）
# 说明：
#   - POST /collect 接收原始请求体（批量信封 / base64 / 单事件均可），交给分发器解析；
#   - GET /i 接收像素式 GET 上报（查询参数即一条原始事件）；
#   - 解析结果附带 requestId 组成批次，可选经 format_input 钩子最终格式化，再发布到 BatchBus；
#   - 钩子失败只记日志，转发未格式化的批次。
# ────────────────────────────────────────────────────────────────
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from collector.bus import BatchBus
from collector.context import IngestContext
from commons.base_logger import BaseLogger
from ingest.config import ParseOptions
from ingest.dispatcher import WorkerDispatcher
from ingest.models import Event

FormatInput = Callable[[dict], Union[Any, Awaitable[Any]]]

_log = BaseLogger(name="collector")


def build_batch(events: list[Event], context: IngestContext) -> dict:
    return {
        "requestId": context.request_id,
        "events": [ev.to_dict(by_alias=True) for ev in events],
    }


async def apply_format_input(batch: dict, format_input: Optional[FormatInput]) -> Any:
    """调用外部格式化钩子（同步或异步均可）；失败时返回原批次。"""
    if format_input is None:
        return batch
    try:
        out = format_input(batch)
        if inspect.isawaitable(out):
            out = await out
    except Exception as e:
        _log.log_warning(f"[collector] format_input failed, forward unformatted batch: {e!r}")
        return batch
    return batch if out is None else out


def build_collector_app(
    dispatcher: Optional[WorkerDispatcher] = None,
    *,
    batch_bus: Optional[BatchBus] = None,
    context: Optional[IngestContext] = None,
    format_input: Optional[FormatInput] = None,
) -> FastAPI:
    dispatcher = dispatcher or WorkerDispatcher(ParseOptions.from_env())
    batch_bus = batch_bus or BatchBus()
    context = context or IngestContext.create()

    app = FastAPI(title="Tracker Ingest Collector", version="0.1.0")
    app.state.dispatcher = dispatcher
    app.state.bus = batch_bus
    app.state.context = context

    async def _forward(payload: Any) -> dict:
        events = await dispatcher.dispatch(payload)
        batch = await apply_format_input(build_batch(events, context), format_input)
        await batch_bus.publish(batch)
        return {"ok": True, "count": len(events), "requestId": context.request_id}

    @app.get("/health")
    async def _health():
        return {"ok": True}

    @app.post("/collect")
    async def _collect(request: Request):
        body = await request.body()
        return await _forward(body.decode("utf-8", "replace"))

    @app.get("/i")
    async def _pixel(request: Request):
        return await _forward(dict(request.query_params))

    @app.get("/latest")
    async def _latest():
        batch = batch_bus.peek()
        if batch is None:
            return JSONResponse({"ok": False, "error": "no batch yet"}, status_code=404)
        return JSONResponse(batch)

    return app


if __name__ == "__main__":
    from tools.config_loader import load_config

    cfg = load_config(section="collector")
    app = build_collector_app(WorkerDispatcher(ParseOptions.from_yaml()))
    uvicorn.run(app, host=cfg.get("host", "127.0.0.1"), port=int(cfg.get("port", 8000)))
