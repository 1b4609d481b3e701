import asyncio
import json

import pytest

from ingest.batch import parse_batch
from ingest.chunked import parse_chunked
from ingest.config import ParseOptions


def _events(n):
    return [{"e": "se", "se_ca": f"c{i}", "se_pr": '{"i": %d}' % i, "dtm": 1000 + i} for i in range(n)]


@pytest.mark.parametrize("payload", [
    _events(10),
    _events(123),
    {"schema": "s", "data": _events(77)},
    json.dumps(_events(60)),
    {"e": "pv", "dtm": 5},
])
def test_chunked_output_matches_batch_parser(payload):
    """✅ 分片只改变调度，不改变结果"""
    options = ParseOptions(chunk_size=7)
    assert asyncio.run(parse_chunked(payload, options)) == parse_batch(payload, options)


def test_chunked_yields_to_event_loop_between_slices():
    """大数组解析期间，其它协程能被调度"""
    ticks = []

    async def ticker():
        while True:
            ticks.append(1)
            await asyncio.sleep(0)

    async def main():
        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        before = len(ticks)
        events = await parse_chunked(_events(200), ParseOptions(chunk_size=10))
        during = len(ticks) - before
        task.cancel()
        return events, during

    events, during = asyncio.run(main())
    assert len(events) == 200
    assert during >= 10


def test_small_input_does_not_yield():
    ticks = []

    async def ticker():
        while True:
            ticks.append(1)
            await asyncio.sleep(0)

    async def main():
        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        before = len(ticks)
        await parse_chunked(_events(5), ParseOptions(chunk_size=50))
        during = len(ticks) - before
        task.cancel()
        return during

    assert asyncio.run(main()) == 0


def test_chunked_keeps_raw_text_fallback():
    events = asyncio.run(parse_chunked("not-json-not-base64###"))
    assert [(ev.event_type, ev.payload) for ev in events] == [("raw_text", "not-json-not-base64###")]
