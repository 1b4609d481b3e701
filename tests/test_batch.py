import json

import pytest

from ingest.b64json import encode_base64_json
from ingest.batch import batch_items, parse_batch, resolve_payload
from ingest.config import ParseOptions
from ingest.models import Event

SCHEMA = "iglu:com.snowplowanalytics.snowplow/payload_data/jsonschema/1-0-4"


def _envelope(n):
    return {"schema": SCHEMA, "data": [{"e": "se", "se_ca": f"cat-{i}", "dtm": str(1000 + i)} for i in range(n)]}


def test_end_to_end_structured_event_from_json_string():
    body = '{"schema":"x","data":[{"e":"se","se_ca":"button","se_ac":"click","se_la":"signup"}]}'
    events = parse_batch(body)

    assert len(events) == 1
    wire = events[0].to_dict(by_alias=True)
    assert wire["eventType"] == "structured_event"
    assert (wire["category"], wire["action"], wire["label"]) == ("button", "click", "signup")
    assert wire["property"] is None
    assert isinstance(wire["ts"], int)


@pytest.mark.parametrize("n", [0, 1, 7, 120])
def test_envelope_length_and_order_preserved(n):
    events = parse_batch(_envelope(n))
    assert len(events) == n
    assert [ev.category for ev in events] == [f"cat-{i}" for i in range(n)]


def test_bare_array_drops_non_objects_but_keeps_order():
    events = parse_batch([{"e": "pv", "url": "a"}, "junk", 3, {"e": "pv", "url": "b"}])
    assert [ev.url for ev in events] == ["a", "b"]


def test_base64_encoded_envelope_string():
    events = parse_batch(encode_base64_json(_envelope(3)))
    assert [ev.category for ev in events] == ["cat-0", "cat-1", "cat-2"]


def test_json_string_is_trimmed_before_parsing():
    assert resolve_payload("  " + json.dumps({"e": "pv"}) + "\n") == {"e": "pv"}


def test_malformed_string_yields_single_raw_text_event():
    """✅ 既不是 JSON 也不是 base64 的字符串：原样保留为一条 raw_text"""
    events = parse_batch("not-json-not-base64###")
    assert len(events) == 1
    assert events[0].event_type == "raw_text"
    assert events[0].payload == "not-json-not-base64###"


def test_broken_json_yields_raw_text_with_original_string():
    body = ' {"schema": "x", "data": [ '
    events = parse_batch(body)
    assert [ev.event_type for ev in events] == ["raw_text"]
    assert events[0].payload == body


def test_top_level_unstruct_wrapper_is_one_self_describing_event():
    obj = {"e": "se", "unstruct_event": {"schema": "iglu:com.acme/x/jsonschema/1-0-0", "data": {"a": 1}}}
    events = parse_batch(obj)
    assert len(events) == 1
    assert events[0].event_type == "unstruct"
    assert events[0].payload == {"a": 1}
    assert events[0].raw is obj


def test_single_object_is_one_event():
    events = parse_batch({"e": "pv", "url": "https://a.example/"})
    assert [ev.event_type for ev in events] == ["page_view"]


def test_object_with_data_list_but_no_schema_is_single_event():
    obj = {"data": [{"e": "pv"}]}
    events = parse_batch(obj)
    assert len(events) == 1
    assert events[0].event_type == "unknown"
    assert events[0].payload == obj


@pytest.mark.parametrize("payload", [None, "", "   "])
def test_empty_input_yields_empty_batch(payload):
    assert parse_batch(payload) == []


@pytest.mark.parametrize("payload", [3.5, 42, True])
def test_non_container_value_yields_unknown_placeholder(payload):
    events = parse_batch(payload)
    assert len(events) == 1
    assert events[0].event_type == "unknown"
    assert events[0].payload == payload


@pytest.mark.parametrize("payload", ["42", "true", '"hello"', " 7 "])
def test_scalar_literal_string_is_kept_as_raw_text(payload):
    """非 JSON 形状的字符串只尝试 base64；数字 / 布尔 / 带引号字面量都按原文保留"""
    events = parse_batch(payload)
    assert len(events) == 1
    assert events[0].event_type == "raw_text"
    assert events[0].payload == payload


def test_bytes_body_is_decoded():
    events = parse_batch(json.dumps(_envelope(2)).encode("utf-8"))
    assert len(events) == 2


def test_prefer_base64_option_is_forwarded():
    raw = {
        "e": "ue",
        "ue_px": encode_base64_json({"schema": "s", "data": {"from": "px"}}),
        "ue_pr": json.dumps({"schema": "s", "data": {"from": "pr"}}),
    }
    events = parse_batch([raw], ParseOptions(prefer_base64=True))
    assert events[0].payload == {"from": "px"}


def test_deeply_nested_input_never_raises():
    nested = "[" * 100_000 + "]" * 100_000
    events = parse_batch(nested)
    assert len(events) == 1
    assert all(isinstance(ev, Event) for ev in events)


def test_batch_items():
    assert batch_items([1]) == [1]
    assert batch_items({"schema": "s", "data": [1]}) == [1]
    assert batch_items({"schema": "s", "data": {"a": 1}}) is None
    assert batch_items("x") is None
