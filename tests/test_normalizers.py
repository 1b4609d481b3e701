import pytest

from commons.normalizers import (
    empty_to_none,
    ensure_event_type,
    first_present,
    now_ms,
    to_bool_or_none,
    to_epoch_ms,
)


def test_empty_to_none():
    assert empty_to_none("") is None
    assert empty_to_none("   ") is None
    assert empty_to_none("x") == "x"
    assert empty_to_none(0) == 0
    assert empty_to_none(None) is None


def test_first_present_skips_empty_but_keeps_falsy_values():
    row = {"eid": "", "event_id": None, "alt": 0}
    assert first_present(row, ("eid", "event_id", "alt")) == 0
    assert first_present(row, ("eid", "event_id")) is None
    assert first_present({"a": "x", "b": "y"}, ("b", "a")) == "y"


@pytest.mark.parametrize("value,expected", [
    (1_760_918_400_000, 1_760_918_400_000),     # 毫秒
    ("1760918400000", 1_760_918_400_000),       # 毫秒字符串
    (1_760_918_400_123.9, 1_760_918_400_123),   # 浮点截断
    ("", None),
    (None, None),
    ("abc", None),
    (True, None),
    ({"x": 1}, None),
    ("nan", None),
])
def test_to_epoch_ms(value, expected):
    assert to_epoch_ms(value) == expected


def test_now_ms_is_milliseconds():
    assert now_ms() > 1_600_000_000_000


@pytest.mark.parametrize("value,expected", [
    ("true", True), ("1", True), ("yes", True),
    ("false", False), ("0", False), ("n", False),
    ("", None), ("maybe", None), (None, None),
])
def test_to_bool_or_none(value, expected):
    assert to_bool_or_none(value) is expected


def test_ensure_event_type():
    ensure_event_type({"event_type": "page_view"})  # 不应抛异常
    with pytest.raises(ValueError):
        ensure_event_type({"event_type": ""})
    with pytest.raises(ValueError):
        ensure_event_type({})
