from concurrent.futures import ThreadPoolExecutor

import pytest

from imgrecipe.pipeline.captures import CaptureSet

pytestmark = pytest.mark.unit


def test_frames_in_input_order():
    captures = CaptureSet()
    captures.add("gif", 2, b"c")
    captures.add("gif", 0, b"a")
    captures.add("gif", 1, b"b")

    assert captures.frames("gif") == [b"a", b"b", b"c"]
    assert captures.indices("gif") == [0, 1, 2]


def test_ids_are_independent():
    captures = CaptureSet()
    captures.add("gif", 0, b"g")
    captures.add("sheet", 3, b"s")

    assert captures.frames("sheet") == [b"s"]
    assert sorted(captures.aggregation_ids()) == ["gif", "sheet"]
    assert len(captures) == 2
    assert "gif" in captures
    assert "video" not in captures
    assert captures.frames("video") == []


def test_gaps_allowed():
    captures = CaptureSet()
    captures.add("gif", 5, b"f")
    captures.add("gif", 1, b"b")
    assert captures.frames("gif") == [b"b", b"f"]


def test_replacing_a_frame(caplog):
    captures = CaptureSet()
    captures.add("gif", 0, b"old")
    captures.add("gif", 0, b"new")

    assert captures.frames("gif") == [b"new"]
    assert "Replacing" in caplog.text


def test_concurrent_adds():
    captures = CaptureSet()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: captures.add("gif", i, str(i).encode()), reversed(range(200))))

    assert captures.frames("gif") == [str(i).encode() for i in range(200)]


def test_clear():
    captures = CaptureSet()
    captures.add("gif", 0, b"a")
    captures.clear()
    assert len(captures) == 0
    assert "gif" not in captures
