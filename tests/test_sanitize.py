import pytest

from infodash.sanitize import sanitize_utf8


@pytest.mark.parametrize(
    "text",
    ["plain ascii", "café ✓ 日本", "emoji \U0001F600 end", ""],
)
def test_valid_utf8_passes_through_unchanged(text):
    assert sanitize_utf8(text.encode("utf-8")) == text
    assert sanitize_utf8(text) == text


@pytest.mark.parametrize(
    "raw, expected",
    [
        (b"abc\xc3(def", "abc(def"),
        (b"\x80\xbfabc", "abc"),
        (b"abc\xe2\x82", "abc"),
        (b"\xc0\xafx", "x"),
        (b"\xed\xa0\x80z", "z"),
        (b"\xf8\x88\x80\x80\x80ok", "ok"),
        (b"caf\xc3\xa9\xff!", "café!"),
    ],
)
def test_malformed_sequences_are_dropped(raw, expected):
    assert sanitize_utf8(raw) == expected


def test_sanitize_is_idempotent_on_arbitrary_bytes():
    samples = [
        bytes(range(256)),
        bytes(range(255, -1, -1)),
        b"\xe2\x82\xac\xe2\x82" * 3 + b"\xf0\x9f\x98",
    ]
    for raw in samples:
        once = sanitize_utf8(raw)
        assert sanitize_utf8(once.encode("utf-8")) == once
        once.encode("utf-8")


def test_all_invalid_bytes_yield_only_ascii():
    assert sanitize_utf8(bytes(range(256))) == "".join(chr(i) for i in range(128))


def test_large_valid_body_is_returned_unchanged():
    text = "café ✓ \U0001F600 " * 200000
    raw = bytearray(text.encode("utf-8"))

    assert sanitize_utf8(raw) == text


def test_lone_surrogate_in_text_is_removed():
    assert sanitize_utf8("a\ud800b") == "ab"
