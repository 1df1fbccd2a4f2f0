"""Tests for the SSE frame decoder."""

from mcpress.llm.sse import SSEFrameDecoder


def test_single_frame():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b'data: {"a": 1}\n\n') == [{"a": 1}]


def test_crlf_frames():
    decoder = SSEFrameDecoder()
    payloads = decoder.feed(b'data: {"a": 1}\r\n\r\ndata: {"b": 2}\r\n\r\n')
    assert payloads == [{"a": 1}, {"b": 2}]


def test_partial_frame_is_buffered_across_reads():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b'data: {"text": "Hel') == []
    assert decoder.feed(b'lo"}\n') == []
    assert decoder.feed(b'\n') == [{"text": "Hello"}]


def test_multibyte_character_split_across_reads():
    decoder = SSEFrameDecoder()
    raw = 'data: {"text": "café"}\n\n'.encode()
    split = raw.index(b"\xa9")  # second byte of "é"
    assert decoder.feed(raw[:split]) == []
    assert decoder.feed(raw[split:]) == [{"text": "café"}]


def test_done_and_empty_payloads_are_swallowed():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b"data: [DONE]\n\ndata:\n\n") == []


def test_non_json_payload_is_skipped():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b'data: not json\n\ndata: {"ok": true}\n\n') == [{"ok": True}]


def test_non_data_lines_are_ignored():
    decoder = SSEFrameDecoder()
    frame = b': keep-alive\nevent: message\nid: 7\ndata: {"x": 1}\n\n'
    assert decoder.feed(frame) == [{"x": 1}]


def test_flush_returns_trailing_frame_without_blank_line():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b'data: {"a": 1}\n\ndata: {"tail": true}') == [{"a": 1}]
    assert decoder.flush() == [{"tail": True}]
    assert decoder.flush() == []


def test_json_scalars_are_not_payloads():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b"data: 42\n\n") == []
