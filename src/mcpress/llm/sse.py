"""Incremental decoder for server-sent event streams carrying JSON payloads."""

from __future__ import annotations

import codecs
import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FRAME_END = re.compile(r"\r\n\r\n|\n\n")
_LINE_SPLIT = re.compile(r"\r?\n")


class SSEFrameDecoder:
    """Split a byte stream into frames and return the JSON payload of each ``data:`` line.

    Frames end at a blank line. Anything after the last blank line stays
    buffered until more bytes arrive or :meth:`flush` is called.
    """

    def __init__(self):
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes | str) -> list[dict[str, Any]]:
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        payloads: list[dict[str, Any]] = []
        while True:
            match = _FRAME_END.search(self._buffer)
            if match is None:
                break
            frame = self._buffer[:match.start()]
            self._buffer = self._buffer[match.end():]
            payloads.extend(self.parse_frame(frame))
        return payloads

    def flush(self) -> list[dict[str, Any]]:
        """Parse whatever is still buffered once the stream has ended."""
        self._buffer += self._utf8.decode(b"", final=True)
        frame, self._buffer = self._buffer, ""
        if not frame.strip():
            return []
        return self.parse_frame(frame)

    @staticmethod
    def parse_frame(frame: str) -> list[dict[str, Any]]:
        payloads = []
        for line in _LINE_SPLIT.split(frame):
            line = line.strip()
            if not line.startswith("data:"):
                continue
            data = line[5:].strip()
            if not data or data == "[DONE]":
                continue
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"Skipping non-JSON SSE payload: {data[:80]}")
                continue
            if isinstance(payload, dict):
                payloads.append(payload)
        return payloads
