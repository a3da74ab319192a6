"""
AudioReceiver: turns arbitrarily sized PCM messages into fixed-size AudioFrames.

- Expects PCM 16-bit mono 16kHz.
- Emits FRAME_BYTES frames (20ms = 640 bytes by default); remainder waits for more data.
"""
from __future__ import annotations

from meeting_copilot.config import get_settings


class AudioReceiver:
    """
    Buffers incoming binary messages into fixed-size PCM frames.
    Any remainder is kept for the next message.
    """

    def __init__(self, frame_bytes: int | None = None) -> None:
        settings = get_settings()
        self._frame_bytes = frame_bytes or settings.FRAME_BYTES
        self._buffer = bytearray()

    def feed(self, data: bytes) -> None:
        """Append raw PCM bytes."""
        self._buffer.extend(data)

    def drain_frames(self) -> list[bytes]:
        """Drain all complete frames; remainder stays in buffer."""
        out: list[bytes] = []
        while len(self._buffer) >= self._frame_bytes:
            out.append(bytes(self._buffer[: self._frame_bytes]))
            del self._buffer[: self._frame_bytes]
        return out

    def clear(self) -> None:
        """Drop a partial frame (e.g. between sessions)."""
        self._buffer.clear()
