"""
WebSocketManager: one client connection bound to the process-wide SessionManager.

Client → server:
- binary: raw PCM 16-bit mono 16kHz, any message size (split into fixed AudioFrames)
- text: JSON command {"type": "start"} | {"type": "stop"}

Server → client: every lifecycle event as JSON (session-started, utterance-ready,
session-ending, session-closed), plus {"type": "session", ...} replying to commands and
{"type": "error", "detail": ...} for bad commands.

Disconnecting does not end the session; the silence timer or an explicit stop does.
"""
from __future__ import annotations

import json
import logging

from fastapi import WebSocket

from meeting_copilot.audio.receiver import AudioReceiver
from meeting_copilot.events import SessionEvent
from meeting_copilot.session_manager import SessionManager

logger = logging.getLogger(__name__)


class WebSocketManager:
    def __init__(self, websocket: WebSocket, session: SessionManager) -> None:
        self._ws = websocket
        self._session = session
        self._receiver = AudioReceiver()
        self._closed = False

    async def _send_json(self, payload: dict) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(json.dumps(payload, ensure_ascii=False))
        except Exception:
            self._closed = True

    async def _on_event(self, event: SessionEvent) -> None:
        await self._send_json(event.to_dict())

    async def _handle_command(self, raw: str) -> None:
        try:
            command = json.loads(raw)
        except json.JSONDecodeError:
            await self._send_json({"type": "error", "detail": "invalid JSON command"})
            return
        kind = command.get("type") if isinstance(command, dict) else None
        if kind == "start":
            self._receiver.clear()
            session_id = await self._session.start()
            await self._send_json({"type": "session", "session_id": session_id, "state": self._session.state.value})
        elif kind == "stop":
            record = await self._session.stop()
            await self._send_json(
                {
                    "type": "session",
                    "session_id": record.session_id if record else None,
                    "state": self._session.state.value,
                }
            )
        else:
            await self._send_json({"type": "error", "detail": f"unknown command: {kind!r}"})

    async def run(self) -> None:
        """Receive loop: frames go to the session, text messages are commands."""
        self._session.subscribe(self._on_event)
        await self._send_json({"type": "state", **self._session.snapshot()})
        try:
            while not self._closed:
                try:
                    msg = await self._ws.receive()
                except Exception:
                    break
                if msg.get("type") == "websocket.disconnect":
                    break
                data = msg.get("bytes")
                if data is not None:
                    self._receiver.feed(data)
                    for frame in self._receiver.drain_frames():
                        self._session.feed(frame)
                    continue
                text = msg.get("text")
                if text is not None:
                    await self._handle_command(text)
        finally:
            self._closed = True
            self._session.unsubscribe(self._on_event)
            self._receiver.clear()
            logger.debug("WebSocket client detached (session state %s)", self._session.state.value)
