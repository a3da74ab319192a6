"""
FastAPI app: WebSocket endpoint for a live meeting session; HTTP API for session control
and history.

Client sends binary PCM 16-bit mono 16kHz plus JSON commands over /ws/session. Server
pushes lifecycle events as JSON:
{ "type": "session-started" | "utterance-ready" | "session-ending" | "session-closed", ... }
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect

from meeting_copilot.asr.local_whisper import load_whisper_model
from meeting_copilot.config import get_settings
from meeting_copilot.logging_config import configure_logging
from meeting_copilot.schemas.session import (
    SessionRecordOut,
    SessionStatus,
    StartResponse,
    StopResponse,
)
from meeting_copilot.session_manager import SessionManager, build_session_manager
from meeting_copilot.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


def get_session_manager(app: FastAPI) -> SessionManager:
    manager = getattr(app.state, "session_manager", None)
    if manager is None:
        raise RuntimeError("App not initialized (lifespan not run?)")
    return manager


def create_app(session_manager: SessionManager | None = None) -> FastAPI:
    """session_manager: pre-built manager (tests); otherwise wired from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if session_manager is not None:
            app.state.session_manager = session_manager
        else:
            settings = get_settings()
            # Load Whisper model once at startup when the local engine may be used
            model = load_whisper_model() if settings.ASR_BACKEND in ("auto", "local") else None
            app.state.session_manager = build_session_manager(whisper_model=model)
        yield
        await app.state.session_manager.teardown()
        app.state.session_manager = None

    app = FastAPI(
        title="Meeting Copilot",
        description="Live meeting transcription with pause-based segmentation, insights and summaries",
        lifespan=lifespan,
    )

    @app.websocket("/ws/session")
    async def websocket_session(websocket: WebSocket) -> None:
        await websocket.accept()
        manager = WebSocketManager(websocket, get_session_manager(websocket.app))
        try:
            await manager.run()
        except WebSocketDisconnect:
            pass

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/session/start", response_model=StartResponse)
    async def start_session(request: Request) -> StartResponse:
        manager = get_session_manager(request.app)
        session_id = await manager.start()
        return StartResponse(session_id=session_id, state=manager.state.value)

    @app.post("/api/session/stop", response_model=StopResponse)
    async def stop_session(request: Request) -> StopResponse:
        manager = get_session_manager(request.app)
        record = await manager.stop()
        if record is None:
            return StopResponse()
        return StopResponse(session_id=record.session_id, record=SessionRecordOut.model_validate(record.to_dict()))

    @app.get("/api/session", response_model=SessionStatus)
    async def session_status(request: Request) -> SessionStatus:
        return SessionStatus.model_validate(get_session_manager(request.app).snapshot())

    @app.get("/api/sessions", response_model=list[SessionRecordOut])
    async def session_history(request: Request, limit: int | None = None) -> list[SessionRecordOut]:
        store = get_session_manager(request.app).store
        return [SessionRecordOut.model_validate(r.to_dict()) for r in store.list_sessions(limit)]

    @app.get("/api/sessions/{session_id}", response_model=SessionRecordOut)
    async def session_detail(session_id: str, request: Request) -> SessionRecordOut:
        record = get_session_manager(request.app).store.get_session(session_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Session not found or still open")
        return SessionRecordOut.model_validate(record.to_dict())

    return app


app = create_app()
