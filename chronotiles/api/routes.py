from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from chronotiles.api.deps import get_publisher_redis, get_redis, get_settings
from chronotiles.api.models import (
    InputRequest,
    InputResponse,
    SessionCreateRequest,
    SessionListResponse,
    SessionView,
    TickRequest,
    TickResponse,
    event_view,
    session_view,
)
from chronotiles.config import Settings
from chronotiles.runner import SessionRunner
from chronotiles.session_store import close_session, create_session, created_at, get_runner, list_runners
from chronotiles.streams import SessionStream
from chronotiles.websocket_hub import hub

router = APIRouter()


def _view(runner: SessionRunner) -> SessionView:
    return session_view(runner.session, created_at=created_at(runner.session.session_id))


def _require(session_id: UUID) -> SessionRunner:
    runner = get_runner(session_id)
    if runner is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return runner


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(websocket: WebSocket, session_id: UUID) -> None:
    sid = str(session_id)
    await hub.subscribe(sid, websocket)

    try:
        # Frames only flow server to client; inbound text is ignored.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.unsubscribe(sid, websocket)
    except Exception:
        await hub.unsubscribe(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/session", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    r: redis.Redis = Depends(get_publisher_redis),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    try:
        runner = await create_session(r=r, settings=settings, difficulty=payload.difficulty, seed=payload.seed)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return _view(runner)


@router.get("/session", response_model=SessionListResponse)
async def list_sessions_route() -> SessionListResponse:
    return SessionListResponse(sessions=[_view(runner) for runner in list_runners()])


@router.get("/session/{session_id}", response_model=SessionView)
async def get_session_route(session_id: UUID) -> SessionView:
    return _view(_require(session_id))


@router.post("/session/{session_id}/input", response_model=InputResponse)
async def input_route(session_id: UUID, payload: InputRequest) -> InputResponse:
    runner = _require(session_id)
    result = await runner.handle_input(payload.command)
    return InputResponse(
        accepted=result.accepted,
        reason=result.reason.value if result.reason is not None else None,
        events=[event_view(e) for e in result.events],
        session=_view(runner),
    )


@router.post("/session/{session_id}/tick", response_model=TickResponse)
async def tick_route(session_id: UUID, payload: TickRequest) -> TickResponse:
    """Dev endpoint: advance a session's clock by hand.

    Meant for sessions created with autotick disabled (tests, replays).
    """

    runner = _require(session_id)
    events = await runner.advance(payload.delta_ms)
    return TickResponse(events=[event_view(e) for e in events], session=_view(runner))


@router.post("/session/{session_id}/restart", response_model=SessionView)
async def restart_route(session_id: UUID, settings: Settings = Depends(get_settings)) -> SessionView:
    runner = _require(session_id)
    await runner.stop()
    await runner.start(autotick=settings.autotick)
    return _view(runner)


@router.post("/session/{session_id}/idle", response_model=SessionView)
async def idle_route(session_id: UUID) -> SessionView:
    _require(session_id)
    runner = await close_session(session_id)
    return _view(runner)


@router.get("/sessions/{session_id}/events")
async def get_session_events_route(
    session_id: UUID,
    count: int = 50,
    start: str = "-",
    end: str = "+",
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Debug endpoint: read a session's event stream.

    Intended for local/dev testing when redis-cli isn't available.
    """

    if count < 1 or count > 500:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 500")

    stream_key = SessionStream(session_id=str(session_id)).key
    try:
        entries = r.xrange(stream_key, min=start, max=end, count=count)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    messages = [{"id": mid, "fields": fields} for mid, fields in entries]
    return {"session_id": str(session_id), "stream": stream_key, "messages": messages}
