import asyncio
import contextlib

from fastapi import APIRouter, HTTPException, Request

from ..session import AutomationSession
from shared.errors import AgentError, AutomationBusy
from .schemas import (
    EventsResponse,
    StartRequest,
    StartResponse,
    StatusResponse,
    StepInfo,
    StopResponse,
    VoiceEnqueueRequest,
    VoiceTaskInfo,
)

router = APIRouter()


def _session(request: Request) -> AutomationSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="automation session not configured")
    return session


async def shutdown_event(app) -> None:
    session = getattr(app.state, "session", None)
    if session is None:
        return
    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(asyncio.to_thread(session.close), timeout=6)


@router.post("/automation/start", response_model=StartResponse)
def start_automation(payload: StartRequest, request: Request):
    session = _session(request)
    try:
        session.start(payload.task)
    except AutomationBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except AgentError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return StartResponse(state=session.loop.state.value, task=payload.task.strip())


@router.post("/automation/stop", response_model=StopResponse)
def stop_automation(request: Request):
    session = _session(request)
    stopped = session.stop()
    return StopResponse(stopped=stopped, state=session.loop.state.value)


@router.get("/automation/status", response_model=StatusResponse)
def automation_status(request: Request):
    return _session(request).status()


@router.get("/automation/history", response_model=list[StepInfo])
def automation_history(request: Request):
    return [step.to_dict() for step in _session(request).history()]


@router.get("/automation/events", response_model=EventsResponse)
def automation_events(request: Request, since: int = 0, limit: int = 200):
    events = _session(request).events
    limit = max(1, min(int(limit), 500))
    return EventsResponse(
        events=[event.to_dict() for event in events.poll(since, limit)],
        last_seq=events.last_seq,
    )


@router.post("/voice/enqueue", response_model=VoiceTaskInfo)
def enqueue_voice(payload: VoiceEnqueueRequest, request: Request):
    session = _session(request)
    try:
        task = session.enqueue_voice(payload.wake_word_detected, payload.command)
    except AgentError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return task.to_dict()


@router.get("/voice/tasks", response_model=list[VoiceTaskInfo])
def list_voice_tasks(request: Request):
    return [task.to_dict() for task in _session(request).voice.tasks()]
