"""
Route definitions for the chat relay and chat sessions.

Relay:
- OPTIONS /functions/chat-with-tool : CORS preflight, empty 204
- POST    /functions/chat-with-tool : forward one question upstream

Endpoints under /api/chat:
- POST   /sessions                 : start a session (loads the saved key)
- GET    /sessions/{session_id}    : transcript, model choice and notices
- DELETE /sessions/{session_id}    : end a session and discard its transcript
- PUT    /sessions/{session_id}/model    : choose a model or "auto"
- POST   /sessions/{session_id}/messages : send one message
- PUT    /credential               : save the user's OpenRouter key
- DELETE /credential               : forget it
- POST   /match                    : related tools/guides/examples for a query
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from .. import config, storage
from ..catalog import store
from ..errors import EmptyMessageError, SessionBusyError
from ..llm import MODEL_LABELS
from ..matcher import match
from ..models import (
    CredentialRequest,
    MatchRequest,
    MatchResult,
    ModelPreferenceRequest,
    RelayRequest,
    SendMessageRequest,
    SessionView,
    TurnOutcome,
)
from ..orchestrator import (
    ChatOrchestrator,
    HttpRelayTransport,
    LocalRelayTransport,
    RelayTransport,
)
from ..relay import CORS_HEADERS, Relay, client_ip


logger = logging.getLogger(__name__)

RELAY = Relay()


def _default_transport() -> RelayTransport:
    if config.RELAY_URL:
        return HttpRelayTransport(config.RELAY_URL)
    return LocalRelayTransport(RELAY)


ORCHESTRATOR = ChatOrchestrator(store.TOOLS, _default_transport())


# Dependencies, overridable in tests via ``app.dependency_overrides``
def get_relay() -> Relay:
    return RELAY


def get_orchestrator() -> ChatOrchestrator:
    return ORCHESTRATOR


def get_sessions() -> storage.SessionRegistry:
    return storage.SESSIONS


def get_credentials() -> storage.CredentialStore:
    return storage.CREDENTIALS


relay_router = APIRouter(prefix="/functions", tags=["relay"])
router = APIRouter(prefix="/api/chat", tags=["chat"])


# ---------------------------------------------------------------------------
# Relay


@relay_router.options("/chat-with-tool")
def relay_preflight() -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


@relay_router.post("/chat-with-tool")
def relay_chat(req: RelayRequest, request: Request, relay: Relay = Depends(get_relay)) -> JSONResponse:
    peer = request.client.host if request.client else None
    caller = client_ip(dict(request.headers), peer)
    status, body = relay.handle(req, caller)
    return JSONResponse(body, status_code=status, headers=CORS_HEADERS)


# ---------------------------------------------------------------------------
# Sessions


def _view(session: storage.Session) -> SessionView:
    return SessionView(
        id=session.id,
        model_preference=session.model_preference,
        has_credential=bool(session.credential),
        busy=session.busy,
        messages=list(session.messages),
        notices=list(session.notices),
    )


def _session_or_404(session_id: str, sessions: storage.SessionRegistry) -> storage.Session:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/sessions", response_model=SessionView, status_code=201)
def create_session(
    sessions: storage.SessionRegistry = Depends(get_sessions),
    credentials: storage.CredentialStore = Depends(get_credentials),
) -> SessionView:
    return _view(sessions.create(credential=credentials.load()))


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session(
    session_id: str, sessions: storage.SessionRegistry = Depends(get_sessions)
) -> SessionView:
    return _view(_session_or_404(session_id, sessions))


@router.delete("/sessions/{session_id}", status_code=204)
def end_session(
    session_id: str, sessions: storage.SessionRegistry = Depends(get_sessions)
) -> Response:
    if not sessions.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.put("/sessions/{session_id}/model", response_model=SessionView)
def set_model(
    session_id: str,
    req: ModelPreferenceRequest,
    sessions: storage.SessionRegistry = Depends(get_sessions),
) -> SessionView:
    session = _session_or_404(session_id, sessions)
    if req.model not in MODEL_LABELS:
        raise HTTPException(status_code=400, detail=f"Unknown model: {req.model}")
    session.model_preference = req.model
    return _view(session)


@router.post("/sessions/{session_id}/messages", response_model=TurnOutcome)
def send_message(
    session_id: str,
    req: SendMessageRequest,
    sessions: storage.SessionRegistry = Depends(get_sessions),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> TurnOutcome:
    session = _session_or_404(session_id, sessions)
    try:
        return orchestrator.send_turn(req.message, session)
    except EmptyMessageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ---------------------------------------------------------------------------
# Credential and matching


@router.put("/credential")
def save_credential(
    req: CredentialRequest,
    sessions: storage.SessionRegistry = Depends(get_sessions),
    credentials: storage.CredentialStore = Depends(get_credentials),
):
    try:
        api_key = credentials.save(req.api_key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    for session in sessions.all():
        session.credential = api_key
    return {"status": "ok", "title": "API Key Saved"}


@router.delete("/credential")
def clear_credential(
    sessions: storage.SessionRegistry = Depends(get_sessions),
    credentials: storage.CredentialStore = Depends(get_credentials),
):
    credentials.clear()
    for session in sessions.all():
        session.credential = None
    return {"status": "ok", "title": "API Key Cleared"}


@router.post("/match", response_model=MatchResult)
def match_query(req: MatchRequest) -> MatchResult:
    return match(req.query, store.TOOLS)
