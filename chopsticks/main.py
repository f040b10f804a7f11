from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chopsticks.core.config import Settings, load_settings
from chopsticks.core.errors import (
    ChopsticksError,
    DuplicateSession,
    EmptySourceSlot,
    MissingIdentity,
    NotInProgress,
    NotJoinable,
    NotYourTurn,
    SessionNotFound,
    StorageError,
)
from chopsticks.core.identity import caller_identity
from chopsticks.core.service import SessionService
from chopsticks.core.session_store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionStore,
)
from chopsticks.core.types import (
    ErrorResponse,
    GameSnapshot,
    MoveRequest,
    StartGameResponse,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[ChopsticksError], int] = {
    MissingIdentity: 401,
    SessionNotFound: 404,
    NotJoinable: 409,
    NotInProgress: 409,
    NotYourTurn: 403,
    EmptySourceSlot: 422,
    DuplicateSession: 500,
    StorageError: 500,
}


@dataclass
class AppContext:
    settings: Settings
    store: SessionStore
    service: SessionService


def build_context(settings: Settings, store: SessionStore | None = None) -> AppContext:
    if store is None:
        if settings.store_path:
            store = JsonFileSessionStore(settings.store_path)
        else:
            store = InMemorySessionStore()
    service = SessionService(store, allow_self_join=settings.allow_self_join)
    return AppContext(settings=settings, store=store, service=service)


def get_service(request: Request) -> SessionService:
    return request.app.state.context.service


def create_app(settings: Settings | None = None, store: SessionStore | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(title="Chopsticks Backend")
    app.state.context = build_context(settings, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChopsticksError)
    async def chopsticks_error_handler(request: Request, exc: ChopsticksError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), 400)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        body = ErrorResponse(error=exc.code, detail=str(exc))
        return JSONResponse(status_code=status_code, content=body.model_dump())

    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.post("/games", response_model=StartGameResponse, status_code=201)
    def start_game(
        caller: str = Depends(caller_identity),
        service: SessionService = Depends(get_service),
    ) -> StartGameResponse:
        return StartGameResponse(session_id=service.start_game(caller))

    @app.post("/games/{session_id}/join", status_code=204)
    def join_game(
        session_id: str,
        caller: str = Depends(caller_identity),
        service: SessionService = Depends(get_service),
    ) -> Response:
        service.join_game(caller, session_id)
        return Response(status_code=204)

    @app.post("/games/{session_id}/moves", status_code=204)
    def make_move(
        session_id: str,
        request: MoveRequest,
        caller: str = Depends(caller_identity),
        service: SessionService = Depends(get_service),
    ) -> Response:
        service.make_move(caller, session_id, request.source, request.target)
        return Response(status_code=204)

    @app.get("/games/{session_id}", response_model=GameSnapshot)
    def get_game_state(
        session_id: str,
        service: SessionService = Depends(get_service),
    ) -> GameSnapshot:
        return GameSnapshot.from_game(service.get_game_state(session_id))

    return app


app = create_app()
