from __future__ import annotations

from pydantic import BaseModel, Field

from .game import Game, Seat, Slot


class PlayerState(BaseModel):
    identity: str
    session_ref: str | None = None
    left: int = Field(ge=0)
    right: int = Field(ge=0)


class PhaseState(BaseModel):
    kind: str
    winner: str | None = None


class GameSnapshot(BaseModel):
    session_id: str
    player_one: PlayerState
    player_two: PlayerState | None = None
    phase: PhaseState
    active_turn: Seat

    @classmethod
    def from_game(cls, game: Game) -> GameSnapshot:
        return cls.model_validate(game.to_dict())


class StartGameResponse(BaseModel):
    session_id: str


class MoveRequest(BaseModel):
    source: Slot
    target: Slot


class ErrorResponse(BaseModel):
    error: str
    detail: str
