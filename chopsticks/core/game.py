from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import EmptySourceSlot, NotInProgress, NotJoinable, NotYourTurn

ELIMINATION_THRESHOLD = 5
STARTING_VALUE = 1


class Seat(str, Enum):
    PLAYER_ONE = "player_one"
    PLAYER_TWO = "player_two"

    def other(self) -> Seat:
        return Seat.PLAYER_TWO if self is Seat.PLAYER_ONE else Seat.PLAYER_ONE


class Slot(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class AwaitingOpponent:
    kind = "awaiting_opponent"


@dataclass(frozen=True)
class InProgress:
    kind = "in_progress"


@dataclass(frozen=True)
class Finished:
    winner: str
    kind = "finished"


Phase = Union[AwaitingOpponent, InProgress, Finished]


def phase_to_dict(phase: Phase) -> dict[str, Any]:
    match phase:
        case AwaitingOpponent() | InProgress():
            return {"kind": phase.kind, "winner": None}
        case Finished(winner=winner):
            return {"kind": phase.kind, "winner": winner}


def phase_from_dict(raw: dict[str, Any]) -> Phase:
    kind = raw.get("kind")
    if kind == AwaitingOpponent.kind:
        return AwaitingOpponent()
    if kind == InProgress.kind:
        return InProgress()
    if kind == Finished.kind:
        return Finished(winner=raw["winner"])
    raise ValueError(f"Unknown phase kind: {kind!r}")


@dataclass
class Player:
    identity: str
    session_ref: str | None = None
    left: int = STARTING_VALUE
    right: int = STARTING_VALUE

    def slot_value(self, slot: Slot) -> int:
        return self.left if slot is Slot.LEFT else self.right

    def set_slot(self, slot: Slot, value: int) -> None:
        if slot is Slot.LEFT:
            self.left = value
        else:
            self.right = value

    def is_eliminated(self) -> bool:
        return self.left == 0 and self.right == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "session_ref": self.session_ref,
            "left": self.left,
            "right": self.right,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Player:
        return cls(
            identity=raw["identity"],
            session_ref=raw.get("session_ref"),
            left=int(raw["left"]),
            right=int(raw["right"]),
        )


@dataclass
class Game:
    session_id: str
    player_one: Player
    player_two: Player | None
    phase: Phase
    active_turn: Seat

    @classmethod
    def new(cls, creator: str, rng: random.Random | None = None) -> Game:
        rng = rng or random
        session_id = str(uuid.uuid4())
        return cls(
            session_id=session_id,
            player_one=Player(identity=creator, session_ref=session_id),
            player_two=None,
            phase=AwaitingOpponent(),
            active_turn=Seat.PLAYER_ONE if rng.random() < 0.5 else Seat.PLAYER_TWO,
        )

    @property
    def winner(self) -> str | None:
        match self.phase:
            case Finished(winner=winner):
                return winner
            case AwaitingOpponent() | InProgress():
                return None

    def player(self, seat: Seat) -> Player | None:
        return self.player_one if seat is Seat.PLAYER_ONE else self.player_two

    def join(self, joiner: str, allow_self_join: bool = True) -> None:
        match self.phase:
            case AwaitingOpponent() if self.player_two is None:
                pass
            case AwaitingOpponent() | InProgress() | Finished():
                raise NotJoinable(f"Game {self.session_id} cannot be joined.")
        if not allow_self_join and joiner == self.player_one.identity:
            raise NotJoinable("Cannot join your own game.")

        self.player_two = Player(identity=joiner, session_ref=self.session_id)
        self.phase = InProgress()

    def apply_move(self, actor: str, source: Slot, target: Slot) -> None:
        match self.phase:
            case InProgress():
                pass
            case AwaitingOpponent() | Finished():
                raise NotInProgress(f"Game {self.session_id} is not in progress.")

        mover = self.player(self.active_turn)
        opponent = self.player(self.active_turn.other())
        # Matched against the active seat only; a self-joined player holds both.
        if mover is None or opponent is None or mover.identity != actor:
            raise NotYourTurn()

        amount = mover.slot_value(source)
        if amount == 0:
            raise EmptySourceSlot()

        total = opponent.slot_value(target) + amount
        opponent.set_slot(target, 0 if total >= ELIMINATION_THRESHOLD else total)

        if opponent.is_eliminated():
            self.phase = Finished(winner=actor)
            return
        self.active_turn = self.active_turn.other()

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "player_one": self.player_one.to_dict(),
            "player_two": self.player_two.to_dict() if self.player_two else None,
            "phase": phase_to_dict(self.phase),
            "active_turn": self.active_turn.value,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Game:
        player_two = raw.get("player_two")
        return cls(
            session_id=raw["session_id"],
            player_one=Player.from_dict(raw["player_one"]),
            player_two=Player.from_dict(player_two) if player_two else None,
            phase=phase_from_dict(raw["phase"]),
            active_turn=Seat(raw["active_turn"]),
        )
