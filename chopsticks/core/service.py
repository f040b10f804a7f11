"""
Session service: maps caller requests onto the session store and game rules.
"""
from __future__ import annotations

import logging
import random

from .errors import ChopsticksError, DuplicateSession, SessionNotFound
from .game import Game, Slot
from .session_store import SessionStore

logger = logging.getLogger(__name__)

MAX_CREATE_ATTEMPTS = 3


class SessionService:
    def __init__(
        self,
        store: SessionStore,
        allow_self_join: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.allow_self_join = allow_self_join
        self._rng = rng

    def start_game(self, caller: str) -> str:
        """Create a game owned by ``caller`` and return its session id."""
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            game = Game.new(caller, rng=self._rng)
            try:
                self.store.create(game)
            except DuplicateSession:
                logger.error(
                    "Session id collision on attempt %d/%d: %s",
                    attempt,
                    MAX_CREATE_ATTEMPTS,
                    game.session_id,
                )
                if attempt == MAX_CREATE_ATTEMPTS:
                    raise
                continue
            logger.info(
                "Game %s started by %s, first turn %s",
                game.session_id,
                caller,
                game.active_turn.value,
            )
            return game.session_id
        raise DuplicateSession("Could not allocate a session id.")

    def join_game(self, caller: str, session_id: str) -> None:
        try:
            self.store.with_mut(
                session_id,
                lambda game: game.join(caller, allow_self_join=self.allow_self_join),
            )
        except ChopsticksError as e:
            logger.warning("Join rejected session=%s caller=%s: %s", session_id, caller, e.code)
            raise
        logger.info("Game %s joined by %s", session_id, caller)

    def make_move(
        self,
        caller: str,
        session_id: str,
        source: Slot | str,
        target: Slot | str,
    ) -> None:
        source, target = Slot(source), Slot(target)
        try:
            winner = self.store.with_mut(
                session_id,
                lambda game: _move_and_report(game, caller, source, target),
            )
        except ChopsticksError as e:
            logger.warning(
                "Move rejected session=%s caller=%s %s->%s: %s",
                session_id,
                caller,
                source.value,
                target.value,
                e.code,
            )
            raise
        logger.info("Move session=%s caller=%s %s->%s", session_id, caller, source.value, target.value)
        if winner is not None:
            logger.info("Game %s finished, winner %s", session_id, winner)

    def get_game_state(self, session_id: str) -> Game:
        game = self.store.get(session_id)
        if game is None:
            raise SessionNotFound(f"Session {session_id} not found.")
        return game


def _move_and_report(game: Game, caller: str, source: Slot, target: Slot) -> str | None:
    game.apply_move(caller, source, target)
    return game.winner
