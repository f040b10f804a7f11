from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from .errors import DuplicateSession, SessionNotFound, StorageError
from .game import Game

logger = logging.getLogger(__name__)

R = TypeVar("R")

SERVICE_KEY = "chopsticks_game_service"


class SessionStore(ABC):
    """Keyed collection of games with one-at-a-time access.

    Games are held in encoded form, so every read hands out a detached copy and
    a mutation only becomes visible once ``with_mut`` commits it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._games: dict[str, dict[str, Any]] = {}

    def create(self, game: Game) -> None:
        with self._lock:
            if game.session_id in self._games:
                raise DuplicateSession(f"Session {game.session_id} already exists.")
            self._games[game.session_id] = game.to_dict()
            try:
                self._persist()
            except StorageError:
                del self._games[game.session_id]
                raise

    def get(self, session_id: str) -> Game | None:
        with self._lock:
            raw = self._games.get(session_id)
            return Game.from_dict(raw) if raw is not None else None

    def with_mut(self, session_id: str, fn: Callable[[Game], R]) -> R:
        with self._lock:
            previous = self._games.get(session_id)
            if previous is None:
                raise SessionNotFound(f"Session {session_id} not found.")
            game = Game.from_dict(previous)
            result = fn(game)
            self._games[session_id] = game.to_dict()
            try:
                self._persist()
            except StorageError:
                self._games[session_id] = previous
                raise
            return result

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._games

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)

    @abstractmethod
    def _persist(self) -> None:
        """Flush the full collection to the backing storage."""


class InMemorySessionStore(SessionStore):
    def _persist(self) -> None:
        return None


class JsonFileSessionStore(SessionStore):
    """Stores every session in one JSON document under a single named container.

    The file is rewritten atomically after each successful mutation and
    reloaded on construction.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = os.path.abspath(path)
        self._load()

    def _load(self) -> None:
        if not os.path.isfile(self.path):
            logger.info("Session file %s not found, starting empty", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read session file {self.path}: {e}") from e
        if not isinstance(raw, dict) or not isinstance(raw.get(SERVICE_KEY), dict):
            raise StorageError(f"Session file {self.path} has no {SERVICE_KEY!r} container.")
        games = raw[SERVICE_KEY].get("games", {})
        if not isinstance(games, dict):
            raise StorageError(f"Session file {self.path} has a malformed games table.")
        try:
            for session_id, encoded in games.items():
                # Decoding validates the record before it is accepted.
                Game.from_dict(encoded)
                self._games[session_id] = encoded
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self._games.clear()
            raise StorageError(f"Session file {self.path} holds a malformed game: {e!r}") from e
        logger.info("Loaded %d sessions from %s", len(self._games), self.path)

    def _persist(self) -> None:
        payload = {SERVICE_KEY: {"games": self._games}}
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".sessions-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error("Failed to write session file %s: %s", self.path, e)
            raise StorageError(f"Could not write session file {self.path}: {e}") from e
