import json

import pytest

from chopsticks.core.errors import DuplicateSession, NotYourTurn, SessionNotFound, StorageError
from chopsticks.core.game import Game, InProgress, Seat, Slot
from chopsticks.core.session_store import (
    SERVICE_KEY,
    InMemorySessionStore,
    JsonFileSessionStore,
)


def _started_game() -> Game:
    game = Game.new("alice")
    game.join("bob")
    game.active_turn = Seat.PLAYER_ONE
    return game


def test_create_and_get():
    store = InMemorySessionStore()
    game = Game.new("alice")
    store.create(game)
    assert game.session_id in store
    assert len(store) == 1
    assert store.get(game.session_id) == game
    assert store.get("missing") is None


def test_create_duplicate_fails():
    store = InMemorySessionStore()
    game = Game.new("alice")
    store.create(game)
    with pytest.raises(DuplicateSession):
        store.create(game)
    assert len(store) == 1


def test_get_returns_detached_copy():
    store = InMemorySessionStore()
    game = Game.new("alice")
    store.create(game)
    fetched = store.get(game.session_id)
    fetched.player_one.left = 4
    assert store.get(game.session_id).player_one.left == 1


def test_with_mut_commits_and_returns_result():
    store = InMemorySessionStore()
    game = Game.new("alice")
    store.create(game)

    def join(g: Game) -> str:
        g.join("bob")
        return g.session_id

    assert store.with_mut(game.session_id, join) == game.session_id
    stored = store.get(game.session_id)
    assert stored.phase == InProgress()
    assert stored.player_two.identity == "bob"


def test_with_mut_missing_session():
    store = InMemorySessionStore()
    with pytest.raises(SessionNotFound):
        store.with_mut("missing", lambda g: None)


def test_with_mut_discards_changes_when_fn_raises():
    store = InMemorySessionStore()
    game = _started_game()
    store.create(game)
    before = store.get(game.session_id).to_dict()

    def partial(g: Game) -> None:
        g.player_two.left = 3
        raise NotYourTurn()

    with pytest.raises(NotYourTurn):
        store.with_mut(game.session_id, partial)
    assert store.get(game.session_id).to_dict() == before


def test_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "sessions.json"
    store = JsonFileSessionStore(str(path))
    game = _started_game()
    store.create(game)
    store.with_mut(game.session_id, lambda g: g.apply_move("alice", Slot.LEFT, Slot.LEFT))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert game.session_id in raw[SERVICE_KEY]["games"]

    reloaded = JsonFileSessionStore(str(path))
    restored = reloaded.get(game.session_id)
    assert restored.player_two.left == 2
    assert restored.active_turn is Seat.PLAYER_TWO


def test_file_store_rejected_move_leaves_file_untouched(tmp_path):
    path = tmp_path / "sessions.json"
    store = JsonFileSessionStore(str(path))
    game = _started_game()
    store.create(game)
    before = path.read_bytes()

    with pytest.raises(NotYourTurn):
        store.with_mut(game.session_id, lambda g: g.apply_move("bob", Slot.LEFT, Slot.LEFT))
    assert path.read_bytes() == before


def test_file_store_starts_empty_without_file(tmp_path):
    store = JsonFileSessionStore(str(tmp_path / "nested" / "sessions.json"))
    assert len(store) == 0
    store.create(Game.new("alice"))
    assert (tmp_path / "nested" / "sessions.json").is_file()


def test_file_store_rejects_foreign_document(tmp_path):
    path = tmp_path / "sessions.json"
    path.write_text(json.dumps({"something_else": {}}), encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileSessionStore(str(path))


def test_file_store_rejects_corrupt_json(tmp_path):
    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileSessionStore(str(path))


@pytest.mark.parametrize(
    "document",
    [
        {SERVICE_KEY: []},
        {SERVICE_KEY: {"games": ["not", "a", "table"]}},
        {SERVICE_KEY: {"games": {"s1": {"session_id": "s1"}}}},
        {SERVICE_KEY: {"games": {"s1": "garbage"}}},
    ],
)
def test_file_store_rejects_malformed_container(tmp_path, document):
    path = tmp_path / "sessions.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileSessionStore(str(path))


def test_file_store_rejects_bad_phase_record(tmp_path):
    encoded = Game.new("alice").to_dict()
    encoded["phase"] = {"kind": "paused"}
    path = tmp_path / "sessions.json"
    path.write_text(json.dumps({SERVICE_KEY: {"games": {encoded["session_id"]: encoded}}}), encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileSessionStore(str(path))


def test_file_store_failed_write_rolls_back_and_cleans_up(tmp_path, monkeypatch):
    path = tmp_path / "sessions.json"
    store = JsonFileSessionStore(str(path))
    game = _started_game()
    store.create(game)
    before = path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("chopsticks.core.session_store.os.replace", broken_replace)
    with pytest.raises(StorageError):
        store.with_mut(game.session_id, lambda g: g.apply_move("alice", Slot.LEFT, Slot.LEFT))

    assert store.get(game.session_id).player_two.left == 1
    assert path.read_bytes() == before
    assert list(tmp_path.glob(".sessions-*")) == []
