import random

import pytest

from white_elephant.actions import ActionProcessor
from white_elephant.database import init_db, make_engine, make_session_factory
from white_elephant.manager import GameManager
from white_elephant.models import Gift
from white_elephant.store import EntityStore


@pytest.fixture
def store():
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    try:
        yield EntityStore(make_session_factory(engine))
    finally:
        engine.dispose()


@pytest.fixture
def manager(store):
    return GameManager(store, rng=random.Random(42))


@pytest.fixture
def processor(store):
    return ActionProcessor(store)


class JoinOrder(random.Random):
    """Порядок ходов = порядок присоединения, чтобы сценарии читались по именам."""

    def shuffle(self, x):
        pass


class StartedGame:
    """Запущенная игра. gifts: {user_id: gift_id}, доп. подарок под ключом "user+"."""

    def __init__(self, game_id, organizer, turn_order, gifts):
        self.id = game_id
        self.organizer = organizer
        self.turn_order = turn_order
        self.gifts = gifts


@pytest.fixture
def start_game(store):
    manager = GameManager(store, rng=JoinOrder())

    def _start(players=("alice", "bob", "carol"), extra_gifts=(), **rules):
        organizer = players[0]
        ok, game = manager.create_game(organizer, "Office party", **rules)
        assert ok, game
        for user in players[1:]:
            ok, res = manager.join_game(game["id"], user, game["game_code"])
            assert ok, res

        gifts = {}
        for user in players:
            ok, gift = manager.submit_gift(game["id"], user, f"https://shop.example/{user}")
            assert ok, gift
            gifts[user] = gift["id"]
        for user in extra_gifts:
            ok, gift = manager.submit_gift(game["id"], user, f"https://shop.example/{user}-extra")
            assert ok, gift
            gifts[user + "+"] = gift["id"]

        ok, started = manager.start_game(game["id"], organizer)
        assert ok, started
        return StartedGame(game["id"], organizer, started["turn_order"], gifts)

    return _start


@pytest.fixture
def gift_state(store):
    def _state(gift_id):
        with store.session() as db:
            return db.query(Gift).filter(Gift.id == gift_id).one().to_dict()

    return _state
