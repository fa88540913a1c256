"""Shared fixtures for auction tests."""

import itertools
import threading
from datetime import datetime, timedelta

import pytest

from league_auction.auction.auction_engine import AuctionEngine
from league_auction.auction.auction_models import Player, Team
from league_auction.auction.ledger_store import LedgerStore, player_key, team_key
from league_auction.auction.league_records import LeagueRecords
from league_auction.auction.round_log import RoundLogStore


class FakeClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start=datetime(2026, 3, 1, 18, 0, 0)):
        self._start = start
        self._ticks = itertools.count()
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self._start + timedelta(seconds=next(self._ticks))


class SequentialIds:
    """Readable, predictable ids: prefix-1, prefix-2, ..."""

    def __init__(self, prefix='id'):
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return f"{self._prefix}-{next(self._counter)}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return LedgerStore()


@pytest.fixture
def round_log(tmp_path):
    return RoundLogStore(tmp_path / 'round_log.jsonl')


@pytest.fixture
def engine(store, round_log, clock):
    auction_engine = AuctionEngine(
        store,
        round_log=round_log,
        clock=clock,
        id_factory=SequentialIds('round')
    )
    yield auction_engine
    auction_engine.close()


@pytest.fixture
def records(engine, clock):
    return LeagueRecords(engine, clock=clock, id_factory=SequentialIds('rec'))


@pytest.fixture
def seed_team(store):
    """Write a team straight into the ledger."""

    def _seed(team_id, budget=10000, spent=0, active=True, name=None):
        team = Team(
            team_id=team_id,
            name=name or f"Team {team_id}",
            budget=budget,
            spent=spent,
            active=active
        )
        store.set(team_key(team_id), team.to_dict())
        return team

    return _seed


@pytest.fixture
def seed_player(store):
    """Write a player straight into the ledger."""

    def _seed(player_id, base_price=1000, name=None, team_id=None, sold_price=None):
        player = Player(
            player_id=player_id,
            name=name or f"Player {player_id}",
            base_price=base_price,
            team_id=team_id,
            sold_price=sold_price
        )
        store.set(player_key(player_id), player.to_dict())
        return player

    return _seed


def load_team(store, team_id):
    return Team.from_dict(store.get(team_key(team_id)))


def load_player(store, player_id):
    return Player.from_dict(store.get(player_key(player_id)))
