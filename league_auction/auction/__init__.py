"""
Live player auction subsystem.

One global auction round at a time: start a player, take strictly increasing
bids from teams within budget, then finalize (atomic settlement) or stop.
"""

from .auction_models import AuctionRound, Bid, Player, RoundOutcome, Team
from .auction_engine import AuctionEngine, FinalizeResult
from .errors import (
    AuctionError,
    BudgetExceededError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from .ledger_store import LedgerStore
from .league_records import LeagueRecords
from .round_log import RoundLogStore
from .settlement import select_winning_bid, settle_round

__all__ = [
    'AuctionRound',
    'Bid',
    'Player',
    'RoundOutcome',
    'Team',
    'AuctionEngine',
    'FinalizeResult',
    'AuctionError',
    'BudgetExceededError',
    'ConflictError',
    'NotFoundError',
    'UnauthorizedError',
    'LedgerStore',
    'LeagueRecords',
    'RoundLogStore',
    'select_winning_bid',
    'settle_round',
]
