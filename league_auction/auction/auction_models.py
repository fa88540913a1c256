"""
Core data structures for the live player auction.

These dataclasses represent teams (bidders), players (auction items), bids
and the single shared auction round. Records are stored in the ledger as
plain dicts, so every type round-trips through to_dict/from_dict.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
import json


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Player:
    """A player put up for auction."""

    player_id: str
    name: str
    base_price: int                       # Minimum opening bid (exclusive)
    games: List[str] = field(default_factory=list)
    skill_rating: int = 5
    age: int = 25
    playing_preference: str = 'both'
    team_id: Optional[str] = None         # Set once, at settlement
    sold_price: Optional[int] = None      # Set once, at settlement
    created_at: Optional[datetime] = None

    @property
    def is_sold(self) -> bool:
        return self.team_id is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'player_id': self.player_id,
            'name': self.name,
            'base_price': self.base_price,
            'games': list(self.games),
            'skill_rating': self.skill_rating,
            'age': self.age,
            'playing_preference': self.playing_preference,
            'team_id': self.team_id,
            'sold_price': self.sold_price,
            'created_at': _format_timestamp(self.created_at)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Player':
        """Create Player from dictionary."""
        return cls(
            player_id=data['player_id'],
            name=data['name'],
            base_price=data['base_price'],
            games=list(data.get('games', [])),
            skill_rating=data.get('skill_rating', 5),
            age=data.get('age', 25),
            playing_preference=data.get('playing_preference', 'both'),
            team_id=data.get('team_id'),
            sold_price=data.get('sold_price'),
            created_at=_parse_timestamp(data.get('created_at'))
        )


@dataclass
class Team:
    """A bidding team and its budget."""

    team_id: str
    name: str
    budget: int = 10000                   # Fixed ceiling
    spent: int = 0                        # Only grows through settlement
    players: List[str] = field(default_factory=list)  # Won player ids
    active: bool = True
    logo: str = ''
    owner_name: str = ''
    contact: str = ''
    created_at: Optional[datetime] = None

    @property
    def budget_remaining(self) -> int:
        return self.budget - self.spent

    def can_afford(self, amount: int) -> bool:
        return amount <= self.budget_remaining

    def charge(self, player_id: str, amount: int) -> None:
        """
        Record a won player against this team.

        Raises:
            ValueError: If the charge would push spent past the budget
        """
        if not self.can_afford(amount):
            raise ValueError(
                f"Insufficient budget: {self.budget_remaining} < {amount}"
            )
        self.spent += amount
        self.players.append(player_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'team_id': self.team_id,
            'name': self.name,
            'budget': self.budget,
            'spent': self.spent,
            'players': list(self.players),
            'active': self.active,
            'logo': self.logo,
            'owner_name': self.owner_name,
            'contact': self.contact,
            'created_at': _format_timestamp(self.created_at)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Team':
        """Create Team from dictionary."""
        return cls(
            team_id=data['team_id'],
            name=data['name'],
            budget=data.get('budget', 10000),
            spent=data.get('spent', 0),
            players=list(data.get('players', [])),
            active=data.get('active', True),
            logo=data.get('logo', ''),
            owner_name=data.get('owner_name', ''),
            contact=data.get('contact', ''),
            created_at=_parse_timestamp(data.get('created_at'))
        )


@dataclass
class Bid:
    """A single offer within an auction round. Never mutated once placed."""

    bid_id: str
    team_id: str
    team_name: str
    amount: int
    timestamp: datetime
    placed_by: str = ''

    def to_dict(self) -> dict:
        return {
            'bid_id': self.bid_id,
            'team_id': self.team_id,
            'team_name': self.team_name,
            'amount': self.amount,
            'timestamp': self.timestamp.isoformat(),
            'placed_by': self.placed_by
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Bid':
        return cls(
            bid_id=data['bid_id'],
            team_id=data['team_id'],
            team_name=data.get('team_name', ''),
            amount=data['amount'],
            timestamp=datetime.fromisoformat(data['timestamp']),
            placed_by=data.get('placed_by', '')
        )


@dataclass
class AuctionRound:
    """
    The shared auction state.

    Stored as three ledger keys (status, current player, current bids) that are
    always written together. `version` survives across rounds so pollers can
    detect any change, including a round ending.
    """

    active: bool = False
    round_id: Optional[str] = None
    current_player: Optional[Player] = None
    current_bids: List[Bid] = field(default_factory=list)
    started_at: Optional[datetime] = None
    started_by: Optional[str] = None
    deadline_at: Optional[datetime] = None
    version: int = 0

    @property
    def current_highest(self) -> Optional[int]:
        """Highest bid so far, or the player's base price before any bid."""
        if self.current_bids:
            return max(bid.amount for bid in self.current_bids)
        if self.current_player is not None:
            return self.current_player.base_price
        return None

    def status_record(self) -> dict:
        """The `auction:status` ledger record."""
        return {
            'active': self.active,
            'round_id': self.round_id,
            'started_at': _format_timestamp(self.started_at),
            'started_by': self.started_by,
            'deadline_at': _format_timestamp(self.deadline_at),
            'version': self.version
        }

    def to_dict(self) -> dict:
        """Snapshot returned by get_status."""
        return {
            'active': self.active,
            'round_id': self.round_id,
            'version': self.version,
            'current_player': self.current_player.to_dict() if self.current_player else None,
            'current_bids': [bid.to_dict() for bid in self.current_bids],
            'current_highest': self.current_highest,
            'started_at': _format_timestamp(self.started_at),
            'started_by': self.started_by,
            'deadline_at': _format_timestamp(self.deadline_at)
        }

    @classmethod
    def from_records(
        cls,
        status: Optional[dict],
        player: Optional[dict],
        bids: Optional[List[dict]]
    ) -> 'AuctionRound':
        """Rebuild the round from its three ledger records."""
        status = status or {}
        return cls(
            active=status.get('active', False),
            round_id=status.get('round_id'),
            current_player=Player.from_dict(player) if player else None,
            current_bids=[Bid.from_dict(b) for b in (bids or [])],
            started_at=_parse_timestamp(status.get('started_at')),
            started_by=status.get('started_by'),
            deadline_at=_parse_timestamp(status.get('deadline_at')),
            version=status.get('version', 0)
        )


@dataclass
class RoundOutcome:
    """How an auction round ended. One line of the round log."""

    round_id: str
    outcome: str                  # 'sold', 'unsold' or 'stopped'
    player_id: str
    player_name: str
    timestamp: datetime
    actor: str = ''
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    amount: Optional[int] = None
    bid_count: int = 0

    SOLD = 'sold'
    UNSOLD = 'unsold'
    STOPPED = 'stopped'

    def to_dict(self) -> dict:
        return {
            'round_id': self.round_id,
            'outcome': self.outcome,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'team_id': self.team_id,
            'team_name': self.team_name,
            'amount': self.amount,
            'bid_count': self.bid_count,
            'actor': self.actor,
            'timestamp': self.timestamp.isoformat()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RoundOutcome':
        return cls(
            round_id=data['round_id'],
            outcome=data['outcome'],
            player_id=data['player_id'],
            player_name=data.get('player_name', ''),
            timestamp=datetime.fromisoformat(data['timestamp']),
            actor=data.get('actor', ''),
            team_id=data.get('team_id'),
            team_name=data.get('team_name'),
            amount=data.get('amount'),
            bid_count=data.get('bid_count', 0)
        )

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> 'RoundOutcome':
        """Create RoundOutcome from JSON string."""
        return cls.from_dict(json.loads(json_str))
