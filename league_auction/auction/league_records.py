"""
Team and player record keeping around the auction.

These are the collaborator records the engine reads and settles into. Writes
here never touch settlement-owned fields (team spend and roster, player sale),
and records referenced by the running round are locked until it ends.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .. import config
from .auction_engine import AuctionEngine
from .auction_models import Player, Team
from .errors import (
    BudgetExceededError,
    ConflictError,
    NotFoundError,
    INSUFFICIENT_BUDGET,
    PROTECTED_FIELD,
    RECORD_LOCKED,
)
from .ledger_store import PLAYER_PREFIX, TEAM_PREFIX, player_key, team_key

logger = logging.getLogger(__name__)

TEAM_PROTECTED_FIELDS = {'team_id', 'spent', 'players', 'created_at'}
PLAYER_PROTECTED_FIELDS = {'player_id', 'team_id', 'sold_price', 'created_at'}

TEAM_EDITABLE_FIELDS = {'name', 'budget', 'active', 'logo', 'owner_name', 'contact'}
PLAYER_EDITABLE_FIELDS = {
    'name', 'base_price', 'games', 'skill_rating', 'age', 'playing_preference'
}


def _coerce_int(value, default: int) -> int:
    """Parse an imported number, falling back to default when missing or zero."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


class LeagueRecords:
    """CRUD over teams and players, serialized against the auction round."""

    def __init__(
        self,
        engine: AuctionEngine,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4())
    ):
        self.engine = engine
        self.store = engine.store
        self._clock = clock
        self._new_id = id_factory

    # ===== Teams =====

    def list_teams(self) -> List[Team]:
        return [Team.from_dict(t) for t in self.store.get_by_prefix(TEAM_PREFIX)]

    def get_team(self, team_id: str) -> Team:
        data = self.store.get(team_key(team_id))
        if data is None:
            raise NotFoundError(f"Team {team_id} not found", team_id=team_id)
        return Team.from_dict(data)

    def create_team(
        self,
        name: str,
        budget: Optional[int] = config.DEFAULT_TEAM_BUDGET,
        owner_name: str = '',
        contact: str = '',
        active: bool = True,
        logo: str = ''
    ) -> Team:
        """
        Create a team. A missing or zero budget gets the league default.

        Raises:
            ValueError: Empty name or negative budget
        """
        if not name or not name.strip():
            raise ValueError("Team name is required")
        if budget is not None and budget < 0:
            raise ValueError(f"Budget must be non-negative, got {budget}")

        team = Team(
            team_id=self._new_id(),
            name=name.strip(),
            budget=budget or config.DEFAULT_TEAM_BUDGET,
            logo=logo,
            owner_name=owner_name,
            contact=contact,
            active=active,
            created_at=self._clock()
        )
        self.store.set(team_key(team.team_id), team.to_dict())

        logger.info(f"Created team {team.name} (budget {team.budget})")
        return team

    def update_team(self, team_id: str, changes: Dict) -> Team:
        """
        Apply editable field changes to a team.

        Raises:
            NotFoundError: Unknown team
            ConflictError: Protected field, or team has a bid in the running round
            BudgetExceededError: New budget below what the team already spent
        """
        self._validate_changes(changes, TEAM_PROTECTED_FIELDS, TEAM_EDITABLE_FIELDS)

        with self.engine.round_lock('update_team'), self.store.transaction() as txn:
            data = txn.get(team_key(team_id))
            if data is None:
                raise NotFoundError(f"Team {team_id} not found", team_id=team_id)
            self._reject_if_bidding(team_id)

            team = Team.from_dict(data)
            for field_name, value in changes.items():
                setattr(team, field_name, value)

            if team.budget < team.spent:
                raise BudgetExceededError(
                    f"Budget {team.budget} is below amount already spent ({team.spent})",
                    reason=INSUFFICIENT_BUDGET,
                    team_id=team_id,
                    spent=team.spent
                )

            txn.set(team_key(team_id), team.to_dict())

        logger.info(f"Updated team {team.name}: {sorted(changes)}")
        return team

    def delete_team(self, team_id: str) -> None:
        with self.engine.round_lock('delete_team'), self.store.transaction() as txn:
            data = txn.get(team_key(team_id))
            if data is None:
                raise NotFoundError(f"Team {team_id} not found", team_id=team_id)
            self._reject_if_bidding(team_id)

            team = Team.from_dict(data)
            if team.players:
                raise ConflictError(
                    f"Team {team.name} owns {len(team.players)} player(s)",
                    reason=RECORD_LOCKED,
                    team_id=team_id
                )

            txn.delete(team_key(team_id))

        logger.info(f"Deleted team {team.name}")

    # ===== Players =====

    def list_players(self) -> List[Player]:
        return [Player.from_dict(p) for p in self.store.get_by_prefix(PLAYER_PREFIX)]

    def get_player(self, player_id: str) -> Player:
        data = self.store.get(player_key(player_id))
        if data is None:
            raise NotFoundError(f"Player {player_id} not found", player_id=player_id)
        return Player.from_dict(data)

    def create_player(
        self,
        name: str,
        base_price: int = config.DEFAULT_BASE_PRICE,
        games: Optional[Iterable[str]] = None,
        skill_rating: int = config.DEFAULT_SKILL_RATING,
        age: int = config.DEFAULT_PLAYER_AGE,
        playing_preference: str = config.DEFAULT_PLAYING_PREFERENCE
    ) -> Player:
        player = self._build_player(name, base_price, games, skill_rating, age, playing_preference)
        self.store.set(player_key(player.player_id), player.to_dict())

        logger.info(f"Created player {player.name} (base {player.base_price})")
        return player

    def bulk_import_players(self, rows: List[Dict]) -> List[Player]:
        """
        Create many players in one transaction.

        Missing or unparseable numbers fall back to the league defaults.

        Raises:
            ValueError: If rows is empty or any row has no name
        """
        if not rows:
            raise ValueError("No players to import")

        players = [
            self._build_player(
                name=row.get('name', ''),
                base_price=_coerce_int(row.get('base_price'), config.DEFAULT_BASE_PRICE),
                games=row.get('games'),
                skill_rating=_coerce_int(row.get('skill_rating'), config.DEFAULT_SKILL_RATING),
                age=_coerce_int(row.get('age'), config.DEFAULT_PLAYER_AGE),
                playing_preference=row.get('playing_preference') or config.DEFAULT_PLAYING_PREFERENCE
            )
            for row in rows
        ]

        with self.store.transaction() as txn:
            for player in players:
                txn.set(player_key(player.player_id), player.to_dict())

        logger.info(f"Imported {len(players)} players")
        return players

    def update_player(self, player_id: str, changes: Dict) -> Player:
        """
        Apply editable field changes to a player.

        Raises:
            NotFoundError: Unknown player
            ConflictError: Protected field, or player is up for auction
        """
        self._validate_changes(changes, PLAYER_PROTECTED_FIELDS, PLAYER_EDITABLE_FIELDS)
        if 'base_price' in changes and changes['base_price'] < 0:
            raise ValueError(f"Base price must be non-negative, got {changes['base_price']}")

        with self.engine.round_lock('update_player'), self.store.transaction() as txn:
            data = txn.get(player_key(player_id))
            if data is None:
                raise NotFoundError(f"Player {player_id} not found", player_id=player_id)
            self._reject_if_in_auction(player_id)

            player = Player.from_dict(data)
            for field_name, value in changes.items():
                setattr(player, field_name, value)

            txn.set(player_key(player_id), player.to_dict())

        logger.info(f"Updated player {player.name}: {sorted(changes)}")
        return player

    def delete_player(self, player_id: str) -> None:
        with self.engine.round_lock('delete_player'), self.store.transaction() as txn:
            data = txn.get(player_key(player_id))
            if data is None:
                raise NotFoundError(f"Player {player_id} not found", player_id=player_id)
            self._reject_if_in_auction(player_id)

            player = Player.from_dict(data)
            if player.is_sold:
                raise ConflictError(
                    f"Player {player.name} is on team {player.team_id}",
                    reason=RECORD_LOCKED,
                    player_id=player_id
                )

            txn.delete(player_key(player_id))

        logger.info(f"Deleted player {player.name}")

    # ===== Helpers =====

    def _build_player(self, name, base_price, games, skill_rating, age, playing_preference) -> Player:
        if not name or not str(name).strip():
            raise ValueError("Player name is required")
        if base_price < 0:
            raise ValueError(f"Base price must be non-negative, got {base_price}")

        return Player(
            player_id=self._new_id(),
            name=str(name).strip(),
            base_price=base_price,
            games=list(games or []),
            skill_rating=skill_rating,
            age=age,
            playing_preference=playing_preference,
            created_at=self._clock()
        )

    @staticmethod
    def _validate_changes(changes: Dict, protected: set, editable: set) -> None:
        blocked = sorted(set(changes) & protected)
        if blocked:
            raise ConflictError(
                f"Fields {blocked} can only change through auction settlement",
                reason=PROTECTED_FIELD,
                fields=blocked
            )

        unknown = sorted(set(changes) - editable)
        if unknown:
            raise ValueError(f"Unknown fields: {unknown}")

        nulls = sorted(name for name, value in changes.items() if value is None)
        if nulls:
            raise ValueError(f"Fields {nulls} cannot be null")

    def _reject_if_bidding(self, team_id: str) -> None:
        current = self.engine.current_round()
        if current.active and any(bid.team_id == team_id for bid in current.current_bids):
            raise ConflictError(
                "Team has a bid in the running auction round",
                reason=RECORD_LOCKED,
                team_id=team_id,
                round_id=current.round_id
            )

    def _reject_if_in_auction(self, player_id: str) -> None:
        current = self.engine.current_round()
        if current.active and current.current_player and current.current_player.player_id == player_id:
            raise ConflictError(
                "Player is up for auction",
                reason=RECORD_LOCKED,
                player_id=player_id,
                round_id=current.round_id
            )
