"""
Settlement: turn the winning bid of a round into player and team mutations.

Settlement only stages writes on the caller's ledger transaction. The engine
commits them together with the round clear, so either the player is sold,
the team is charged and the round is cleared, or nothing changes.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .auction_models import AuctionRound, Bid, Player, Team
from .errors import (
    BudgetExceededError,
    ConflictError,
    INSUFFICIENT_BUDGET,
    SETTLEMENT_FAILED,
)
from .ledger_store import LedgerTransaction, player_key, team_key

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    """Records as they were written by a successful settlement."""

    player: Player
    team: Team
    winning_bid: Bid


def select_winning_bid(bids: List[Bid]) -> Optional[Bid]:
    """
    Pick the winning bid: highest amount, then earliest timestamp, then
    earliest arrival.

    Args:
        bids: Bids in arrival order

    Returns:
        The winning Bid, or None if there are no bids
    """
    if not bids:
        return None

    ranked = sorted(
        enumerate(bids),
        key=lambda item: (-item[1].amount, item[1].timestamp, item[0])
    )
    return ranked[0][1]


def settle_round(txn: LedgerTransaction, auction_round: AuctionRound) -> SettlementResult:
    """
    Stage the sale of the round's player to the winning team.

    Player and team are re-read from the ledger rather than trusted from the
    round snapshot, and affordability is checked again against settled spend.

    Args:
        txn: Open ledger transaction (commit is the caller's job)
        auction_round: The running round, with at least one bid

    Returns:
        SettlementResult with the updated player, team and winning bid

    Raises:
        ConflictError: If the player or team vanished or the player is already sold
        BudgetExceededError: If the team can no longer afford the winning amount
    """
    winning_bid = select_winning_bid(auction_round.current_bids)
    if winning_bid is None:
        raise ValueError("Cannot settle a round without bids")

    player_id = auction_round.current_player.player_id

    player_data = txn.get(player_key(player_id))
    if player_data is None:
        raise ConflictError(
            f"Player {player_id} no longer exists",
            reason=SETTLEMENT_FAILED,
            player_id=player_id
        )
    player = Player.from_dict(player_data)

    if player.is_sold:
        raise ConflictError(
            f"Player {player.name} was already sold to {player.team_id}",
            reason=SETTLEMENT_FAILED,
            player_id=player_id
        )

    team_data = txn.get(team_key(winning_bid.team_id))
    if team_data is None:
        raise ConflictError(
            f"Winning team {winning_bid.team_id} no longer exists",
            reason=SETTLEMENT_FAILED,
            team_id=winning_bid.team_id
        )
    team = Team.from_dict(team_data)

    if not team.can_afford(winning_bid.amount):
        raise BudgetExceededError(
            f"{team.name} cannot cover {winning_bid.amount} "
            f"(remaining budget {team.budget_remaining})",
            reason=INSUFFICIENT_BUDGET,
            team_id=team.team_id,
            amount=winning_bid.amount,
            budget_remaining=team.budget_remaining
        )

    player.team_id = team.team_id
    player.sold_price = winning_bid.amount
    team.charge(player.player_id, winning_bid.amount)

    txn.set(player_key(player.player_id), player.to_dict())
    txn.set(team_key(team.team_id), team.to_dict())

    logger.debug(
        f"Staged sale: {player.name} → {team.name} ({winning_bid.amount}) | "
        f"{team.budget_remaining} remaining"
    )

    return SettlementResult(player=player, team=team, winning_bid=winning_bid)
