"""
Roster and sale reports for downstream display.

Builds pandas DataFrames from team and player records: a per-team budget
summary and a sale report that lists sold players grouped by team, then the
unsold pool, then players still waiting to be auctioned.
"""

import logging
from typing import Iterable, List, Set

import pandas as pd

from .auction_models import Player, Team

logger = logging.getLogger(__name__)

SALE_REPORT_COLUMNS = [
    'team', 'player', 'price', 'status',
    'base_price', 'skill_rating', 'age', 'playing_preference', 'player_id'
]

STATUS_SOLD = 'SOLD'
STATUS_UNSOLD = 'UNSOLD'
STATUS_PENDING = 'PENDING'

UNSOLD_POOL = 'UNSOLD POOL'
WAITING_LIST = 'WAITING LIST'


def build_team_summary(teams: Iterable[Team]) -> pd.DataFrame:
    """
    Get summary statistics for all teams.

    Returns:
        DataFrame with team_id, team_name, players, spent, budget,
        budget_remaining and active, sorted by team_name
    """
    summary_data = [
        {
            'team_id': team.team_id,
            'team_name': team.name,
            'players': len(team.players),
            'spent': team.spent,
            'budget': team.budget,
            'budget_remaining': team.budget_remaining,
            'active': team.active
        }
        for team in teams
    ]

    columns = ['team_id', 'team_name', 'players', 'spent', 'budget', 'budget_remaining', 'active']
    df = pd.DataFrame(summary_data, columns=columns)
    return df.sort_values('team_name').reset_index(drop=True)


def build_sale_report(
    teams: Iterable[Team],
    players: Iterable[Player],
    unsold_player_ids: Set[str]
) -> pd.DataFrame:
    """
    Build the sold / unsold / pending player report.

    Args:
        teams: All team records
        players: All player records
        unsold_player_ids: Players whose last finalized round had no bids

    Returns:
        DataFrame with SALE_REPORT_COLUMNS; sold players come first grouped
        by team name, then the unsold pool, then the waiting list
    """
    team_names = {team.team_id: team.name for team in teams}

    rows: List[dict] = []
    for player in players:
        if player.is_sold:
            status = STATUS_SOLD
            team_label = team_names.get(player.team_id, player.team_id)
            price = player.sold_price
        elif player.player_id in unsold_player_ids:
            status = STATUS_UNSOLD
            team_label = UNSOLD_POOL
            price = 0
        else:
            status = STATUS_PENDING
            team_label = WAITING_LIST
            price = 0

        rows.append({
            'team': team_label,
            'player': player.name,
            'price': price,
            'status': status,
            'base_price': player.base_price,
            'skill_rating': player.skill_rating,
            'age': player.age,
            'playing_preference': player.playing_preference,
            'player_id': player.player_id
        })

    df = pd.DataFrame(rows, columns=SALE_REPORT_COLUMNS)
    if df.empty:
        return df

    status_order = {STATUS_SOLD: 0, STATUS_UNSOLD: 1, STATUS_PENDING: 2}
    df['_status_rank'] = df['status'].map(status_order)
    df = df.sort_values(['_status_rank', 'team', 'player']).drop(columns='_status_rank')

    logger.debug(
        f"Sale report: {(df['status'] == STATUS_SOLD).sum()} sold, "
        f"{(df['status'] == STATUS_UNSOLD).sum()} unsold, "
        f"{(df['status'] == STATUS_PENDING).sum()} pending"
    )

    return df.reset_index(drop=True)


def sale_report_to_csv(df: pd.DataFrame) -> str:
    """Render the sale report as CSV text."""
    return df.fillna('').to_csv(index=False)
