"""
Append-only log of auction round outcomes.

Uses JSONL (JSON Lines): one RoundOutcome per line, written after the round's
ledger transaction has committed. The log is the auction's sale history and
the only record of players that went unsold.
"""

import csv
import json
import logging
from pathlib import Path
from typing import List, Optional, Set

from .auction_models import RoundOutcome

logger = logging.getLogger(__name__)


class RoundLogStore:
    """Append-only JSONL history of sold, unsold and stopped rounds."""

    def __init__(self, filepath: Path):
        """
        Initialize round log.

        Args:
            filepath: Path to JSONL file
        """
        self.filepath = Path(filepath)
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def append_outcome(self, outcome: RoundOutcome) -> None:
        """Append a single outcome as one line of JSON."""
        with open(self.filepath, 'a', encoding='utf-8') as f:
            f.write(outcome.to_json() + '\n')
        logger.debug(f"Logged round {outcome.round_id}: {outcome.outcome} - {outcome.player_name}")

    def load_all_outcomes(self) -> List[RoundOutcome]:
        """
        Load the complete history in chronological order.

        Unparseable lines are logged and skipped. Returns an empty list if
        the file doesn't exist.
        """
        if not self.filepath.exists():
            return []

        outcomes = []
        with open(self.filepath, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    outcomes.append(RoundOutcome.from_json(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.error(
                        f"Failed to parse round outcome at line {line_num}: {e}\n"
                        f"Line content: {line}"
                    )

        return outcomes

    def get_outcome_count(self) -> int:
        if not self.filepath.exists():
            return 0

        with open(self.filepath, 'r', encoding='utf-8') as f:
            return sum(1 for line in f if line.strip())

    def get_last_outcome(self) -> Optional[RoundOutcome]:
        outcomes = self.load_all_outcomes()
        return outcomes[-1] if outcomes else None

    def unsold_player_ids(self) -> Set[str]:
        """Players whose latest finalized round closed without bids."""
        latest = {}
        for outcome in self.load_all_outcomes():
            if outcome.outcome in (RoundOutcome.SOLD, RoundOutcome.UNSOLD):
                latest[outcome.player_id] = outcome.outcome
        return {pid for pid, result in latest.items() if result == RoundOutcome.UNSOLD}

    def export_to_csv(self, output_path: Path) -> int:
        """
        Export the log to CSV.

        Returns:
            Number of outcomes written
        """
        outcomes = self.load_all_outcomes()
        if not outcomes:
            logger.warning("No round outcomes to export")
            return 0

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow([
                'round_id', 'outcome', 'player_id', 'player_name',
                'team_id', 'team_name', 'amount', 'bid_count', 'actor', 'timestamp'
            ])

            for outcome in outcomes:
                writer.writerow([
                    outcome.round_id,
                    outcome.outcome,
                    outcome.player_id,
                    outcome.player_name,
                    outcome.team_id or '',
                    outcome.team_name or '',
                    '' if outcome.amount is None else outcome.amount,
                    outcome.bid_count,
                    outcome.actor,
                    outcome.timestamp.isoformat()
                ])

        logger.info(f"Exported {len(outcomes)} round outcomes to {output_path}")
        return len(outcomes)
