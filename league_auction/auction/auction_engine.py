"""
The live auction engine.

Owns the single global auction round and its state machine:

    IDLE --start--> RUNNING --place_bid--> RUNNING
    RUNNING --finalize / stop--> IDLE

Every transition is a read-modify-write over the ledger, so all of them run
under one process-local lock and commit through a single ledger transaction.
A transition that is rejected raises a typed error and leaves the ledger
untouched.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterator, List, Optional, Tuple

from .. import config
from .auction_models import AuctionRound, Bid, Player, RoundOutcome, Team
from .deadline import DeadlineScheduler
from .errors import (
    AuctionError,
    BudgetExceededError,
    ConflictError,
    NotFoundError,
    ALREADY_SOLD,
    BID_TOO_LOW,
    INSUFFICIENT_BUDGET,
    NO_ACTIVE_AUCTION,
    ROUND_ACTIVE,
    TEAM_INACTIVE,
)
from .ledger_store import (
    AUCTION_BIDS_KEY,
    AUCTION_PLAYER_KEY,
    AUCTION_STATUS_KEY,
    LedgerStore,
    LedgerTransaction,
    player_key,
    team_key,
)
from .round_log import RoundLogStore
from .settlement import settle_round

logger = logging.getLogger(__name__)

DEADLINE_ACTOR = 'deadline-scheduler'


@dataclass
class FinalizeResult:
    """Outcome of finalize: a sale, or an unsold player."""

    round_id: str
    player: Player
    winning_bid: Optional[Bid] = None
    team: Optional[Team] = None

    @property
    def sold(self) -> bool:
        return self.winning_bid is not None

    def to_dict(self) -> dict:
        return {
            'round_id': self.round_id,
            'outcome': RoundOutcome.SOLD if self.sold else RoundOutcome.UNSOLD,
            'player': self.player.to_dict(),
            'winning_bid': self.winning_bid.to_dict() if self.winning_bid else None,
            'team': self.team.to_dict() if self.team else None
        }


class AuctionEngine:
    """Single-round auction state machine over the ledger."""

    def __init__(
        self,
        store: LedgerStore,
        round_log: Optional[RoundLogStore] = None,
        deadline_seconds: Optional[float] = None,
        lock_timeout: Optional[float] = config.ROUND_LOCK_TIMEOUT,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4())
    ):
        """
        Initialize the engine.

        Args:
            store: Ledger holding teams, players and round state
            round_log: Optional log that receives every round outcome
            deadline_seconds: Auto-finalize rounds after this many seconds (None = never)
            lock_timeout: Seconds to wait for the round lock (None = wait forever)
            clock: Timestamp source for bids and rounds
            id_factory: Generator for round and bid ids
        """
        self.store = store
        self.round_log = round_log
        self.deadline_seconds = deadline_seconds
        self.lock_timeout = lock_timeout
        self._clock = clock
        self._new_id = id_factory

        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self.deadlines = DeadlineScheduler(self._on_deadline)

        self._rearm_deadline()

    # ===== Reads =====

    def get_status(self) -> dict:
        """Consistent snapshot of the current round."""
        return self.current_round().to_dict()

    def current_round(self) -> AuctionRound:
        with self.store.transaction() as txn:
            return self._load_round(txn)

    def wait_for_change(self, since_version: int, timeout: float) -> dict:
        """
        Block until the round version moves past since_version or timeout
        elapses, then return the current status.
        """
        with self._changed:
            self._changed.wait_for(
                lambda: self.current_round().version != since_version,
                timeout=max(timeout, 0.0)
            )
        return self.get_status()

    # ===== Transitions =====

    def start(self, player_id: str, actor: str) -> Player:
        """
        Open a round for one player.

        Raises:
            NotFoundError: If the player doesn't exist
            ConflictError: If the player is already sold or a round is running
        """
        with self.round_lock('start'), self.store.transaction() as txn:
            player_data = txn.get(player_key(player_id))
            if player_data is None:
                raise NotFoundError(f"Player {player_id} not found", player_id=player_id)

            player = Player.from_dict(player_data)
            if player.is_sold:
                raise ConflictError(
                    f"Player {player.name} already sold",
                    reason=ALREADY_SOLD,
                    player_id=player_id,
                    team_id=player.team_id
                )

            current = self._load_round(txn)
            if current.active:
                raise ConflictError(
                    "An auction round is already active",
                    reason=ROUND_ACTIVE,
                    round_id=current.round_id,
                    current_player_id=current.current_player.player_id if current.current_player else None
                )

            now = self._clock()
            new_round = AuctionRound(
                active=True,
                round_id=self._new_id(),
                current_player=player,
                current_bids=[],
                started_at=now,
                started_by=actor,
                deadline_at=now + timedelta(seconds=self.deadline_seconds) if self.deadline_seconds else None,
                version=current.version + 1
            )
            self._save_round(txn, new_round)

        if self.deadline_seconds:
            self.deadlines.schedule(new_round.round_id, self.deadline_seconds)

        logger.info(
            f"Round {new_round.round_id} started by {actor}: "
            f"{player.name} (base {player.base_price})"
        )
        self._notify()
        return player

    def place_bid(self, team_id: str, amount: int, actor: str) -> Tuple[Bid, List[Bid]]:
        """
        Append a bid to the running round.

        Preconditions are checked in order: round running, team known and
        active, amount within the team's unspent budget, amount strictly above
        the current highest (or the base price before any bid).

        Returns:
            (accepted bid, all bids in arrival order)

        Raises:
            ConflictError: No active round, inactive team, or bid not high enough
            NotFoundError: Unknown team
            BudgetExceededError: Amount above budget - spent
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"Bid amount must be an integer, got {amount!r}")

        with self.round_lock('place_bid'), self.store.transaction() as txn:
            current = self._load_round(txn)
            if not current.active or current.current_player is None:
                raise ConflictError("No active auction", reason=NO_ACTIVE_AUCTION)

            team_data = txn.get(team_key(team_id))
            if team_data is None:
                raise NotFoundError(f"Team {team_id} not found", team_id=team_id)

            team = Team.from_dict(team_data)
            if not team.active:
                raise ConflictError(
                    f"Team {team.name} is not active",
                    reason=TEAM_INACTIVE,
                    team_id=team_id
                )

            if not team.can_afford(amount):
                raise BudgetExceededError(
                    f"Insufficient budget: {team.name} has {team.budget_remaining} remaining",
                    reason=INSUFFICIENT_BUDGET,
                    team_id=team_id,
                    amount=amount,
                    budget_remaining=team.budget_remaining,
                    current_highest=current.current_highest
                )

            highest = current.current_highest
            if amount <= highest:
                raise ConflictError(
                    f"Bid must be higher than current highest bid of {highest}",
                    reason=BID_TOO_LOW,
                    amount=amount,
                    current_highest=highest
                )

            bid = Bid(
                bid_id=self._new_id(),
                team_id=team.team_id,
                team_name=team.name,
                amount=amount,
                timestamp=self._clock(),
                placed_by=actor
            )
            current.current_bids.append(bid)
            current.version += 1
            self._save_round(txn, current)

        logger.info(
            f"Bid {amount} from {team.name} on {current.current_player.name} "
            f"(bid #{len(current.current_bids)})"
        )
        self._notify()
        return bid, list(current.current_bids)

    def finalize(self, actor: str, round_id: Optional[str] = None) -> FinalizeResult:
        """
        Close the running round, selling the player to the highest bidder.

        Settlement and the round clear commit in one ledger transaction, so a
        retried finalize finds the round already closed and is rejected.

        Args:
            actor: Who closed the round
            round_id: Only finalize if this round is still the running one

        Raises:
            ConflictError: No active round (or a different one), or settlement conflict
            BudgetExceededError: Winning team can no longer afford the amount
        """
        with self.round_lock('finalize'), self.store.transaction() as txn:
            current = self._require_running(txn, round_id)

            settlement = None
            if current.current_bids:
                settlement = settle_round(txn, current)

            self._save_round(txn, AuctionRound(active=False, version=current.version + 1))

        self.deadlines.cancel(current.round_id)

        if settlement is None:
            result = FinalizeResult(round_id=current.round_id, player=current.current_player)
            logger.info(f"Round {current.round_id}: {current.current_player.name} unsold (no bids)")
        else:
            result = FinalizeResult(
                round_id=current.round_id,
                player=settlement.player,
                winning_bid=settlement.winning_bid,
                team=settlement.team
            )
            logger.info(
                f"Round {current.round_id}: {settlement.player.name} sold to "
                f"{settlement.team.name} for {settlement.winning_bid.amount} | "
                f"{settlement.team.budget_remaining} remaining"
            )

        self._record_outcome(
            current,
            RoundOutcome.SOLD if result.sold else RoundOutcome.UNSOLD,
            actor,
            result.winning_bid
        )
        self._notify()
        return result

    def stop(self, actor: str, round_id: Optional[str] = None) -> AuctionRound:
        """
        Abort the running round without a sale.

        Returns:
            The round as it was when stopped

        Raises:
            ConflictError: If no round is running
        """
        with self.round_lock('stop'), self.store.transaction() as txn:
            current = self._require_running(txn, round_id)
            self._save_round(txn, AuctionRound(active=False, version=current.version + 1))

        self.deadlines.cancel(current.round_id)
        logger.info(
            f"Round {current.round_id} stopped by {actor}: "
            f"{current.current_player.name} withdrawn after {len(current.current_bids)} bid(s)"
        )

        self._record_outcome(current, RoundOutcome.STOPPED, actor)
        self._notify()
        return current

    def close(self) -> None:
        """Cancel pending deadline timers."""
        self.deadlines.cancel_all()

    # ===== Internals =====

    @contextmanager
    def round_lock(self, reason: str) -> Iterator[None]:
        """Hold the round lock, honouring lock_timeout."""
        if self.lock_timeout is None:
            acquired = self._lock.acquire()
        else:
            acquired = self._lock.acquire(timeout=max(self.lock_timeout, 0.0))

        if not acquired:
            raise TimeoutError(f"Auction round lock timeout ({self.lock_timeout}s): {reason}")

        try:
            yield
        finally:
            self._lock.release()

    def _require_running(self, txn: LedgerTransaction, round_id: Optional[str]) -> AuctionRound:
        current = self._load_round(txn)
        if not current.active or current.current_player is None:
            raise ConflictError("No active auction", reason=NO_ACTIVE_AUCTION)
        if round_id is not None and current.round_id != round_id:
            raise ConflictError(
                f"Round {round_id} is no longer active",
                reason=NO_ACTIVE_AUCTION,
                round_id=current.round_id
            )
        return current

    @staticmethod
    def _load_round(txn: LedgerTransaction) -> AuctionRound:
        return AuctionRound.from_records(
            txn.get(AUCTION_STATUS_KEY),
            txn.get(AUCTION_PLAYER_KEY),
            txn.get(AUCTION_BIDS_KEY)
        )

    @staticmethod
    def _save_round(txn: LedgerTransaction, auction_round: AuctionRound) -> None:
        txn.set(AUCTION_STATUS_KEY, auction_round.status_record())
        txn.set(
            AUCTION_PLAYER_KEY,
            auction_round.current_player.to_dict() if auction_round.current_player else None
        )
        txn.set(AUCTION_BIDS_KEY, [bid.to_dict() for bid in auction_round.current_bids])

    def _record_outcome(
        self,
        auction_round: AuctionRound,
        outcome: str,
        actor: str,
        winning_bid: Optional[Bid] = None
    ) -> None:
        if self.round_log is None:
            return

        record = RoundOutcome(
            round_id=auction_round.round_id,
            outcome=outcome,
            player_id=auction_round.current_player.player_id,
            player_name=auction_round.current_player.name,
            timestamp=self._clock(),
            actor=actor,
            team_id=winning_bid.team_id if winning_bid else None,
            team_name=winning_bid.team_name if winning_bid else None,
            amount=winning_bid.amount if winning_bid else None,
            bid_count=len(auction_round.current_bids)
        )

        # The ledger has already committed; a log failure must not undo the sale
        try:
            self.round_log.append_outcome(record)
        except OSError as e:
            logger.error(f"Failed to log outcome of round {auction_round.round_id}: {e}")

    def _notify(self) -> None:
        with self._changed:
            self._changed.notify_all()

    def _on_deadline(self, round_id: str) -> None:
        try:
            self.finalize(actor=DEADLINE_ACTOR, round_id=round_id)
        except ConflictError as e:
            logger.info(f"Deadline for round {round_id} ignored: {e}")
        except AuctionError as e:
            logger.error(f"Deadline finalize failed for round {round_id}: {e}")

    def _rearm_deadline(self) -> None:
        """Re-arm the deadline of a round that survived a restart."""
        current = self.current_round()
        if not current.active or current.deadline_at is None:
            return

        remaining = (current.deadline_at - self._clock()).total_seconds()
        self.deadlines.schedule(current.round_id, max(remaining, 0.0))
        logger.info(f"Resumed round {current.round_id} with {max(remaining, 0.0):.1f}s left")
