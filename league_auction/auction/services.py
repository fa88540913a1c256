"""
Wiring for the objects shared by the API handlers.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import config
from .auction_engine import AuctionEngine
from .ledger_store import LedgerStore
from .league_records import LeagueRecords
from .round_log import RoundLogStore

logger = logging.getLogger(__name__)


@dataclass
class AuctionServices:
    """Engine, records and round log over one data directory."""

    engine: AuctionEngine
    records: LeagueRecords
    round_log: RoundLogStore

    @classmethod
    def build(
        cls,
        data_dir: Path,
        deadline_seconds: Optional[float] = None
    ) -> 'AuctionServices':
        data_dir = Path(data_dir)
        store = LedgerStore(data_dir / config.LEDGER_FILENAME)
        round_log = RoundLogStore(data_dir / config.ROUND_LOG_FILENAME)
        engine = AuctionEngine(store, round_log=round_log, deadline_seconds=deadline_seconds)

        logger.info(f"Auction data directory: {data_dir}")
        return cls(engine=engine, records=LeagueRecords(engine), round_log=round_log)

    def close(self) -> None:
        self.engine.close()


_services: Optional[AuctionServices] = None
_services_lock = threading.Lock()


def configure_services(
    data_dir: Optional[Path] = None,
    deadline_seconds: Optional[float] = None
) -> AuctionServices:
    """Build the process-wide services, replacing any existing ones."""
    global _services
    if _services is not None:
        _services.close()

    _services = AuctionServices.build(
        Path(data_dir or config.DATA_DIR),
        deadline_seconds=deadline_seconds
    )
    return _services


def get_services() -> AuctionServices:
    """FastAPI dependency; builds services from config on first use."""
    with _services_lock:
        if _services is None:
            return configure_services(deadline_seconds=config.ROUND_DEADLINE_SECONDS)
        return _services


def shutdown_services() -> None:
    global _services
    if _services is not None:
        _services.close()
        _services = None
