"""
Key-value ledger for teams, players and auction round state.

Records live in a flat namespace ("team:<id>", "player:<id>", "auction:*").
All writes go through transaction(): changes are staged in an overlay that
the block can read back, and on a clean exit the merged state is written to
the snapshot file (temp file + rename) before it replaces the in-memory map.
An exception inside the block discards every staged change.
"""

import copy
import json
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Auction round keys, always written in the same transaction
AUCTION_STATUS_KEY = 'auction:status'
AUCTION_PLAYER_KEY = 'auction:currentPlayer'
AUCTION_BIDS_KEY = 'auction:currentBids'

TEAM_PREFIX = 'team:'
PLAYER_PREFIX = 'player:'

_DELETED = object()


def team_key(team_id: str) -> str:
    return f"{TEAM_PREFIX}{team_id}"


def player_key(player_id: str) -> str:
    return f"{PLAYER_PREFIX}{player_id}"


class LedgerTransaction:
    """Staged view over the ledger with read-your-writes."""

    def __init__(self, base: Dict[str, Any]):
        self._base = base
        self._writes: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._writes:
            value = self._writes[key]
            return default if value is _DELETED else copy.deepcopy(value)
        if key in self._base:
            return copy.deepcopy(self._base[key])
        return default

    def get_by_prefix(self, prefix: str) -> List[Any]:
        keys = {k for k in self._base if k.startswith(prefix)}
        keys.update(k for k in self._writes if k.startswith(prefix))
        values = []
        for key in sorted(keys):
            value = self.get(key, _DELETED)
            if value is not _DELETED:
                values.append(value)
        return values

    def set(self, key: str, value: Any) -> None:
        self._writes[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._writes[key] = _DELETED

    @property
    def changed_keys(self) -> List[str]:
        return sorted(self._writes)

    def merged(self) -> Dict[str, Any]:
        """Base state with staged writes applied."""
        data = dict(self._base)
        for key, value in self._writes.items():
            if value is _DELETED:
                data.pop(key, None)
            else:
                data[key] = value
        return data


class LedgerStore:
    """Transactional key-value store with an optional JSON snapshot file."""

    def __init__(self, filepath: Optional[Path] = None):
        """
        Initialize the ledger.

        Args:
            filepath: Snapshot file. None keeps the ledger in memory only.
        """
        self.filepath = Path(filepath) if filepath else None
        self._data: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self.commit_count = 0

        if self.filepath is not None:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            if self.filepath.exists():
                self._data = self._load(self.filepath)

    @contextmanager
    def transaction(self) -> Iterator[LedgerTransaction]:
        """
        Stage writes and commit them as one unit.

        Usage:
            with store.transaction() as txn:
                team = txn.get(team_key(team_id))
                txn.set(team_key(team_id), team)
        """
        with self._lock:
            txn = LedgerTransaction(self._data)
            try:
                yield txn
            except Exception:
                if txn.changed_keys:
                    logger.debug(f"Rolled back {len(txn.changed_keys)} staged write(s)")
                raise

            if not txn.changed_keys:
                return

            new_data = txn.merged()
            if self.filepath is not None:
                self._persist(new_data)
            self._data = new_data
            self.commit_count += 1

            logger.debug(f"Committed {len(txn.changed_keys)} key(s): {txn.changed_keys}")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def get_by_prefix(self, prefix: str) -> List[Any]:
        with self._lock:
            return [
                copy.deepcopy(self._data[key])
                for key in sorted(self._data)
                if key.startswith(prefix)
            ]

    def set(self, key: str, value: Any) -> None:
        with self.transaction() as txn:
            txn.set(key, value)

    def delete(self, key: str) -> None:
        with self.transaction() as txn:
            txn.delete(key)

    def _persist(self, data: Dict[str, Any]) -> None:
        """Atomic write: temp file, then rename over the snapshot."""
        snapshot = {
            'saved_at': datetime.now().isoformat(),
            'records': data
        }
        temp_path = self.filepath.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(snapshot, f, indent=2)

        temp_path.replace(self.filepath)

    @staticmethod
    def _load(filepath: Path) -> Dict[str, Any]:
        with open(filepath, 'r', encoding='utf-8') as f:
            snapshot = json.load(f)

        records = snapshot.get('records', {})
        logger.info(f"Loaded {len(records)} ledger records ← {filepath}")
        return records
