"""
Polling client for the auction status endpoint.

Bidding clients observe round changes by polling /auction/status at a fixed
interval, or by long-polling /auction/status/wait. Either way a change is a
new round version.
"""

import logging
import time
from typing import Callable, Dict, Optional

import requests

from .. import config

logger = logging.getLogger(__name__)


def describe_change(previous: Optional[Dict], current: Dict) -> str:
    """One-line summary of what changed between two status snapshots."""
    player = (current.get('current_player') or {}).get('name')

    if previous is None:
        if current.get('active'):
            return f"Round in progress: {player} (highest {current.get('current_highest')})"
        return "No active round"

    if current.get('active') and current.get('round_id') != previous.get('round_id'):
        return f"Round started: {player} (base {current.get('current_highest')})"

    if current.get('active'):
        bids = current.get('current_bids', [])
        if len(bids) > len(previous.get('current_bids', [])):
            latest = bids[-1]
            return f"New bid on {player}: {latest['amount']} from {latest['team_name']}"
        return f"Round updated: {player}"

    if previous.get('active'):
        previous_player = (previous.get('current_player') or {}).get('name')
        return f"Round ended: {previous_player}"

    return "No active round"


class AuctionStatusClient:
    """Client for polling the auction round."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        poll_interval: float = config.STATUS_POLL_INTERVAL_SECONDS
    ):
        """
        Initialize status client.

        Args:
            base_url: Auction API root, e.g. http://127.0.0.1:8000
            token: Optional bearer token
            poll_interval: Seconds between polls
        """
        self.base_url = base_url.rstrip('/')
        self.poll_interval = poll_interval
        self.shutdown_requested = False

        # Session for connection pooling
        self.session = requests.Session()
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def fetch_status(self) -> Dict:
        """
        Fetch the current round snapshot.

        Raises:
            requests.RequestException: On API failure
        """
        return self._make_request(f"{self.base_url}/auction/status", {})

    def wait_for_change(self, since_version: int, timeout: float = config.LONG_POLL_MAX_SECONDS) -> Dict:
        """Long-poll until the round version moves past since_version."""
        return self._make_request(
            f"{self.base_url}/auction/status/wait",
            {'since_version': since_version, 'timeout': timeout},
            timeout=timeout + 10
        )

    def poll_changes(
        self,
        on_change: Callable[[Optional[Dict], Dict], None],
        duration_minutes: Optional[float] = None,
        long_poll: bool = False
    ) -> int:
        """
        Poll until stopped, calling on_change(previous, current) for each new version.

        Args:
            on_change: Callback for every observed change (and the first snapshot)
            duration_minutes: Stop after N minutes (None = until stop())
            long_poll: Use /auction/status/wait instead of fixed-interval polling

        Returns:
            Number of polls made
        """
        start_time = time.time()
        poll_count = 0
        previous: Optional[Dict] = None

        while not self.shutdown_requested:
            if duration_minutes is not None:
                elapsed_minutes = (time.time() - start_time) / 60
                if elapsed_minutes >= duration_minutes:
                    logger.info(f"Duration limit reached ({duration_minutes} minutes)")
                    break

            poll_count += 1
            logger.debug(f"Poll #{poll_count}...")

            try:
                if long_poll and previous is not None:
                    current = self.wait_for_change(previous['version'])
                else:
                    current = self.fetch_status()

                if previous is None or current.get('version') != previous.get('version'):
                    on_change(previous, current)
                    previous = current

            except requests.RequestException as e:
                logger.error(f"Error during poll cycle: {e}")

            if not long_poll or previous is None:
                time.sleep(self.poll_interval)

        return poll_count

    def stop(self) -> None:
        self.shutdown_requested = True

    def _make_request(
        self,
        endpoint: str,
        params: Dict,
        timeout: float = 10,
        max_retries: int = 3
    ) -> Dict:
        """
        GET with retries.

        Raises:
            requests.RequestException: After all retries exhausted
        """
        for attempt in range(1, max_retries + 1):
            try:
                logger.debug(f"GET {endpoint} (attempt {attempt}/{max_retries})")
                response = self.session.get(endpoint, params=params, timeout=timeout)
                response.raise_for_status()
                return response.json()

            except requests.Timeout:
                logger.warning(f"Request timeout (attempt {attempt}/{max_retries})")
                if attempt == max_retries:
                    raise
                time.sleep(2 ** attempt)

            except requests.RequestException as e:
                logger.error(f"Request failed (attempt {attempt}/{max_retries}): {e}")
                if attempt == max_retries:
                    raise
                time.sleep(2 ** attempt)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
