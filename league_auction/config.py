"""
Configuration constants for the league auction service.
"""

import os


def _parse_api_tokens(raw: str) -> dict:
    """Parse 'token=actor,token2=actor2' into a token -> actor mapping."""
    tokens = {}
    for entry in raw.split(','):
        entry = entry.strip()
        if not entry:
            continue
        token, _, actor = entry.partition('=')
        tokens[token.strip()] = actor.strip() or token.strip()
    return tokens


def _parse_optional_seconds(raw: str):
    if not raw:
        return None
    seconds = float(raw)
    return seconds if seconds > 0 else None


# ===== LEAGUE DEFAULTS =====

DEFAULT_TEAM_BUDGET = 10000
DEFAULT_BASE_PRICE = 500
DEFAULT_SKILL_RATING = 5
DEFAULT_PLAYER_AGE = 25
DEFAULT_PLAYING_PREFERENCE = 'both'

# Suggested raise shown by clients; the engine only enforces strictly-greater bids
SUGGESTED_BID_INCREMENT = 100

# ===== STORAGE =====

DATA_DIR = os.getenv('LEAGUE_AUCTION_DATA_DIR', 'data/league_auction')
LEDGER_FILENAME = 'ledger.json'
ROUND_LOG_FILENAME = 'round_log.jsonl'

# ===== AUCTION ENGINE =====

# Seconds to wait for the round lock before giving up
ROUND_LOCK_TIMEOUT = 10.0

# Server-enforced round deadline (None = cosmetic client countdown only)
ROUND_DEADLINE_SECONDS = _parse_optional_seconds(
    os.getenv('LEAGUE_AUCTION_DEADLINE_SECONDS', '')
)

# Countdown shown by clients when no server deadline is set
CLIENT_COUNTDOWN_SECONDS = 30

# ===== NOTIFICATION / POLLING =====

STATUS_POLL_INTERVAL_SECONDS = 2
LONG_POLL_MAX_SECONDS = 30

# ===== API SERVER =====

API_HOST = os.getenv('LEAGUE_AUCTION_HOST', '127.0.0.1')
API_PORT = int(os.getenv('LEAGUE_AUCTION_PORT', '8000'))
API_TITLE = "League Auction API"
API_VERSION = "1.0.0"

# Bearer token -> actor id. Empty means any non-empty token is accepted (dev mode)
API_TOKENS = _parse_api_tokens(os.getenv('LEAGUE_AUCTION_API_TOKENS', ''))

# ===== LOGGING =====

LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
