"""
Error taxonomy for auction and league record operations.

Every rejected transition raises one of these with no state change. The API
layer maps them onto HTTP status codes.
"""

from typing import Optional


class AuctionError(Exception):
    """Base class for auction errors."""

    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None, **details):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict:
        payload = {'error': self.message, 'reason': self.reason}
        payload.update(self.details)
        return payload


class NotFoundError(AuctionError):
    """A referenced player or team does not exist."""

    status_code = 404


class ConflictError(AuctionError):
    """The request conflicts with the current round or record state."""

    status_code = 409


class BudgetExceededError(AuctionError):
    """A bid or settlement would push a team past its budget."""

    status_code = 400


class UnauthorizedError(AuctionError):
    """The caller could not be resolved to an authenticated actor."""

    status_code = 401


# Reason codes surfaced to clients
NO_ACTIVE_AUCTION = 'no_active_auction'
ROUND_ACTIVE = 'round_active'
ALREADY_SOLD = 'already_sold'
TEAM_INACTIVE = 'team_inactive'
BID_TOO_LOW = 'bid_too_low'
INSUFFICIENT_BUDGET = 'insufficient_budget'
SETTLEMENT_FAILED = 'settlement_failed'
RECORD_LOCKED = 'record_locked'
PROTECTED_FIELD = 'protected_field'
