"""
Request and response models for the auction HTTP API.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .. import config


# ========== Records ==========

class PlayerResponse(BaseModel):
    """Player record as stored in the ledger."""
    player_id: str
    name: str
    base_price: int
    games: List[str] = Field(default_factory=list)
    skill_rating: int
    age: int
    playing_preference: str
    team_id: Optional[str] = None
    sold_price: Optional[int] = None
    created_at: Optional[str] = None


class TeamResponse(BaseModel):
    """Team record as stored in the ledger."""
    team_id: str
    name: str
    budget: int
    spent: int
    players: List[str]
    active: bool
    logo: str = ''
    owner_name: str = ''
    contact: str = ''
    created_at: Optional[str] = None


class BidResponse(BaseModel):
    bid_id: str
    team_id: str
    team_name: str
    amount: int
    timestamp: str
    placed_by: str = ''


# ========== Auction ==========

class AuctionStatusResponse(BaseModel):
    """Snapshot of the auction round. Poll this, or long-poll /auction/status/wait."""
    active: bool
    round_id: Optional[str] = None
    version: int = Field(description="Bumped by every round transition")
    current_player: Optional[PlayerResponse] = None
    current_bids: List[BidResponse] = Field(default_factory=list)
    current_highest: Optional[int] = Field(None, description="Highest bid, or base price before any bid")
    started_at: Optional[str] = None
    started_by: Optional[str] = None
    deadline_at: Optional[str] = None


class StartAuctionRequest(BaseModel):
    player_id: str = Field(..., min_length=1)


class StartAuctionResponse(BaseModel):
    message: str
    player: PlayerResponse


class PlaceBidRequest(BaseModel):
    team_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Must exceed the current highest bid")


class PlaceBidResponse(BaseModel):
    message: str
    bid: BidResponse
    all_bids: List[BidResponse]


class FinalizeResponse(BaseModel):
    message: str
    round_id: str
    outcome: str = Field(description="'sold' or 'unsold'")
    player: PlayerResponse
    winning_bid: Optional[BidResponse] = None
    team: Optional[TeamResponse] = None


class StopResponse(BaseModel):
    message: str
    round_id: str
    player_id: str


class RoundOutcomeResponse(BaseModel):
    round_id: str
    outcome: str
    player_id: str
    player_name: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    amount: Optional[int] = None
    bid_count: int
    actor: str
    timestamp: str


class RoundHistoryResponse(BaseModel):
    count: int
    rounds: List[RoundOutcomeResponse]


# ========== League records ==========

class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    budget: int = Field(config.DEFAULT_TEAM_BUDGET, ge=0)
    logo: str = ''
    owner_name: str = ''
    contact: str = ''
    active: bool = True


class PartialUpdateRequest(BaseModel):
    """Partial update: omitted fields are left alone, explicit nulls are rejected."""

    @field_validator('*')
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class TeamUpdateRequest(PartialUpdateRequest):
    name: Optional[str] = Field(None, min_length=1)
    budget: Optional[int] = Field(None, ge=0)
    logo: Optional[str] = None
    owner_name: Optional[str] = None
    contact: Optional[str] = None
    active: Optional[bool] = None


class PlayerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    base_price: int = Field(config.DEFAULT_BASE_PRICE, ge=0)
    games: List[str] = Field(default_factory=list)
    skill_rating: int = config.DEFAULT_SKILL_RATING
    age: int = config.DEFAULT_PLAYER_AGE
    playing_preference: str = config.DEFAULT_PLAYING_PREFERENCE


class PlayerUpdateRequest(PartialUpdateRequest):
    name: Optional[str] = Field(None, min_length=1)
    base_price: Optional[int] = Field(None, ge=0)
    games: Optional[List[str]] = None
    skill_rating: Optional[int] = None
    age: Optional[int] = None
    playing_preference: Optional[str] = None


class BulkImportRequest(BaseModel):
    players: List[Dict[str, Any]] = Field(..., min_length=1)


class TeamResponseEnvelope(BaseModel):
    message: str
    team: TeamResponse


class PlayerResponseEnvelope(BaseModel):
    message: str
    player: PlayerResponse


class BulkImportResponse(BaseModel):
    message: str
    count: int
    players: List[PlayerResponse]


def model_changes(request: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent, for partial updates."""
    return request.model_dump(exclude_unset=True)
