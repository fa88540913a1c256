"""
Team and player endpoints.

Thin handlers over LeagueRecords. Reads are public; writes need an actor.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from .api_serializers import (
    BulkImportRequest,
    BulkImportResponse,
    PlayerCreateRequest,
    PlayerResponseEnvelope,
    PlayerUpdateRequest,
    TeamCreateRequest,
    TeamResponseEnvelope,
    TeamUpdateRequest,
    model_changes,
)
from .auth import require_actor
from .errors import AuctionError
from .services import AuctionServices, get_services

logger = logging.getLogger(__name__)

records_router = APIRouter()


def http_error(error: AuctionError) -> HTTPException:
    """Convert a typed auction error into an HTTPException."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())


# ===== Teams =====

@records_router.get("/teams")
def list_teams(services: AuctionServices = Depends(get_services)):
    return {'teams': [t.to_dict() for t in services.records.list_teams()]}


@records_router.post("/teams", response_model=TeamResponseEnvelope)
def create_team(
    request: TeamCreateRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    try:
        team = services.records.create_team(**request.model_dump())
        logger.info(f"{actor} created team {team.team_id}")
        return TeamResponseEnvelope(message="Team created successfully", team=team.to_dict())

    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to create team: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to create team: {e}")


@records_router.put("/teams/{team_id}", response_model=TeamResponseEnvelope)
def update_team(
    team_id: str,
    request: TeamUpdateRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Edit a team.

    Raises:
        404 Not Found: Unknown team
        409 Conflict: Team has a bid in the running round
        400 Bad Request: Budget lowered below what the team already spent
        503 Service Unavailable: Auction round lock busy
    """
    try:
        team = services.records.update_team(team_id, model_changes(request))
        logger.info(f"{actor} updated team {team_id}")
        return TeamResponseEnvelope(message="Team updated successfully", team=team.to_dict())

    except AuctionError as e:
        logger.warning(f"Cannot update team {team_id}: {e}")
        raise http_error(e)

    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except TimeoutError as e:
        logger.warning(f"Cannot update team {team_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to update team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update team: {e}")


@records_router.delete("/teams/{team_id}")
def delete_team(
    team_id: str,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    try:
        services.records.delete_team(team_id)
        logger.info(f"{actor} deleted team {team_id}")
        return {'message': 'Team deleted successfully'}

    except AuctionError as e:
        logger.warning(f"Cannot delete team {team_id}: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Cannot delete team {team_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to delete team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to delete team: {e}")


# ===== Players =====

@records_router.get("/players")
def list_players(services: AuctionServices = Depends(get_services)):
    return {'players': [p.to_dict() for p in services.records.list_players()]}


@records_router.post("/players", response_model=PlayerResponseEnvelope)
def create_player(
    request: PlayerCreateRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    try:
        player = services.records.create_player(**request.model_dump())
        logger.info(f"{actor} created player {player.player_id}")
        return PlayerResponseEnvelope(message="Player created successfully", player=player.to_dict())

    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to create player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to create player: {e}")


@records_router.post("/players/bulk-import", response_model=BulkImportResponse)
def bulk_import_players(
    request: BulkImportRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """Create many players at once; missing numbers fall back to league defaults."""
    try:
        players = services.records.bulk_import_players(request.players)
        logger.info(f"{actor} imported {len(players)} players")
        return BulkImportResponse(
            message=f"Successfully imported {len(players)} players",
            count=len(players),
            players=[p.to_dict() for p in players]
        )

    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to import players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to import players: {e}")


@records_router.put("/players/{player_id}", response_model=PlayerResponseEnvelope)
def update_player(
    player_id: str,
    request: PlayerUpdateRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Edit a player's display attributes or base price.

    Raises:
        404 Not Found: Unknown player
        409 Conflict: Player is up for auction
        503 Service Unavailable: Auction round lock busy
    """
    try:
        player = services.records.update_player(player_id, model_changes(request))
        logger.info(f"{actor} updated player {player_id}")
        return PlayerResponseEnvelope(message="Player updated successfully", player=player.to_dict())

    except AuctionError as e:
        logger.warning(f"Cannot update player {player_id}: {e}")
        raise http_error(e)

    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except TimeoutError as e:
        logger.warning(f"Cannot update player {player_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to update player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update player: {e}")


@records_router.delete("/players/{player_id}")
def delete_player(
    player_id: str,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    try:
        services.records.delete_player(player_id)
        logger.info(f"{actor} deleted player {player_id}")
        return {'message': 'Player deleted successfully'}

    except AuctionError as e:
        logger.warning(f"Cannot delete player {player_id}: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Cannot delete player {player_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to delete player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to delete player: {e}")
