"""
FastAPI server for the live player auction.

Provides HTTP endpoints to start, bid on, finalize, stop and monitor the
auction round. Clients observe round changes by polling /auction/status
(or long-polling /auction/status/wait).
"""

import logging
from fastapi import Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from .. import config
from .api_serializers import (
    AuctionStatusResponse,
    FinalizeResponse,
    PlaceBidRequest,
    PlaceBidResponse,
    RoundHistoryResponse,
    StartAuctionRequest,
    StartAuctionResponse,
    StopResponse,
)
from .auth import require_actor
from .errors import AuctionError
from .league_records_endpoints import http_error, records_router
from .roster_report import build_sale_report, build_team_summary, sale_report_to_csv
from .services import AuctionServices, get_services, shutdown_services

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=config.API_TITLE,
    description="Live single-round player auction with budget-checked settlement",
    version=config.API_VERSION
)

# CORS middleware for web UI access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(records_router, tags=["League Records"])


# ===== Auction Endpoints =====

@app.get("/auction/status", response_model=AuctionStatusResponse)
def get_auction_status(services: AuctionServices = Depends(get_services)):
    """
    Get the current auction round.

    Clients poll this every STATUS_POLL_INTERVAL_SECONDS; round changes are
    visible to a poller within that interval.
    """
    try:
        return services.engine.get_status()

    except Exception as e:
        logger.error(f"Failed to get auction status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get auction status: {e}")


@app.get("/auction/status/wait", response_model=AuctionStatusResponse)
def wait_for_auction_change(
    since_version: int = Query(..., ge=0, description="Last version the client has seen"),
    timeout: float = Query(
        config.LONG_POLL_MAX_SECONDS, ge=0, le=config.LONG_POLL_MAX_SECONDS,
        description="Seconds to wait for a change"
    ),
    services: AuctionServices = Depends(get_services)
):
    """
    Long-poll for the next round change.

    Returns as soon as the round version differs from since_version, or
    after timeout with the unchanged status.
    """
    try:
        return services.engine.wait_for_change(since_version, timeout)

    except Exception as e:
        logger.error(f"Failed waiting for auction change: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed waiting for auction change: {e}")


@app.post("/auction/start", response_model=StartAuctionResponse)
def start_auction(
    request: StartAuctionRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Put one player up for auction.

    Raises:
        404 Not Found: Unknown player
        409 Conflict: Player already sold, or a round is already active
            (detail.reason is 'already_sold' or 'round_active')
    """
    try:
        player = services.engine.start(request.player_id, actor)
        return StartAuctionResponse(message="Auction started", player=player.to_dict())

    except AuctionError as e:
        logger.warning(f"Cannot start auction: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Cannot start auction: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to start auction: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to start auction: {e}")


@app.post("/auction/bid", response_model=PlaceBidResponse)
def place_bid(
    request: PlaceBidRequest,
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Place a bid on the current player.

    Raises:
        400 Bad Request: Insufficient budget
        404 Not Found: Unknown team
        409 Conflict: No active auction, inactive team, or amount not above
            detail.current_highest
    """
    try:
        bid, all_bids = services.engine.place_bid(request.team_id, request.amount, actor)
        return PlaceBidResponse(
            message="Bid placed successfully",
            bid=bid.to_dict(),
            all_bids=[b.to_dict() for b in all_bids]
        )

    except AuctionError as e:
        logger.warning(f"Bid rejected: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Bid rejected: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to place bid: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to place bid: {e}")


@app.post("/auction/finalize", response_model=FinalizeResponse)
def finalize_auction(
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Close the round: sell to the highest bidder, or leave the player unsold.

    Raises:
        400 Bad Request: Winning team can no longer afford the bid (round stays open)
        409 Conflict: No active auction
    """
    try:
        result = services.engine.finalize(actor)
        message = "Player sold successfully" if result.sold else "Player unsold - no bids received"
        return FinalizeResponse(message=message, **result.to_dict())

    except AuctionError as e:
        logger.warning(f"Cannot finalize auction: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Cannot finalize auction: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to finalize auction: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to finalize auction: {e}")


@app.post("/auction/stop", response_model=StopResponse)
def stop_auction(
    actor: str = Depends(require_actor),
    services: AuctionServices = Depends(get_services)
):
    """
    Abort the round without a sale.

    Raises:
        409 Conflict: No active auction
    """
    try:
        stopped = services.engine.stop(actor)
        return StopResponse(
            message="Auction stopped",
            round_id=stopped.round_id,
            player_id=stopped.current_player.player_id
        )

    except AuctionError as e:
        logger.warning(f"Cannot stop auction: {e}")
        raise http_error(e)

    except TimeoutError as e:
        logger.warning(f"Cannot stop auction: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to stop auction: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to stop auction: {e}")


@app.get("/auction/history", response_model=RoundHistoryResponse)
def get_round_history(services: AuctionServices = Depends(get_services)):
    """Every finished round, oldest first."""
    try:
        outcomes = services.round_log.load_all_outcomes()
        return RoundHistoryResponse(
            count=len(outcomes),
            rounds=[o.to_dict() for o in outcomes]
        )

    except Exception as e:
        logger.error(f"Failed to load round history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to load round history: {e}")


# ===== Reports =====

@app.get("/reports/teams")
def get_team_report(services: AuctionServices = Depends(get_services)):
    """Budget and roster size per team."""
    try:
        summary = build_team_summary(services.records.list_teams())
        return {'teams': summary.to_dict('records')}

    except Exception as e:
        logger.error(f"Failed to build team report: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build team report: {e}")


@app.get("/reports/sales.csv")
def export_sale_report(services: AuctionServices = Depends(get_services)):
    """Sold players by team, then the unsold pool, then the waiting list, as CSV."""
    try:
        report = build_sale_report(
            services.records.list_teams(),
            services.records.list_players(),
            services.round_log.unsold_player_ids()
        )
        return Response(
            content=sale_report_to_csv(report),
            media_type='text/csv',
            headers={'Content-Disposition': 'attachment; filename="auction_sales.csv"'}
        )

    except Exception as e:
        logger.error(f"Failed to export sale report: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to export sale report: {e}")


@app.get("/config")
def get_frontend_config(services: AuctionServices = Depends(get_services)):
    """Settings clients need to render the auction and pace their polling."""
    return {
        'status_poll_interval_seconds': config.STATUS_POLL_INTERVAL_SECONDS,
        'long_poll_max_seconds': config.LONG_POLL_MAX_SECONDS,
        'deadline_seconds': services.engine.deadline_seconds,
        'client_countdown_seconds': config.CLIENT_COUNTDOWN_SECONDS,
        'suggested_bid_increment': config.SUGGESTED_BID_INCREMENT,
        'default_team_budget': config.DEFAULT_TEAM_BUDGET
    }


@app.get("/health")
def health_check():
    """Status OK if server is running."""
    return {
        "status": "ok",
        "service": config.API_TITLE,
        "version": config.API_VERSION
    }


@app.on_event("shutdown")
async def shutdown_event():
    """Cancel pending deadline timers on shutdown."""
    logger.info("Auction API server shutting down")
    shutdown_services()
