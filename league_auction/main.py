"""
Main CLI entry point for the league auction service.
"""

import argparse
import logging
import os
import signal
import sys

from . import config


def setup_logging(verbose: bool = False):
    """
    Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='League Player Auction Service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the auction API
  python -m league_auction.main --port 8000

  # Auto-finalize each round 60 seconds after it starts
  python -m league_auction.main --deadline-seconds 60

  # Follow a running auction from another terminal
  python -m league_auction.main --watch --server-url http://127.0.0.1:8000 --long-poll
        """
    )

    parser.add_argument(
        '--host',
        type=str,
        default=config.API_HOST,
        help=f'Interface to bind (default: {config.API_HOST})'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=config.API_PORT,
        help=f'Port to listen on (default: {config.API_PORT})'
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        default=config.DATA_DIR,
        help=f'Directory for the ledger and round log (default: {config.DATA_DIR})'
    )

    parser.add_argument(
        '--deadline-seconds',
        type=float,
        default=config.ROUND_DEADLINE_SECONDS,
        help='Finalize each round automatically after N seconds (default: never)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    # Watch mode arguments
    parser.add_argument(
        '--watch',
        action='store_true',
        help='Poll a running server and log round changes instead of serving'
    )

    parser.add_argument(
        '--server-url',
        type=str,
        default=f'http://{config.API_HOST}:{config.API_PORT}',
        help='Auction API root for watch mode'
    )

    parser.add_argument(
        '--token',
        type=str,
        default=None,
        help='Bearer token for watch mode (or set LEAGUE_AUCTION_TOKEN)'
    )

    parser.add_argument(
        '--poll-interval',
        type=float,
        default=config.STATUS_POLL_INTERVAL_SECONDS,
        help=f'Seconds between polls in watch mode (default: {config.STATUS_POLL_INTERVAL_SECONDS})'
    )

    parser.add_argument(
        '--long-poll',
        action='store_true',
        help='Long-poll for changes instead of polling at a fixed interval'
    )

    parser.add_argument(
        '--duration-minutes',
        type=float,
        default=None,
        help='Stop watching after N minutes (default: until Ctrl+C)'
    )

    return parser.parse_args(argv)


def run_server_mode(args):
    """Serve the auction API with uvicorn."""
    import uvicorn
    from .auction.api_server import app
    from .auction.services import configure_services

    logger = logging.getLogger(__name__)

    logger.info("="*60)
    logger.info("League Auction API")
    logger.info("="*60)
    logger.info(f"Listening on {args.host}:{args.port}")
    logger.info(f"Data directory: {args.data_dir}")
    if args.deadline_seconds:
        logger.info(f"Round deadline: {args.deadline_seconds}s")
    else:
        logger.info("Round deadline: none (rounds close on finalize/stop only)")
    if not config.API_TOKENS:
        logger.warning(
            "No API tokens configured; any bearer token is accepted. "
            "Set LEAGUE_AUCTION_API_TOKENS to restrict access."
        )

    configure_services(data_dir=args.data_dir, deadline_seconds=args.deadline_seconds)
    uvicorn.run(app, host=args.host, port=args.port, log_level='debug' if args.verbose else 'info')


def run_watch_mode(args):
    """Follow a running auction and log every round change."""
    from .auction.status_poller import AuctionStatusClient, describe_change

    logger = logging.getLogger(__name__)

    token = args.token or os.getenv('LEAGUE_AUCTION_TOKEN')
    client = AuctionStatusClient(args.server_url, token=token, poll_interval=args.poll_interval)

    def signal_handler(sig, frame):
        logger.info("\nShutdown requested (Ctrl+C)")
        client.stop()

    signal.signal(signal.SIGINT, signal_handler)

    logger.info("="*60)
    logger.info(f"Watching auction at {args.server_url}")
    logger.info(f"Mode: {'long-poll' if args.long_poll else f'poll every {args.poll_interval}s'}")
    logger.info("Press Ctrl+C to stop")
    logger.info("="*60)

    def on_change(previous, current):
        logger.info(f"[v{current.get('version')}] {describe_change(previous, current)}")

    try:
        poll_count = client.poll_changes(
            on_change,
            duration_minutes=args.duration_minutes,
            long_poll=args.long_poll
        )
        logger.info(f"Stopped after {poll_count} polls")
    finally:
        client.close()


def main(argv=None):
    """Main execution function with mode branching."""
    args = parse_arguments(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if args.watch:
            run_watch_mode(args)
        else:
            run_server_mode(args)
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
    except Exception as e:
        logger.exception(f"Error during execution: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
