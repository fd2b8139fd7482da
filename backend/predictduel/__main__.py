"""PredictDuel CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from predictduel import __version__
from predictduel.config import get_settings
from predictduel.exceptions import DuelError
from predictduel.database import Database
from predictduel.services.registry import build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# PredictDuel Configuration
# Secrets (Mongo credentials, Logfire token) belong in .env, not here.

database:
  mongodb_url: mongodb://localhost:27017
  database_name: predictduel

solana:
  rpc_urls:
    - https://api.devnet.solana.com
    - https://rpc.ankr.com/solana_devnet
  commitment: confirmed
  timeout_seconds: 10
  paper_mode: false

settlement:
  # false: a transaction that cannot be verified is logged and the action proceeds
  enforce_tx_verification: false
  stats_update_retries: 3
  currency_symbol: SOL

api:
  port: 8000
  allowed_origins:
    - http://localhost:3000
"""


def cmd_init(args: argparse.Namespace) -> int:
    """Create the data directory and a default config.yaml."""
    data_dir = Path(args.data_dir).resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    config_path = data_dir / "config.yaml"
    if config_path.exists():
        logger.info(f"Config already exists: {config_path}")
    else:
        config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
        logger.info(f"Created config: {config_path}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from predictduel.api.server import create_app
    from predictduel.observability import initialize_logfire

    settings = get_settings()
    app = create_app(settings)
    initialize_logfire(settings, app)

    uvicorn.run(
        app,
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
        log_level=settings.log_level.lower(),
    )
    return 0


async def _with_services(action):
    settings = get_settings()
    database = Database(settings.database)
    services = build_services(settings, database)
    await database.connect()
    try:
        return await action(services)
    finally:
        await database.close()


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Rebuild one user's stats from their resolved duels."""

    async def action(services):
        user = await services.settlement.reconcile_user_stats(args.user_id)
        stats = user.stats
        print(
            f"{user.username}: {stats.wins}W/{stats.losses}L "
            f"({stats.win_rate:.1f}%), earned {stats.total_earned}, "
            f"streak {stats.current_streak} (best {stats.best_streak})"
        )

    try:
        asyncio.run(_with_services(action))
    except DuelError as e:
        logger.error(f"Reconcile failed: {e}")
        return 1
    return 0


def cmd_retry_stats(args: argparse.Namespace) -> int:
    """Re-apply one resolved duel to its participants' stats."""

    async def action(services):
        return await services.settlement.retry_stats(args.duel_id)

    try:
        failures = asyncio.run(_with_services(action))
    except DuelError as e:
        logger.error(f"Retry failed: {e}")
        return 1

    if failures:
        logger.error(f"Stats still stale for users: {', '.join(failures)}")
        return 1
    logger.info(f"Stats up to date for duel {args.duel_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="predictduel",
        description="PredictDuel - social prediction duels",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Create data dir and config.yaml")
    init_parser.add_argument("--data-dir", default="data")
    init_parser.set_defaults(func=cmd_init)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(func=cmd_serve)

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Recompute a user's stats from resolved duels"
    )
    reconcile_parser.add_argument("user_id")
    reconcile_parser.set_defaults(func=cmd_reconcile)

    retry_parser = subparsers.add_parser(
        "retry-stats", help="Re-apply a resolved duel to participants' stats"
    )
    retry_parser.add_argument("duel_id")
    retry_parser.set_defaults(func=cmd_retry_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
