"""Logfire tracing for the API, the Solana RPC client and MongoDB."""

import logging

import logfire
from fastapi import FastAPI

from predictduel import __version__
from predictduel.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings, app: FastAPI | None = None) -> None:
    """
    Send traces and log records to Logfire. Call once per process.

    Without a token this only logs that tracing is off. Setup errors are
    logged and swallowed so the API still starts.

    Args:
        settings: Provides ``logfire_token`` and the environment name
        app: Instrumented for request spans when given (``serve``)
    """
    if not settings.logfire_token:
        logger.warning("LOGFIRE_TOKEN is empty, tracing disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="predictduel",
            service_version=__version__,
            environment=settings.environment,
        )

        # Solana RPC calls go through httpx, duel/user writes through pymongo
        logfire.instrument_httpx()
        logfire.instrument_pymongo()
        if app is not None:
            logfire.instrument_fastapi(app)

        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())
        logger.info(f"Logfire tracing enabled ({settings.environment})")
    except Exception as e:
        logger.warning(f"Logfire setup failed, continuing without tracing: {e}")
