"""Logfire setup for the application."""

import os

import logfire

from fastapi import FastAPI


def configure_logging() -> None:
    """Configure logfire once per process.

    Logs are only shipped when `LOGFIRE_WRITE_TOKEN` is set, so local runs and
    tests stay offline.
    """
    logfire.configure(
        token=os.getenv("LOGFIRE_WRITE_TOKEN"),
        service_name="admin-auth-api",
        send_to_logfire="if-token-present",
    )


def instrument_app(app: FastAPI) -> None:
    """Instrument the FastAPI app when `LOGFIRE_INSTRUMENT_FASTAPI` is enabled."""
    if os.getenv("LOGFIRE_INSTRUMENT_FASTAPI", "false").lower() in ("1", "true", "yes"):
        logfire.instrument_fastapi(app)
        logfire.info("FastAPI application instrumented with logfire")
