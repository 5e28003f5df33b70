"""Structured logging setup."""

import logging

import structlog


def configure_logging(level: str | int = "INFO", *, json: bool = False) -> None:
    """Configure structlog for the API server and scripts.

    Args:
        level: Minimum log level name or number
        json: Render JSON lines instead of the console format
    """
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {name}")

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
