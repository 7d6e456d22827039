"""structlog setup for processes embedding the exchange engine."""

import logging

import structlog

from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig


def configure_logging(config: ExchangeConfig = DEFAULT_EXCHANGE_CONFIG) -> None:
    """Configure structlog with timestamps and console rendering.

    Events below config.log_level are dropped by the bound logger.
    """
    log_level = logging.getLevelName(config.log_level.upper())
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
