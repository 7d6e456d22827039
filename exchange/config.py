"""Configuration for the exchange engine."""

import os
from dataclasses import dataclass

from exchange.constants import DEFAULT_FEE_RATE_BPS, MAX_FEE_RATE_BPS

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ExchangeConfig:
    """Centralized configuration for pool creation and logging.

    Attributes:
        default_fee_rate_bps: Fee applied when Initialize omits one (default: 30)
        max_fee_rate_bps: Highest fee a pool may be created with (default: 9999).
            Must stay below 10000 so a fee can never consume the whole input.
        log_level: Minimum level emitted by configure_logging (default: INFO)
    """

    default_fee_rate_bps: int = DEFAULT_FEE_RATE_BPS
    max_fee_rate_bps: int = MAX_FEE_RATE_BPS
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not 0 <= self.max_fee_rate_bps <= MAX_FEE_RATE_BPS:
            raise ValueError(
                f"max_fee_rate_bps must be in [0, {MAX_FEE_RATE_BPS}], got {self.max_fee_rate_bps}"
            )
        if not 0 <= self.default_fee_rate_bps <= self.max_fee_rate_bps:
            raise ValueError(
                f"default_fee_rate_bps must be in [0, {self.max_fee_rate_bps}], "
                f"got {self.default_fee_rate_bps}"
            )
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        """Build a configuration from environment variables.

        - EXCHANGE_DEFAULT_FEE_BPS: Default pool fee (default: 30)
        - EXCHANGE_MAX_FEE_BPS: Maximum pool fee (default: 9999)
        - EXCHANGE_LOG_LEVEL: Log level name (default: INFO)
        """
        return cls(
            default_fee_rate_bps=int(
                os.environ.get("EXCHANGE_DEFAULT_FEE_BPS", str(DEFAULT_FEE_RATE_BPS))
            ),
            max_fee_rate_bps=int(os.environ.get("EXCHANGE_MAX_FEE_BPS", str(MAX_FEE_RATE_BPS))),
            log_level=os.environ.get("EXCHANGE_LOG_LEVEL", "INFO").upper(),
        )


# Default configuration instance
DEFAULT_EXCHANGE_CONFIG = ExchangeConfig()
