"""
Configuration management for batchquery.

Settings are read from the environment (a local .env file is loaded first)
when a BatchQueryConfig is created. Use get_config() to share one instance
across an application.

Example:
    from batchquery.config import get_config

    config = get_config()
    batcher = BalanceBatcher(
        caller, config.BALANCE_CHECKER_ADDRESS, config.batch_config()
    )
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Mainnet deployments
DEFAULT_BALANCE_CHECKER_ADDRESS = "0xb1F8e55c7f64D203C1400B9D8555d050F94aDF39"
DEFAULT_MULTICALL_ADDRESS = "0x5BA1e12693Dc8F9c48aAD8770482f4739bEeD696"


class ConfigError(Exception):
    """Exception raised for configuration-related errors."""
    pass


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
    """
    Get environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not found
        required: Whether the variable is required

    Returns:
        Environment variable value

    Raises:
        ConfigError: If required variable is missing
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ConfigError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: Optional[int] = None, required: bool = False) -> int:
    """Get environment variable as integer."""
    value = get_env(key, str(default) if default is not None else None, required)
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ConfigError(f"Environment variable '{key}' must be an integer, got: {value}")


@dataclass
class BatchQueryConfig:
    """Environment-backed settings for the batch query clients."""

    ENVIRONMENT: str = field(default_factory=lambda: get_env("ENVIRONMENT", "local"))
    LOG_LEVEL: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))

    RPC_URL: str = field(default_factory=lambda: get_env("RPC_URL", "http://localhost:8545"))

    # Aggregator contracts
    BALANCE_CHECKER_ADDRESS: str = field(
        default_factory=lambda: get_env("BALANCE_CHECKER_ADDRESS", DEFAULT_BALANCE_CHECKER_ADDRESS)
    )
    MULTICALL_ADDRESS: str = field(
        default_factory=lambda: get_env("MULTICALL_ADDRESS", DEFAULT_MULTICALL_ADDRESS)
    )

    # Balance batching
    BALANCE_BATCH_SIZE: int = field(default_factory=lambda: get_env_int("BALANCE_BATCH_SIZE", 100))
    BALANCE_CONCURRENCY_LIMIT: int = field(
        default_factory=lambda: get_env_int("BALANCE_CONCURRENCY_LIMIT", 4)
    )

    def __post_init__(self):
        """Initialize configuration after dataclass creation."""
        self._validate_config()
        self._setup_logging()

    def _setup_logging(self):
        """Setup logging configuration."""
        logging.basicConfig(
            level=getattr(logging, self.LOG_LEVEL.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    def _validate_config(self):
        """Validate configuration values."""
        if self.ENVIRONMENT not in ["local", "dev", "staging", "production"]:
            raise ConfigError(f"Invalid environment: {self.ENVIRONMENT}")
        if not isinstance(getattr(logging, self.LOG_LEVEL.upper(), None), int):
            raise ConfigError(f"Invalid log level: {self.LOG_LEVEL}")
        if self.BALANCE_BATCH_SIZE <= 0:
            raise ConfigError(f"BALANCE_BATCH_SIZE must be positive, got: {self.BALANCE_BATCH_SIZE}")
        if self.BALANCE_CONCURRENCY_LIMIT <= 0:
            raise ConfigError(
                f"BALANCE_CONCURRENCY_LIMIT must be positive, got: {self.BALANCE_CONCURRENCY_LIMIT}"
            )

    def batch_config(self):
        """Build the BatchConfig used by BalanceBatcher."""
        from .base import BatchConfig

        return BatchConfig(
            batch_size=self.BALANCE_BATCH_SIZE,
            concurrency_limit=self.BALANCE_CONCURRENCY_LIMIT,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
            if not field_name.startswith('_')
        }


_config: Optional[BatchQueryConfig] = None


def get_config() -> BatchQueryConfig:
    """Get the process-wide configuration, creating it on first use."""
    global _config
    if _config is None:
        _config = BatchQueryConfig()
        logger.info(f"Configuration initialized for environment: {_config.ENVIRONMENT}")
    return _config


def reload_config() -> BatchQueryConfig:
    """Re-read the environment and replace the process-wide configuration."""
    global _config
    _config = None
    return get_config()
