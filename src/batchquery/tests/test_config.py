"""Tests for configuration and error classification."""

import logging

import pytest

from batchquery import config as config_module
from batchquery.base import BatchConfig
from batchquery.config import (
    DEFAULT_BALANCE_CHECKER_ADDRESS,
    DEFAULT_MULTICALL_ADDRESS,
    BatchQueryConfig,
    ConfigError,
    get_config,
    reload_config,
)
from batchquery.errors import ErrorHandler

ENV_KEYS = [
    "ENVIRONMENT",
    "LOG_LEVEL",
    "RPC_URL",
    "BALANCE_CHECKER_ADDRESS",
    "MULTICALL_ADDRESS",
    "BALANCE_BATCH_SIZE",
    "BALANCE_CONCURRENCY_LIMIT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "_config", None)


class TestBatchQueryConfig:
    """Test cases for BatchQueryConfig."""

    def test_defaults(self):
        config = BatchQueryConfig()

        assert config.ENVIRONMENT == "local"
        assert config.BALANCE_CHECKER_ADDRESS == DEFAULT_BALANCE_CHECKER_ADDRESS
        assert config.MULTICALL_ADDRESS == DEFAULT_MULTICALL_ADDRESS
        assert config.BALANCE_BATCH_SIZE == 100
        assert config.BALANCE_CONCURRENCY_LIMIT == 4

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BALANCE_BATCH_SIZE", "250")
        monkeypatch.setenv("BALANCE_CONCURRENCY_LIMIT", "8")
        monkeypatch.setenv("RPC_URL", "http://node:8545")

        config = BatchQueryConfig()

        assert config.BALANCE_BATCH_SIZE == 250
        assert config.BALANCE_CONCURRENCY_LIMIT == 8
        assert config.RPC_URL == "http://node:8545"
        assert config.batch_config() == BatchConfig(batch_size=250, concurrency_limit=8)

    def test_non_integer_value(self, monkeypatch):
        monkeypatch.setenv("BALANCE_BATCH_SIZE", "lots")
        with pytest.raises(ConfigError, match="must be an integer"):
            BatchQueryConfig()

    @pytest.mark.parametrize(
        "key, value",
        [
            ("ENVIRONMENT", "moon"),
            ("LOG_LEVEL", "LOUD"),
            ("BALANCE_BATCH_SIZE", "0"),
            ("BALANCE_CONCURRENCY_LIMIT", "0"),
        ],
    )
    def test_invalid_values(self, monkeypatch, key, value):
        monkeypatch.setenv(key, value)
        with pytest.raises(ConfigError):
            BatchQueryConfig()

    def test_to_dict(self):
        data = BatchQueryConfig().to_dict()
        assert data["MULTICALL_ADDRESS"] == DEFAULT_MULTICALL_ADDRESS
        assert set(ENV_KEYS) <= set(data)

    def test_get_config_is_shared(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("BALANCE_BATCH_SIZE", "7")
        reloaded = reload_config()

        assert reloaded is not first
        assert reloaded.BALANCE_BATCH_SIZE == 7
        assert get_config() is reloaded


class TestErrorHandler:
    """Test cases for ErrorHandler classification."""

    @pytest.mark.parametrize(
        "message, category",
        [
            ("429 Too Many Requests", "rate_limit"),
            ("connection refused", "network"),
            ("execution reverted", "contract"),
            ("invalid opcode", "validation"),
            ("something odd", "unknown"),
        ],
    )
    def test_classify_error(self, message, category):
        assert ErrorHandler().classify_error(Exception(message)) == category

    def test_log_error_levels(self, caplog):
        handler = ErrorHandler(logging.getLogger("batchquery.test"))

        with caplog.at_level(logging.INFO, logger="batchquery.test"):
            handler.log_error(Exception("execution reverted"), {"target": "0xabc"})
            handler.log_error(Exception("connection refused"), {"target": "0xabc"})

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.ERROR, logging.WARNING]
        assert caplog.records[0].error_category == "contract"
        assert caplog.records[0].target == "0xabc"
