"""
Tests for deployment settings and tuning configuration.
"""
import pytest
from pydantic import ValidationError

from erc20_relay.config import GWEI, RelayConfig, RelaySettings

from conftest import HARDHAT_MNEMONIC, RECIPIENT, USDT_CHECKSUM

ENV_NAMES = [
    "RELAY_RPC_URL", "BSC_API",
    "RELAY_MNEMONIC", "MAIN_PASSPHRASE",
    "RELAY_MNEMONIC_PASSWORD", "MAIN_PASSPHRASE_PASSWORD",
    "RELAY_TOKEN_CONTRACT", "USDT_CONTRACT_BSC",
    "RELAY_RECIPIENT", "XBTS_BSC_WALLET",
    "RELAY_LOG_LEVEL", "RELAY_MAX_BLOCKS_WAIT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_relay_config_defaults():
    config = RelayConfig()
    assert config.fees.priority_fee_wei == 2 * GWEI
    assert config.fees.base_fee_multiplier == 2
    assert config.confirmation.poll_interval_seconds == 10.0
    assert config.strict_recipient_checksum is True


def test_relay_configs_are_independent():
    first = RelayConfig()
    first.confirmation.max_blocks_wait = 1
    assert RelayConfig().confirmation.max_blocks_wait == 50


class TestRelaySettings:
    """Test environment loading."""

    def test_relay_prefixed_names(self, clean_env):
        clean_env.setenv("RELAY_RPC_URL", "https://bsc.example.org")
        clean_env.setenv("RELAY_MNEMONIC", HARDHAT_MNEMONIC)
        clean_env.setenv("RELAY_TOKEN_CONTRACT", USDT_CHECKSUM)
        clean_env.setenv("RELAY_MAX_BLOCKS_WAIT", "12")

        settings = RelaySettings(_env_file=None)

        assert settings.rpc_url == "https://bsc.example.org"
        assert settings.mnemonic.get_secret_value() == HARDHAT_MNEMONIC
        assert settings.mnemonic_password is None
        assert settings.recipient is None
        assert settings.build_config().confirmation.max_blocks_wait == 12

    def test_legacy_deployment_names(self, clean_env):
        clean_env.setenv("BSC_API", "https://bsc-dataseed.example.org")
        clean_env.setenv("MAIN_PASSPHRASE", HARDHAT_MNEMONIC)
        clean_env.setenv("MAIN_PASSPHRASE_PASSWORD", "hunter2")
        clean_env.setenv("USDT_CONTRACT_BSC", USDT_CHECKSUM.lower())
        clean_env.setenv("XBTS_BSC_WALLET", RECIPIENT)

        settings = RelaySettings(_env_file=None)

        assert settings.rpc_url == "https://bsc-dataseed.example.org"
        assert settings.mnemonic_password.get_secret_value() == "hunter2"
        assert settings.token_contract == USDT_CHECKSUM.lower()
        assert settings.recipient == RECIPIENT

    def test_secrets_are_masked(self, clean_env):
        clean_env.setenv("RELAY_RPC_URL", "https://bsc.example.org")
        clean_env.setenv("RELAY_MNEMONIC", HARDHAT_MNEMONIC)
        clean_env.setenv("RELAY_TOKEN_CONTRACT", USDT_CHECKSUM)

        settings = RelaySettings(_env_file=None)

        assert "junk" not in repr(settings)
        assert "junk" not in str(settings.mnemonic)

    def test_log_level_normalised(self, clean_env):
        clean_env.setenv("RELAY_RPC_URL", "https://bsc.example.org")
        clean_env.setenv("RELAY_MNEMONIC", HARDHAT_MNEMONIC)
        clean_env.setenv("RELAY_TOKEN_CONTRACT", USDT_CHECKSUM)
        clean_env.setenv("RELAY_LOG_LEVEL", "debug")

        assert RelaySettings(_env_file=None).log_level == "DEBUG"

    def test_rejects_bad_log_level(self, clean_env):
        clean_env.setenv("RELAY_RPC_URL", "https://bsc.example.org")
        clean_env.setenv("RELAY_MNEMONIC", HARDHAT_MNEMONIC)
        clean_env.setenv("RELAY_TOKEN_CONTRACT", USDT_CHECKSUM)
        clean_env.setenv("RELAY_LOG_LEVEL", "loud")

        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None)

    def test_rejects_non_http_url(self, clean_env):
        clean_env.setenv("RELAY_RPC_URL", "ws://bsc.example.org")
        clean_env.setenv("RELAY_MNEMONIC", HARDHAT_MNEMONIC)
        clean_env.setenv("RELAY_TOKEN_CONTRACT", USDT_CHECKSUM)

        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None)

    def test_missing_required(self, clean_env):
        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None)
