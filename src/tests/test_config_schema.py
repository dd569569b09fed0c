"""Tests for the configuration schema module."""

import pytest

from dyndns.config.schema import (
    DynDNSConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
    StorageConfig,
    TSIGConfig,
    create_default_config,
)
from dyndns.config.validators import (
    validate_bind_address,
    validate_port,
    validate_positive_float,
    validate_positive_int,
    validate_tsig_algorithm,
    validate_tsig_key,
)

TSIG_KEY = "tsig-key:c2VjcmV0LXNoYXJlZC1ieS1jbGllbnQtYW5kLXNlcnZlcg=="


class TestValidationFunctions:
    """Test validation utility functions."""

    def test_validate_bind_address(self):
        """Test IP address validation."""
        assert validate_bind_address("127.0.0.1") is True
        assert validate_bind_address("::1") is True
        assert validate_bind_address("0.0.0.0") is True
        assert validate_bind_address("invalid") is False
        assert validate_bind_address("256.1.1.1") is False
        assert validate_bind_address("") is False

    def test_validate_port(self):
        """Test port number validation."""
        assert validate_port(53) is True
        assert validate_port(65535) is True
        assert validate_port(1) is True
        assert validate_port(0) is False
        assert validate_port(65536) is False
        assert validate_port(True) is False
        assert validate_port("53") is False

    def test_validate_positive_numbers(self):
        """Test positive number validation."""
        assert validate_positive_int(1) is True
        assert validate_positive_int(0) is False
        assert validate_positive_int(-1) is False
        assert validate_positive_float(0.5) is True
        assert validate_positive_float(10) is True
        assert validate_positive_float(0) is False

    def test_validate_tsig_key(self):
        """Test keyname:secret validation."""
        assert validate_tsig_key(TSIG_KEY) is True
        assert validate_tsig_key("no-secret") is False
        assert validate_tsig_key(":secret") is False
        assert validate_tsig_key("name:") is False
        assert validate_tsig_key(None) is False

    def test_validate_tsig_algorithm(self):
        assert validate_tsig_algorithm("hmac-md5") is True
        assert validate_tsig_algorithm("HMAC-SHA256") is True
        assert validate_tsig_algorithm("rot13") is False


class TestServerConfig:
    """Test ServerConfig validation."""

    def test_defaults(self):
        config = ServerConfig()
        assert config.bind_address == "0.0.0.0"
        assert config.dns_port == 53
        assert config.enable_tcp is True
        assert config.pid_file == "./dyndns.pid"

    def test_invalid_bind_address(self):
        """Test invalid bind address."""
        with pytest.raises(ValueError, match="Invalid bind address"):
            ServerConfig(bind_address="invalid")

    def test_invalid_dns_port(self):
        """Test invalid DNS port."""
        with pytest.raises(ValueError, match="Invalid DNS port"):
            ServerConfig(dns_port=0)

    def test_invalid_max_concurrent_requests(self):
        with pytest.raises(ValueError, match="Max concurrent requests"):
            ServerConfig(max_concurrent_requests=0)

    def test_empty_pid_file_disables_it(self):
        assert ServerConfig(pid_file="").pid_file == ""


class TestStorageConfig:
    """Test StorageConfig validation."""

    def test_defaults(self):
        config = StorageConfig()
        assert config.path == "./dyndns.db"
        assert config.open_timeout == 10.0

    def test_invalid_path(self):
        with pytest.raises(ValueError, match="Invalid storage path"):
            StorageConfig(path="")

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="Open timeout"):
            StorageConfig(open_timeout=0)


class TestTSIGConfig:
    """Test TSIGConfig validation."""

    def test_disabled_by_default(self):
        config = TSIGConfig()
        assert config.key is None
        assert config.algorithm == "hmac-md5"
        assert config.enabled is False

    def test_valid_key(self):
        config = TSIGConfig(key=TSIG_KEY, algorithm="hmac-sha256")
        assert config.enabled is True

    def test_invalid_key(self):
        with pytest.raises(ValueError, match="Invalid TSIG key"):
            TSIGConfig(key="missing-separator")

    def test_invalid_algorithm(self):
        with pytest.raises(ValueError, match="Unsupported TSIG algorithm"):
            TSIGConfig(algorithm="hmac-md4")


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_valid_logging_config(self):
        config = LoggingConfig(level="DEBUG", format="json", file="/tmp/dyndns.log")
        assert config.format == "json"

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")

    def test_invalid_backup_count(self):
        with pytest.raises(ValueError, match="Backup count"):
            LoggingConfig(backup_count=0)


class TestDynDNSConfig:
    """Test whole-configuration validation."""

    def test_create_default_config(self):
        config = create_default_config()

        assert isinstance(config, DynDNSConfig)
        assert config.tsig.enabled is False
        assert config.security.require_signed_updates is False

    def test_signed_updates_need_a_key(self):
        """Test requiring signatures without a key is rejected"""
        with pytest.raises(ValueError, match="no TSIG key"):
            DynDNSConfig(security=SecurityConfig(require_signed_updates=True))

    def test_signed_updates_with_key(self):
        config = DynDNSConfig(
            tsig=TSIGConfig(key=TSIG_KEY),
            security=SecurityConfig(require_signed_updates=True),
        )
        assert config.security.require_signed_updates is True

    def test_non_boolean_security_flag(self):
        with pytest.raises(ValueError, match="must be boolean"):
            SecurityConfig(require_signed_updates="yes")
