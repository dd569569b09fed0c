"""
Dynamic DNS Server Configuration Schema

Configuration schema for the listener, the record storage, TSIG
authentication, security and logging settings.
"""

from dataclasses import dataclass, field
from typing import Optional

from .validators import (
    validate_bind_address,
    validate_boolean,
    validate_file_path,
    validate_log_level,
    validate_port,
    validate_positive_float,
    validate_positive_int,
    validate_tsig_algorithm,
    validate_tsig_key,
)


@dataclass
class ServerConfig:
    """Server configuration section."""

    bind_address: str = "0.0.0.0"
    dns_port: int = 53
    enable_tcp: bool = True
    max_concurrent_requests: int = 1000
    pid_file: str = "./dyndns.pid"

    def __post_init__(self) -> None:
        """Validate server configuration."""
        if not validate_bind_address(self.bind_address):
            raise ValueError(f"Invalid bind address: {self.bind_address}")

        if not validate_port(self.dns_port):
            raise ValueError(f"Invalid DNS port: {self.dns_port}")

        if not validate_boolean(self.enable_tcp):
            raise ValueError(f"Enable TCP must be boolean: {self.enable_tcp}")

        if not validate_positive_int(self.max_concurrent_requests):
            raise ValueError(
                f"Max concurrent requests must be positive: {self.max_concurrent_requests}"
            )

        # Empty string disables the PID file
        if self.pid_file and not validate_file_path(self.pid_file):
            raise ValueError(f"Invalid PID file path: {self.pid_file}")


@dataclass
class StorageConfig:
    """Record storage configuration section."""

    path: str = "./dyndns.db"
    open_timeout: float = 10.0

    def __post_init__(self) -> None:
        """Validate storage configuration."""
        if not validate_file_path(self.path):
            raise ValueError(f"Invalid storage path: {self.path}")

        if not validate_positive_float(self.open_timeout):
            raise ValueError(f"Open timeout must be positive: {self.open_timeout}")


@dataclass
class TSIGConfig:
    """TSIG authentication configuration section."""

    key: Optional[str] = None  # keyname:base64secret
    algorithm: str = "hmac-md5"

    def __post_init__(self) -> None:
        """Validate TSIG configuration."""
        if self.key is not None and not validate_tsig_key(self.key):
            raise ValueError("Invalid TSIG key, expected keyname:base64secret")

        if not validate_tsig_algorithm(self.algorithm):
            raise ValueError(f"Unsupported TSIG algorithm: {self.algorithm}")

    @property
    def enabled(self) -> bool:
        return bool(self.key)


@dataclass
class SecurityConfig:
    """Security configuration section."""

    require_signed_updates: bool = False

    def __post_init__(self) -> None:
        """Validate security configuration."""
        if not validate_boolean(self.require_signed_updates):
            raise ValueError(
                f"Require signed updates must be boolean: {self.require_signed_updates}"
            )


@dataclass
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    format: str = "console"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5
    enable_request_logging: bool = True

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if not validate_log_level(self.level):
            raise ValueError(f"Invalid log level: {self.level}")

        if self.format not in ["console", "json"]:
            raise ValueError(f"Invalid log format: {self.format}")

        if self.file and not validate_file_path(self.file):
            raise ValueError(f"Invalid log file path: {self.file}")

        if not validate_positive_int(self.max_size_mb):
            raise ValueError(f"Max size MB must be positive: {self.max_size_mb}")

        if not validate_positive_int(self.backup_count):
            raise ValueError(f"Backup count must be positive: {self.backup_count}")

        if not validate_boolean(self.enable_request_logging):
            raise ValueError(
                f"Enable request logging must be boolean: {self.enable_request_logging}"
            )


@dataclass
class DynDNSConfig:
    """Main dynamic DNS server configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    tsig: TSIGConfig = field(default_factory=TSIGConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate the entire configuration."""
        if self.security.require_signed_updates and not self.tsig.enabled:
            raise ValueError("Signed updates are required but no TSIG key is configured")


def create_default_config() -> DynDNSConfig:
    """Create a default configuration instance."""
    return DynDNSConfig()
