import logging
import os
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.style import Style

from ad_repl_reporter.models import ReportAction

# Load environment variables
load_dotenv(override=False)

"""
Configuration Management for the AD Replication Reporter

This module provides centralized configuration management with validation and
environment variable handling. The invocation parameters travel inside
``ReportConfig`` so every reporter receives one explicit configuration value.
"""

_VALID_AUTH_METHODS = ("kerberos", "ntlm")


def _set_ldap_log_level(log_level: str) -> None:
    """Set log levels for LDAP and socket loggers to reduce noise."""
    noisy_loggers = ["ldap3", "gssapi", "asyncio"]
    # Protocol logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(target_level)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


logger = logging.getLogger(__name__)


@dataclass
class DirectoryConfig:
    """Configuration for LDAP connections to domain controllers."""

    server: str = field(default_factory=lambda: os.getenv("AD_SERVER", ""))
    port: Optional[int] = field(
        default_factory=lambda: int(os.environ["AD_PORT"])
        if os.getenv("AD_PORT")
        else None
    )
    use_ssl: bool = field(default_factory=lambda: _env_flag("AD_USE_SSL"))
    username: str = field(default_factory=lambda: os.getenv("AD_USERNAME", ""))
    password: str = field(default_factory=lambda: os.getenv("AD_PASSWORD", ""))
    auth_method: str = field(default_factory=lambda: os.getenv("AD_AUTH_METHOD", ""))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("AD_CONNECT_TIMEOUT", "10"))
    )

    def __post_init__(self) -> None:
        """Validate directory configuration and fill in derived defaults."""
        if self.port is None:
            self.port = 636 if self.use_ssl else 389
        if not 1 <= self.port <= 65535:
            raise ValueError("LDAP port must be between 1 and 65535")
        if self.connect_timeout < 1:
            raise ValueError("Connect timeout must be at least 1 second")

        # Without explicit credentials the current user's Kerberos ticket is used
        if not self.auth_method:
            self.auth_method = "ntlm" if self.username else "kerberos"
        self.auth_method = self.auth_method.lower()
        if self.auth_method not in _VALID_AUTH_METHODS:
            raise ValueError(f"Auth method must be one of: {list(_VALID_AUTH_METHODS)}")
        if self.auth_method == "ntlm" and not (self.username and self.password):
            raise ValueError("NTLM authentication requires AD_USERNAME and AD_PASSWORD")

    def default_host(self) -> str:
        """Host used for forest-level queries: AD_SERVER or this machine's DNS domain."""
        if self.server:
            return self.server
        fqdn = socket.getfqdn()
        if "." in fqdn:
            return fqdn.split(".", 1)[1]
        raise ValueError(
            "AD_SERVER is not set and the local host name has no DNS domain"
        )

    def get_safe_description(self) -> str:
        """Get connection description for logging (without password)."""
        who = self.username or "current user"
        scheme = "ldaps" if self.use_ssl else "ldap"
        server = self.server or "<default domain>"
        return f"{scheme}://{server}:{self.port} ({self.auth_method}, {who})"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)


@dataclass
class ReportConfig:
    """Invocation parameters of a single report run."""

    log_file_path: str
    action: ReportAction
    domain_name: Optional[str] = None
    continue_on_error: bool = field(
        default_factory=lambda: _env_flag("AD_CONTINUE_ON_ERROR")
    )
    snapshot_vectors: bool = field(
        default_factory=lambda: _env_flag("AD_SNAPSHOT_VECTORS")
    )

    def __post_init__(self) -> None:
        """Validate report parameters."""
        if not self.log_file_path or not self.log_file_path.strip():
            raise ValueError("Log file path is required")
        if not isinstance(self.action, ReportAction):
            self.action = ReportAction(self.action)
        if self.action is ReportAction.AD_REPL_METADATA and not self.domain_name:
            raise ValueError("Domain name is required for the ADReplMetaData action")


@dataclass
class ReporterConfig:
    """Main configuration class that aggregates all configuration sections."""

    report: ReportConfig
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_environment(
        cls,
        log_file_path: str,
        action: ReportAction,
        domain_name: Optional[str] = None,
        continue_on_error: Optional[bool] = None,
        snapshot_vectors: Optional[bool] = None,
        log_level: Optional[str] = None,
    ) -> "ReporterConfig":
        """
        Create configuration from environment variables.

        Args:
            log_file_path: Directory the CSV reports are written to
            action: Report to produce
            domain_name: Target domain (ADReplMetaData only)
            continue_on_error: Keep going when one controller fails (DCReplication)
            snapshot_vectors: Query the forest vector table once per run
            log_level: Optional override of LOG_LEVEL

        Returns:
            ReporterConfig: Configured instance
        """
        report = ReportConfig(
            log_file_path=log_file_path, action=action, domain_name=domain_name
        )
        if continue_on_error is not None:
            report.continue_on_error = continue_on_error
        if snapshot_vectors is not None:
            report.snapshot_vectors = snapshot_vectors

        config = cls(report=report)
        if log_level:
            config.logging.level = log_level
        return config

    def validate_all(self) -> None:
        """Validate all configuration sections."""
        try:
            self.report.__post_init__()
            self.directory.__post_init__()
            self.logging.__post_init__()
            logger.debug("Configuration validation successful")
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration (without sensitive data)."""
        logger.info("=" * 60)
        logger.info("AD REPLICATION REPORTER CONFIGURATION")
        logger.info("=" * 60)
        logger.info(f"Action: {self.report.action.value}")
        logger.info(f"Report Directory: {self.report.log_file_path}")
        if self.report.domain_name:
            logger.info(f"Domain: {self.report.domain_name}")
        logger.info(f"Directory: {self.directory.get_safe_description()}")
        if self.report.action is ReportAction.DC_REPLICATION:
            logger.info(f"   - Continue On Error: {self.report.continue_on_error}")
            logger.info(f"   - Snapshot Vectors: {self.report.snapshot_vectors}")
        logger.info(f"Logging Level: {self.logging.level}")
        if self.logging.file_output:
            logger.info(f"Log File: {self.logging.file_output}")
        logger.info("=" * 60)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "report": {
                "log_file_path": self.report.log_file_path,
                "action": self.report.action.value,
                "domain_name": self.report.domain_name,
                "continue_on_error": self.report.continue_on_error,
                "snapshot_vectors": self.report.snapshot_vectors,
            },
            "directory": {
                "server": self.directory.server,
                "port": self.directory.port,
                "use_ssl": self.directory.use_ssl,
                "username": self.directory.username,
                "auth_method": self.directory.auth_method,
                "connect_timeout": self.directory.connect_timeout,
                # Don't include password in serialization
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


class ReportRichHandler(RichHandler):
    def get_level_style(self, level_name: str) -> Style:
        """Override log level colors for better readability."""
        if level_name == "INFO":
            return Style(color="green", bold=True)
        if level_name == "DEBUG":
            return Style(color="white", dim=True)
        if level_name == "WARNING":
            return Style(color="yellow", bold=True)
        if level_name == "ERROR":
            return Style(color="red", bold=True)
        if level_name == "CRITICAL":
            return Style(color="red", bold=True, reverse=True)
        return Style(color="cyan")


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.
    """
    _set_ldap_log_level(config.level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()  # Remove any existing handlers
    root_logger.setLevel(config.get_log_level())

    console_handler = ReportRichHandler(show_path=False, markup=False)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s:%(name)s:%(message)s"
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def create_config_from_env(
    log_file_path: str,
    action: ReportAction,
    domain_name: Optional[str] = None,
    continue_on_error: Optional[bool] = None,
    snapshot_vectors: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> ReporterConfig:
    """
    Factory function to create and validate configuration from environment.

    Raises:
        ValueError: If configuration is invalid
    """
    config = ReporterConfig.from_environment(
        log_file_path,
        action,
        domain_name=domain_name,
        continue_on_error=continue_on_error,
        snapshot_vectors=snapshot_vectors,
        log_level=log_level,
    )
    config.validate_all()
    return config
