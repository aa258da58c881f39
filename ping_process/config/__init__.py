"""Configuration management for ping-process."""

from ping_process.config.manager import (
    ConfigManager,
    get_config,
    get_config_manager,
)
from ping_process.config.models import (
    ExecutorConfig,
    PingConfig,
    PingProcessConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    "get_config",
    "get_config_manager",
    # Models
    "ExecutorConfig",
    "PingConfig",
    "PingProcessConfig",
]
