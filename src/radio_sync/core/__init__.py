"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging (Loguru)
- Console management (Rich)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    DataConfig,
    LoggingConfig,
    SchedulerConfig,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_log_file_path,
    create_default_config,
    ensure_directories,
)

# Output
from .output import log, setup_loguru

# Console
from .console import get_console, print_table, safe_print

__all__ = [
    # Config
    "Config",
    "DataConfig",
    "LoggingConfig",
    "SchedulerConfig",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "create_default_config",
    "ensure_directories",
    # Output
    "log",
    "setup_loguru",
    # Console
    "get_console",
    "print_table",
    "safe_print",
]
