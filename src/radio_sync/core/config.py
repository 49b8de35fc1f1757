"""
Configuration management for Radio Sync
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class DataConfig:
    """Configuration for where station metadata and audio live."""

    local_path: str = "data/"  # Folder holding radio.json and station folders
    remote_path: str = (
        "https://raw.githubusercontent.com/RegalTerritory/GTA-V-Radio-Stations/master/"
    )
    request_timeout: float = 10.0  # Seconds to wait for remote metadata


@dataclass
class SchedulerConfig:
    """Configuration for segment scheduling."""

    history_limit: int = 2  # Segments kept in history before replay is needed
    dont_repeat_for: int = 8  # Draws before a file may repeat
    voiceover_offset: float = 5.0  # Fallback voiceover offset in seconds

    def validate(self) -> None:
        """Validate scheduler configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.history_limit < 1:
            raise ValueError(
                f"history_limit must be at least 1, got {self.history_limit}"
            )
        if self.dont_repeat_for < 0:
            raise ValueError(
                f"dont_repeat_for cannot be negative, got {self.dont_repeat_for}"
            )
        if self.voiceover_offset < 0:
            raise ValueError(
                f"voiceover_offset cannot be negative, got {self.voiceover_offset}"
            )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/radio-sync/radio-sync.log)
    )
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    data: DataConfig = field(default_factory=DataConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "radio-sync"
    return Path.home() / ".config" / "radio-sync"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    try:
        current = Path(__file__).resolve().parent
        for parent in [current] + list(current.parents):
            if (parent / "pyproject.toml").exists():
                config_path = parent / "config.toml"
                if config_path.exists():
                    return config_path
                return None
    except OSError:
        pass
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/radio-sync (or ~/.config/radio-sync)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path (logs and other runtime files)."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "radio-sync"
    return Path.home() / ".local" / "share" / "radio-sync"


def get_log_file_path(config: Optional[Config] = None) -> Path:
    """Get the path to the log file."""
    if config and config.logging.log_file:
        return Path(config.logging.log_file)
    return get_data_dir() / "radio-sync.log"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Radio Sync Configuration

[data]
# Folder containing radio.json and one folder per station
local_path = "data/"

# Base URL used when the local folder has no radio.json
remote_path = "https://raw.githubusercontent.com/RegalTerritory/GTA-V-Radio-Stations/master/"

# Seconds to wait for remote metadata
request_timeout = 10.0

[scheduler]
# Number of past segments kept before lookback falls back to replay
history_limit = 2

# Number of draws before the same file may be picked again
dont_repeat_for = 8

# Voiceover offset (seconds) used when a track has no DJ markers
voiceover_offset = 5.0

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/radio-sync/radio-sync.log)
# log_file = "/path/to/custom/radio-sync.log"

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def _apply_env_overrides(config: Config) -> Config:
    """Override data locations with environment variables if present."""
    data_path = os.environ.get("RADIO_SYNC_DATA_PATH")
    remote_path = os.environ.get("RADIO_SYNC_REMOTE_PATH")

    if data_path:
        config.data.local_path = data_path
    if remote_path:
        config.data.remote_path = remote_path
    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - RADIO_SYNC_DATA_PATH
    - RADIO_SYNC_REMOTE_PATH
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        config = Config()

        if "data" in toml_data:
            data = toml_data["data"]
            config.data = DataConfig(
                local_path=data.get("local_path", config.data.local_path),
                remote_path=data.get("remote_path", config.data.remote_path),
                request_timeout=float(
                    data.get("request_timeout", config.data.request_timeout)
                ),
            )

        if "scheduler" in toml_data:
            scheduler_data = toml_data["scheduler"]
            config.scheduler = SchedulerConfig(
                history_limit=scheduler_data.get(
                    "history_limit", config.scheduler.history_limit
                ),
                dont_repeat_for=scheduler_data.get(
                    "dont_repeat_for", config.scheduler.dont_repeat_for
                ),
                voiceover_offset=float(
                    scheduler_data.get(
                        "voiceover_offset", config.scheduler.voiceover_offset
                    )
                ),
            )
            try:
                config.scheduler.validate()
            except ValueError as e:
                print(f"Warning: Invalid scheduler configuration: {e}")
                print("Using default scheduler configuration.")
                config.scheduler = SchedulerConfig()

        if "logging" in toml_data:
            logging_data = toml_data["logging"]
            log_file = logging_data.get("log_file")
            if log_file:
                log_file = str(Path(log_file).expanduser())
            config.logging = LoggingConfig(
                level=logging_data.get("level", config.logging.level).upper(),
                log_file=log_file,
                console_output=logging_data.get(
                    "console_output", config.logging.console_output
                ),
            )

        return _apply_env_overrides(config)

    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return _apply_env_overrides(Config())


def ensure_directories() -> None:
    """Ensure the configuration and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
