"""Configuration management for the songbook TUI.

Handles loading, saving, and validating TOML configuration stored in:
- macOS/Linux: ~/.config/songbook/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\songbook\\config.toml

The Supabase anon key is a secret and is only read from the environment.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

from family_songbook.app.logging_config import LOG_LEVELS

ENV_SUPABASE_URL = "SONGBOOK_SUPABASE_URL"
ENV_SUPABASE_ANON_KEY = "SONGBOOK_SUPABASE_ANON_KEY"


def get_app_config_dir() -> Path:
    """Get the platform-specific config directory for the songbook.

    Returns:
        Path to the config directory.
    """
    if sys.platform == "darwin" or sys.platform == "linux":
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "songbook"
        return Path.home() / ".config" / "songbook"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "songbook"
        return Path.home() / "AppData" / "Roaming" / "songbook"
    else:
        return Path.home() / ".config" / "songbook"


def get_app_config_path() -> Path:
    """Get the path to the config.toml file.

    Returns:
        Path to config.toml
    """
    return get_app_config_dir() / "config.toml"


def get_session_path() -> Path:
    """Get the path where the signed-in session is persisted."""
    return get_app_config_dir() / "session.json"


@dataclass
class AppConfig:
    """Configuration for the songbook TUI.

    Attributes:
        supabase_url: Base URL of the hosted Supabase project
        request_timeout: HTTP request timeout in seconds
        cache_dir: Local directory for logs and cached state
        session_path: File holding the persisted auth session
        log_level: Lowest level written to the session log
        speed_step_percent: Scroll speed change per key press
        toggle_debounce_ms: Window in which a repeated play/stop is ignored
        frame_interval_ms: Delay between animation frames
        live_speed_changes: Apply speed changes to a running scroll pass
        auto_stop_at_end: Reset scrolling state when a pass completes
    """

    # Hosted store
    supabase_url: str = ""
    request_timeout: int = 30

    # Paths
    cache_dir: Path = field(default_factory=lambda: get_app_config_dir() / "cache")
    session_path: Path = field(default_factory=get_session_path)
    log_level: str = "DEBUG"

    # Player settings
    speed_step_percent: int = 5
    toggle_debounce_ms: int = 250
    frame_interval_ms: int = 16
    live_speed_changes: bool = True
    auto_stop_at_end: bool = False

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppConfig":
        """Load configuration from TOML file.

        Environment variables take precedence over file values.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            AppConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_app_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        if "supabase" in data:
            supabase = data["supabase"]
            config.supabase_url = supabase.get("url", config.supabase_url)
            config.request_timeout = supabase.get("timeout", config.request_timeout)

        if "app" in data:
            app_data = data["app"]
            if "cache_dir" in app_data:
                config.cache_dir = Path(app_data["cache_dir"])
            if "session_path" in app_data:
                config.session_path = Path(app_data["session_path"])
            config.log_level = str(app_data.get("log_level", config.log_level)).upper()
            if config.log_level not in LOG_LEVELS:
                raise ValueError(f"Unknown log level: {config.log_level}")

        if "player" in data:
            player = data["player"]
            config.speed_step_percent = player.get("speed_step_percent", config.speed_step_percent)
            config.toggle_debounce_ms = player.get("toggle_debounce_ms", config.toggle_debounce_ms)
            config.frame_interval_ms = player.get("frame_interval_ms", config.frame_interval_ms)
            config.live_speed_changes = player.get("live_speed_changes", config.live_speed_changes)
            config.auto_stop_at_end = player.get("auto_stop_at_end", config.auto_stop_at_end)

        config.apply_env_overrides()
        return config

    def apply_env_overrides(self) -> None:
        """Override file values from environment variables."""
        env_url = os.environ.get(ENV_SUPABASE_URL)
        if env_url:
            self.supabase_url = env_url

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_app_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "supabase": {
                "url": self.supabase_url,
                "timeout": self.request_timeout,
            },
            "app": {
                "cache_dir": str(self.cache_dir),
                "session_path": str(self.session_path),
                "log_level": self.log_level,
            },
            "player": {
                "speed_step_percent": self.speed_step_percent,
                "toggle_debounce_ms": self.toggle_debounce_ms,
                "frame_interval_ms": self.frame_interval_ms,
                "live_speed_changes": self.live_speed_changes,
                "auto_stop_at_end": self.auto_stop_at_end,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def ensure_directories(self) -> None:
        """Ensure all configured directories exist."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.session_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        """Directory for session logs."""
        return self.cache_dir / "logs"

    @property
    def supabase_anon_key(self) -> Optional[str]:
        """Anon key for the hosted project, read from the environment."""
        return os.environ.get(ENV_SUPABASE_ANON_KEY)


def ensure_app_config_exists() -> AppConfig:
    """Ensure config file exists, creating default if needed.

    Returns:
        AppConfig instance
    """
    config_path = get_app_config_path()

    if config_path.exists():
        try:
            return AppConfig.load(config_path)
        except (tomllib.TOMLDecodeError, ValueError, TypeError):
            # Corrupted config is replaced by defaults below
            pass

    config = AppConfig()
    config.save(config_path)
    config.apply_env_overrides()
    return config
