"""
Configuration management for remme.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/remme/config.toml) and local (remme.toml) configurations.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, asdict


@dataclass
class RemmeConfig:
    """
    remme configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (REMME_*)
    3. Explicit config file
    4. Local config file (./remme.toml or ./.remme/config.toml)
    5. User config file (~/.config/remme/config.toml)
    6. Defaults
    """

    # Database settings
    database: str = field(default="remme.db")
    database_url: Optional[str] = field(default=None)  # Full async connection string (overrides database)
    database_echo: bool = field(default=False)  # SQLAlchemy echo for debugging

    # Export defaults
    export_pretty: bool = field(default=True)

    # Display settings
    output_format: str = field(default="table")  # table, json, urls
    color_output: bool = field(default=True)

    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "RemmeConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (applied after the searched files)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "remme" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_paths = [
            Path.cwd() / "remme.toml",
            Path.cwd() / ".remme" / "config.toml"
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance, ignoring unknown keys."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with REMME_ prefix."""
        prefix = "REMME_"
        names = {f.name for f in fields(self)}
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if config_key in names:
                    self.set(config_key, value)

    def set(self, key: str, value: str):
        """
        Set a field from its string form, coercing booleans.

        Raises:
            KeyError: If ``key`` is not a configuration field
        """
        if key not in {f.name for f in fields(self)}:
            raise KeyError(key)
        if isinstance(getattr(self, key), bool):
            setattr(self, key, value.lower() in ("true", "1", "yes"))
        else:
            setattr(self, key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in the database path."""
        if isinstance(self.database, str):
            self.database = os.path.expanduser(os.path.expandvars(self.database))

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = Path.home() / ".config" / "remme" / "config.toml"

        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null; unset optional values are left out
        data = {k: v for k, v in asdict(self).items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get_database_path(self) -> Path:
        """Get the resolved database path."""
        path = Path(self.database)
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def get_database_url(self) -> str:
        """
        Get the SQLAlchemy async database URL.

        Examples:
            sqlite+aiosqlite:///remme.db
            sqlite+aiosqlite:///:memory:
        """
        if self.database_url:
            return self.database_url

        return f"sqlite+aiosqlite:///{self.get_database_path()}"


# Global configuration instance
_config: Optional[RemmeConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> RemmeConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = RemmeConfig.load(config_file)
    return _config


def init_config(database: Optional[str] = None, config_file: Optional[Path] = None, **kwargs) -> RemmeConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        database: Database path override
        config_file: Extra config file to load before applying overrides
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    if database:
        config.database = database

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
