"""Configuration management for PyMirror."""

import os
from pathlib import Path
from typing import Optional

from .exceptions import MirrorConfigError
from .utils import DEFAULT_LOG_FILE_NAME, DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY_MS


class Config:
    """Resolves settings from environment variables and the config file.

    Environment variables take precedence over the config file, which
    holds ``KEY=value`` lines in ``~/.config/pymirror/config``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ``$PYMIRROR_CONFIG_DIR`` or ``~/.config/pymirror``.
        """
        if config_dir is None:
            env_dir = os.environ.get("PYMIRROR_CONFIG_DIR")
            if env_dir:
                config_dir = Path(env_dir)
            else:
                config_dir = Path.home() / ".config" / "pymirror"
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, str]] = None

    def get_config_path(self) -> Path:
        """Get the path to the config file."""
        return self.config_dir / "config"

    def _load_file(self) -> dict[str, str]:
        if self._file_values is None:
            values: dict[str, str] = {}
            path = self.get_config_path()
            if path.is_file():
                for line in path.read_text(encoding="utf-8").splitlines():
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip().strip('"').strip("'")
            self._file_values = values
        return self._file_values

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a raw setting, environment first, then config file."""
        value = os.environ.get(key)
        if value is not None:
            return value
        return self._load_file().get(key, default)

    def _get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError as e:
            raise MirrorConfigError(f"{key} must be an integer, got {value!r}") from e

    @property
    def max_retries(self) -> int:
        """Maximum attempts per filesystem mutation."""
        return self._get_int("PYMIRROR_MAX_RETRIES", DEFAULT_MAX_ATTEMPTS)

    @property
    def retry_delay_ms(self) -> int:
        """Fixed delay between attempts, in milliseconds."""
        return self._get_int("PYMIRROR_RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS)

    @property
    def log_file(self) -> Path:
        """Path of the action log written after each run."""
        value = self.get("PYMIRROR_LOG_FILE")
        if value:
            return Path(value).expanduser()
        return Path.cwd() / DEFAULT_LOG_FILE_NAME


config = Config()
