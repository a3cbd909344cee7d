"""Configuration management for CloudVault."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "http://localhost:3001/api"
DEFAULT_DEBOUNCE_SECONDS = 2.0
DEFAULT_POLL_INTERVAL = 5 * 60.0

CONFIG_FILE_NAME = "config"


class Config:
    """Reads settings from the environment and ~/.config/cloudvault/config.

    Environment variables take precedence over values stored in the
    config file. The file holds one ``KEY=VALUE`` pair per line.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ``$CLOUDVAULT_CONFIG_DIR`` or ``~/.config/cloudvault``.
        """
        if config_dir is None:
            env_dir = os.environ.get("CLOUDVAULT_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "cloudvault"
            )
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def _read_file(self) -> dict[str, str]:
        path = self.get_config_path()
        values: dict[str, str] = {}
        if not path.exists():
            return values
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                values[key.strip()] = value.strip()
        return values

    def _write_value(self, key: str, value: Optional[str]) -> None:
        values = self._read_file()
        if value is None:
            values.pop(key, None)
        else:
            values[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            for k, v in sorted(values.items()):
                f.write(f"{k}={v}\n")
        # The file holds a bearer token
        path.chmod(0o600)

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key) or None

    def _get_float(self, key: str, default: float) -> float:
        value = self._get(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            return default

    @property
    def token(self) -> Optional[str]:
        """Bearer token used for API calls."""
        return self._get("CLOUDVAULT_TOKEN")

    @property
    def api_url(self) -> str:
        """Base URL of the CloudVault API."""
        return (self._get("CLOUDVAULT_API_URL") or DEFAULT_API_URL).rstrip("/")

    @property
    def sync_folder(self) -> Optional[Path]:
        """Local folder mirrored by ``cloudvault watch`` when none is given."""
        value = self._get("CLOUDVAULT_SYNC_FOLDER")
        return Path(value).expanduser() if value else None

    @property
    def debounce_seconds(self) -> float:
        """Quiet period after the last local change before a sync runs."""
        return self._get_float("CLOUDVAULT_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS)

    @property
    def poll_interval(self) -> float:
        """Seconds between unconditional full syncs."""
        return self._get_float("CLOUDVAULT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)

    def is_configured(self) -> bool:
        """Check whether a token is available."""
        return self.token is not None

    def save_token(self, token: str) -> None:
        """Store the bearer token in the config file."""
        self._write_value("CLOUDVAULT_TOKEN", token)

    def save_api_url(self, api_url: Optional[str]) -> None:
        """Store the API URL, or remove it when None."""
        self._write_value("CLOUDVAULT_API_URL", api_url.rstrip("/") if api_url else None)

    def save_sync_folder(self, folder: Optional[Path]) -> None:
        """Store the default sync folder, or remove it when None."""
        self._write_value(
            "CLOUDVAULT_SYNC_FOLDER", str(folder.resolve()) if folder else None
        )


config = Config()
