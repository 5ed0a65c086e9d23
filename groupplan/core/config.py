import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///groupplan.sqlite3"

    # Persisted app config (hostname, OAuth credentials, port)
    CONFIG_PATH: str = "groupplan.config.json"

    # Sessions
    SESSION_TTL_SECONDS: int = 3600 * 24
    OAUTH_STATE_TTL_SECONDS: int = 600

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


class ConfigMissingError(RuntimeError):
    """Raised when the app config file does not exist."""


class ConfigInvalidError(RuntimeError):
    """Raised when the app config file exists but cannot be parsed."""


class AppConfig(BaseModel):
    """Settings persisted in the local JSON config file."""

    hostname: str = ""
    discord_key: str = ""
    discord_secret: str = ""
    port: int = 8080
    # Empty means a fresh secret per process
    session_secret: str = ""

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(json.dumps(self.model_dump(), indent="\t"), encoding="utf-8")

    @property
    def base_url(self) -> str:
        return f"https://{self.hostname}"


def load_app_config(path: Union[str, Path]) -> AppConfig:
    """Read the app config from `path`.

    Raises ConfigMissingError when the file is absent and ConfigInvalidError
    when it cannot be decoded into an AppConfig.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigMissingError(f"no config file at [{config_path}]") from exc
    try:
        return AppConfig.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ConfigInvalidError(f"failed reading config file [{config_path}]: {exc}") from exc


def ensure_app_config(path: Union[str, Path], logger: Optional[logging.Logger] = None) -> Optional[AppConfig]:
    """Load the app config, writing a template when the file is missing.

    Returns None when the process should exit because the operator has to
    fill out (or fix) the config file first.
    """
    log = logger or logging.getLogger("groupplan")
    try:
        return load_app_config(path)
    except ConfigMissingError:
        AppConfig().save(path)
        log.error(
            "Failed reading the config at [%s], new one created, please fill it out and launch the application again",
            path,
        )
        return None
    except ConfigInvalidError as exc:
        log.error("%s", exc)
        return None
