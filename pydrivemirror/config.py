"""Configuration management for pydrivemirror.

Settings are collected once at startup into an immutable :class:`MirrorConfig`
that is passed to every component. Values are resolved in this order, later
sources overriding earlier ones:

1. built-in defaults
2. ``~/.config/pydrivemirror/config`` (``KEY=VALUE`` lines)
3. a ``.env`` file in the working directory
4. environment variables
5. explicit overrides (command line options)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import dotenv_values, load_dotenv

from .exceptions import ConfigurationError
from .utils import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_ROOT_FOLDER_NAME,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKER_COUNT,
    DRIVE_API_URL,
    DRIVE_UPLOAD_URL,
    TOKEN_URL,
    default_root_directory,
    parse_size,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "PYDRIVEMIRROR_"

# Config field -> environment variable name
ENV_VARS: dict[str, str] = {
    "client_id": f"{ENV_PREFIX}CLIENT_ID",
    "client_secret": f"{ENV_PREFIX}CLIENT_SECRET",
    "refresh_token": f"{ENV_PREFIX}REFRESH_TOKEN",
    "root_directory": f"{ENV_PREFIX}ROOT",
    "worker_count": f"{ENV_PREFIX}WORKERS",
    "max_file_size": f"{ENV_PREFIX}MAX_FILE_SIZE",
    "root_folder_name": f"{ENV_PREFIX}FOLDER_NAME",
    "max_retries": f"{ENV_PREFIX}MAX_RETRIES",
    "timeout": f"{ENV_PREFIX}TIMEOUT",
}


@dataclass(frozen=True)
class MirrorConfig:
    """Read-only settings for one mirror run."""

    client_id: str
    """OAuth client identifier"""

    client_secret: str
    """OAuth client secret"""

    refresh_token: str
    """Long-lived refresh token used to obtain access tokens"""

    root_directory: Path
    """Local directory whose contents are mirrored"""

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    """Files larger than this many bytes are skipped"""

    worker_count: int = DEFAULT_WORKER_COUNT
    """Number of concurrent upload workers"""

    root_folder_name: str = DEFAULT_ROOT_FOLDER_NAME
    """Name of the remote folder created for each run"""

    max_retries: int = DEFAULT_MAX_RETRIES
    """Extra attempts for a failed folder creation or upload (0 = drop)"""

    timeout: float = DEFAULT_TIMEOUT
    """HTTP timeout in seconds"""

    token_url: str = TOKEN_URL
    api_url: str = DRIVE_API_URL
    upload_url: str = DRIVE_UPLOAD_URL

    def __post_init__(self) -> None:
        for name in ("client_id", "client_secret", "refresh_token"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f"Missing {name}. Set {ENV_VARS[name]} or pass it explicitly."
                )
        if self.worker_count < 1:
            raise ConfigurationError(
                f"worker_count must be at least 1, got {self.worker_count}"
            )
        if self.max_file_size < 0:
            raise ConfigurationError(
                f"max_file_size must not be negative, got {self.max_file_size}"
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must not be negative, got {self.max_retries}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")


def get_config_path() -> Path:
    """Return the path of the user configuration file."""
    return Path.home() / ".config" / "pydrivemirror" / "config"


def _read_config_file(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from a config file if it exists."""
    if not path.is_file():
        return {}
    logger.debug("Reading configuration from %s", path)
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


def _convert(name: str, raw: Any, converter: Callable[[str], Any]) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        return converter(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e


def load_config(
    config_path: Optional[Path] = None,
    use_dotenv: bool = True,
    **overrides: Any,
) -> MirrorConfig:
    """Build the run configuration.

    Args:
        config_path: Config file to read (defaults to :func:`get_config_path`)
        use_dotenv: Whether to load a ``.env`` file from the working directory
        **overrides: Field values that take precedence over everything else;
            ``None`` values are ignored

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If a credential is missing or a value is invalid
    """
    if use_dotenv:
        load_dotenv()

    file_values = _read_config_file(config_path or get_config_path())

    values: dict[str, Any] = {}
    for field_name, env_name in ENV_VARS.items():
        if env_name in file_values:
            values[field_name] = file_values[env_name]
        env_value = os.environ.get(env_name)
        if env_value:
            values[field_name] = env_value

    for field_name, value in overrides.items():
        if value is not None:
            values[field_name] = value

    if "root_directory" in values:
        values["root_directory"] = Path(values["root_directory"]).expanduser()
    else:
        values["root_directory"] = default_root_directory()

    for field_name, converter in (
        ("worker_count", int),
        ("max_retries", int),
        ("max_file_size", parse_size),
        ("timeout", float),
    ):
        if field_name in values:
            values[field_name] = _convert(field_name, values[field_name], converter)

    values.setdefault("client_id", "")
    values.setdefault("client_secret", "")
    values.setdefault("refresh_token", "")

    return MirrorConfig(**values)
