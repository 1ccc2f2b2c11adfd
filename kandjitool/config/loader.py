"""
Configuration loading for kandjitool.

Two sources feed the same ``KandjiConfig`` value, which is then passed
explicitly into the transport:

1. **Config file** (used by the CLI): JSON or YAML with the Kandji API
   base URL and bearer token::

       {"uri": "https://acme.api.kandji.io", "token": "..."}

   ``base_url`` / ``api_token`` are accepted as aliases for ``uri`` /
   ``token``.

2. **Environment** (used by the release hooks): ``KANDJI_BASE_URL`` and
   ``KANDJI_API_TOKEN``, optionally loaded from a ``.env`` file.

The release plugin configuration (app ID, asset pattern, release flags,
post-install script) is read from its own JSON/YAML file by
``load_plugin_config``.

Error Handling
--------------
- ConfigError: missing file, parse error, empty file, wrong structure,
  missing keys. Parse errors are chained with "from err".

Examples
--------
    >>> from pathlib import Path
    >>> from kandjitool.config import load_config
    >>> cfg = load_config(Path("kandji.json"))
    >>> cfg.base_url
    'https://acme.api.kandji.io'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
import yaml

from kandjitool.exceptions import ConfigError

ENV_BASE_URL = "KANDJI_BASE_URL"
ENV_API_TOKEN = "KANDJI_API_TOKEN"

_BASE_URL_KEYS = ("uri", "base_url")
_TOKEN_KEYS = ("token", "api_token")

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class KandjiConfig:
    """
    Connection settings for the Kandji API.

    The token is excluded from repr so configs can be logged safely.
    """

    base_url: str
    api_token: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.base_url or not self.api_token:
            raise ConfigError("Base URL and API token are required.")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))


# -------------------------------
# File helpers
# -------------------------------


def _load_structured_file(p: Path) -> dict[str, Any]:
    """
    Load a JSON or YAML file and return the top-level mapping.

    ``.json`` files go through the json module; everything else is parsed
    with ``yaml.safe_load``.

    Raises:
      ConfigError - missing file, parse error, empty file, non-mapping root
    """
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            if p.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except json.JSONDecodeError as err:
        raise ConfigError(f"Failed to load configuration file: {p}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Failed to load configuration file: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Failed to read configuration file: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"Configuration file is empty: {p}")
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration file must contain a mapping, got {type(data).__name__}: {p}"
        )
    return data


def _first_of(data: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


# -------------------------------
# Public API
# -------------------------------


def load_config(config_path: Path) -> KandjiConfig:
    """
    Load Kandji connection settings from a JSON or YAML file.

    Args:
        config_path: Path to the configuration file.

    Returns:
        The connection settings.

    Raises:
        ConfigError: If the file cannot be loaded or lacks the URL/token.
    """
    from kandjitool.logging import get_global_logger

    logger = get_global_logger()
    path = Path(config_path).resolve()
    data = _load_structured_file(path)

    base_url = _first_of(data, _BASE_URL_KEYS)
    token = _first_of(data, _TOKEN_KEYS)
    missing = []
    if not base_url:
        missing.append("uri")
    if not token:
        missing.append("token")
    if missing:
        raise ConfigError(
            f"Configuration file {path} is missing required key(s): {', '.join(missing)}"
        )

    config = KandjiConfig(base_url=base_url, api_token=token)
    logger.verbose("CONFIG", f"Loaded configuration from {path}")
    logger.debug("CONFIG", f"Configuration: {config!r}")
    return config


def config_from_env(
    env: Mapping[str, str] | None = None, load_env_file: bool = True
) -> KandjiConfig:
    """
    Build connection settings from KANDJI_BASE_URL and KANDJI_API_TOKEN.

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.
        load_env_file: When reading ``os.environ``, load a ``.env`` file
            first (existing variables are not overridden).

    Raises:
        ConfigError: If either variable is missing or empty.
    """
    if env is None:
        if load_env_file:
            load_dotenv()
        env = os.environ

    base_url = env.get(ENV_BASE_URL)
    token = env.get(ENV_API_TOKEN)
    if not base_url or not token:
        raise ConfigError(
            f"Environment variables {ENV_BASE_URL} and {ENV_API_TOKEN} are required."
        )
    return KandjiConfig(base_url=base_url, api_token=token)


def load_plugin_config(config_path: Path) -> dict[str, Any]:
    """
    Load the release plugin configuration (JSON or YAML) as a mapping.

    Raises:
        ConfigError: If the file cannot be loaded.
    """
    return _load_structured_file(Path(config_path).resolve())
