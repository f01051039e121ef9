"""Stored client configuration and registry credentials.

Storage location: $DAEMON_CONFIG, or ~/.daemon-cli/config.json
Format:
    {
        "auths": {
            "registry.example.com": {"auth": "<base64 user:password>", "email": "..."}
        }
    }

Only the encoded ``auth`` string and ``email`` are written back; the decoded
username and password live in memory.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigLoadError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DAEMON_CONFIG"
CONFIG_DIR_NAME = ".daemon-cli"
CONFIG_FILE_NAME = "config.json"


def default_config_path() -> Path:
    """Resolve the configuration file path."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def encode_auth(username: str, password: str) -> str:
    """Encode credentials as base64 ``username:password``."""
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


def decode_auth(auth: str) -> tuple[str, str]:
    """Decode a base64 ``username:password`` string.

    Raises:
        ValueError: If the string is not valid base64 or has no separator
    """
    try:
        decoded = base64.b64decode(auth, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"invalid auth string: {e}") from e
    username, sep, password = decoded.partition(":")
    if not sep:
        raise ValueError("invalid auth string: missing ':' separator")
    return username, password.strip("\x00")


class AuthConfig(BaseModel):
    """Credentials for one registry."""

    username: str = ""
    password: str = ""
    auth: str = ""
    email: str = ""

    @model_validator(mode="after")
    def _decode_auth(self) -> AuthConfig:
        if self.auth and not self.username:
            self.username, self.password = decode_auth(self.auth)
        return self

    def to_stored(self) -> dict[str, str]:
        """Form written to disk."""
        auth = encode_auth(self.username, self.password) if self.username else self.auth
        return {"auth": auth, "email": self.email}


class ConfigFile(BaseModel):
    """Client configuration file contents."""

    auths: dict[str, AuthConfig] = Field(default_factory=dict)
    filename: Path | None = Field(default=None, exclude=True)

    def get_auth(self, address: str) -> AuthConfig | None:
        """Credentials stored for ``address``, if any."""
        return self.auths.get(address)

    def set_auth(self, address: str, auth: AuthConfig) -> None:
        """Store credentials for ``address``."""
        self.auths[address] = auth

    def save(self, path: Path | None = None) -> Path:
        """Write the configuration to disk with owner-only permissions.

        Returns:
            Path the file was written to
        """
        target = path or self.filename or default_config_path()
        target.parent.mkdir(parents=True, exist_ok=True)

        data: dict[str, Any] = {
            "auths": {address: auth.to_stored() for address, auth in self.auths.items()}
        }
        tmp = target.with_suffix(target.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(tmp, 0o600)
        tmp.replace(target)

        logger.debug(f"Saved configuration to {target}")
        return target


def load_config(path: Path | None = None) -> ConfigFile:
    """Load the configuration file.

    A missing file is not an error and yields an empty configuration.

    Raises:
        ConfigLoadError: If the file exists but cannot be read or decoded
    """
    path = path or default_config_path()
    if not path.exists():
        logger.debug(f"No configuration at {path}")
        return ConfigFile(filename=path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        config = ConfigFile.model_validate(raw)
    except OSError as e:
        raise ConfigLoadError(f"cannot read {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"{path} is not valid JSON: {e}") from e
    except ValidationError as e:
        raise ConfigLoadError(f"invalid configuration in {path}: {e}") from e

    config.filename = path
    return config
