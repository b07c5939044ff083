"""Registry configuration.

Settings come from an optional YAML file and are overlaid by environment
variables (the same names the deploy scripts have always used)::

    verification:
      owner: "0x..."
      token_name: UserVerificationToken
      token_symbol: UVT
      token_expiration_time: 31536000
      managers: ["0x...", "0x..."]
    social_connections:
      owner: "0x..."
    filesystem_changes:
      owner: "0x..."
    state_dir: ~/.dappy/state

Validation happens here, before any registry is created. The registries
themselves only guard against double initialization.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import yaml

from dappy.auth.models import ZERO_ACCOUNT, normalize_account
from dappy.errors import ConfigError, InvalidAccountError

logger = logging.getLogger(__name__)

ENV_VARS = {
    "USER_VERIFICATION_OWNER": ("verification", "owner"),
    "USER_VERIFICATION_TOKEN_NAME": ("verification", "token_name"),
    "USER_VERIFICATION_TOKEN_SYMBOL": ("verification", "token_symbol"),
    "USER_VERIFICATION_TOKEN_EXPIRATION_TIME": ("verification", "token_expiration_time"),
    "MANAGERS": ("verification", "managers"),
    "SOCIAL_CONNECTIONS_OWNER": ("social_connections", "owner"),
    "FILESYSTEM_CHANGES_OWNER": ("filesystem_changes", "owner"),
}


@dataclass
class VerificationSettings:
    owner: str = ""
    token_name: str = ""
    token_symbol: str = ""
    token_expiration_time: int = 0
    managers: list[str] = field(default_factory=list)

    def validate(self) -> "VerificationSettings":
        """Check the initializer arguments and return a normalized copy."""
        owner = _required_owner(self.owner, "USER_VERIFICATION_OWNER")
        if not self.token_name:
            raise ConfigError("USER_VERIFICATION_TOKEN_NAME env variable not set")
        if not self.token_symbol:
            raise ConfigError("USER_VERIFICATION_TOKEN_SYMBOL env variable not set")
        try:
            expiration = int(self.token_expiration_time)
        except (TypeError, ValueError):
            expiration = 0
        if expiration <= 0:
            raise ConfigError("USER_VERIFICATION_TOKEN_EXPIRATION_TIME env variable not set or invalid")
        try:
            managers = [normalize_account(m) for m in self.managers]
        except InvalidAccountError as exc:
            raise ConfigError(f"Invalid manager address: {exc}") from exc
        return VerificationSettings(
            owner=owner,
            token_name=self.token_name,
            token_symbol=self.token_symbol,
            token_expiration_time=expiration,
            managers=managers,
        )


@dataclass
class PointerSettings:
    owner: str = ""

    def validate(self, env_name: str) -> "PointerSettings":
        return PointerSettings(owner=_required_owner(self.owner, env_name))


@dataclass
class Settings:
    verification: VerificationSettings = field(default_factory=VerificationSettings)
    social_connections: PointerSettings = field(default_factory=PointerSettings)
    filesystem_changes: PointerSettings = field(default_factory=PointerSettings)
    state_dir: Optional[str] = None

    @property
    def state_path(self) -> Path:
        if self.state_dir:
            return Path(self.state_dir).expanduser()
        return Path.home() / ".dappy" / "state"


def _required_owner(value: str, env_name: str) -> str:
    if not value:
        raise ConfigError(f"{env_name} env variable not set")
    try:
        owner = normalize_account(value)
    except InvalidAccountError as exc:
        raise ConfigError(f"{env_name} is not a valid address: {value!r}") from exc
    if owner == ZERO_ACCOUNT:
        raise ConfigError(f"{env_name} cannot be the zero address")
    return owner


def parse_managers(value: str) -> list[str]:
    """Split a comma-separated MANAGERS value, dropping blanks."""
    return [m.strip() for m in value.split(",") if m.strip()]


def load_settings(
    path: Optional[str | Path] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Build ``Settings`` from a YAML file (optional) and the environment."""
    environ = os.environ if environ is None else environ
    raw: dict = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")
        logger.debug("loaded config from %s", path)

    sections = {
        "verification": dict(raw.get("verification") or {}),
        "social_connections": dict(raw.get("social_connections") or {}),
        "filesystem_changes": dict(raw.get("filesystem_changes") or {}),
    }
    for env_name, (section, key) in ENV_VARS.items():
        value = environ.get(env_name)
        if not value:
            continue
        sections[section][key] = parse_managers(value) if key == "managers" else value

    managers = sections["verification"].get("managers")
    if isinstance(managers, str):
        sections["verification"]["managers"] = parse_managers(managers)

    try:
        return Settings(
            verification=VerificationSettings(**sections["verification"]),
            social_connections=PointerSettings(**sections["social_connections"]),
            filesystem_changes=PointerSettings(**sections["filesystem_changes"]),
            state_dir=environ.get("DAPPY_STATE_DIR") or raw.get("state_dir"),
        )
    except TypeError as exc:
        raise ConfigError(f"Unknown config key: {exc}") from exc
