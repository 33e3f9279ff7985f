"""
Configuration objects and helpers for the Klarna payments client.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .environment import (
    build_environment,
    get_user_env_file,
    parse_env_file,
    write_env_file,
)
from .errors import ConfigError

__all__ = [
    "ConfigError",
    "ConfigStore",
    "ClientConfig",
    "Credentials",
    "DEFAULT_TIMEOUT_SECONDS",
    "ENV_KEYS",
    "PROFILE_KEYS",
    "load_client_config",
    "resolve_setting_key",
]

DEFAULT_TIMEOUT_SECONDS = 30.0

_PARAMETER_TO_ENV_KEY = {
    "username": "KLARNA_USERNAME",
    "password": "KLARNA_PASSWORD",
    "region": "KLARNA_REGION",
    "api_key": "KLARNA_API_KEY",
    "base_url": "KLARNA_BASE_URL",
    "timeout_seconds": "KLARNA_TIMEOUT_SECONDS",
}

PROFILE_KEYS = tuple(_PARAMETER_TO_ENV_KEY)
ENV_KEYS = frozenset(_PARAMETER_TO_ENV_KEY.values())

_SECRET_KEYS = frozenset({"password", "api_key"})


def _stringify(value: Any) -> str:
    text = str(value)
    if "\n" in text or "\r" in text:
        raise ConfigError("Configuration values must not contain line breaks")
    return text


def _env_key(key: str) -> str:
    try:
        return _PARAMETER_TO_ENV_KEY[key]
    except KeyError as exc:
        raise ConfigError(
            f"Unknown configuration key '{key}'. Expected one of: {', '.join(PROFILE_KEYS)}"
        ) from exc


def resolve_setting_key(key: str) -> str:
    """Map a short name (``region``) or a ``KLARNA_*`` name to its variable."""
    if key in ENV_KEYS:
        return key
    return _env_key(key)


def _collect_parameter_overrides(explicit: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for key, value in explicit.items():
        if value is None:
            continue
        overrides[_env_key(key)] = _stringify(value)
    return overrides


class ConfigStore:
    """
    Persisted key/value profile backed by a ``.env`` file.

    Keys are the short names in :data:`PROFILE_KEYS`; they are stored as
    ``KLARNA_*`` variables so the same file can be sourced by a shell.
    The file is re-read on every access.
    """

    def __init__(self, path: Optional[Path | str] = None) -> None:
        self.path = Path(path) if path is not None else get_user_env_file()

    def _read(self) -> Dict[str, str]:
        try:
            return parse_env_file(self.path)
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration file {self.path}: {exc}") from exc

    def variables(self) -> Dict[str, str]:
        """Raw ``KLARNA_*`` variables, as consumed by :func:`build_environment`."""
        return self._read()

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(_env_key(key))
        return value or None

    def set(self, key: str, value: Optional[Any]) -> None:
        """Store ``value`` under ``key``; ``None`` or ``""`` removes the key."""
        self.update({key: value})

    def update(self, values: Mapping[str, Optional[Any]]) -> None:
        current = self._read()
        for key, value in values.items():
            env_key = _env_key(key)
            if value is None or value == "":
                current.pop(env_key, None)
            else:
                current[env_key] = _stringify(value)
        try:
            write_env_file(self.path, current)
        except OSError as exc:
            raise ConfigError(f"Cannot write configuration file {self.path}: {exc}") from exc
        logging.debug("Updated %s in %s", ", ".join(values), self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise ConfigError(f"Cannot remove configuration file {self.path}: {exc}") from exc

    def as_dict(self, *, mask_secrets: bool = False) -> Dict[str, Optional[str]]:
        raw = self._read()
        result: Dict[str, Optional[str]] = {}
        for key, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = raw.get(env_key) or None
            if mask_secrets and value and key in _SECRET_KEYS:
                value = "*" * 8
            result[key] = value
        return result

    def is_configured(self) -> bool:
        values = self._read()
        has_basic = bool(values.get("KLARNA_USERNAME")) and bool(
            values.get("KLARNA_PASSWORD")
        )
        return has_basic or bool(values.get("KLARNA_API_KEY"))


@dataclass(frozen=True)
class Credentials:
    """
    Authentication material for one profile.

    Either ``username``/``password`` (HTTP Basic) or ``api_key`` (bearer) is
    expected; the transport client checks this before sending anything.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def has_basic(self) -> bool:
        return bool(self.username) or bool(self.password)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, "
            f"password={'***' if self.password else None}, "
            f"api_key={'***' if self.api_key else None})"
        )


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or raw == "":
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(
            f"KLARNA_TIMEOUT_SECONDS must be a number of seconds, got '{raw}'"
        ) from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigError("KLARNA_TIMEOUT_SECONDS must be a finite number greater than zero")
    return value


@dataclass(frozen=True)
class ClientConfig:
    credentials: Credentials
    region: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        credentials = Credentials(
            username=values.get("KLARNA_USERNAME") or None,
            password=values.get("KLARNA_PASSWORD") or None,
            api_key=values.get("KLARNA_API_KEY") or None,
        )

        region = values.get("KLARNA_REGION")
        region = region.strip().lower() if region else None

        base_url = values.get("KLARNA_BASE_URL")
        base_url = base_url.strip().rstrip("/") if base_url else None

        return cls(
            credentials=credentials,
            region=region or None,
            base_url=base_url or None,
            timeout_seconds=_parse_timeout(values.get("KLARNA_TIMEOUT_SECONDS")),
        )

    @classmethod
    def from_env(
        cls,
        *,
        store: Optional[ConfigStore] = None,
        base: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        region: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float | int | str] = None,
    ) -> "ClientConfig":
        parameter_overrides = _collect_parameter_overrides(
            {
                "username": username,
                "password": password,
                "region": region,
                "api_key": api_key,
                "base_url": base_url,
                "timeout_seconds": timeout_seconds,
            }
        )
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        profile = (store if store is not None else ConfigStore()).variables()
        environment = build_environment(
            profile=profile,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_client_config(
    *,
    store: Optional[ConfigStore] = None,
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    region: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float | int | str] = None,
) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    Layers, lowest first: the persisted profile, ``KLARNA_*`` process
    environment variables, ``overrides`` and finally keyword arguments.
    """
    return ClientConfig.from_env(
        store=store,
        base=base,
        overrides=overrides,
        username=username,
        password=password,
        region=region,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
