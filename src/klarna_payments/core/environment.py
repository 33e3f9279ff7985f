"""
Utilities for building the environment used by the Klarna payment helpers.

The helpers understand .env files, locate the per-user profile file and let
callers layer overrides. The result is a plain mapping that can be fed into
:class:`klarna_payments.core.config.ClientConfig`.
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

ENV_PREFIX = "KLARNA_"

__all__ = [
    "ENV_PREFIX",
    "PaymentEnvironment",
    "build_environment",
    "get_user_config_dir",
    "get_user_env_file",
    "load_env_file",
    "parse_env_file",
    "write_env_file",
]


def get_user_config_dir() -> Path:
    """Per-user configuration directory for the CLI profile."""
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "klarna-payments"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "klarna-payments"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "klarna-payments"
    return Path.home() / ".config" / "klarna-payments"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


_ESCAPED = re.compile(r"\\(.)")


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unquote(value: str) -> str:
    """Strip one matching pair of quotes; double-quoted values are unescaped."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        inner = value[1:-1]
        if value[0] == '"':
            inner = _ESCAPED.sub(r"\1", inner)
        return inner
    return value


def parse_env_file(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return values

    for raw_line in data.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            values[key] = _unquote(value)
    return values


def write_env_file(path: Path, values: Mapping[str, str]) -> Path:
    """
    Replace the contents of ``path`` with ``values``.

    Values are double-quoted so :func:`parse_env_file` reads back exactly
    what was written. The file is created with owner-only permissions
    because it holds credentials.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["# klarna-payments profile"]
    for key in sorted(values):
        lines.append(f"{key}={_quote(values[key])}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    try:
        path.chmod(0o600)
    except OSError:  # pragma: no cover - filesystems without POSIX modes
        pass
    return path


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Load environment variables from ``path`` into ``environ``.

    Existing keys are preserved. The merged mapping is returned so callers can
    inspect the resulting values.
    """
    target: MutableMapping[str, str] = environ if environ is not None else os.environ
    for key, value in parse_env_file(Path(path)).items():
        target.setdefault(key, value)
    return dict(target)


@dataclass(frozen=True)
class PaymentEnvironment:
    """
    A resolved set of ``KLARNA_*`` variables used to configure the client.
    """

    variables: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)


def build_environment(
    *,
    profile: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> PaymentEnvironment:
    """
    Assemble a :class:`PaymentEnvironment` from multiple sources.

    The persisted ``profile`` is the lowest layer. ``base`` defaults to
    :data:`os.environ` and only its ``KLARNA_*`` keys are considered.
    Empty values never shadow a lower layer. ``overrides`` always win.
    """
    merged: Dict[str, str] = {}
    if profile:
        merged.update({k: v for k, v in profile.items() if v != ""})

    source = os.environ if base is None else base
    for key, value in source.items():
        if key.startswith(ENV_PREFIX) and value != "":
            merged[key] = value

    if overrides:
        merged.update(overrides)

    return PaymentEnvironment(variables=merged)
