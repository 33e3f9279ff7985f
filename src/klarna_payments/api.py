"""
Public, high-level helpers for interacting with the Klarna payment APIs.
"""

from __future__ import annotations

from typing import Mapping, Optional

import requests

from .core.client import TransportClient
from .core.config import ClientConfig, ConfigStore, load_client_config
from .core.lifecycle import PaymentsClient

__all__ = [
    "create_payments_client",
]


def create_payments_client(
    *,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    store: Optional[ConfigStore] = None,
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    region: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float | int | str] = None,
) -> PaymentsClient:
    """
    Construct a :class:`PaymentsClient`.

    Callers can either supply a ready-made :class:`ClientConfig` or let the
    helper assemble one from the persisted profile, ``KLARNA_*`` environment
    variables and keyword arguments. In the second case the configuration is
    re-read on every call, so ``config set`` takes effect immediately.
    """
    if config is not None:
        extras = (
            store,
            base,
            overrides,
            username,
            password,
            region,
            api_key,
            base_url,
            timeout_seconds,
        )
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built ClientConfig or individual parameters, not both."
            )
        transport = TransportClient(config, session=session)
    else:

        def _load() -> ClientConfig:
            return load_client_config(
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

        transport = TransportClient(_load, session=session)
    return PaymentsClient(transport)
