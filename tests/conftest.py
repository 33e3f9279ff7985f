import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from klarna_payments.core.client import TransportClient
from klarna_payments.core.config import ClientConfig, ConfigStore, Credentials


def make_response(
    status: int = 200,
    body: Any = None,
    *,
    headers: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
    url: str = "https://api.klarna.com/",
) -> requests.Response:
    """Build a real ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = "utf-8"
    response.url = url
    return response


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: Dict[str, Any]

    @property
    def headers(self) -> Dict[str, str]:
        return self.kwargs["headers"]

    @property
    def json(self) -> Any:
        return self.kwargs.get("json")


@dataclass
class FakeSession:
    """Stand-in for ``requests.Session`` replaying queued responses."""

    responses: List[Any] = field(default_factory=list)
    calls: List[RecordedCall] = field(default_factory=list)
    closed: bool = False

    def queue(self, status: int = 200, body: Any = None, **kwargs: Any) -> "FakeSession":
        self.responses.append(make_response(status, body, **kwargs))
        return self

    def fail_with(self, exc: BaseException) -> "FakeSession":
        self.responses.append(exc)
        return self

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append(RecordedCall(method, url, kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clean_klarna_environment(monkeypatch, tmp_path):
    """Keep the developer's real profile and KLARNA_* variables out of tests."""
    for key in list(os.environ):
        if key.startswith("KLARNA_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def basic_config():
    return ClientConfig(credentials=Credentials(username="merchant", password="s3cret"))


@pytest.fixture
def transport(basic_config, fake_session):
    return TransportClient(basic_config, session=fake_session)


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "profile.env")
