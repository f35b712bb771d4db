"""Provider release lookup against a fake HTTP session. No live network."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from syncgate.core.errors import RegistryLookupError
from syncgate.registry.hub import ProviderLocator, current_platform
from syncgate.registry.names import ProviderReference
from syncgate.registry.resilience import RetryConfig, TransientHTTPError, resilient_call

AWS = ProviderReference("cloudquery", "aws")
NO_WAIT = RetryConfig(max_retries=3, base_delay_s=0.0, max_delay_s=0.0)


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.urls: List[str] = []

    def get(self, url: str, timeout: float = 0) -> FakeResponse:
        self.urls.append(url)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _locator(responses: List[Any]) -> tuple[ProviderLocator, FakeSession]:
    session = FakeSession(responses)
    return ProviderLocator(session=session, retry_config=NO_WAIT), session


def test_repository_and_download_url():
    loc = ProviderLocator(session=FakeSession([]))
    assert loc.repository(AWS) == "cloudquery/cq-provider-aws"
    url = loc.download_url(AWS, "v0.12.3", "linux", "amd64")
    assert url == (
        "https://github.com/cloudquery/cq-provider-aws/releases/download/v0.12.3/"
        "cq-provider-aws_linux_amd64.zip"
    )


def test_download_url_defaults_to_current_platform():
    os_name, arch = current_platform()
    url = ProviderLocator(session=FakeSession([])).download_url(AWS, "v1.0.0")
    assert url.endswith(f"cq-provider-aws_{os_name}_{arch}.zip")


def test_latest_version():
    loc, session = _locator([FakeResponse(200, {"tag_name": "v0.13.0"})])
    assert loc.latest_version(AWS) == "v0.13.0"
    assert session.urls == ["https://api.github.com/repos/cloudquery/cq-provider-aws/releases/latest"]


def test_latest_version_retries_transient_status():
    loc, session = _locator([FakeResponse(503), FakeResponse(200, {"tag_name": "v0.13.0"})])
    assert loc.latest_version(AWS) == "v0.13.0"
    assert len(session.urls) == 2


def test_latest_version_retries_connection_errors_then_gives_up():
    loc, session = _locator([requests.ConnectionError("boom")] * 3)
    with pytest.raises(RegistryLookupError, match="boom"):
        loc.latest_version(AWS)
    assert len(session.urls) == 3


def test_missing_repository_is_not_retried():
    loc, session = _locator([FakeResponse(404)])
    with pytest.raises(RegistryLookupError, match="no releases"):
        loc.latest_version(AWS)
    assert len(session.urls) == 1


@pytest.mark.parametrize("resp", [FakeResponse(200, {}), FakeResponse(200, ValueError("not json")), FakeResponse(403)])
def test_bad_responses_raise_lookup_error(resp):
    loc, _ = _locator([resp])
    with pytest.raises(RegistryLookupError):
        loc.latest_version(AWS)


@pytest.mark.parametrize("payload", [["not", "an", "object"], "v0.13.0", None])
def test_non_object_release_body_is_lookup_error(payload):
    loc, session = _locator([FakeResponse(200, payload)])
    with pytest.raises(RegistryLookupError, match="not a JSON object"):
        loc.latest_version(AWS)
    assert len(session.urls) == 1


def test_locate_pins_latest_and_keeps_explicit_version():
    loc, session = _locator([FakeResponse(200, {"tag_name": "v0.13.0"})])
    rel = loc.locate(AWS)
    assert rel.version == "v0.13.0"
    assert "/download/v0.13.0/" in rel.download_url
    rel = loc.locate(AWS, "v0.10.0")
    assert rel.version == "v0.10.0"
    assert len(session.urls) == 1


def test_resilient_call_backoff_delays():
    delays: List[float] = []
    calls: Dict[str, int] = {"n": 0}

    def _flaky() -> str:
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientHTTPError(429, "u")
        return "ok"

    cfg = RetryConfig(max_retries=3, base_delay_s=1.0, backoff_factor=2.0, max_delay_s=10.0)
    assert resilient_call(_flaky, retry_config=cfg, sleep=delays.append) == "ok"
    assert delays == [1.0, 2.0]


def test_resilient_call_does_not_retry_other_errors():
    calls = {"n": 0}

    def _broken() -> None:
        calls["n"] += 1
        raise KeyError("x")

    with pytest.raises(KeyError):
        resilient_call(_broken, retry_config=NO_WAIT, sleep=lambda s: None)
    assert calls["n"] == 1
