"""
Provider artifact locator backed by GitHub releases.

Repositories follow "<org>/cq-provider-<name>"; release assets are
"cq-provider-<name>_<os>_<arch>.zip". Locating only: nothing is downloaded here.
  GET https://api.github.com/repos/{org}/cq-provider-{name}/releases/latest
"""
from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from typing import Optional

import requests

from ..core.errors import RegistryLookupError
from .names import ProviderReference
from .resilience import RetryConfig, TransientHTTPError, resilient_call
from .resolver import LATEST_VERSION

logger = logging.getLogger(__name__)

GITHUB_BASE_URL = "https://github.com"
GITHUB_API_URL = "https://api.github.com"
HTTP_TIMEOUT_S = 15.0

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def current_platform() -> tuple[str, str]:
    """(os, arch) in release-asset spelling, e.g. ("linux", "amd64")."""
    machine = platform.machine().lower()
    return platform.system().lower(), _ARCH_ALIASES.get(machine, machine)


@dataclass(frozen=True)
class ProviderRelease:
    reference: ProviderReference
    version: str
    download_url: str


class ProviderLocator:
    """Find release versions and download URLs for resolved providers."""

    def __init__(
        self,
        base_url: str = GITHUB_BASE_URL,
        api_url: str = GITHUB_API_URL,
        *,
        session: Optional[requests.Session] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_url = api_url.rstrip("/")
        self._http = session or requests.Session()
        self._retry = retry_config or RetryConfig(max_retries=3, base_delay_s=0.5)

    @staticmethod
    def repository(ref: ProviderReference) -> str:
        return f"{ref.organization}/cq-provider-{ref.name}"

    def download_url(
        self,
        ref: ProviderReference,
        version: str,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
    ) -> str:
        if not os_name or not arch:
            cur_os, cur_arch = current_platform()
            os_name = os_name or cur_os
            arch = arch or cur_arch
        return (
            f"{self._base_url}/{self.repository(ref)}/releases/download/{version}/"
            f"cq-provider-{ref.name}_{os_name}_{arch}.zip"
        )

    def _get_latest_tag(self, url: str) -> str:
        resp = self._http.get(url, timeout=HTTP_TIMEOUT_S)
        if resp.status_code in self._retry.retry_on_status_codes:
            raise TransientHTTPError(resp.status_code, url)
        if resp.status_code == 404:
            raise RegistryLookupError(f"no releases found at {url}")
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise RegistryLookupError(f"release response from {url} is not a JSON object")
        tag = data.get("tag_name")
        if not tag:
            raise RegistryLookupError(f"release response from {url} missing tag_name")
        return str(tag)

    def latest_version(self, ref: ProviderReference) -> str:
        """Tag of the newest release. Raises RegistryLookupError."""
        url = f"{self._api_url}/repos/{self.repository(ref)}/releases/latest"
        try:
            return resilient_call(self._get_latest_tag, url, retry_config=self._retry)
        except RegistryLookupError:
            raise
        except (requests.RequestException, TransientHTTPError, ValueError) as exc:
            raise RegistryLookupError(f"failed to look up latest release of {ref}: {exc}") from exc

    def locate(self, ref: ProviderReference, version: str = LATEST_VERSION) -> ProviderRelease:
        """Pin version ("latest" is looked up) and build the asset URL for this platform."""
        pinned = self.latest_version(ref) if version == LATEST_VERSION else version
        logger.debug("Located %s@%s", ref, pinned)
        return ProviderRelease(reference=ref, version=pinned, download_url=self.download_url(ref, pinned))
