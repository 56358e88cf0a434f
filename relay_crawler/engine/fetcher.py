"""Request value types and the HTTP transport used by the fetch limiter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

import httpx
import structlog

from ..config import FetcherSettings
from .errors import FetchError


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """Immutable description of one resource to retrieve."""

    target: str
    headers: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        if not self.target or not self.target.strip():
            raise ValueError("FetchRequest target cannot be empty")
        if self.headers is not None:
            object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def user_agent(self) -> str | None:
        for name, value in (self.headers or {}).items():
            if name.lower() == "user-agent":
                return value
        return None

    def with_user_agent(self, user_agent: str) -> "FetchRequest":
        headers = {
            name: value
            for name, value in (self.headers or {}).items()
            if name.lower() != "user-agent"
        }
        headers["User-Agent"] = user_agent
        return FetchRequest(target=self.target, headers=headers)


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)


class Transport(ABC):
    """Issue exactly one network fetch; redirects and TLS are its own concern."""

    @abstractmethod
    def get(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        """Retrieve ``url`` or raise :class:`FetchError`."""

    def close(self) -> None:
        return


class HttpxTransport(Transport):
    """Shared ``httpx.Client`` transport; safe to call from many worker threads."""

    def __init__(
        self,
        settings: FetcherSettings | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.settings = settings or FetcherSettings()
        self.logger = logger or structlog.get_logger("relay_crawler.transport")
        self._client = client or httpx.Client(
            follow_redirects=self.settings.follow_redirects,
            timeout=self.settings.timeout,
        )

    def get(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        try:
            response = self._client.request("GET", url, headers=dict(headers))
            text = response.text
        except httpx.HTTPError as exc:
            raise FetchError(f"Transport error for {url}: {exc}", target=url) from exc
        if self.settings.fail_on_status and self._is_failure(response):
            raise FetchError(f"Unexpected status {response.status_code} for {url}", target=url)
        if response.history:
            self.logger.debug("redirected", url=url, final_url=str(response.url), hops=len(response.history))
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=text,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        return status_code >= 400


__all__ = ["FetchRequest", "FetchResponse", "HttpxTransport", "Transport"]
