# teamboard/client/context.py
from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from teamboard.client.cache import ComponentCache
from teamboard.client.csrf import CsrfTokenProvider
from teamboard.client.events import AuthEvents
from teamboard.client.gateway import ApiGateway


@dataclass
class ClientContext:
    """
    Everything one signed-in client needs: the cookie-carrying http client, its
    cache, event bus, CSRF token and gateway. Tests build one per case.
    """

    http: httpx.Client
    cache: ComponentCache = field(default_factory=ComponentCache)
    events: AuthEvents = field(default_factory=AuthEvents)
    csrf: CsrfTokenProvider | None = None
    gateway: ApiGateway | None = None

    def __post_init__(self) -> None:
        if self.csrf is None:
            self.csrf = CsrfTokenProvider(self.http)
        if self.gateway is None:
            self.gateway = ApiGateway(self.http, cache=self.cache, events=self.events, csrf=self.csrf)

    @classmethod
    def create(
        cls,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> "ClientContext":
        return cls(http=httpx.Client(base_url=base_url, timeout=timeout, transport=transport))

    def close(self) -> None:
        self.http.close()
