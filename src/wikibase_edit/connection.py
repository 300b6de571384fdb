"""Thin HTTP adapters: API transport and CSRF token cache."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import mwclient
import requests

from . import config
from .errors import MalformedResponse

logger = logging.getLogger(__name__)


class ApiConnection:
    """POSTs form-encoded requests to a MediaWiki ``api.php`` endpoint."""

    def __init__(
        self,
        endpoint: str = config.API_ENDPOINT,
        session: Optional[requests.Session] = None,
        token_fetcher: Optional[Callable[[], str]] = None,
        timeout: float = config.API_TIMEOUT,
    ):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout
        self._token_fetcher = token_fetcher
        if session is None:
            self.session.headers.update(config.HEADERS)

    @classmethod
    def from_mwclient(cls, site: mwclient.Site) -> "ApiConnection":
        """Reuse the session and CSRF token handling of a logged-in mwclient site."""
        host = site.host[1] if isinstance(site.host, tuple) else site.host
        endpoint = f"{site.scheme}://{host}{site.path}api{site.ext}"

        def fetch():
            return site.get_token("csrf", force=True)

        return cls(endpoint, session=site.connection, token_fetcher=fetch)

    def post(self, params: dict[str, Any]) -> dict:
        data = {key: value for key, value in params.items() if value is not None}
        data.setdefault("format", "json")
        response = self.session.post(self.endpoint, data=data, timeout=self.timeout)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse("API response is not JSON.", {"action": params.get("action")}) from exc

    def fetch_csrf_token(self) -> str:
        if self._token_fetcher is not None:
            return self._token_fetcher()
        payload = self.post({"action": "query", "meta": "tokens", "type": "csrf"})
        try:
            return payload["query"]["tokens"]["csrftoken"]
        except (KeyError, TypeError) as exc:
            raise MalformedResponse("Token response lacks query.tokens.csrftoken.", {"payload": payload}) from exc


class CsrfTokenCache:
    """Caches one CSRF token until it is invalidated."""

    def __init__(self, fetch_token: Callable[[], str]):
        self._fetch_token = fetch_token
        self._token: Optional[str] = None

    def get_token(self) -> str:
        if self._token is None:
            logger.info("[*] Fetching CSRF token")
            self._token = self._fetch_token()
        return self._token

    def invalidate(self) -> None:
        self._token = None
