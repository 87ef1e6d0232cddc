# -*- coding: utf-8 -*-
"""
Pooled HTTP Client for Chain and Price Providers
------------------------------------------------
One requests session with connection pooling shared by every adapter.
Transport errors, non-2xx answers and unparsable payloads are mapped onto
the provider error taxonomy so callers only deal with two exception types.
"""

import json
import socket
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from core.errors import MalformedUpstreamResponse, ProviderUnavailable

# Network errors for comprehensive handling
NETWORK_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    socket.gaierror,
)


class HttpClient:
    """HTTP connection pooling with explicit per-call timeouts."""

    def __init__(
        self,
        default_timeout: float = 5.0,
        pool_connections: int = 20,
        pool_maxsize: int = 50,
        session: Optional[requests.Session] = None,
    ):
        self.default_timeout = default_timeout
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self._session = session

    @property
    def session(self) -> requests.Session:
        """Lazily build a session; retries are left to the failover rotator."""
        if self._session is None:
            self._session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize,
                max_retries=0,
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)
        return self._session

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def _request(self, method: str, url: str, provider: str, timeout: Optional[float], **kwargs) -> Any:
        provider = provider or url
        try:
            response = self.session.request(
                method, url, timeout=timeout or self.default_timeout, **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise ProviderUnavailable(provider, f"timeout: {e}") from e
        except NETWORK_ERRORS as e:
            raise ProviderUnavailable(provider, f"connection error: {type(e).__name__}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(provider, str(e)) from e

        if not 200 <= response.status_code < 300:
            raise ProviderUnavailable(
                provider, f"HTTP {response.status_code}", status_code=response.status_code
            )
        try:
            return response.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise MalformedUpstreamResponse(provider, f"invalid JSON: {e}") from e

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        provider: str = "",
        timeout: Optional[float] = None,
    ) -> Any:
        return self._request("GET", url, provider, timeout, params=params)

    def post_json(
        self,
        url: str,
        payload: Any,
        provider: str = "",
        timeout: Optional[float] = None,
    ) -> Any:
        return self._request(
            "POST",
            url,
            provider,
            timeout,
            json=payload,
            headers={"Content-Type": "application/json"},
        )

    def json_rpc(
        self,
        url: str,
        method: str,
        params: List[Any],
        provider: str = "",
        timeout: Optional[float] = None,
    ) -> Any:
        """Makes a JSON-RPC 2.0 call and returns its ``result`` member."""
        provider = provider or url
        data = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        body = self.post_json(url, data, provider=provider, timeout=timeout)
        if not isinstance(body, dict):
            raise MalformedUpstreamResponse(provider, f"{method}: response is not an object")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", "Unknown RPC error") if isinstance(error, dict) else str(error)
            raise ProviderUnavailable(provider, f"{method} RPC error: {message}")
        if "result" not in body:
            raise MalformedUpstreamResponse(provider, f"{method}: missing result")
        return body["result"]
