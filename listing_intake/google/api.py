from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from typing import Any

import requests

"""Shared plumbing for the Google REST clients.

- Bearer token from a token provider (environment by default)
- JSON request bodies, ``Content-Type: application/json``
- 2xx -> parsed JSON body (``{}`` when empty)
- anything else -> ApiError carrying ``error.message`` when the body has one,
  the raw body otherwise
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ApiError",
    "TokenProvider",
    "env_token_provider",
    "GoogleApiClient",
]

TokenProvider = Callable[[], str]


class ApiError(Exception):
    def __init__(self, context: str, status: int, message: str) -> None:
        super().__init__(f"[{context}] HTTP {status}: {message}")
        self.context = context
        self.status = status
        self.message = message


def env_token_provider(name: str = "GOOGLE_OAUTH_ACCESS_TOKEN") -> TokenProvider:
    """Token provider reading an access token from the environment at call time."""
    def _provide() -> str:
        token = os.getenv(name)
        if not token:
            raise RuntimeError(f"environment variable {name} is not set")
        return token
    return _provide


def _error_detail(body: str) -> str:
    try:
        parsed = json.loads(body)
    except ValueError:
        return body
    if isinstance(parsed, dict):
        error = parsed.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return body


class GoogleApiClient:
    """Base class: one configured session per client, no process-wide state."""

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token_provider()}",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        context: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = self._send(method, path, context, params=params, payload=payload)
        body = response.text
        if not body:
            return {}
        try:
            return json.loads(body)
        except ValueError as e:
            # 2xx with a non-JSON body (proxy or captive page)
            logger.debug("non-json body context=%s status=%d body=%.200s", context, response.status_code, body)
            raise ApiError(context, response.status_code, "invalid JSON response") from e

    def request_text(
        self,
        method: str,
        path: str,
        context: str,
        *,
        params: dict[str, Any] | None = None,
        encoding: str = "utf-8",
    ) -> str:
        return self._send(method, path, context, params=params).content.decode(encoding)

    def _send(
        self,
        method: str,
        path: str,
        context: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = self._url(path)
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                data=json.dumps(payload) if payload is not None else None,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ApiError(context, 0, str(e)) from e

        if 200 <= response.status_code < 300:
            return response

        detail = _error_detail(response.text)
        logger.debug("api error context=%s status=%d body=%s", context, response.status_code, response.text)
        raise ApiError(context, response.status_code, detail)
