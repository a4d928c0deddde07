"""HTTP transport for the Yelo REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyyelo._constants import USER_AGENT
from pyyelo._redact import redact_for_log
from pyyelo.config import YeloConfig
from pyyelo.exceptions import YeloTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """JSON-over-HTTP transport with optional bearer authentication."""

    def __init__(self, config: YeloConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises
        ------
        YeloTransportError
            Network failure or timeout, non-2xx status, or an undecodable body.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if token:
            headers["authorization"] = f"Bearer {token}"

        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}

        _logger.debug("%s %s params=%s body=%s", method, url, query, redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                params=query or None,
                json=dict(json_body) if json_body is not None else None,
                headers=headers,
            ) as resp:
                text = await resp.text()
                if resp.status >= 300:
                    raise YeloTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except YeloTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError, UnicodeDecodeError) as exc:
            raise YeloTransportError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None
        try:
            body: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise YeloTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        _logger.debug("Response from %s: %s", endpoint, redact_for_log(body))
        return body
