"""HTTPS transport with cookie persistence for the DeepRacer web service."""

from __future__ import annotations

import contextlib
import dataclasses
import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

import aiohttp

from pydeepracer._constants import USER_AGENT
from pydeepracer._redact import redact_for_log, redact_form
from pydeepracer.exceptions import DeepRacerDeviceRejectedError, DeepRacerNetworkError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status and decoded body of a completed request."""

    status: int
    text: str
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`DeviceTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        data: str | None = None,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> TransportResponse:
        ...


def create_http_session() -> aiohttp.ClientSession:
    """Create an aiohttp session suitable for talking to the device.

    The cookie jar is ``unsafe`` so cookies set by a bare IP address (the
    usual way the car is reached) are stored and replayed.
    """
    return aiohttp.ClientSession(
        cookie_jar=aiohttp.CookieJar(unsafe=True),
        headers={"User-Agent": USER_AGENT},
    )


class DeviceTransport:
    """Request/stream transport bound to one device base URL.

    Certificate verification is controlled by the explicit *verify_ssl*
    flag, fixed at construction and applied to every request.  Cookies are
    kept by the underlying ``aiohttp.ClientSession`` for as long as it
    lives; they are the device's notion of the login session.
    """

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        verify_ssl: bool = False,
        request_timeout: float = 10.0,
        stream_read_timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._ssl = verify_ssl
        self._request_timeout = request_timeout
        self._stream_read_timeout = stream_read_timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def clear_cookies(self) -> None:
        self._http.cookie_jar.clear()

    async def request(
        self,
        method: str,
        path: str,
        *,
        data: str | None = None,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> TransportResponse:
        """Send one request and return its status and text body.

        Non-2xx statuses are returned, not raised: endpoint modules map
        them to the error that fits the call.

        Raises
        ------
        DeepRacerNetworkError
            If the request does not complete (connection error, timeout).
        """
        url = f"{self._base_url}{path}"
        req_headers = dict(headers or {})
        body = data
        if json_body is not None:
            body = json.dumps(json_body, separators=(",", ":"))
            req_headers.setdefault("Content-Type", "application/json")

        _logger.debug(
            "%s %s headers=%s json=%s form=%s",
            method,
            url,
            redact_for_log(req_headers),
            redact_for_log(json_body),
            redact_form(data),
        )

        client_timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else self._request_timeout,
        )
        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=req_headers,
                ssl=self._ssl,
                timeout=client_timeout,
            ) as resp:
                text = await resp.text(errors="replace")
                _logger.debug("%s %s -> HTTP %s (%d chars)", method, url, resp.status, len(text))
                return TransportResponse(status=resp.status, text=text, url=str(resp.url))
        except aiohttp.ClientError as exc:
            raise DeepRacerNetworkError(
                f"{method} {path} failed: {exc}",
                endpoint=path,
            ) from exc
        except TimeoutError as exc:
            raise DeepRacerNetworkError(
                f"{method} {path} timed out",
                endpoint=path,
            ) from exc

    @contextlib.asynccontextmanager
    async def stream(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming GET and yield an iterator over raw body chunks.

        Chunks are handed out as they arrive, with no regard for any
        multipart framing.  There is no total timeout; only the gap between
        two chunks is bounded by ``stream_read_timeout``.
        """
        url = f"{self._base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=None, sock_read=self._stream_read_timeout)
        _logger.debug("GET %s (stream)", url)
        try:
            resp = await self._http.get(
                url,
                headers=dict(headers or {}),
                ssl=self._ssl,
                timeout=timeout,
            )
        except aiohttp.ClientError as exc:
            raise DeepRacerNetworkError(f"GET {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise DeepRacerNetworkError(f"GET {path} timed out", endpoint=path) from exc

        try:
            if not 200 <= resp.status < 300:
                text = await resp.text(errors="replace")
                raise DeepRacerDeviceRejectedError(
                    f"HTTP {resp.status} from {path}: {text[:200]}",
                    status_code=resp.status,
                    body=text,
                    endpoint=path,
                )
            yield self._iter_chunks(resp, path)
        finally:
            resp.release()

    @staticmethod
    async def _iter_chunks(resp: aiohttp.ClientResponse, path: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.content.iter_any():
                yield chunk
        except aiohttp.ClientError as exc:
            raise DeepRacerNetworkError(f"Stream {path} broke: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise DeepRacerNetworkError(f"Stream {path} stalled", endpoint=path) from exc
