"""HTTP transport for the realtime database REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

import aiohttp

from fleetsync._redact import redact_for_log
from fleetsync._stream import SseDecoder, decode_payload
from fleetsync.config import FleetConfig
from fleetsync.exceptions import FleetStreamError, FleetTransportError

_logger = logging.getLogger(__name__)

# Events that end a stream for good.
_TERMINAL_EVENTS = frozenset({"cancel", "auth_revoked"})


class Transport(Protocol):
    """Structural transport interface used by :mod:`fleetsync.remote`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`RestTransport`) concrete.
    """

    async def request_json(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        ...

    def stream(self, path: str) -> AsyncIterator[tuple[str, str, Any]]:
        ...


class RestTransport:
    """aiohttp transport that speaks the realtime database REST protocol."""

    def __init__(self, config: FleetConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, path: str) -> str:
        return f"{self._config.database_url.rstrip('/')}/{path.strip('/')}.json"

    def _params(self) -> dict[str, str]:
        if self._config.auth_token:
            return {"auth": self._config.auth_token}
        return {}

    def _trace(self, label: str, path: str, payload: Any) -> None:
        if self._config.api_trace_enabled:
            _logger.debug("%s %s payload=%s", label, path, redact_for_log(payload))

    async def request_json(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        """Send one REST request and return the decoded JSON body.

        Failures are raised as :class:`FleetTransportError`. When the store
        answers with ``{"error": "..."}`` that message is used verbatim.
        """
        url = self._url(path)
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        _logger.debug("%s %s", method, path)
        self._trace("Request", path, payload)

        try:
            async with self._http.request(
                method,
                url,
                params=self._params(),
                data=body,
                headers={"content-type": "application/json; charset=UTF-8"},
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise FleetTransportError(f"{method} {path} failed: {exc}", path=path) from exc
        except TimeoutError as exc:
            raise FleetTransportError(f"{method} {path} timed out", path=path) from exc

        try:
            result = json.loads(text) if text else None
        except json.JSONDecodeError as exc:
            if status >= 400:
                raise FleetTransportError(
                    f"HTTP {status} from {path}: {text[:200]}",
                    status_code=status,
                    path=path,
                ) from exc
            raise FleetTransportError(f"Invalid JSON from {path}: {text[:200]}", path=path) from exc

        if status >= 400:
            message = result.get("error") if isinstance(result, dict) else None
            raise FleetTransportError(
                str(message) if message else f"HTTP {status} from {path}: {text[:200]}",
                status_code=status,
                path=path,
            )

        self._trace("Response", path, result)
        return result

    async def stream(self, path: str) -> AsyncIterator[tuple[str, str, Any]]:
        """Yield ``(event, path, data)`` for every ``put``/``patch`` event.

        Keep-alives are skipped. ``cancel`` and ``auth_revoked`` raise
        :class:`FleetStreamError`. The iterator ends when the server closes
        the connection.
        """
        url = self._url(path)
        # Streams stay open indefinitely; only bound connection setup.
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self._config.request_timeout)
        decoder = SseDecoder()

        _logger.debug("STREAM %s", path)
        try:
            async with self._http.get(
                url,
                params=self._params(),
                headers={"accept": "text/event-stream"},
                timeout=timeout,
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise FleetStreamError(
                        f"HTTP {resp.status} opening stream {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
                async for raw_line in resp.content:
                    event = decoder.feed(raw_line.decode("utf-8", errors="replace"))
                    if event is None or event.event == "keep-alive":
                        continue
                    if event.event in _TERMINAL_EVENTS:
                        raise FleetStreamError(f"Stream {path} ended by server: {event.event}", path=path)
                    event_path, data = decode_payload(event)
                    self._trace(f"Event {event.event}", event_path, data)
                    yield event.event, event_path, data
        except aiohttp.ClientError as exc:
            raise FleetStreamError(f"Stream {path} failed: {exc}", path=path) from exc
