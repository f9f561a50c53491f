"""Firebase Realtime Database backend over the REST API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from pyspeedlimiter._constants import COLLECTION_PATH
from pyspeedlimiter.exceptions import SpeedLimiterError, StoreError
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.store._stream import SseDecoder, StreamMirror
from pyspeedlimiter.store.base import (
    SnapshotCallback,
    Subscription,
    deliver,
    latest_sample,
    parse_collection,
)

_logger = logging.getLogger(__name__)


class RealtimeDatabaseStore:
    """Telemetry store backed by a Firebase Realtime Database.

    Each sample is written with ``PUT`` to ``<collection>/<timestamp>.json``;
    the collection is read with ``GET`` and followed with the streaming
    ``text/event-stream`` variant of the same URL.

    Usage::

        async with RealtimeDatabaseStore(url) as store:
            await store.write(sample)
    """

    def __init__(
        self,
        database_url: str,
        *,
        collection_path: str = COLLECTION_PATH,
        session: aiohttp.ClientSession | None = None,
        request_timeout: float = 10.0,
        stream_retry_delay: float = 5.0,
    ) -> None:
        self._base_url = database_url.rstrip("/")
        self._collection = collection_path.strip("/")
        self._external_session = session is not None
        self._http = session
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._stream_timeout = aiohttp.ClientTimeout(total=None, sock_connect=request_timeout)
        self._stream_retry_delay = stream_retry_delay
        self._subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RealtimeDatabaseStore:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.aclose()
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise SpeedLimiterError("Store not initialized. Use 'async with RealtimeDatabaseStore(...) as store:'")
        return self._http

    def _path(self, key: str | None = None) -> str:
        if key is None:
            return self._collection
        return f"{self._collection}/{key}"

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{quote(path)}.json"

    async def _request(self, method: str, path: str, payload: Any = None) -> Any:
        http = self._require_session()
        url = self._url(path)
        _logger.debug("%s %s", method, url)

        try:
            async with http.request(method, url, json=payload, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise StoreError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
        except StoreError:
            raise
        except TimeoutError as exc:
            raise StoreError(f"Request to {path} timed out", path=path) from exc
        except aiohttp.ClientError as exc:
            raise StoreError(f"Request to {path} failed: {exc}", path=path) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON from {path}: {text[:200]}", path=path) from exc

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def write(self, sample: TelemetrySample) -> None:
        """Write *sample* under its timestamp key, replacing any same-key entry."""
        await self._request("PUT", self._path(sample.key), sample.to_wire())

    async def read_all(self) -> dict[str, TelemetrySample] | None:
        raw = await self._request("GET", self._path())
        return parse_collection(raw)

    async def read_latest(self) -> TelemetrySample | None:
        return latest_sample(await self.read_all())

    def subscribe_all(self, callback: SnapshotCallback) -> Subscription:
        """Follow the collection; *callback* gets the full mapping on every change.

        When the stream drops or is cancelled by the server the callback
        receives ``None`` and the stream is reopened after the retry delay.
        """
        self._require_session()

        def _forget() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        subscription = Subscription(on_cancel=_forget)
        self._subscriptions.append(subscription)
        subscription.attach(asyncio.get_running_loop().create_task(self._follow(subscription, callback)))
        return subscription

    async def _follow(self, subscription: Subscription, callback: SnapshotCallback) -> None:
        path = self._path()
        while not subscription.cancelled:
            try:
                await self._stream_once(subscription, callback, path)
                _logger.debug("History stream closed by server path=%s", path)
            except StoreError as exc:
                _logger.warning("History stream failed: %s", exc)
            except (aiohttp.ClientError, TimeoutError) as exc:
                _logger.warning("History stream disconnected: %s", exc)
                _logger.debug("History stream error detail", exc_info=True)
            except Exception as exc:
                _logger.warning("History stream broke: %s", exc)
                _logger.debug("History stream error detail", exc_info=True)

            subscription.connected = False
            deliver(callback, None)
            await asyncio.sleep(self._stream_retry_delay)

    async def _stream_once(self, subscription: Subscription, callback: SnapshotCallback, path: str) -> None:
        http = self._require_session()
        url = self._url(path)
        _logger.debug("STREAM %s", url)

        async with http.get(url, headers={"Accept": "text/event-stream"}, timeout=self._stream_timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise StoreError(
                    f"HTTP {resp.status} from {path} stream: {text[:200]}",
                    status_code=resp.status,
                    path=path,
                )
            subscription.connected = True
            decoder = SseDecoder()
            mirror = StreamMirror()

            async for chunk in resp.content.iter_any():
                try:
                    events = decoder.feed(chunk)
                except UnicodeDecodeError as exc:
                    raise StoreError(f"Undecodable stream payload from {path}: {exc}", path=path) from exc
                for event in events:
                    if event.event == "keep-alive":
                        continue
                    if event.event in {"cancel", "auth_revoked"}:
                        raise StoreError(f"Stream {event.event} for {path}: {event.data}", path=path)
                    if event.event not in {"put", "patch"}:
                        _logger.debug("Ignoring stream event=%s", event.event)
                        continue

                    try:
                        body = json.loads(event.data)
                    except json.JSONDecodeError as exc:
                        raise StoreError(f"Invalid stream payload from {path}: {event.data[:200]}", path=path) from exc
                    if not isinstance(body, dict) or not isinstance(body.get("path"), str):
                        raise StoreError(f"Malformed stream payload from {path}", path=path)

                    mirror.apply(event.event, body["path"], body.get("data"))
                    deliver(callback, parse_collection(mirror.value))
