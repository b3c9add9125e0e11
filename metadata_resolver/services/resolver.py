from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
from typing import Any

import httpx
from opentelemetry import trace

from metadata_resolver.core.candidates import build_candidate_urls
from metadata_resolver.core.config import Settings
from metadata_resolver.services.cache import ResolutionCache, get_resolution_cache
from metadata_resolver.services.errors import GatewayFetchError, ResolutionFailedError
from metadata_resolver.services.fetcher import fetch_json

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PRIMARY_BATCH_SIZE = 3
_NO_RESULT = object()


class GatewayResolver:
    """Resolves a normalized reference to JSON through racing gateway mirrors.

    The first ``primary_batch_size`` candidates are fetched concurrently and the
    first success wins. When all of them fail, the remaining candidates are
    tried one at a time, which caps outbound load once several mirrors have
    already misbehaved. Successes are cached; concurrent callers for the same
    reference share one resolution.
    """

    def __init__(
        self,
        *,
        gateway_bases: Sequence[str],
        cache: ResolutionCache,
        timeout_seconds: float,
        primary_batch_size: int = PRIMARY_BATCH_SIZE,
        user_agent: str = "listing-metadata-resolver/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.gateway_bases = list(gateway_bases)
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.primary_batch_size = max(1, primary_batch_size)
        self.headers = {"User-Agent": user_agent}
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        cache: ResolutionCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> GatewayResolver:
        return cls(
            gateway_bases=settings.gateway_bases,
            cache=cache if cache is not None else get_resolution_cache(),
            timeout_seconds=settings.request_timeout_ms / 1000.0,
            primary_batch_size=settings.primary_batch_size,
            user_agent=settings.user_agent,
            client=client,
        )

    def candidates_for(self, reference: str) -> list[str]:
        return build_candidate_urls(reference, self.gateway_bases)

    async def fetch_json(self, reference: str) -> Any:
        entry = self.cache.lookup(reference)
        if entry is not None:
            logger.debug("resolution cache hit reference=%s", reference)
            return entry.payload

        task = self.cache.pending(reference)
        if task is None:
            task = asyncio.ensure_future(self._resolve(reference))
            self.cache.register(reference, task)
        else:
            logger.debug("joining in-flight resolution reference=%s", reference)
        # Shielded so one cancelled caller does not abort the shared resolution.
        return await asyncio.shield(task)

    async def _resolve(self, reference: str) -> Any:
        task = asyncio.current_task()
        try:
            candidates = self.candidates_for(reference)
            with tracer.start_as_current_span("gateway.resolve") as span:
                span.set_attribute("metadata.reference", reference)
                span.set_attribute("gateway.candidate_count", len(candidates))
                if self._client is not None:
                    payload = await self._race_then_fallback(self._client, reference, candidates)
                else:
                    async with httpx.AsyncClient(follow_redirects=True) as temp_client:
                        payload = await self._race_then_fallback(temp_client, reference, candidates)
            if self.cache.pending(reference) is task:
                self.cache.store(reference, payload)
            return payload
        finally:
            self.cache.release(reference, task)

    async def _race_then_fallback(
        self,
        client: httpx.AsyncClient,
        reference: str,
        candidates: list[str],
    ) -> Any:
        failures: dict[str, GatewayFetchError] = {}
        primary = candidates[: self.primary_batch_size]
        tail = candidates[self.primary_batch_size :]

        if primary:
            with tracer.start_as_current_span("gateway.race") as span:
                span.set_attribute("gateway.batch_size", len(primary))
                payload = await self._race(client, primary, failures)
            if payload is not _NO_RESULT:
                return payload

        if tail:
            with tracer.start_as_current_span("gateway.fallback") as span:
                span.set_attribute("gateway.tail_size", len(tail))
                for url in tail:
                    try:
                        return await self._fetch(client, url)
                    except GatewayFetchError as exc:
                        failures[url] = exc

        ordered_failures = [failures[url] for url in candidates if url in failures]
        logger.warning(
            "metadata resolution failed reference=%s candidates=%s",
            reference,
            len(candidates),
        )
        raise ResolutionFailedError(reference, ordered_failures)

    async def _race(
        self,
        client: httpx.AsyncClient,
        urls: list[str],
        failures: dict[str, GatewayFetchError],
    ) -> Any:
        tasks = [asyncio.ensure_future(self._fetch(client, url)) for url in urls]
        url_by_task = dict(zip(tasks, urls))
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for finished in (task for task in tasks if task in done):
                    exc = finished.exception()
                    if exc is None:
                        return finished.result()
                    failures[url_by_task[finished]] = exc
            return _NO_RESULT
        finally:
            for task in pending:
                task.cancel()
            # Collects losers and any finished task whose exception was not read above.
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> Any:
        try:
            payload = await fetch_json(client, url, timeout_seconds=self.timeout_seconds, headers=self.headers)
        except GatewayFetchError as exc:
            logger.info("gateway candidate failed url=%s reason=%s", url, exc.reason)
            raise
        except Exception as exc:
            logger.warning("gateway candidate crashed url=%s", url, exc_info=True)
            raise GatewayFetchError(url, f"unexpected error: {exc.__class__.__name__}") from exc
        logger.debug("gateway candidate resolved url=%s", url)
        return payload
