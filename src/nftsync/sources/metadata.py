"""Metadata document retrieval with gateway failover.

[MetadataFetcher][nftsync.sources.metadata.MetadataFetcher] turns a token
URI into a parsed [TokenMetadata][nftsync.models.token.TokenMetadata]:

1. A plain HTTP(S) URL not mentioning IPFS is tried directly, once.
2. Otherwise (or if that fails) the content id is extracted and every
   configured gateway is tried in fixed order. The first 2xx response
   whose body is a JSON object wins.

Each attempt is individually time-boxed and cancelled on expiry. Parse
failures count as gateway failures. When every attempt fails,
[MetadataUnavailable][nftsync.core.exceptions.MetadataUnavailable] is
raised; callers treat it as "no metadata", not as a token failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import aiohttp

from nftsync.core.exceptions import MetadataUnavailable
from nftsync.models.constants import DEFAULT_GATEWAYS
from nftsync.models.token import TokenMetadata
from nftsync.utils.http import read_bounded_json

from .links import extract_content_id, is_direct_url


logger = logging.getLogger("nftsync.sources.metadata")

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_SIZE = 1_048_576

# Errors that mean "this attempt produced nothing usable, try the next one"
_ATTEMPT_ERRORS = (
    TimeoutError,
    OSError,
    aiohttp.ClientError,
    ValueError,
    TypeError,
)


class MetadataFetcher:
    """Fetch and parse NFT metadata documents.

    The fetcher does not own *session*; the caller opens and closes it.
    The gateway list is walked from the start on every call, so a gateway
    that recovers is used again immediately.

    Args:
        session: Shared aiohttp session for connection pooling.
        gateways: Gateway base URLs ending with ``/``, in try order.
        timeout: Per-attempt time box in seconds.
        max_size: Maximum accepted body size in bytes.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        gateways: Sequence[str] = DEFAULT_GATEWAYS,
        *,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
        max_size: int = DEFAULT_MAX_SIZE,
    ) -> None:
        self._session = session
        self._gateways = tuple(gateways)
        self._timeout = timeout
        self._max_size = max_size

    @property
    def gateways(self) -> tuple[str, ...]:
        return self._gateways

    async def fetch(self, pointer: str | None) -> TokenMetadata:
        """Retrieve the metadata document behind *pointer*.

        Raises:
            MetadataUnavailable: If the pointer is empty or no attempt
                produced a JSON object.
        """
        if not pointer:
            raise MetadataUnavailable("token has no metadata pointer")

        if is_direct_url(pointer):
            try:
                return await self._fetch_url(pointer)
            except _ATTEMPT_ERRORS as e:
                logger.debug(
                    "direct_fetch_failed url=%s error=%s", pointer, type(e).__name__
                )

        content_id = extract_content_id(pointer)
        for gateway in self._gateways:
            url = gateway + content_id
            try:
                return await self._fetch_url(url)
            except _ATTEMPT_ERRORS as e:
                logger.debug(
                    "gateway_fetch_failed url=%s error=%s", url, type(e).__name__
                )

        raise MetadataUnavailable(
            f"metadata fetch failed from all {len(self._gateways)} gateways: {pointer}"
        )

    async def _fetch_url(self, url: str) -> TokenMetadata:
        """Single time-boxed GET; raises on non-2xx, oversize, or bad JSON."""
        return await asyncio.wait_for(self._get_document(url), timeout=self._timeout)

    async def _get_document(self, url: str) -> TokenMetadata:
        async with self._session.get(url) as resp:
            resp.raise_for_status()
            data = await read_bounded_json(resp, self._max_size)
        return TokenMetadata.from_json(data)
