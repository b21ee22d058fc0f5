"""ERC-721 ownership and token URI reads with RPC endpoint failover.

Three layers:

* [Web3ContractBinding][nftsync.sources.chain.Web3ContractBinding]: an
  immutable snapshot of one RPC endpoint plus a contract handle. It turns
  the contract's nonexistent-token revert into
  ``ChainLookup.not_found()`` and lets every other fault propagate.
* [BindingProvider][nftsync.sources.chain.BindingProvider]: holds the
  current snapshot and swaps it atomically. A rotation request made
  against a snapshot that is no longer current is a no-op, so a burst of
  concurrent failures on one endpoint rotates only once.
* [ChainReader][nftsync.sources.chain.ChainReader]: bounded retries
  across endpoints, raising
  [TokenNotFound][nftsync.core.exceptions.TokenNotFound] or
  [ChainUnavailable][nftsync.core.exceptions.ChainUnavailable].

See Also:
    [EndpointRotator][nftsync.sources.rotator.EndpointRotator]: Endpoint
        ring consumed by the provider.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError

from nftsync.core.exceptions import ChainUnavailable, SupplyReadError, TokenNotFound
from nftsync.models.constants import FALLBACK_RPC
from nftsync.models.token import ChainLookup

from .rotator import EndpointRotator


logger = logging.getLogger("nftsync.sources.chain")

#: Minimal ERC-721 (Enumerable) ABI: the three read calls this pipeline makes.
ERC721_ABI: list[dict[str, Any]] = [
    {
        "name": "ownerOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "tokenURI",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "name": "totalSupply",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

#: 4-byte selector of OpenZeppelin v5 ``ERC721NonexistentToken(uint256)``.
NONEXISTENT_TOKEN_SELECTOR = "0x7e273289"

# Revert reasons used by OpenZeppelin v4 and common ERC-721 forks
_NONEXISTENT_MARKERS = (
    "nonexistent token",
    "invalid token id",
    "erc721nonexistenttoken",
    "owner query for nonexistent",
)

DEFAULT_RPC_TIMEOUT = 10.0


def is_nonexistent_token_error(error: BaseException) -> bool:
    """Whether *error* is the contract's "token does not exist" revert.

    Only contract-level reverts qualify; transport faults never do.
    """
    if not isinstance(error, ContractLogicError):
        return False
    texts = [str(error)]
    data = getattr(error, "data", None)
    if isinstance(data, str):
        texts.append(data)
    for text in texts:
        lowered = text.lower()
        if NONEXISTENT_TOKEN_SELECTOR in lowered:
            return True
        if any(marker in lowered for marker in _NONEXISTENT_MARKERS):
            return True
    return False


class ChainBinding(Protocol):
    """One endpoint's view of the collection contract."""

    @property
    def endpoint(self) -> str: ...

    async def lookup(self, token_id: int) -> ChainLookup: ...

    async def total_supply(self) -> int: ...


class Web3ContractBinding:
    """Immutable ``AsyncWeb3`` contract handle bound to a single endpoint.

    Args:
        endpoint: JSON-RPC HTTP endpoint.
        collection_address: ERC-721 contract address (any case).
        timeout: Per-request RPC timeout in seconds.
    """

    __slots__ = ("_contract", "_endpoint")

    def __init__(
        self,
        endpoint: str,
        collection_address: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,  # noqa: ASYNC109
    ) -> None:
        provider = AsyncHTTPProvider(
            endpoint,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
        )
        w3 = AsyncWeb3(provider)
        self._endpoint = endpoint
        self._contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(collection_address),
            abi=ERC721_ABI,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def lookup(self, token_id: int) -> ChainLookup:
        """Query ``ownerOf`` then ``tokenURI``.

        Returns ``ChainLookup.not_found()`` when either call reverts with
        the nonexistent-token error. Any other exception propagates.
        """
        try:
            owner = await self._contract.functions.ownerOf(token_id).call()
            token_uri = await self._contract.functions.tokenURI(token_id).call()
        except ContractLogicError as e:
            if is_nonexistent_token_error(e):
                return ChainLookup.not_found()
            raise
        return ChainLookup.found(str(owner), token_uri or None)

    async def total_supply(self) -> int:
        return int(await self._contract.functions.totalSupply().call())

    def __repr__(self) -> str:
        return f"Web3ContractBinding(endpoint={self._endpoint!r})"


class BindingProvider:
    """Holds the current [ChainBinding][nftsync.sources.chain.ChainBinding].

    Swaps are done under a lock and are compare-and-swap style: only a
    caller holding the current snapshot can trigger a rotation.

    Args:
        rotator: Endpoint ring; the first endpoint is bound immediately.
        factory: Builds a binding for an endpoint.
    """

    def __init__(
        self,
        rotator: EndpointRotator,
        factory: Callable[[str], ChainBinding],
    ) -> None:
        self._rotator = rotator
        self._factory = factory
        self._lock = threading.Lock()
        self._current = factory(rotator.next())

    @property
    def current(self) -> ChainBinding:
        with self._lock:
            return self._current

    @property
    def size(self) -> int:
        """Number of endpoints in the ring."""
        return len(self._rotator)

    def rotate(self, stale: ChainBinding) -> ChainBinding:
        """Replace *stale* with a binding to the next endpoint.

        If *stale* was already replaced by another caller, the current
        binding is returned unchanged.
        """
        with self._lock:
            if self._current is stale:
                self._current = self._factory(self._rotator.next())
                logger.info(
                    "rpc_rotated from=%s to=%s", stale.endpoint, self._current.endpoint
                )
            return self._current


class ChainReader:
    """Bounded-retry reads of token ownership and supply.

    A lookup makes at most one attempt per configured endpoint. A
    nonexistent-token answer ends the lookup immediately.
    """

    def __init__(self, provider: BindingProvider) -> None:
        self._provider = provider

    @classmethod
    def from_endpoints(
        cls,
        endpoints: list[str | None],
        collection_address: str,
        *,
        fallback: str = FALLBACK_RPC,
        timeout: float = DEFAULT_RPC_TIMEOUT,  # noqa: ASYNC109
    ) -> ChainReader:
        """Build a reader over ``web3`` bindings for *endpoints*."""
        rotator = EndpointRotator(endpoints, fallback)
        provider = BindingProvider(
            rotator,
            lambda endpoint: Web3ContractBinding(endpoint, collection_address, timeout),
        )
        return cls(provider)

    @property
    def provider(self) -> BindingProvider:
        return self._provider

    def _next_binding(self, failed: ChainBinding) -> ChainBinding:
        fresh = self._provider.rotate(failed)
        if fresh.endpoint == failed.endpoint and self._provider.size > 1:
            # Concurrent rotations wrapped the ring back to the endpoint that just failed.
            fresh = self._provider.rotate(fresh)
        return fresh

    async def read(self, token_id: int) -> tuple[str, str | None]:
        """Return ``(owner, token_uri)`` for *token_id*.

        Raises:
            TokenNotFound: The contract reports the id as nonexistent.
            ChainUnavailable: Every endpoint attempt failed.
        """
        attempts = self._provider.size
        last_error: str | None = None
        binding = self._provider.current
        for attempt in range(1, attempts + 1):
            try:
                result = await binding.lookup(token_id)
            except Exception as e:  # Intentionally broad: any RPC fault rotates
                last_error = f"{type(e).__name__}: {e}"
                logger.warning(
                    "chain_read_failed token_id=%s endpoint=%s attempt=%s/%s error=%s",
                    token_id,
                    binding.endpoint,
                    attempt,
                    attempts,
                    type(e).__name__,
                )
                binding = self._next_binding(binding)
                continue

            if not result.exists:
                raise TokenNotFound(token_id)
            assert result.owner is not None  # noqa: S101  # Always set for FOUND
            return result.owner, result.token_uri

        raise ChainUnavailable(token_id, attempts, last_error)

    async def total_supply(self) -> int:
        """Read ``totalSupply()`` once on the current binding.

        Raises:
            SupplyReadError: On any failure; there is no retry.
        """
        binding = self._provider.current
        try:
            return await binding.total_supply()
        except Exception as e:  # Intentionally broad: supply failure is fatal for the run
            raise SupplyReadError(
                f"totalSupply() failed on {binding.endpoint}: {type(e).__name__}: {e}"
            ) from e
