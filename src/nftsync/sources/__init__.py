"""Acquisition from external collaborators: chain RPC and content gateways.

Attributes:
    EndpointRotator: Round-robin ring of RPC endpoints.
    ChainReader: Owner and token URI reads with endpoint failover.
    MetadataFetcher: Metadata document retrieval with gateway failover.
    resolve_link: Map a content-addressed pointer through a gateway.
"""

from .chain import (
    ERC721_ABI,
    BindingProvider,
    ChainBinding,
    ChainReader,
    Web3ContractBinding,
    is_nonexistent_token_error,
)
from .links import extract_content_id, is_direct_url, resolve_link
from .metadata import MetadataFetcher
from .rotator import EndpointRotator


__all__ = [
    "ERC721_ABI",
    "BindingProvider",
    "ChainBinding",
    "ChainReader",
    "EndpointRotator",
    "MetadataFetcher",
    "Web3ContractBinding",
    "extract_content_id",
    "is_direct_url",
    "is_nonexistent_token_error",
    "resolve_link",
]
