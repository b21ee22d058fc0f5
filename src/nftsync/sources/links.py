"""Metadata pointer helpers.

Pure string functions that turn a token URI into something fetchable.
A content-addressed pointer uses the ``ipfs://`` scheme; gateway URLs
embed the content id after an ``/ipfs/`` path segment.
"""

from __future__ import annotations

from nftsync.models.constants import IPFS_PATH_MARKER, IPFS_SCHEME


def resolve_link(pointer: str | None, gateway: str) -> str | None:
    """Map a pointer to a fetchable URL through *gateway*.

    Returns ``None`` for a missing or empty pointer. An ``ipfs://`` prefix
    is replaced by *gateway* (which should end with ``/``); any other
    pointer is returned unchanged.
    """
    if not pointer:
        return None
    if pointer.startswith(IPFS_SCHEME):
        return gateway + pointer[len(IPFS_SCHEME) :]
    return pointer


def extract_content_id(pointer: str) -> str:
    """Return the content id (plus any sub-path) of a pointer.

    ``ipfs://<cid>/x`` gives ``<cid>/x``; a gateway URL gives the part
    after the first ``/ipfs/`` marker; anything else is returned verbatim.
    """
    if pointer.startswith(IPFS_SCHEME):
        return pointer[len(IPFS_SCHEME) :]
    if IPFS_PATH_MARKER in pointer:
        return pointer.split(IPFS_PATH_MARKER, 1)[1]
    return pointer


def is_direct_url(pointer: str) -> bool:
    """Whether *pointer* is a plain HTTP(S) URL unrelated to IPFS."""
    return pointer.startswith("http") and "ipfs" not in pointer
