"""Low-level network helpers.

The utils layer depends only on [nftsync.models][nftsync.models] and
third-party libraries. It has **zero** imports from ``nftsync.core`` or
``nftsync.services``.

Attributes:
    http: Size-bounded JSON reading of aiohttp responses.
"""
