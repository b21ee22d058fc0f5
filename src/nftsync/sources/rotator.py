"""Round-robin endpoint rotation.

[EndpointRotator][nftsync.sources.rotator.EndpointRotator] hands out RPC
endpoints in configured order and wraps around forever. It has no notion
of health: callers decide when to rotate and how many attempts to make.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from nftsync.models.constants import FALLBACK_RPC


class EndpointRotator:
    """Ordered, non-empty ring of endpoint URIs with a moving cursor.

    Missing entries (``None`` or blank) are dropped. Duplicates are kept
    and visited as often as they appear. If nothing survives filtering,
    *fallback* becomes the single endpoint.

    ``next()`` is guarded by a lock so concurrent callers always observe
    a consistent cursor.

    Examples:
        ```python
        rotator = EndpointRotator(["https://a", None, "https://b"])
        rotator.next()  # 'https://a'
        rotator.next()  # 'https://b'
        rotator.next()  # 'https://a'
        ```
    """

    def __init__(
        self,
        endpoints: Iterable[str | None],
        fallback: str = FALLBACK_RPC,
    ) -> None:
        usable = tuple(e.strip() for e in endpoints if e and e.strip())
        self._endpoints: tuple[str, ...] = usable or (fallback,)
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def endpoints(self) -> tuple[str, ...]:
        """The effective endpoint ring, in rotation order."""
        return self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    def next(self) -> str:
        """Return the endpoint at the cursor and advance it."""
        with self._lock:
            endpoint = self._endpoints[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._endpoints)
            return endpoint

    def __repr__(self) -> str:
        return f"EndpointRotator(endpoints={len(self._endpoints)}, cursor={self._cursor})"
