"""Business logic: the sync service plus shared query functions.

Services are the top layer, depending on [nftsync.core][nftsync.core],
[nftsync.sources][nftsync.sources], [nftsync.utils][nftsync.utils], and
[nftsync.models][nftsync.models]. Each service extends
[BaseService][nftsync.core.base_service.BaseService] and implements
``async def run()`` for one cycle of work.

Attributes:
    Syncer: Full-range ownership and metadata sweep with listing
        reconciliation.

See Also:
    [common][nftsync.services.common]: SQL query functions used by every
        service.

Examples:
    ```python
    from nftsync.core import Store
    from nftsync.services import Syncer

    store = Store.from_yaml("config/database.yaml")
    async with store:
        syncer = Syncer.from_yaml("config/syncer.yaml", store=store)
        await syncer.run()
    ```
"""

from .syncer import (
    Syncer,
    SyncerConfig,
)


__all__ = [
    "Syncer",
    "SyncerConfig",
]
