"""Shared infrastructure for nftsync services.

Attributes:
    queries: Domain SQL query functions
        ([get_listing_state][nftsync.services.common.queries.get_listing_state],
        [upsert_token][nftsync.services.common.queries.upsert_token]).
"""
