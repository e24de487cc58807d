"""
Allowlist of tokens eligible for relaying.
"""

import logging
from collections.abc import Iterable

from .models import AllowlistEntry

logger = logging.getLogger(__name__)


class AllowlistIndex:
    """
    Lookup over operator-approved tokens.

    Entries are keyed by (chain id, lowercased address): the chain id must
    match exactly, the address case-insensitively. The index is built once
    and never mutated, so concurrent reads need no locking.
    """

    def __init__(self, entries: Iterable[AllowlistEntry]):
        self._entries: frozenset[tuple[int, str]] = frozenset(
            (entry.chain_id, entry.address.lower()) for entry in entries
        )

    def contains(self, chain_id: int, address: str | None) -> bool:
        """Check whether a token on a chain is approved."""
        if not address:
            return False
        return (chain_id, address.lower()) in self._entries

    def __contains__(self, entry: AllowlistEntry) -> bool:
        return self.contains(entry.chain_id, entry.address)

    def __len__(self) -> int:
        return len(self._entries)

    def log_entries(self) -> None:
        if not self._entries:
            logger.info("There are no allowlisted tokens provisioned.")
            return
        for chain_id, address in sorted(self._entries):
            logger.info(f"Allowed token: chainId: [{chain_id}] => address: [{address}]")
