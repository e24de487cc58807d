"""
Duplicate detection against the backlog and the persistent work queue.

The check is advisory: reads from the queue store are not linearized with
the forwarder's writes, so two validations racing on the same key may both
pass. Store failures are resolved by the configured DedupFailurePolicy.
"""

import asyncio
import logging
from typing import Optional

from redis.exceptions import RedisError

from .config import DedupFailurePolicy
from .utils.redis_utility import QueueStore, RedisTables
from .utils.state_manager import Backlog

logger = logging.getLogger(__name__)

REASON_IN_BACKLOG = "VAA was already in the listener queue"
REASON_STORE_UNAVAILABLE = "Unable to verify that the VAA is not already queued."


class DedupChecker:
    """Decides whether a transfer key is already queued or in flight."""

    PARTITIONS = (RedisTables.INCOMING, RedisTables.WORKING)

    def __init__(
        self,
        backlog: Backlog,
        store: QueueStore | None,
        failure_policy: DedupFailurePolicy = DedupFailurePolicy.FAIL_OPEN,
        timeout: float = 5.0,
    ) -> None:
        """
        Initialize the dedup checker.

        Args:
            backlog: In-memory backlog maintained by the forwarder
            store: Persistent queue store, or None when unavailable
            failure_policy: Outcome when the store cannot be read
            timeout: Bound on each store round-trip, in seconds
        """
        self.backlog = backlog
        self.store = store
        self.failure_policy = failure_policy
        self.timeout = timeout

    async def check(self, key: str) -> Optional[str]:
        """
        Look for a key in the backlog, then INCOMING, then WORKING.

        Args:
            key: Dedup key of the candidate transfer

        Returns:
            Rejection reason if the key is already known, None otherwise
        """
        if self.backlog.find_key(key) is not None:
            logger.debug(REASON_IN_BACKLOG)
            return REASON_IN_BACKLOG

        if self.store is None:
            logger.error("No queue store configured")
            return self._on_store_failure(key)

        try:
            for table in self.PARTITIONS:
                record = await asyncio.wait_for(self.store.get(table, key), timeout=self.timeout)
                if record:
                    reason = f"VAA was already in {table.name} table"
                    logger.debug(reason)
                    return reason
        except asyncio.TimeoutError:
            logger.error(f"Timed out after {self.timeout}s reading queue store for {key}")
            return self._on_store_failure(key)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to read queue store for {key}: {e}")
            return self._on_store_failure(key)
        except Exception as e:
            logger.error(f"Unexpected error reading queue store for {key}: {type(e).__name__}: {e}")
            return self._on_store_failure(key)

        return None

    def _on_store_failure(self, key: str) -> Optional[str]:
        if self.failure_policy is DedupFailurePolicy.FAIL_CLOSED:
            return REASON_STORE_UNAVAILABLE
        logger.warning(f"Queue store unavailable, treating {key} as not queued")
        return None
