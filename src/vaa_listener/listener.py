"""
VAA listener implementation.

This module wires the validation components together from explicit
configuration objects and hands accepted VAAs to the forwarder backlog.
"""

import logging
from typing import Optional, Union

from hexbytes import HexBytes

from .allowlist import AllowlistIndex
from .config import CommonConfig, ListenerConfig
from .dedup import DedupChecker
from .models import ParsedVaa
from .utils.redis_utility import QueueStore, RedisUtility
from .utils.state_manager import Backlog
from .utils.vaa_decoder import VaaDecoder
from .validation import FeePolicy, VaaValidator, require_positive_fee

logger = logging.getLogger(__name__)


class VaaListener:
    """
    Entry point for raw VAAs delivered by the attestation feed client.

    Each call to handle_vaa is independent; the only shared mutable state is
    the backlog and the counters, both touched after validation completes.
    """

    def __init__(
        self,
        listener_config: ListenerConfig,
        common_config: CommonConfig,
        store: Optional[QueueStore] = None,
        fee_policy: FeePolicy = require_positive_fee,
    ):
        """
        Initialize the listener.

        Args:
            listener_config: Listener configuration
            common_config: Shared configuration (redis connection)
            store: Queue store; a RedisUtility is created when omitted
            fee_policy: Fee eligibility predicate
        """
        self.listener_config = listener_config
        self.common_config = common_config

        self.allowlist = AllowlistIndex(listener_config.supported_tokens)
        self.backlog = Backlog(max_size=listener_config.backlog_size)
        self.store = store if store is not None else RedisUtility(
            host=common_config.redis.host,
            port=common_config.redis.port,
            timeout=common_config.redis.timeout,
        )
        self.dedup = DedupChecker(
            backlog=self.backlog,
            store=self.store,
            failure_policy=listener_config.dedup_failure_policy,
            timeout=common_config.redis.timeout,
        )
        self.validator = VaaValidator(
            allowlist=self.allowlist,
            dedup=self.dedup,
            fee_policy=fee_policy,
        )

        self.accepted_count = 0
        self.rejected_count = 0

    @classmethod
    def from_env(cls, log_level: Optional[str] = None) -> "VaaListener":
        """
        Create a VaaListener from environment variables.

        Args:
            log_level: Log level chosen by the caller, overriding LOG_LEVEL

        Raises:
            ConfigError: If required environment variables are missing
        """
        common_config = CommonConfig.from_env(log_level=log_level)
        listener_config = ListenerConfig.from_env()
        common_config.log_config()
        listener_config.log_config()
        listener = cls(listener_config, common_config)
        listener.validator.log_init(listener_config.spy_service_filters)
        return listener

    async def handle_vaa(self, raw_vaa: Union[HexBytes, bytes, bytearray, str]) -> Optional[ParsedVaa]:
        """
        Validate one VAA and queue it for the forwarder if accepted.

        Args:
            raw_vaa: Signed VAA bytes

        Returns:
            ParsedVaa if accepted, None if rejected
        """
        result = await self.validator.parse_and_validate(raw_vaa)
        if isinstance(result, str):
            self.rejected_count += 1
            logger.debug(f"Rejected VAA: {result}")
            return None

        self.accepted_count += 1
        self.backlog.push(result.key, VaaDecoder.to_bytes_safe(raw_vaa).hex())
        logger.info(
            f"Accepted VAA - chain {result.envelope.emitter_chain} "
            f"sequence {result.envelope.sequence} key {result.key}"
        )
        return result

    def get_stats(self) -> dict:
        """
        Get current listener statistics.

        Returns:
            Dictionary with current state metrics
        """
        return {
            'accepted': self.accepted_count,
            'rejected': self.rejected_count,
            **self.backlog.get_stats(),
        }

    async def close(self) -> None:
        """Release queue store connections."""
        if isinstance(self.store, RedisUtility):
            await self.store.close()
