"""
Validation pipeline for incoming VAAs.

Stages run in a fixed order and the first failing stage wins:
envelope decode, payload type, transfer decode, allowlist, fee, dedup.
Rejections are returned as strings; nothing raised by a stage escapes to
the caller.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Union

from hexbytes import HexBytes

from .allowlist import AllowlistIndex
from .config import SpyFilter
from .dedup import DedupChecker
from .models import Envelope, ParsedVaa, TransferPayload
from .utils.address_utility import get_key, hex_to_native
from .utils.vaa_decoder import VaaDecodeError, VaaDecoder

logger = logging.getLogger(__name__)

REASON_UNPARSEABLE_VAA = "Unable to parse the specified VAA."
REASON_WRONG_PAYLOAD_TYPE = "Specified vaa is not payload type 1."
REASON_UNPARSEABLE_PAYLOAD = "Could not parse the transfer payload."
REASON_TOKEN_NOT_APPROVED = "Token transfer is not for an approved token."
REASON_INSUFFICIENT_FEE = "Token transfer does not have a sufficient fee."

FeePolicy = Callable[[TransferPayload], bool]


def require_positive_fee(payload: TransferPayload) -> bool:
    """Accept any transfer carrying a fee greater than zero."""
    return payload.fee is not None and payload.fee > 0


class VaaValidator:
    """Parses raw VAAs and applies the relay eligibility rules."""

    def __init__(
        self,
        allowlist: AllowlistIndex,
        dedup: DedupChecker,
        fee_policy: FeePolicy = require_positive_fee,
    ) -> None:
        """
        Initialize the validator.

        Args:
            allowlist: Approved tokens
            dedup: Duplicate checker consulted last
            fee_policy: Predicate deciding whether the fee is sufficient
        """
        self.allowlist = allowlist
        self.dedup = dedup
        self.fee_policy = fee_policy

    def log_init(self, spy_filters: Iterable[SpyFilter] = ()) -> None:
        """Log the emitter filters and approved tokens in effect."""
        filters = list(spy_filters)
        if filters:
            for spy_filter in filters:
                logger.info(
                    f"Allowed contract: chainId: [{spy_filter.chain_id}] "
                    f"=> address: [{spy_filter.emitter_address}]"
                )
        else:
            logger.info("There are no allowlisted contracts provisioned.")
        self.allowlist.log_entries()

    async def parse_and_validate(
        self, raw_vaa: Union[HexBytes, bytes, bytearray, str]
    ) -> Union[str, ParsedVaa]:
        """
        Run the full pipeline on one raw VAA.

        Args:
            raw_vaa: Signed VAA bytes, already authenticated upstream

        Returns:
            ParsedVaa if accepted, otherwise a human-readable rejection reason
        """
        try:
            envelope: Envelope = VaaDecoder.parse_envelope(raw_vaa)
        except VaaDecodeError as e:
            logger.error(f"Encountered error while parsing raw VAA: {e}")
            return REASON_UNPARSEABLE_VAA

        if not envelope.payload or envelope.payload[0] != VaaDecoder.PAYLOAD_ID_TRANSFER:
            logger.debug(REASON_WRONG_PAYLOAD_TYPE)
            return REASON_WRONG_PAYLOAD_TYPE

        try:
            payload = VaaDecoder.parse_transfer_payload(envelope.payload)
        except VaaDecodeError as e:
            logger.error(f"Encountered error while parsing vaa payload: {e}")
            return REASON_UNPARSEABLE_PAYLOAD

        try:
            origin_native = hex_to_native(payload.origin_address, payload.origin_chain)
        except ValueError as e:
            logger.debug(f"Could not convert origin address {payload.origin_address}: {e}")
            origin_native = None

        if not origin_native or not self.allowlist.contains(payload.origin_chain, origin_native):
            logger.debug(REASON_TOKEN_NOT_APPROVED)
            return REASON_TOKEN_NOT_APPROVED

        if not self.fee_policy(payload):
            logger.debug(REASON_INSUFFICIENT_FEE)
            return REASON_INSUFFICIENT_FEE

        key = get_key(payload.origin_chain, origin_native)
        if reason := await self.dedup.check(key):
            return reason

        return ParsedVaa(
            envelope=envelope,
            payload=payload,
            origin_address_native=origin_native,
            key=key,
        )
