"""
Shared data models for the VAA listener.

This module contains the immutable records produced while decoding and
validating attestations, and the allowlist entry type.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Envelope:
    """Decoded attestation header.

    Attributes:
        timestamp: Unix timestamp of the observed event
        nonce: Emitter-chosen nonce
        emitter_chain: Chain id of the emitting chain
        emitter_address: 32-byte emitter address in feed-native format
        sequence: Emitter sequence number
        consistency_level: Finality level requested by the emitter
        payload: Raw payload bytes
    """
    timestamp: int
    nonce: int
    emitter_chain: int
    emitter_address: bytes
    sequence: int
    consistency_level: int
    payload: bytes

    def __str__(self) -> str:
        return (
            f"Envelope(chain={self.emitter_chain}, "
            f"emitter={self.emitter_address.hex()[:10]}..., "
            f"sequence={self.sequence})"
        )


@dataclass(frozen=True, slots=True)
class TransferPayload:
    """Token transfer payload (payload type 1).

    Addresses stay in the 32-byte hex representation used on the wire
    (64 lowercase hex characters, no prefix).
    """
    payload_type: int
    amount: int
    origin_address: str
    origin_chain: int
    target_address: str
    target_chain: int
    fee: int | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "payload_type": self.payload_type,
            "amount": str(self.amount),
            "origin_address": self.origin_address,
            "origin_chain": self.origin_chain,
            "target_address": self.target_address,
            "target_chain": self.target_chain,
            "fee": None if self.fee is None else str(self.fee),
        }


@dataclass(frozen=True, slots=True)
class ParsedVaa:
    """A validated VAA: the envelope plus its allowlist-confirmed transfer.

    Attributes:
        envelope: Decoded envelope
        payload: Decoded transfer payload
        origin_address_native: Origin token address in chain-native format
        key: Dedup key derived from the origin chain and native address
    """
    envelope: Envelope
    payload: TransferPayload
    origin_address_native: str
    key: str


@dataclass(frozen=True, slots=True)
class AllowlistEntry:
    """Operator-approved token, identified by chain id and native address."""
    chain_id: int
    address: str
