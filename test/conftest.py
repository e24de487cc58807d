"""Shared fixtures for VAA listener tests."""

import struct
from unittest.mock import AsyncMock

import pytest

from vaa_listener.allowlist import AllowlistIndex
from vaa_listener.dedup import DedupChecker
from vaa_listener.models import AllowlistEntry, TransferPayload
from vaa_listener.utils.state_manager import Backlog
from vaa_listener.utils.vaa_decoder import VaaDecoder

# Checksummed EVM token address and its 32-byte wire form
TOKEN_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
TOKEN_HEX = "0" * 24 + TOKEN_ADDRESS[2:].lower()


def build_vaa(
    payload: bytes,
    *,
    version: int = 1,
    signatures: int = 1,
    timestamp: int = 1_650_000_000,
    nonce: int = 42,
    emitter_chain: int = 2,
    emitter_address: bytes = b"\x11" * 32,
    sequence: int = 7,
    consistency_level: int = 15,
) -> bytes:
    """Assemble a signed VAA with zeroed signatures around the given payload."""
    header = struct.pack(">BIB", version, 0, signatures) + b"\x00" * 66 * signatures
    body = struct.pack(
        ">IIH32sQB",
        timestamp,
        nonce,
        emitter_chain,
        emitter_address,
        sequence,
        consistency_level,
    )
    return header + body + payload


def build_transfer(**overrides) -> TransferPayload:
    """Transfer of an allowlisted EVM token with a positive fee."""
    fields = {
        "payload_type": 1,
        "amount": 10**20,
        "origin_address": TOKEN_HEX,
        "origin_chain": 2,
        "target_address": "ab" * 32,
        "target_chain": 1,
        "fee": 1_000,
    }
    fields.update(overrides)
    return TransferPayload(**fields)


@pytest.fixture
def vaa_factory():
    """Build a raw VAA carrying an encoded transfer payload."""
    def factory(**overrides) -> bytes:
        transfer = build_transfer(**overrides)
        return build_vaa(VaaDecoder.encode_transfer_payload(transfer))
    return factory


@pytest.fixture
def allowlist():
    """Allowlist holding the test token on Ethereum."""
    return AllowlistIndex([AllowlistEntry(chain_id=2, address=TOKEN_ADDRESS.lower())])


@pytest.fixture
def empty_store():
    """Queue store mock with nothing queued."""
    store = AsyncMock()
    store.get = AsyncMock(return_value=None)
    return store


@pytest.fixture
def dedup(empty_store):
    """Dedup checker over an empty backlog and an empty store."""
    return DedupChecker(backlog=Backlog(), store=empty_store)
