"""
Address conversion between chain-native formats and the 32-byte wire format.
"""

import base58
import bech32
from web3 import Web3

from ..chains import ChainFamily, chain_family

TERRA_HRP = "terra"
TERRA_NATIVE_PREFIX = "01"


def _normalize_hex(hex_address: str) -> str:
    value = hex_address.lower().removeprefix("0x")
    if len(value) > 64:
        raise ValueError(f"Address longer than 32 bytes: {hex_address}")
    padded = value.rjust(64, "0")
    bytes.fromhex(padded)
    return padded


def hex_to_native(hex_address: str, chain_id: int) -> str:
    """
    Convert a 32-byte hex address into the native format of its chain.

    Args:
        hex_address: 64-char hex string, with or without 0x prefix
        chain_id: Chain the address belongs to

    Returns:
        Native address: base58 for Solana, checksummed 0x address for EVM
        chains, bech32 address or native denomination for Terra

    Raises:
        ValueError: If the hex string is malformed
    """
    value = _normalize_hex(hex_address)
    raw = bytes.fromhex(value)

    match chain_family(chain_id):
        case ChainFamily.SOLANA:
            return base58.b58encode(raw).decode("ascii")
        case ChainFamily.TERRA:
            if value.startswith(TERRA_NATIVE_PREFIX):
                # Native denominations are ascii, left-padded with zero bytes
                return raw[1:].lstrip(b"\x00").decode("ascii")
            return bech32.bech32_encode(TERRA_HRP, bech32.convertbits(raw[-20:], 8, 5))
        case _:
            return Web3.to_checksum_address("0x" + value[-40:])


def native_to_hex(address: str, chain_id: int) -> str:
    """
    Convert a chain-native address into its 32-byte hex form.

    Args:
        address: Native address string
        chain_id: Chain the address belongs to

    Returns:
        64-char lowercase hex string without prefix

    Raises:
        ValueError: If the address cannot be decoded for that chain
    """
    match chain_family(chain_id):
        case ChainFamily.SOLANA:
            raw = base58.b58decode(address)
            if len(raw) > 32:
                raise ValueError(f"Invalid Solana address: {address}")
            return raw.rjust(32, b"\x00").hex()
        case ChainFamily.TERRA:
            hrp, data = bech32.bech32_decode(address)
            if hrp is None:
                # Not a bech32 account, treat as a native denomination
                denom = address.encode("ascii")
                if not denom or len(denom) > 31:
                    raise ValueError(f"Invalid Terra address: {address}")
                return TERRA_NATIVE_PREFIX + denom.rjust(31, b"\x00").hex()
            if hrp != TERRA_HRP:
                raise ValueError(f"Invalid Terra address prefix: {hrp}")
            decoded = bech32.convertbits(data, 5, 8, False)
            if decoded is None:
                raise ValueError(f"Invalid Terra address: {address}")
            return bytes(decoded).rjust(32, b"\x00").hex()
        case _:
            if not Web3.is_address(address):
                raise ValueError(f"Invalid EVM address: {address}")
            return _normalize_hex(address)


def get_key(chain_id: int, address: str) -> str:
    """Dedup key shared by the backlog and both queue partitions."""
    return f"{chain_id}:{address}"
