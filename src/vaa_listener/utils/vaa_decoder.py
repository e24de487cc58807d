"""
VAA decoding utilities for the VAA listener.

This module decodes the binary attestation envelope and the fixed-layout
token transfer payload carried inside it. Signature verification is done
upstream; bytes reaching this module are already trusted.
"""

import logging
import struct
from typing import Union

from hexbytes import HexBytes
from web3 import Web3

from ..models import Envelope, TransferPayload

logger = logging.getLogger(__name__)


class VaaDecodeError(ValueError):
    """Raised when attestation bytes cannot be decoded."""


class VaaDecoder:
    """Utilities for decoding VAA envelopes and transfer payloads."""

    SUPPORTED_VERSION = 1
    SIGNATURE_LENGTH = 66  # guardian index (1) + secp256k1 signature (65)
    HEADER_LENGTH = 6  # version (1) + guardian set index (4) + signature count (1)
    # timestamp, nonce, emitter chain, emitter address, sequence, consistency level
    BODY_FORMAT = ">IIH32sQB"
    BODY_LENGTH = struct.calcsize(BODY_FORMAT)

    PAYLOAD_ID_TRANSFER = 1
    TRANSFER_PAYLOAD_LENGTH = 133

    @staticmethod
    def to_bytes_safe(value: Union[HexBytes, bytes, bytearray, str]) -> bytes:
        """
        Safely convert value to bytes, handling HexBytes, bytes, and hex strings.

        Args:
            value: Value to convert (HexBytes, bytes, or hex string)

        Returns:
            Bytes representation

        Raises:
            VaaDecodeError: If a string is not valid hex
        """
        if isinstance(value, HexBytes):
            return bytes(value)
        elif isinstance(value, (bytes, bytearray)):
            return bytes(value)
        try:
            return Web3.to_bytes(hexstr=value)
        except (TypeError, ValueError) as e:
            raise VaaDecodeError(f"Invalid hex input: {e}") from e

    @staticmethod
    def parse_envelope(raw: Union[HexBytes, bytes, bytearray, str]) -> Envelope:
        """
        Decode a signed VAA into its envelope.

        Layout: version (u8), guardian set index (u32), signature count (u8),
        signatures (66 bytes each), then the body fields in BODY_FORMAT order
        followed by the payload. All integers are big-endian.

        Args:
            raw: Raw VAA bytes, already authenticated upstream

        Returns:
            Decoded Envelope

        Raises:
            VaaDecodeError: If the bytes are truncated or the version is unknown
        """
        data = VaaDecoder.to_bytes_safe(raw)
        if len(data) < VaaDecoder.HEADER_LENGTH:
            raise VaaDecodeError(f"VAA too short: {len(data)} bytes")

        version, guardian_set_index, signature_count = struct.unpack_from(">BIB", data, 0)
        if version != VaaDecoder.SUPPORTED_VERSION:
            raise VaaDecodeError(f"Unsupported VAA version: {version}")

        body_offset = VaaDecoder.HEADER_LENGTH + signature_count * VaaDecoder.SIGNATURE_LENGTH
        if len(data) < body_offset + VaaDecoder.BODY_LENGTH:
            raise VaaDecodeError(
                f"VAA truncated: {len(data)} bytes, "
                f"need at least {body_offset + VaaDecoder.BODY_LENGTH}"
            )

        (
            timestamp,
            nonce,
            emitter_chain,
            emitter_address,
            sequence,
            consistency_level,
        ) = struct.unpack_from(VaaDecoder.BODY_FORMAT, data, body_offset)

        envelope = Envelope(
            timestamp=timestamp,
            nonce=nonce,
            emitter_chain=emitter_chain,
            emitter_address=emitter_address,
            sequence=sequence,
            consistency_level=consistency_level,
            payload=data[body_offset + VaaDecoder.BODY_LENGTH:],
        )
        logger.debug(
            f"Parsed envelope {envelope} "
            f"(guardian set {guardian_set_index}, {signature_count} signatures)"
        )
        return envelope

    @staticmethod
    def parse_transfer_payload(payload: Union[bytes, bytearray]) -> TransferPayload:
        """
        Decode a token transfer payload.

        | offset | length | field          |
        |--------|--------|----------------|
        | 0      | 1      | payload id (1) |
        | 1      | 32     | amount         |
        | 33     | 32     | origin address |
        | 65     | 2      | origin chain   |
        | 67     | 32     | target address |
        | 99     | 2      | target chain   |
        | 101    | 32     | fee            |

        Args:
            payload: Envelope payload bytes

        Returns:
            Decoded TransferPayload with addresses as 64-char hex strings

        Raises:
            VaaDecodeError: If the payload is shorter than 133 bytes or is not
                a transfer payload
        """
        if len(payload) < VaaDecoder.TRANSFER_PAYLOAD_LENGTH:
            raise VaaDecodeError(
                f"Transfer payload too short: {len(payload)} bytes, "
                f"need {VaaDecoder.TRANSFER_PAYLOAD_LENGTH}"
            )
        if payload[0] != VaaDecoder.PAYLOAD_ID_TRANSFER:
            raise VaaDecodeError(f"Not a transfer payload: payload id {payload[0]}")

        return TransferPayload(
            payload_type=payload[0],
            amount=int.from_bytes(payload[1:33], "big"),
            origin_address=payload[33:65].hex(),
            origin_chain=int.from_bytes(payload[65:67], "big"),
            target_address=payload[67:99].hex(),
            target_chain=int.from_bytes(payload[99:101], "big"),
            fee=int.from_bytes(payload[101:133], "big"),
        )

    @staticmethod
    def encode_transfer_payload(transfer: TransferPayload) -> bytes:
        """
        Serialize a transfer payload using the same fixed layout.

        Args:
            transfer: Transfer to encode

        Returns:
            133-byte payload
        """
        return b"".join([
            bytes([transfer.payload_type]),
            transfer.amount.to_bytes(32, "big"),
            bytes.fromhex(transfer.origin_address).rjust(32, b"\x00"),
            transfer.origin_chain.to_bytes(2, "big"),
            bytes.fromhex(transfer.target_address).rjust(32, b"\x00"),
            transfer.target_chain.to_bytes(2, "big"),
            (transfer.fee or 0).to_bytes(32, "big"),
        ])
