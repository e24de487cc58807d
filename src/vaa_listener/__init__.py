"""
VAA Listener package.

Decode, validate and deduplicate token-transfer attestations before they are
queued for the cross-chain relayer.
"""

from .allowlist import AllowlistIndex
from .config import (
    CommonConfig,
    ConfigError,
    DedupFailurePolicy,
    ListenerConfig,
    MissingFieldError,
    RelayerConfig,
    load_chain_configs,
)
from .dedup import DedupChecker
from .listener import VaaListener
from .models import AllowlistEntry, Envelope, ParsedVaa, TransferPayload
from .validation import VaaValidator, require_positive_fee

__all__ = [
    "AllowlistEntry",
    "AllowlistIndex",
    "CommonConfig",
    "ConfigError",
    "DedupChecker",
    "DedupFailurePolicy",
    "Envelope",
    "ListenerConfig",
    "MissingFieldError",
    "ParsedVaa",
    "RelayerConfig",
    "TransferPayload",
    "VaaListener",
    "VaaValidator",
    "load_chain_configs",
    "require_positive_fee",
]
__version__ = "0.1.0"
