"""
Configuration module for the VAA listener.

This module provides typed, immutable configuration for the listener and the
per-chain connection data consumed by the relayer. Chain configuration is a
tagged union: one dataclass per chain family, each carrying only the fields
that family requires. Everything is loaded once at startup; any missing or
invalid value is fatal.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from .chains import CHAIN_NAMES, ChainFamily, chain_family
from .models import AllowlistEntry
from .utils.address_utility import native_to_hex

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


class MissingFieldError(ConfigError):
    """Raised when a chain record lacks a field its chain family requires."""

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field in chain config: {field_name}")
        self.field_name = field_name


class DedupFailurePolicy(str, Enum):
    """What the dedup check reports when the queue store cannot be reached."""
    FAIL_OPEN = "fail-open"
    FAIL_CLOSED = "fail-closed"


@dataclass(frozen=True, slots=True)
class BaseChainConfig:
    """Fields shared by every chain family.

    Attributes:
        chain_id: Attestation-network chain id
        chain_name: Human-readable chain name
        node_url: RPC endpoint URL
        token_bridge_address: Token bridge contract address
    """

    family: ClassVar[ChainFamily]

    chain_id: int
    chain_name: str
    node_url: str
    token_bridge_address: str


@dataclass(frozen=True, slots=True, kw_only=True)
class EvmChainConfig(BaseChainConfig):
    """EVM-compatible chain: one hex private key per worker."""

    family: ClassVar[ChainFamily] = ChainFamily.EVM

    wallet_private_keys: tuple[str, ...] = field(repr=False)
    wrapped_asset: str


@dataclass(frozen=True, slots=True, kw_only=True)
class SolanaChainConfig(BaseChainConfig):
    """Solana: raw keypair bytes per worker plus the core bridge address."""

    family: ClassVar[ChainFamily] = ChainFamily.SOLANA

    solana_private_keys: tuple[bytes, ...] = field(repr=False)
    bridge_address: str
    wrapped_asset: str


@dataclass(frozen=True, slots=True, kw_only=True)
class TerraChainConfig(BaseChainConfig):
    """Terra: wallet mnemonics plus the settings needed by the Terra SDK."""

    family: ClassVar[ChainFamily] = ChainFamily.TERRA

    wallet_private_keys: tuple[str, ...] = field(repr=False)
    terra_name: str
    terra_chain_id: str
    terra_coin: str
    terra_gas_price_url: str


ChainConfig = Union[EvmChainConfig, SolanaChainConfig, TerraChainConfig]


def _decode_json_array(source: Any, name: str) -> list[Any]:
    if isinstance(source, (str, bytes)):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{name} contains invalid JSON: {e}") from e
    if not isinstance(source, list):
        raise ConfigError(f"{name} is not an array.")
    return source


def _require(record: Mapping[str, Any], field_name: str) -> Any:
    value = record.get(field_name)
    if value is None or value == "" or value == []:
        raise MissingFieldError(field_name)
    return value


def _require_list(record: Mapping[str, Any], field_name: str) -> list[Any]:
    value = _require(record, field_name)
    if not isinstance(value, list):
        raise MissingFieldError(field_name)
    return value


def _common_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "chain_id": _require(record, "chainId"),
        "chain_name": _require(record, "chainName"),
        "node_url": _require(record, "nodeUrl"),
        "token_bridge_address": _require(record, "tokenBridgeAddress"),
    }


def create_evm_chain_config(record: Mapping[str, Any]) -> EvmChainConfig:
    """Build an EVM chain config, failing on the first missing field."""
    common = _common_fields(record)
    keys = _require_list(record, "walletPrivateKey")
    wrapped_asset = _require(record, "wrappedAsset")
    return EvmChainConfig(
        **common,
        wallet_private_keys=tuple(keys),
        wrapped_asset=wrapped_asset,
    )


def create_solana_chain_config(record: Mapping[str, Any]) -> SolanaChainConfig:
    """Build a Solana chain config, failing on the first missing field."""
    common = _common_fields(record)
    raw_keys = _require_list(record, "solanaPrivateKey")
    bridge_address = _require(record, "bridgeAddress")
    wrapped_asset = _require(record, "wrappedAsset")

    keys = []
    for index, item in enumerate(raw_keys):
        if not isinstance(item, list) or not item:
            raise ConfigError(f"Invalid solanaPrivateKey entry {index}: expected a list of byte values")
        try:
            keys.append(bytes(item))
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid solanaPrivateKey entry {index}: expected a list of byte values"
            ) from e

    return SolanaChainConfig(
        **common,
        solana_private_keys=tuple(keys),
        bridge_address=bridge_address,
        wrapped_asset=wrapped_asset,
    )


def create_terra_chain_config(record: Mapping[str, Any]) -> TerraChainConfig:
    """Build a Terra chain config, failing on the first missing field."""
    common = _common_fields(record)
    keys = _require_list(record, "walletPrivateKey")
    return TerraChainConfig(
        **common,
        wallet_private_keys=tuple(keys),
        terra_name=_require(record, "terraName"),
        terra_chain_id=_require(record, "terraChainId"),
        terra_coin=_require(record, "terraCoin"),
        terra_gas_price_url=_require(record, "terraGasPriceUrl"),
    )


CHAIN_CONFIG_BUILDERS = {
    ChainFamily.EVM: create_evm_chain_config,
    ChainFamily.SOLANA: create_solana_chain_config,
    ChainFamily.TERRA: create_terra_chain_config,
}


def load_chain_configs(source: Any) -> list[ChainConfig]:
    """
    Build chain configurations from a list of chain-description records.

    Args:
        source: Decoded JSON array (or the JSON text itself)

    Returns:
        Chain configs in source order

    Raises:
        ConfigError: If the source is not a non-empty array, a record has no
            usable chainId, or a required field is missing
    """
    records = _decode_json_array(source, "SUPPORTED_CHAINS")
    if not records:
        raise ConfigError("SUPPORTED_CHAINS must declare at least one chain.")

    chains: list[ChainConfig] = []
    for record in records:
        if not isinstance(record, Mapping):
            raise ConfigError(f"Invalid chain config: {record!r}")
        chain_id = record.get("chainId")
        if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
            raise ConfigError(f"Invalid chain config: {dict(record)!r}")

        builder = CHAIN_CONFIG_BUILDERS[chain_family(chain_id)]
        chains.append(builder(record))
    return chains


def _record_chain_id(record: Mapping[str, Any], kind: str) -> int:
    try:
        return int(record["chainId"])
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {kind} record. {dict(record)!r}: chainId must be an integer") from None


def load_supported_tokens(source: Any) -> tuple[AllowlistEntry, ...]:
    """
    Parse the supported-token allowlist.

    Raises:
        ConfigError: If the source is not an array or a record is incomplete
    """
    tokens = []
    for token in _decode_json_array(source, "SUPPORTED_TOKENS"):
        if isinstance(token, Mapping) and token.get("chainId") and token.get("address"):
            chain_id = _record_chain_id(token, "token")
            tokens.append(AllowlistEntry(chain_id=chain_id, address=str(token["address"])))
        else:
            raise ConfigError(f"Invalid token record. {token!r}")
    return tuple(tokens)


@dataclass(frozen=True, slots=True)
class SpyFilter:
    """Emitter filter for the attestation feed subscription."""
    chain_id: int
    emitter_address: str  # 32-byte hex


def load_spy_filters(source: Any) -> tuple[SpyFilter, ...]:
    """
    Parse emitter filters, converting native emitter addresses to hex.

    Raises:
        ConfigError: If the source is not an array or a record is invalid
    """
    filters = []
    for item in _decode_json_array(source, "SPY_SERVICE_FILTERS"):
        if not (isinstance(item, Mapping) and item.get("chainId") and item.get("emitterAddress")):
            raise ConfigError(f"Invalid filter record. {item!r}")
        chain_id = _record_chain_id(item, "filter")
        try:
            emitter = native_to_hex(str(item["emitterAddress"]), chain_id)
        except ValueError as e:
            raise ConfigError(f"Invalid filter record. {dict(item)!r}: {e}") from e
        filters.append(SpyFilter(chain_id=chain_id, emitter_address=emitter))
    return tuple(filters)


def _required_env(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def _int_env(env: Mapping[str, str], name: str, default: str | None = None) -> int:
    value = env.get(name) or default
    if value is None:
        raise ConfigError(f"Missing required environment variable: {name}")
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True, slots=True)
class RedisConfig:
    """Connection settings for the persistent queue store."""
    host: str
    port: int
    timeout: float = 5.0  # seconds per round-trip

    def __post_init__(self) -> None:
        """Validate redis configuration."""
        if not self.host:
            raise ConfigError("Redis host is required (REDIS_HOST)")
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid redis port: {self.port}")
        if self.timeout <= 0:
            raise ConfigError(f"Redis timeout must be positive, got {self.timeout}")
        if self.timeout > 120:
            raise ConfigError(f"Redis timeout too long (max 120s), got {self.timeout}")


@dataclass(frozen=True, slots=True)
class CommonConfig:
    """Settings shared by every process in the relayer group."""

    log_level: str
    redis: RedisConfig
    log_dir: str | None = None

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, log_level: str | None = None
    ) -> "CommonConfig":
        """
        Load common configuration from environment variables.

        Args:
            environ: Environment mapping, defaults to os.environ
            log_level: Explicit log level; LOG_LEVEL is only required without it

        Raises:
            ConfigError: If required environment variables are missing
        """
        env = os.environ if environ is None else environ
        log_level = log_level or _required_env(env, "LOG_LEVEL")
        redis_host = _required_env(env, "REDIS_HOST")
        redis_port = _int_env(env, "REDIS_PORT")
        try:
            redis_timeout = float(env.get("REDIS_TIMEOUT") or 5.0)
        except ValueError:
            raise ConfigError(f"REDIS_TIMEOUT must be a number, got {env.get('REDIS_TIMEOUT')!r}") from None

        return cls(
            log_level=log_level,
            redis=RedisConfig(host=redis_host, port=redis_port, timeout=redis_timeout),
            log_dir=env.get("LOG_DIR") or None,
        )

    def log_config(self) -> None:
        logger.info(f"Log level: {self.log_level}")
        if self.log_dir:
            logger.info(f"Log dir: {self.log_dir}")
        logger.info(f"Redis: {self.redis.host}:{self.redis.port} (timeout {self.redis.timeout}s)")


@dataclass(frozen=True, slots=True)
class ListenerConfig:
    """Configuration for the attestation listener and its validation rules."""

    spy_service_host: str
    spy_service_filters: tuple[SpyFilter, ...]
    rest_port: int
    num_spy_workers: int
    supported_tokens: tuple[AllowlistEntry, ...]
    dedup_failure_policy: DedupFailurePolicy = DedupFailurePolicy.FAIL_OPEN
    backlog_size: int = 10_000

    def __post_init__(self) -> None:
        """Validate listener configuration."""
        if self.num_spy_workers <= 0:
            raise ConfigError(f"SPY_NUM_WORKERS must be positive, got {self.num_spy_workers}")
        if self.backlog_size <= 0:
            raise ConfigError(f"BACKLOG_SIZE must be positive, got {self.backlog_size}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ListenerConfig":
        """
        Load listener configuration from environment variables.

        Raises:
            ConfigError: If required environment variables are missing or invalid
        """
        env = os.environ if environ is None else environ
        spy_service_host = _required_env(env, "SPY_SERVICE_HOST")
        spy_service_filters = load_spy_filters(_required_env(env, "SPY_SERVICE_FILTERS"))
        rest_port = _int_env(env, "REST_PORT")
        num_spy_workers = _int_env(env, "SPY_NUM_WORKERS")
        supported_tokens = load_supported_tokens(_required_env(env, "SUPPORTED_TOKENS"))

        policy_name = env.get("DEDUP_FAILURE_POLICY") or DedupFailurePolicy.FAIL_OPEN.value
        try:
            policy = DedupFailurePolicy(policy_name.lower())
        except ValueError:
            raise ConfigError(
                f"Invalid DEDUP_FAILURE_POLICY: {policy_name}. "
                f"Expected one of: {', '.join(p.value for p in DedupFailurePolicy)}"
            ) from None

        return cls(
            spy_service_host=spy_service_host,
            spy_service_filters=spy_service_filters,
            rest_port=rest_port,
            num_spy_workers=num_spy_workers,
            supported_tokens=supported_tokens,
            dedup_failure_policy=policy,
            backlog_size=_int_env(env, "BACKLOG_SIZE", "10000"),
        )

    def log_config(self) -> None:
        logger.info(f"Spy service: {self.spy_service_host} ({self.num_spy_workers} workers)")
        logger.info(f"REST port: {self.rest_port}")
        logger.info(f"Emitter filters: {len(self.spy_service_filters)}")
        logger.info(f"Supported tokens: {len(self.supported_tokens)}")
        logger.info(f"Dedup failure policy: {self.dedup_failure_policy.value}")
        logger.info(f"Backlog size: {self.backlog_size}")


@dataclass(frozen=True, slots=True)
class RelayerConfig:
    """Per-chain connection and credential data for the relayer."""

    supported_chains: tuple[ChainConfig, ...]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RelayerConfig":
        """
        Load chain configuration from the SUPPORTED_CHAINS variable.

        Raises:
            ConfigError: If the variable is missing or any chain record is invalid
        """
        env = os.environ if environ is None else environ
        chains = load_chain_configs(_required_env(env, "SUPPORTED_CHAINS"))
        return cls(supported_chains=tuple(chains))

    def get_chain(self, chain_id: int) -> ChainConfig | None:
        """Return the config for a chain id, or None if it is not supported."""
        for chain in self.supported_chains:
            if chain.chain_id == chain_id:
                return chain
        return None

    def log_config(self) -> None:
        for chain in self.supported_chains:
            if isinstance(chain, SolanaChainConfig):
                keys = chain.solana_private_keys
            else:
                keys = chain.wallet_private_keys
            logger.info(
                f"Chain {chain.chain_id} ({chain.chain_name}, "
                f"{CHAIN_NAMES.get(chain.chain_id, chain.family.value)}): "
                f"node {chain.node_url}, token bridge {chain.token_bridge_address}, "
                f"keys {'[SET] x' + str(len(keys)) if keys else '[NOT SET]'}"
            )
