"""
Chain identifiers and chain-family classification.

Chain ids are the small positive integers used by the attestation network,
not the EVM chain ids of the underlying networks.
"""

from enum import Enum

CHAIN_ID_SOLANA = 1
CHAIN_ID_ETH = 2
CHAIN_ID_TERRA = 3
CHAIN_ID_BSC = 4
CHAIN_ID_POLYGON = 5
CHAIN_ID_AVAX = 6
CHAIN_ID_OASIS = 7
CHAIN_ID_AURORA = 9
CHAIN_ID_FANTOM = 10
CHAIN_ID_KARURA = 11
CHAIN_ID_ACALA = 12
CHAIN_ID_KLAYTN = 13
CHAIN_ID_CELO = 14

CHAIN_NAMES: dict[int, str] = {
    CHAIN_ID_SOLANA: "solana",
    CHAIN_ID_ETH: "ethereum",
    CHAIN_ID_TERRA: "terra",
    CHAIN_ID_BSC: "bsc",
    CHAIN_ID_POLYGON: "polygon",
    CHAIN_ID_AVAX: "avalanche",
    CHAIN_ID_OASIS: "oasis",
    CHAIN_ID_AURORA: "aurora",
    CHAIN_ID_FANTOM: "fantom",
    CHAIN_ID_KARURA: "karura",
    CHAIN_ID_ACALA: "acala",
    CHAIN_ID_KLAYTN: "klaytn",
    CHAIN_ID_CELO: "celo",
}


class ChainFamily(str, Enum):
    """Chain families with distinct address formats and credential shapes."""
    EVM = "evm"
    SOLANA = "solana"
    TERRA = "terra"


def chain_family(chain_id: int) -> ChainFamily:
    """
    Classify a chain id into its family.

    Solana and Terra are matched exactly; every other id is treated as
    EVM-compatible.
    """
    if chain_id == CHAIN_ID_SOLANA:
        return ChainFamily.SOLANA
    if chain_id == CHAIN_ID_TERRA:
        return ChainFamily.TERRA
    return ChainFamily.EVM
