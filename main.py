#!/usr/bin/env python3
"""Entry point for the VAA listener.

Loads configuration from the environment and runs hex-encoded VAAs through
the validation pipeline, printing whether each one would be queued.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


logger = logging.getLogger(__name__)

from vaa_listener.config import ConfigError, RelayerConfig
from vaa_listener.listener import VaaListener


def read_vaas(args: argparse.Namespace) -> list[str]:
    """Collect hex VAAs from the command line and the optional input file."""
    vaas = list(args.vaa)
    if args.file:
        with open(args.file, encoding="utf-8") as fh:
            vaas.extend(line.strip() for line in fh if line.strip())
    return vaas


async def main() -> int:
    """Validate the given VAAs and report the outcome of each."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="VAA Listener - decode, validate and deduplicate token transfer VAAs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
  REDIS_HOST           - Queue store host
  REDIS_PORT           - Queue store port
  REDIS_TIMEOUT        - Queue store round-trip timeout in seconds (default: 5)
  SPY_SERVICE_HOST     - Attestation feed host
  SPY_SERVICE_FILTERS  - JSON array of {chainId, emitterAddress}
  REST_PORT            - REST listener port
  SPY_NUM_WORKERS      - Number of feed workers
  SUPPORTED_TOKENS     - JSON array of {chainId, address}
  SUPPORTED_CHAINS     - JSON array of chain configurations
  DEDUP_FAILURE_POLICY - fail-open (default) or fail-closed
        """
    )
    parser.add_argument("vaa", nargs="*", help="Hex-encoded signed VAA")
    parser.add_argument("--file", help="File with one hex-encoded VAA per line")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args = parser.parse_args()
    setup_logging(args.log_level)

    try:
        relayer_config = RelayerConfig.from_env()
        relayer_config.log_config()
        listener = VaaListener.from_env(log_level=args.log_level)
    except ConfigError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables (see --help)")
        return 1

    try:
        for raw_vaa in read_vaas(args):
            result = await listener.validator.parse_and_validate(raw_vaa)
            if isinstance(result, str):
                print(f"REJECTED {result}")
            else:
                print(f"ACCEPTED {result.key}")
    finally:
        await listener.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
