"""
Main entry point for the 0x Solana swap executor.
"""
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .config import load_config
from .errors import ConfigurationError
from .executor import SwapExecutor
from .solana_client import SolanaClient
from .zeroex_client import ZeroExClient

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'zeroex_swap.log'

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO", log_file: Optional[str] = LOG_FILE):
    """Log to stdout and, if log_file is set, to a file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


async def close_clients(*clients):
    """Close every client, even if an earlier close fails."""
    for client in clients:
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"Error closing {type(client).__name__}: {e}")


async def main(env_path: Optional[Union[str, Path]] = None) -> int:
    """
    Run one swap.

    Returns:
        0 if the run ended in success or a safety gate, 1 on any failure
    """
    configure_logging()
    logger.info("Starting 0x Solana swap")

    try:
        config = load_config(env_path=env_path)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logging.getLogger().setLevel(config.log_level)

    trade = config.trade
    logger.info(
        f"Swap: {trade.amount_in} base units {trade.token_in} -> {trade.token_out} "
        f"(slippage {trade.slippage_bps} bps), dry_run={config.dry_run}"
    )
    # Extract domain for logging (don't log full URL, it may carry an API key)
    rpc_domain = config.rpc_url.split('//')[1].split('/')[0] if '//' in config.rpc_url else config.rpc_url
    logger.info(f"RPC: {rpc_domain}, wallet: {config.keypair_config.keypair.pubkey()}")

    zeroex = ZeroExClient(
        config.zeroex_api_key,
        api_url=config.zeroex_api_url,
        timeout=config.request_timeout
    )
    solana = SolanaClient(config.rpc_url)

    try:
        executor = SwapExecutor(zeroex, solana, config)
        result = await executor.execute_swap()
    finally:
        await close_clients(zeroex, solana)

    logger.debug(f"Run finished: {result.outcome.value}")
    return 0 if result.succeeded else 1


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
