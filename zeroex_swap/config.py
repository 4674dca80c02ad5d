"""
Configuration loading for the swap executor.

Settings come from environment variables, optionally seeded from a .env file
at the repository root. Everything is validated once at startup and returned
as a SwapConfig that is passed explicitly to every component.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

import base58
import dotenv
import httpx
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SOLANA_DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
ZEROEX_DEFAULT_API_URL = "https://api.0x.org"

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

DEFAULT_AMOUNT_IN = 1_000_000  # 0.001 SOL
DEFAULT_SLIPPAGE_BPS = 100
MAX_SLIPPAGE_BPS = 10_000


@dataclass(frozen=True)
class TradeParams:
    """Fixed parameters of the swap to quote."""
    token_in: str
    token_out: str
    amount_in: int  # base units of token_in
    slippage_bps: int


@dataclass(frozen=True)
class KeypairConfig:
    """Signing key and whether it came from the user (funded) or was generated."""
    keypair: Keypair
    is_user_provided: bool


@dataclass(frozen=True)
class SwapConfig:
    """Process-wide settings, loaded once at startup."""
    zeroex_api_key: str
    rpc_url: str
    keypair_config: KeypairConfig
    dry_run: bool
    trade: TradeParams
    zeroex_api_url: str = ZEROEX_DEFAULT_API_URL
    request_timeout: float = 10.0
    log_level: str = "INFO"


def load_wallet(private_key_str: Optional[str]) -> KeypairConfig:
    """
    Load wallet from a base58 private key, or generate an ephemeral one.

    A generated keypair is good for quoting only: it has no funds and its
    secret is never shown, so it is flagged as not user-provided.

    Args:
        private_key_str: base58-encoded 64-byte keypair or 32-byte seed

    Returns:
        KeypairConfig

    Raises:
        ConfigurationError: If the key is present but cannot be decoded
    """
    if not private_key_str or not private_key_str.strip():
        logger.warning("No PRIVATE_KEY provided, using a generated keypair (simulation and sending disabled)")
        return KeypairConfig(keypair=Keypair(), is_user_provided=False)

    try:
        key_bytes = base58.b58decode(private_key_str.strip())
    except ValueError as e:
        raise ConfigurationError(f"PRIVATE_KEY is not valid base58: {e}") from e

    try:
        if len(key_bytes) == 64:
            keypair = Keypair.from_bytes(key_bytes)
        elif len(key_bytes) == 32:
            keypair = Keypair.from_seed(key_bytes)
        else:
            raise ConfigurationError(
                f"PRIVATE_KEY must decode to 64 bytes (or a 32-byte seed), got {len(key_bytes)}"
            )
    except ValueError as e:
        raise ConfigurationError(f"PRIVATE_KEY is not a valid keypair: {e}") from e

    return KeypairConfig(keypair=keypair, is_user_provided=True)


def parse_dry_run(value: Optional[str]) -> bool:
    """DRY_RUN accepts only 'true' or 'false'; unset means true."""
    if value is None or not value.strip():
        return True
    normalized = value.strip().lower()
    if normalized not in ("true", "false"):
        raise ConfigurationError(f"DRY_RUN must be 'true' or 'false', got {value!r}")
    return normalized != "false"


def parse_rpc_url(value: Optional[str]) -> str:
    """Validate RPC_URL, falling back to the public mainnet endpoint."""
    if value is None or not value.strip():
        return SOLANA_DEFAULT_RPC_URL

    value = value.strip()
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"RPC_URL is not a valid URL: {value}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"RPC_URL must be an http(s) URL, got {value}")
    return value


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _parse_mint(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    mint = raw.strip()
    try:
        Pubkey.from_string(mint)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not a valid Solana address: {mint}") from e
    return mint


def parse_trade_params(env: Mapping[str, str]) -> TradeParams:
    """Read the swap parameters, defaulting to 0.001 SOL -> USDC at 1% slippage."""
    amount_in = _parse_int(env, 'AMOUNT_IN', DEFAULT_AMOUNT_IN)
    if amount_in <= 0:
        raise ConfigurationError(f"AMOUNT_IN must be positive, got {amount_in}")

    slippage_bps = _parse_int(env, 'SLIPPAGE_BPS', DEFAULT_SLIPPAGE_BPS)
    if not 0 <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise ConfigurationError(
            f"SLIPPAGE_BPS must be between 0 and {MAX_SLIPPAGE_BPS}, got {slippage_bps}"
        )

    token_in = _parse_mint(env, 'TOKEN_IN', SOL_MINT)
    token_out = _parse_mint(env, 'TOKEN_OUT', USDC_MINT)
    if token_in == token_out:
        raise ConfigurationError("TOKEN_IN and TOKEN_OUT must differ")

    return TradeParams(
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        slippage_bps=slippage_bps
    )


def load_config(
    env: Optional[Mapping[str, str]] = None,
    env_path: Optional[Union[str, Path]] = None
) -> SwapConfig:
    """
    Load and validate configuration.

    Args:
        env: Explicit variable mapping (skips .env loading); defaults to os.environ
        env_path: .env file to load; defaults to the repository root .env

    Returns:
        SwapConfig

    Raises:
        ConfigurationError: On any missing or invalid setting
    """
    if env is None:
        path = Path(env_path) if env_path else Path(__file__).parent.parent / '.env'
        if path.exists():
            dotenv.load_dotenv(path)
        elif env_path:
            raise ConfigurationError(f".env file not found at {path}")
        else:
            logger.debug(f".env file not found at {path}, using process environment")
        env = os.environ

    api_key = (env.get('ZEROEX_API_KEY') or '').strip()
    if not api_key:
        raise ConfigurationError("ZEROEX_API_KEY is not set")

    zeroex_api_url = (env.get('ZEROEX_API_URL') or '').strip() or ZEROEX_DEFAULT_API_URL

    log_level = (env.get('LOG_LEVEL') or 'INFO').strip().upper()
    if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        raise ConfigurationError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    return SwapConfig(
        zeroex_api_key=api_key,
        rpc_url=parse_rpc_url(env.get('RPC_URL')),
        keypair_config=load_wallet(env.get('PRIVATE_KEY')),
        dry_run=parse_dry_run(env.get('DRY_RUN')),
        trade=parse_trade_params(env),
        zeroex_api_url=zeroex_api_url.rstrip('/'),
        log_level=log_level
    )
