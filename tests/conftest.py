"""
Pytest configuration and fixtures for swap executor tests.
"""
import pytest
from unittest.mock import AsyncMock
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.rpc.responses import RpcBlockhash

from zeroex_swap.config import KeypairConfig, SwapConfig, TradeParams
from zeroex_swap.solana_client import SimulationResult


@pytest.fixture
def sol_mint():
    """SOL mint address."""
    return "So11111111111111111111111111111111111111112"


@pytest.fixture
def usdc_mint():
    """USDC mint address."""
    return "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def mock_keypair():
    """Create a keypair for testing."""
    return Keypair()


@pytest.fixture
def trade_params(sol_mint, usdc_mint):
    """0.001 SOL -> USDC at 1% slippage."""
    return TradeParams(
        token_in=sol_mint,
        token_out=usdc_mint,
        amount_in=1_000_000,
        slippage_bps=100
    )


@pytest.fixture
def make_config(mock_keypair, trade_params):
    """Factory for SwapConfig with overridable key/dry-run settings."""
    def _make(dry_run: bool = True, is_user_provided: bool = True) -> SwapConfig:
        return SwapConfig(
            zeroex_api_key="test_key",
            rpc_url="https://api.mainnet-beta.solana.com",
            keypair_config=KeypairConfig(keypair=mock_keypair, is_user_provided=is_user_provided),
            dry_run=dry_run,
            trade=trade_params
        )
    return _make


@pytest.fixture
def program_id():
    return Pubkey.new_unique()


@pytest.fixture
def account_pubkeys():
    return [Pubkey.new_unique(), Pubkey.new_unique()]


@pytest.fixture
def quote_payload(mock_keypair, program_id, account_pubkeys):
    """0x swap-instructions response: one instruction with 2 accounts, no ALTs."""
    return {
        "amount_out": 5_000_000,
        "instructions": [
            {
                "program_id": list(bytes(program_id)),
                "accounts": [
                    {"pubkey": list(bytes(mock_keypair.pubkey())), "is_signer": True, "is_writable": True},
                    {"pubkey": list(bytes(account_pubkeys[0])), "is_signer": False, "is_writable": False},
                ],
                "data": [1, 2, 3, 4],
            }
        ],
    }


@pytest.fixture
def latest_blockhash():
    """Blockhash as returned by getLatestBlockhash."""
    return RpcBlockhash(Hash.new_unique(), 250_000_000)


@pytest.fixture
def mock_solana_client(latest_blockhash):
    """SolanaClient mock that resolves no ALTs and simulates successfully."""
    client = AsyncMock()
    client.get_address_lookup_table_accounts.return_value = []
    client.get_latest_blockhash.return_value = latest_blockhash
    client.simulate_versioned_transaction.return_value = SimulationResult(
        err=None, logs=["Program log: ok"], units_consumed=1000
    )
    client.confirm_transaction.return_value = None
    return client


@pytest.fixture
def mock_zeroex_client():
    """Create a mock ZeroExClient for testing."""
    return AsyncMock()
